from .failure_scanner import FailureScanner, compile_failure_pattern
from .path_matcher import PathMatcher
from .report_indexer import ReportIndexer
from .target_registry import TargetRegistry
from .variables import EnvVariableResolver, NoopVariableResolver, VariableResolver
from .wrapper_renderer import WrapperRenderer

__all__ = [
    "EnvVariableResolver",
    "FailureScanner",
    "NoopVariableResolver",
    "PathMatcher",
    "ReportIndexer",
    "TargetRegistry",
    "VariableResolver",
    "WrapperRenderer",
    "compile_failure_pattern",
]
