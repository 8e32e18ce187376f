from .build_context import BuildContext, BuildRecord, BuildResult
from .errors import ConfigurationError, PublisherError, ScanError
from .models import (
    ActionKind,
    ArchiveOutcome,
    Classification,
    ClassifiedFile,
    PublishedAction,
    PublishResult,
    ReportIndex,
    ReportTarget,
    TabEntry,
    TargetOutcome,
    TargetStatus,
    WrapperDocument,
)

__all__ = [
    "ActionKind",
    "ArchiveOutcome",
    "BuildContext",
    "BuildRecord",
    "BuildResult",
    "Classification",
    "ClassifiedFile",
    "ConfigurationError",
    "PublishedAction",
    "PublisherError",
    "PublishResult",
    "ReportIndex",
    "ReportTarget",
    "ScanError",
    "TabEntry",
    "TargetOutcome",
    "TargetStatus",
    "WrapperDocument",
]
