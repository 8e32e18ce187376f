import logging
from dataclasses import dataclass, field
from string import Template
from typing import Mapping

log = logging.getLogger(__name__)


class VariableResolver:
    """Strategy interface."""
    def resolve(self, text: str) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class NoopVariableResolver(VariableResolver):
    def resolve(self, text: str) -> str:
        return text


@dataclass(frozen=True)
class EnvVariableResolver(VariableResolver):
    """
    Expands $NAME and ${NAME} from the build environment.
    Unknown references stay as written; errors never fail the pass.
    """
    env: Mapping[str, str] = field(default_factory=dict)

    def resolve(self, text: str) -> str:
        if not text or "$" not in text:
            return text or ""
        try:
            return Template(text).safe_substitute(self.env)
        except Exception as e:
            log.warning("[htmlpublisher] Failed to resolve parameters in string %r due to following error: %s", text, e)
            return text
