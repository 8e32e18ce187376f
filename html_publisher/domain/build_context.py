from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Mapping, Optional, Tuple
from urllib.parse import quote

from html_publisher.domain.models import PublishedAction


class BuildResult(Enum):
    SUCCESS = "SUCCESS"
    UNSTABLE = "UNSTABLE"
    FAILURE = "FAILURE"

    @property
    def severity(self) -> int:
        return {"SUCCESS": 0, "UNSTABLE": 1, "FAILURE": 2}[self.value]

    def is_better_or_equal(self, other: "BuildResult") -> bool:
        return self.severity <= other.severity


@dataclass(frozen=True)
class BuildRecord:
    """What is persisted about a finished build."""
    number: int
    result: BuildResult
    actions: Tuple[PublishedAction, ...] = ()

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "result": self.result.value,
            "actions": [a.to_dict() for a in self.actions],
        }

    @staticmethod
    def from_dict(raw: dict) -> "BuildRecord":
        return BuildRecord(
            number=int(raw["number"]),
            result=BuildResult(raw.get("result", BuildResult.SUCCESS.value)),
            actions=tuple(PublishedAction.from_dict(a) for a in raw.get("actions", [])),
        )


@dataclass
class BuildContext:
    """
    Everything the publisher needs to know about the running build.
    Passed explicitly into the service instead of looking up global state.
    """
    job_name: str
    job_root: Path
    build_number: int
    workspace: Path
    env: Mapping[str, str] = field(default_factory=dict)
    root_url: Optional[str] = None
    result: BuildResult = BuildResult.SUCCESS
    actions: List[PublishedAction] = field(default_factory=list)

    @property
    def build_root(self) -> Path:
        return self.job_root / "builds" / str(self.build_number)

    def owner_root(self, keep_all: bool) -> Path:
        return self.build_root if keep_all else self.job_root

    def job_url(self) -> Optional[str]:
        if not self.root_url:
            return None
        return f"{self.root_url.rstrip('/')}/job/{quote(self.job_name)}/"

    def set_result(self, result: BuildResult) -> None:
        # a build result can only get worse
        if result.severity > self.result.severity:
            self.result = result

    def mark_failure(self) -> None:
        self.set_result(BuildResult.FAILURE)

    def add_action(self, action: PublishedAction) -> None:
        self.actions.append(action)

    def to_record(self) -> BuildRecord:
        return BuildRecord(number=self.build_number, result=self.result, actions=tuple(self.actions))
