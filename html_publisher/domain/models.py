######## models.py
########

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Tuple

if TYPE_CHECKING:
    from html_publisher.domain.build_context import BuildContext

WRAPPER_NAME = "htmlpublisher-wrapper.html"
ARCHIVE_DIR_NAME = "htmlreports"


class Classification(Enum):
    PASS = "success"
    FAIL = "failure"

    @property
    def rank(self) -> int:
        # PASS tabs are listed before FAIL tabs
        return 0 if self is Classification.PASS else 1


class ArchiveOutcome(Enum):
    SUCCESS = "success"
    SOURCE_MISSING = "source_missing"
    COPY_FAILED = "copy_failed"


class TargetStatus(Enum):
    PUBLISHED = "published"
    SKIPPED_MISSING = "skipped_missing"
    SOURCE_MISSING = "source_missing"
    COPY_FAILED = "copy_failed"
    CONFIGURATION_ERROR = "configuration_error"
    SCAN_FAILED = "scan_failed"

    @property
    def failed(self) -> bool:
        return self not in (TargetStatus.PUBLISHED, TargetStatus.SKIPPED_MISSING)


class ActionKind(Enum):
    PROJECT_LEVEL_LINK = "project_link"
    BUILD_LEVEL_LINK = "build_link"
    HIDDEN_MARKER = "hidden_marker"


@dataclass(frozen=True)
class ReportTarget:
    """One configured report directory to index, archive and link."""
    name: str
    source_dir: str
    file_pattern: str = "index.html"
    failure_pattern: Optional[str] = None
    keep_all: bool = False
    always_link_latest: bool = False
    allow_missing: bool = False

    @property
    def sanitized_name(self) -> str:
        return self.name.replace(" ", "_")

    @property
    def wrapper_name(self) -> str:
        return WRAPPER_NAME

    @property
    def zip_link(self) -> str:
        return f"*zip*/{self.sanitized_name}.zip"

    def archive_dir(self, context: "BuildContext") -> Path:
        return context.owner_root(self.keep_all) / ARCHIVE_DIR_NAME / self.sanitized_name


@dataclass(frozen=True)
class ClassifiedFile:
    relative_path: str
    classification: Classification

    @property
    def sort_key(self) -> Tuple[int, str]:
        return self.classification.rank, self.relative_path


ReportIndex = Tuple[ClassifiedFile, ...]


@dataclass(frozen=True)
class TabEntry:
    tab_id: str
    label: str
    target: str
    result: str


@dataclass(frozen=True)
class WrapperDocument:
    header_lines: Tuple[str, ...]
    body_lines: Tuple[str, ...]
    footer_lines: Tuple[str, ...]
    tabs: Tuple[TabEntry, ...] = ()

    def lines(self) -> Tuple[str, ...]:
        return self.header_lines + self.body_lines + self.footer_lines

    def text(self) -> str:
        return "".join(line + "\n" for line in self.lines())


@dataclass(frozen=True)
class PublishedAction:
    kind: ActionKind
    report_name: str
    build_number: Optional[int] = None

    @property
    def url_name(self) -> str:
        return self.report_name.replace(" ", "_")

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "report_name": self.report_name, "build_number": self.build_number}

    @staticmethod
    def from_dict(raw: dict) -> "PublishedAction":
        return PublishedAction(
            kind=ActionKind(raw["kind"]),
            report_name=raw["report_name"],
            build_number=raw.get("build_number"),
        )


@dataclass(frozen=True)
class TargetOutcome:
    target: ReportTarget
    status: TargetStatus
    index: ReportIndex = ()
    archive_dir: Optional[Path] = None
    message: str = ""


@dataclass(frozen=True)
class PublishResult:
    outcomes: Tuple[TargetOutcome, ...] = field(default_factory=tuple)

    @property
    def success(self) -> bool:
        return not any(o.status.failed for o in self.outcomes)

    @property
    def failed_targets(self) -> Tuple[TargetOutcome, ...]:
        return tuple(o for o in self.outcomes if o.status.failed)
