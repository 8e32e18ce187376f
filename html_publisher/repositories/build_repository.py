from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from html_publisher.domain.build_context import BuildContext, BuildRecord, BuildResult
from html_publisher.domain.models import ARCHIVE_DIR_NAME, ActionKind, ReportTarget

log = logging.getLogger(__name__)

RECORD_NAME = "build.json"


def _build_numbers_in(builds_dir: Path) -> List[int]:
    if not builds_dir.exists():
        return []
    return sorted(int(p.name) for p in builds_dir.iterdir() if p.is_dir() and p.name.isdigit())


@dataclass
class BuildRepository:
    """
    Repository pattern: encapsulates the on-disk build records of one job
    and where each report's archive lives.
    """
    job_root: Path

    @property
    def builds_dir(self) -> Path:
        return self.job_root / "builds"

    def build_root(self, number: int) -> Path:
        return self.builds_dir / str(number)

    def next_build_number(self) -> int:
        numbers = _build_numbers_in(self.builds_dir)
        return numbers[-1] + 1 if numbers else 1

    def save(self, context: BuildContext) -> Path:
        path = context.build_root / RECORD_NAME
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(context.to_record().to_dict(), indent=2), encoding="utf-8")
        return path

    def load(self, number: int) -> Optional[BuildRecord]:
        path = self.build_root(number) / RECORD_NAME
        if not path.exists():
            return None
        try:
            return BuildRecord.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError, KeyError) as e:
            log.warning("[htmlpublisher] Ignoring unreadable build record %s: %s", path, e)
            return None

    def records(self) -> List[BuildRecord]:
        found = (self.load(n) for n in _build_numbers_in(self.builds_dir))
        return [r for r in found if r is not None]

    def last_build(self) -> Optional[BuildRecord]:
        records = self.records()
        return records[-1] if records else None

    def last_successful_build(self) -> Optional[BuildRecord]:
        # UNSTABLE still counts as successful
        ok = [r for r in self.records() if r.result.is_better_or_equal(BuildResult.UNSTABLE)]
        return ok[-1] if ok else None

    def project_archive_dir(self, target: ReportTarget) -> Path:
        return self.job_root / ARCHIVE_DIR_NAME / target.sanitized_name

    def build_archive_dir(self, number: int, target: ReportTarget) -> Path:
        return self.build_root(number) / ARCHIVE_DIR_NAME / target.sanitized_name

    def project_report_dir(self, target: ReportTarget) -> Path:
        """
        Directory behind the project level link: the archive of the last
        (or last successful) build if it has one, otherwise the job archive.
        """
        record = self.last_build() if target.always_link_latest else self.last_successful_build()
        if record is not None:
            build_dir = self.build_archive_dir(record.number, target)
            if build_dir.exists():
                return build_dir
        return self.project_archive_dir(target)

    def build_links(self) -> List[BuildRecord]:
        """Builds that carry at least one build level report link, newest first."""
        linked = [
            r for r in self.records()
            if any(a.kind is ActionKind.BUILD_LEVEL_LINK for a in r.actions)
        ]
        return list(reversed(linked))
