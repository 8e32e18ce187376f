from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from html_publisher.domain.errors import PublisherError
from html_publisher.domain.models import WRAPPER_NAME, ArchiveOutcome, WrapperDocument
from html_publisher.services.path_matcher import PathMatcher

log = logging.getLogger(__name__)

COPY_ALL = "**/*"


@dataclass
class ArchiveRepository:
    """
    Repository pattern: owns the archived copies of report directories.
    Copies a source tree into its archive directory and drops the wrapper next to it.
    """
    matcher: PathMatcher = field(default_factory=PathMatcher)
    wrapper_name: str = WRAPPER_NAME

    def copy_tree(self, source_dir: Path, target_dir: Path) -> int:
        copied = 0
        for rel in sorted(self.matcher.resolve(source_dir, COPY_ALL)):
            dest = target_dir / rel
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source_dir / rel, dest)
            copied += 1
        return copied

    def archive(
        self,
        source_dir: Path,
        target_dir: Path,
        keep_all: bool,
        allow_missing: bool,
        wrapper: WrapperDocument,
    ) -> ArchiveOutcome:
        source_dir = Path(source_dir)
        target_dir = Path(target_dir)
        source_exists = source_dir.is_dir()

        if not source_exists and not allow_missing:
            log.error("[htmlpublisher] Specified HTML directory '%s' does not exist.", source_dir)
            return ArchiveOutcome.SOURCE_MISSING

        try:
            if not keep_all and target_dir.exists():
                # only one copy is kept at the project level
                shutil.rmtree(target_dir)

            copied = self.copy_tree(source_dir, target_dir) if source_exists else 0
        except (OSError, PublisherError) as e:
            log.error("[htmlpublisher] Failed copying '%s' to '%s': %s", source_dir, target_dir, e)
            return ArchiveOutcome.COPY_FAILED

        if copied == 0 and not allow_missing:
            log.error("[htmlpublisher] Directory '%s' exists but failed copying to '%s'.", source_dir, target_dir)
            return ArchiveOutcome.COPY_FAILED

        if source_exists:
            try:
                self.write_wrapper(target_dir, wrapper)
            except OSError as e:
                log.error("[htmlpublisher] Failed writing %s into '%s': %s", self.wrapper_name, target_dir, e)
                return ArchiveOutcome.COPY_FAILED

        log.info("[htmlpublisher] Copied %d file(s) from '%s' to '%s'", copied, source_dir, target_dir)
        return ArchiveOutcome.SUCCESS

    def write_wrapper(self, target_dir: Path, wrapper: WrapperDocument) -> Path:
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / self.wrapper_name
        path.write_bytes(wrapper.text().encode("utf-8"))
        return path
