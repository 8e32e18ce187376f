from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Pattern

from html_publisher.domain.models import Classification, ClassifiedFile, ReportIndex
from html_publisher.services.failure_scanner import FailureScanner
from html_publisher.services.path_matcher import PathMatcher

log = logging.getLogger(__name__)


def sort_index(results: Dict[str, Classification]) -> ReportIndex:
    """Blank names dropped, then ordered by classification and path."""
    entries = [
        ClassifiedFile(relative_path=path.strip(), classification=cls)
        for path, cls in results.items()
        if path.strip()
    ]
    return tuple(sorted(entries, key=lambda e: e.sort_key))


@dataclass
class ReportIndexer:
    """
    Matches report files under a directory and classifies each one.
    Classification of separate files is independent, so it can run on a pool.
    """
    matcher: PathMatcher = field(default_factory=PathMatcher)
    scanner: FailureScanner = field(default_factory=FailureScanner)
    max_workers: int = 1

    def index(self, base_dir: Path, include_pattern: str, failure_regex: Optional[Pattern[str]]) -> ReportIndex:
        base_dir = Path(base_dir)
        paths = self.matcher.resolve(base_dir, include_pattern)
        results: Dict[str, Classification] = {}

        if self.max_workers > 1 and failure_regex is not None and len(paths) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                future_to_path = {
                    executor.submit(self.scanner.classify, base_dir / rel, failure_regex): rel
                    for rel in paths
                }
                for future in as_completed(future_to_path):
                    results[future_to_path[future]] = future.result()
        else:
            for rel in paths:
                results[rel] = self.scanner.classify(base_dir / rel, failure_regex)

        index = sort_index(results)
        failed = sum(1 for e in index if e.classification is Classification.FAIL)
        log.info("[htmlpublisher] Indexed %d report file(s) in %s (%d failed)", len(index), base_dir, failed)
        return index
