from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, Optional, Tuple

from html_publisher.domain.errors import ConfigurationError
from html_publisher.domain.models import ActionKind, PublishedAction, ReportTarget

log = logging.getLogger(__name__)


class TargetRegistry:
    """
    Ordered, read-only list of the report targets configured for one job.
    Report names must be unique; sanitized name clashes are only warned about.
    """

    def __init__(self, targets: Iterable[ReportTarget] = ()):
        self._targets: Tuple[ReportTarget, ...] = tuple(targets)
        self._by_slug: Dict[str, ReportTarget] = {}

        seen_names = set()
        for t in self._targets:
            if not (t.name or "").strip():
                raise ConfigurationError("Report name is required.")
            if t.name in seen_names:
                raise ConfigurationError(f"Duplicate report name: {t.name!r}")
            seen_names.add(t.name)

            if t.sanitized_name in self._by_slug:
                log.warning(
                    "[htmlpublisher] Reports %r and %r share the archive directory %r",
                    self._by_slug[t.sanitized_name].name, t.name, t.sanitized_name,
                )
            else:
                self._by_slug[t.sanitized_name] = t

    @property
    def targets(self) -> Tuple[ReportTarget, ...]:
        return self._targets

    def __iter__(self) -> Iterator[ReportTarget]:
        return iter(self._targets)

    def __len__(self) -> int:
        return len(self._targets)

    def get(self, name: str) -> Optional[ReportTarget]:
        return next((t for t in self._targets if t.name == name), None)

    def by_sanitized_name(self, slug: str) -> Optional[ReportTarget]:
        return self._by_slug.get(slug)

    def project_actions(self) -> Tuple[PublishedAction, ...]:
        return tuple(PublishedAction(ActionKind.PROJECT_LEVEL_LINK, t.name) for t in self._targets)
