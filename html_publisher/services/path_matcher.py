from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Pattern, Set, Tuple

from html_publisher.domain.errors import ConfigurationError, ScanError

log = logging.getLogger(__name__)

# Ant's default excludes: VCS metadata and editor droppings are never published.
DEFAULT_EXCLUDES: Tuple[str, ...] = (
    "**/*~",
    "**/#*#",
    "**/.#*",
    "**/%*%",
    "**/._*",
    "**/CVS",
    "**/CVS/**",
    "**/.cvsignore",
    "**/SCCS",
    "**/SCCS/**",
    "**/vssver.scc",
    "**/.svn",
    "**/.svn/**",
    "**/.DS_Store",
    "**/.git",
    "**/.git/**",
    "**/.gitattributes",
    "**/.gitignore",
    "**/.gitmodules",
    "**/.hg",
    "**/.hg/**",
    "**/.hgignore",
    "**/.hgsub",
    "**/.hgsubstate",
    "**/.hgtags",
    "**/.bzr",
    "**/.bzr/**",
    "**/.bzrignore",
)


def split_patterns(include_pattern: str) -> List[str]:
    """Comma separated list -> stripped, non-empty tokens."""
    return [t.strip() for t in (include_pattern or "").split(",") if t.strip()]


def _segment_regex(segment: str) -> str:
    out = []
    for ch in segment:
        if ch == "*":
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        else:
            out.append(re.escape(ch))
    return "".join(out)


def compile_glob(pattern: str) -> Pattern[str]:
    """
    Ant-style glob -> compiled regex matched against forward-slash relative paths.

    `*` and `?` stay inside one path segment, `**` spans any number of
    directories (including none) and a trailing slash means "everything below".
    """
    normalized = pattern.replace("\\", "/")
    if normalized.startswith("/") or re.match(r"^[A-Za-z]:/", normalized):
        raise ConfigurationError(f"Include pattern must be relative: {pattern!r}")
    if normalized.endswith("/"):
        normalized += "**"

    parts = [p for p in normalized.split("/") if p and p != "."]
    if ".." in parts:
        raise ConfigurationError(f"Include pattern must not leave the report directory: {pattern!r}")
    if not parts:
        raise ConfigurationError(f"Empty include pattern: {pattern!r}")

    regex = ""
    for i, part in enumerate(parts):
        last = i == len(parts) - 1
        if part == "**":
            regex += ".*" if last else "(?:[^/]+/)*"
        else:
            regex += _segment_regex(part) + ("" if last else "/")
    return re.compile(regex + r"\Z")


_DEFAULT_EXCLUDE_REGEXES = tuple(compile_glob(p) for p in DEFAULT_EXCLUDES)


def _raise_scan_error(err: OSError) -> None:
    raise ScanError(f"Failed to scan {err.filename}: {err.strerror or err}") from err


def _walk_files(base_dir: Path) -> Iterable[str]:
    for root, dirs, files in os.walk(base_dir, onerror=_raise_scan_error):
        dirs.sort()
        rel_root = PurePosixPath(Path(root).relative_to(base_dir).as_posix())
        for name in sorted(files):
            yield str(rel_root / name)


@dataclass(frozen=True)
class PathMatcher:
    """Resolves comma separated include globs against a directory tree."""
    use_default_excludes: bool = True

    def resolve(self, base_dir: Path, include_pattern: str) -> Set[str]:
        includes = [compile_glob(token) for token in split_patterns(include_pattern)]
        base_dir = Path(base_dir)
        if not includes or not base_dir.is_dir():
            return set()

        excludes = _DEFAULT_EXCLUDE_REGEXES if self.use_default_excludes else ()
        matched: Set[str] = set()
        for rel in _walk_files(base_dir):
            if any(rx.match(rel) for rx in excludes):
                continue
            if any(rx.match(rel) for rx in includes):
                matched.add(rel)

        log.debug("[htmlpublisher] %d file(s) in %s match %r", len(matched), base_dir, include_pattern)
        return matched
