from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Pattern

from html_publisher.domain.errors import ConfigurationError
from html_publisher.domain.models import Classification

log = logging.getLogger(__name__)

ENCODING = "utf-8"


def compile_failure_pattern(raw: Optional[str]) -> Optional[Pattern[str]]:
    """
    Compile the user supplied failure regex once per target.
    Blank means "no regex": every file passes.
    """
    if raw is None or not raw.strip():
        return None
    try:
        return re.compile(raw)
    except re.error as e:
        raise ConfigurationError(f"Invalid failure regex {raw!r}: {e}") from e


@dataclass(frozen=True)
class FailureScanner:
    """Marks a report as failed when any of its lines contains a regex match."""
    encoding: str = ENCODING

    def classify(self, path: Path, failure_regex: Optional[Pattern[str]]) -> Classification:
        if failure_regex is None:
            return Classification.PASS

        lineno = 0
        try:
            with open(path, "rb") as fh:
                for chunk in fh:
                    # a line ends at \n, \r or \r\n
                    for raw_line in chunk.splitlines():
                        lineno += 1
                        if failure_regex.search(raw_line.decode(self.encoding)):
                            return Classification.FAIL
        except UnicodeDecodeError as e:
            log.warning("[htmlpublisher] %s is not valid %s text (line %d): %s; treating as passed",
                        path, self.encoding, lineno, e.reason)
        except OSError as e:
            log.warning("[htmlpublisher] Could not read %s: %s; treating as passed", path, e)

        return Classification.PASS
