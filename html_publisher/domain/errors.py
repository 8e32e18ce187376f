from __future__ import annotations


class PublisherError(Exception):
    """Base class for errors raised by the report publisher."""


class ConfigurationError(PublisherError):
    """
    Bad user configuration: malformed failure regex, invalid include glob,
    duplicate report names, unreadable INI values.
    Detected once per target and aborts only that target.
    """


class ScanError(PublisherError):
    """I/O failure while walking a report directory tree."""
