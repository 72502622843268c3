"""Error types shared by collectors, the sampler and configuration."""

from __future__ import annotations


class SysratesError(Exception):
    """Base class for all sysrates errors."""


class CollectionError(SysratesError):
    """Raw counters could not be obtained.

    Raised by collectors when a platform command or file is missing, access
    is denied, or the output cannot be parsed. The query layer recovers from
    it by falling back to the last cached rates.
    """


class CollectionTimeout(CollectionError):
    """The collector did not answer within the caller's timeout."""


class CollectionCancelled(CollectionError):
    """The caller cancelled the query while the collector was running."""


class ConfigurationError(SysratesError):
    """Invalid configuration value."""
