"""
Enumeration types for the domain classifier.

These enums provide type-safe constants for routing decisions, record
outcomes, domain list names and logging levels.
"""

from enum import Enum


class Route(Enum):
    """How a destination should be reached."""

    DIRECT = "direct"
    BLOCKED = "blocked"


class RecordOutcome(Enum):
    """Result of recording a connection outcome for a target."""

    NOT_RECORDED = "not_recorded"
    RECORDED = "recorded"
    ALREADY_RECORDED = "already_recorded"
    RECORDED_TRANSIENT = "recorded_transient"

    @property
    def taken(self) -> bool:
        """True when the target is now treated according to the record call."""
        return self is not RecordOutcome.NOT_RECORDED


class DomainListKind(Enum):
    """The four persisted domain lists, valued by their file names."""

    BLOCKED = "blocked"
    DIRECT = "direct"
    ALWAYS_BLOCKED = "always_blocked"
    ALWAYS_DIRECT = "always_direct"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def severity(self) -> int:
        """Numeric rank used for minimum-level filtering."""
        return _SEVERITY[self]


_SEVERITY = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARN: 30,
    LogLevel.ERROR: 40,
}
