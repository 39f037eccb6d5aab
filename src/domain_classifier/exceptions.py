"""
Exception classes for the domain classifier.

All exceptions inherit from DomainClassifierError and provide structured
error information with codes, messages, and optional details.
"""

from typing import Optional


class DomainClassifierError(Exception):
    """Base exception for all domain classifier errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DomainClassifierError):
    """Raised when a host cannot be turned into a request target."""

    pass


class PersistenceError(DomainClassifierError):
    """Raised when domain list files cannot be read, written or replaced."""

    pass


class ConfigError(DomainClassifierError):
    """Raised when a configuration file cannot be read or is malformed."""

    pass


class NotificationError(DomainClassifierError):
    """Raised when event delivery fails."""

    pass
