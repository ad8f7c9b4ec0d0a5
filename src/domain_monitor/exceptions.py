"""
Exception classes for the domain monitor.

All exceptions inherit from DomainMonitorError and carry a machine-readable
code, a human-readable message and optional structured details.
"""

from typing import Optional


class DomainMonitorError(Exception):
    """Base exception for all domain monitor errors."""

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


class ValidationError(DomainMonitorError):
    """Raised when a domain name cannot be validated or normalized."""

    pass


class ConfigError(DomainMonitorError):
    """Raised when configuration cannot be loaded or is inconsistent."""

    pass


class WhoisLookupError(DomainMonitorError):
    """Raised when the WHOIS lookup API cannot deliver domain facts."""

    pass


class PersistenceError(DomainMonitorError):
    """Raised when persistence operations fail (file I/O, duplicates, HMAC)."""

    pass


class TamperingError(PersistenceError):
    """Raised when HMAC validation fails, indicating data tampering."""

    pass


class NotificationError(DomainMonitorError):
    """Raised when notification delivery fails."""

    pass
