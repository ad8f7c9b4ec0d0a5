"""
Enumeration types for the domain monitor.

These enums provide type-safe constants for status codes, error codes,
and configuration options throughout the system.
"""

from enum import Enum


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class DomainValidationErrorCode(Enum):
    """Error codes for domain validation failures."""

    FORBIDDEN_CHARS = "forbidden_chars"
    INVALID_TLD = "invalid_tld"
    IDNA_ERROR = "idna_error"
    EMPTY_INPUT = "empty_input"


class LookupErrorCode(Enum):
    """Error codes for WHOIS lookup failures."""

    INVALID_URL = "invalid_url"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    PARSE_ERROR = "parse_error"
    API_ERROR = "api_error"
    NO_DATA = "no_data"


class ChannelType(Enum):
    """Notification channel identifiers, in dispatch order."""

    EMAIL = "email"
    WEBHOOK = "webhook"
    TELEGRAM = "telegram"
    DINGTALK = "dingtalk"


class NotificationStatus(Enum):
    """Outcome of a single channel delivery attempt."""

    SUCCESS = "success"
    FAILED = "failed"


class Urgency(Enum):
    """Urgency tier derived from the remaining days."""

    CRITICAL = "critical"
    WARNING = "warning"
    NORMAL = "normal"
