"""
Audit Logger module for the domain monitor.

Every component writes structured entries through one AuditLogger. Entries
render as JSON lines, as human-readable text, or both. Credentials such as
SMTP passwords, bot tokens and webhook signing secrets never reach the
output: any value stored under a key that names a credential is masked
before the entry is created.
"""

import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

from domain_monitor.enums import LogLevel


LEVEL_ORDER = {
    LogLevel.DEBUG: 0,
    LogLevel.INFO: 1,
    LogLevel.WARN: 2,
    LogLevel.ERROR: 3,
}

OUTPUT_FORMATS = ("json", "text", "both")

# Substrings that mark a data key as holding a credential
SENSITIVE_KEYS = frozenset({
    "password", "secret", "token", "api_key", "webhook_url",
    "auth", "credential", "private_key",
})

MASK_VALUE = "***MASKED***"


def is_sensitive_key(key: str) -> bool:
    lowered = str(key).lower()
    return any(marker in lowered for marker in SENSITIVE_KEYS)


def mask_sensitive(value: Any) -> Any:
    """
    Return a copy of value with credential entries replaced by MASK_VALUE.

    Dictionaries are masked key by key; lists and tuples are walked so that
    dictionaries nested inside them are masked too. Other values are
    returned unchanged.
    """
    if isinstance(value, dict):
        return {
            key: MASK_VALUE if is_sensitive_key(key) else mask_sensitive(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [mask_sensitive(item) for item in value]
    return value


@dataclass
class LogEntry:
    """One structured log record."""

    timestamp: str
    level: LogLevel
    component: str
    message: str
    data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "component": self.component,
            "message": self.message,
            "data": self.data,
        }


class AuditLogger:
    """
    Structured logger shared by the monitor, the lookup client, the
    notification channels and the scheduler.

    Entries below ``min_level`` are dropped: they are neither written nor
    kept in ``entries``.
    """

    MASK_VALUE = MASK_VALUE

    def __init__(
        self,
        output_format: str = "text",
        output_stream: Optional[TextIO] = None,
        min_level: LogLevel = LogLevel.DEBUG,
    ):
        """
        Initialize the audit logger.

        Args:
            output_format: 'json', 'text' or 'both' (JSON line first)
            output_stream: Where entries are written, sys.stderr by default
            min_level: Lowest level that is recorded

        Raises:
            ValueError: If the output format is unknown
        """
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(f"Unknown log output format: {output_format}")

        self._output_format = output_format
        self._stream = output_stream or sys.stderr
        self._min_level = min_level
        self._entries: list[LogEntry] = []

    @classmethod
    def from_level_name(
        cls,
        level: str,
        output_format: str = "text",
        output_stream: Optional[TextIO] = None,
    ) -> "AuditLogger":
        """Build a logger from a configured level name such as 'info'."""
        try:
            min_level = LogLevel(level.lower())
        except ValueError:
            min_level = LogLevel.INFO
        return cls(output_format, output_stream, min_level)

    @property
    def output_format(self) -> str:
        return self._output_format

    @property
    def min_level(self) -> LogLevel:
        return self._min_level

    @property
    def entries(self) -> list[LogEntry]:
        """Entries recorded so far, oldest first."""
        return list(self._entries)

    def is_enabled_for(self, level: LogLevel) -> bool:
        return LEVEL_ORDER[level] >= LEVEL_ORDER[self._min_level]

    def log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Record and write one entry.

        Args:
            level: Severity of the entry
            component: Name of the component that logs, e.g. 'DomainMonitor'
            message: Human-readable description
            data: Optional structured context; credentials are masked

        Returns:
            The recorded LogEntry, or None if the level is below the threshold
        """
        if not self.is_enabled_for(level):
            return None

        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            component=component,
            message=message,
            data=mask_sensitive(data or {}),
        )
        self._entries.append(entry)
        self._write(entry)
        return entry

    def log_error(
        self,
        component: str,
        message: str,
        error: Optional[Exception] = None,
        additional_data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Record an ERROR entry describing a failure.

        The exception message and type are added to the data, plus the
        error code for domain monitor errors.
        """
        data = dict(additional_data or {})

        if error is not None:
            data["error_message"] = str(error)
            data["error_type"] = type(error).__name__
            code = getattr(error, "code", None)
            if code is not None:
                data["error_code"] = code

        return self.log(LogLevel.ERROR, component, message, data)

    def format_json(self, entry: LogEntry) -> str:
        return json.dumps(entry.to_dict(), ensure_ascii=False, default=str)

    def format_text(self, entry: LogEntry) -> str:
        """Render as ``[timestamp] LEVEL [component] message {data}``."""
        line = f"[{entry.timestamp}] {entry.level.value.upper()} [{entry.component}] {entry.message}"
        if entry.data:
            line += " " + json.dumps(entry.data, ensure_ascii=False, default=str)
        return line

    def clear_entries(self) -> None:
        self._entries.clear()

    def _write(self, entry: LogEntry) -> None:
        lines = []
        if self._output_format != "text":
            lines.append(self.format_json(entry))
        if self._output_format != "json":
            lines.append(self.format_text(entry))

        for line in lines:
            self._stream.write(line + "\n")
        self._stream.flush()
