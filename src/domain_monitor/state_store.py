"""
State Store module for monitored domains and the notification audit trail.

This module defines the storage protocol consumed by the monitor and the
dispatcher, and an HMAC-protected JSON file implementation of it. Every
write persists the whole state immediately, so a single record update is
durable once ``save`` or ``append_notification`` returns.
"""

import hashlib
import hmac
import json
from abc import abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from .enums import NotificationStatus
from .exceptions import PersistenceError, TamperingError
from .models import DomainRecord, NotificationRecord


@runtime_checkable
class DomainStore(Protocol):
    """Storage operations required by the monitoring pipeline."""

    @abstractmethod
    def find_active_domains(self) -> list[DomainRecord]:
        """Return every domain with monitoring enabled."""
        ...

    @abstractmethod
    def add_domain(self, record: DomainRecord) -> None:
        """Insert a new domain record; duplicates raise PersistenceError."""
        ...

    @abstractmethod
    def save(self, record: DomainRecord) -> None:
        """Persist a domain record, replacing the stored version."""
        ...

    @abstractmethod
    def append_notification(self, record: NotificationRecord) -> None:
        """Append one notification audit record."""
        ...


def _dt_to_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _str_to_dt(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def domain_to_dict(record: DomainRecord) -> dict:
    return {
        "name": record.name,
        "registrar": record.registrar,
        "expiry_date": _dt_to_str(record.expiry_date),
        "created_date": _dt_to_str(record.created_date),
        "updated_date": _dt_to_str(record.updated_date),
        "status": record.status,
        "days_remaining": record.days_remaining,
        "last_checked": _dt_to_str(record.last_checked),
        "is_active": record.is_active,
        "tags": record.tags,
        "created_at": _dt_to_str(record.created_at),
        "updated_at": _dt_to_str(record.updated_at),
    }


def domain_from_dict(data: dict) -> DomainRecord:
    return DomainRecord(
        name=data["name"],
        registrar=data.get("registrar", ""),
        expiry_date=_str_to_dt(data.get("expiry_date")),
        created_date=_str_to_dt(data.get("created_date")),
        updated_date=_str_to_dt(data.get("updated_date")),
        status=data.get("status", ""),
        days_remaining=data.get("days_remaining", 0),
        last_checked=_str_to_dt(data.get("last_checked")),
        is_active=data.get("is_active", True),
        tags=data.get("tags", ""),
        created_at=_str_to_dt(data.get("created_at")),
        updated_at=_str_to_dt(data.get("updated_at")),
    )


def notification_to_dict(record: NotificationRecord) -> dict:
    return {
        "domain_name": record.domain_name,
        "channel": record.channel,
        "content": record.content,
        "status": record.status.value,
        "sent_at": _dt_to_str(record.sent_at),
    }


def notification_from_dict(data: dict) -> NotificationRecord:
    return NotificationRecord(
        domain_name=data["domain_name"],
        channel=data["channel"],
        content=data.get("content", ""),
        status=NotificationStatus(data["status"]),
        sent_at=_str_to_dt(data["sent_at"]),
    )


class StateStore:
    """
    Persistent domain and notification storage with HMAC protection.

    Stores domains, the notification audit trail and key/value settings in
    one JSON file. The HMAC over the content is validated on load to detect
    tampering.
    """

    VERSION = 1

    def __init__(self, file_path: Path, hmac_secret: str) -> None:
        """
        Initialize the state store.

        Args:
            file_path: Path to the state file (JSON format)
            hmac_secret: Secret key for HMAC computation
        """
        self._file_path = file_path
        self._hmac_secret = hmac_secret.encode("utf-8")
        self._domains: dict[str, DomainRecord] = {}
        self._notifications: list[NotificationRecord] = []
        self._settings: dict[str, str] = {}
        self._last_updated = ""

    def load(self) -> bool:
        """
        Load state from file and validate HMAC.

        Returns:
            True if a state file was loaded, False if none exists yet

        Raises:
            TamperingError: If HMAC validation fails
            PersistenceError: If file cannot be read or parsed
        """
        if not self._file_path.exists():
            return False

        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                raw_data = json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(
                code="parse_error",
                message=f"Failed to parse state file: {e}",
                details={"file_path": str(self._file_path)},
            )
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to read state file: {e}",
                details={"file_path": str(self._file_path)},
            )

        stored_hmac = raw_data.get("hmac", "")
        content = {key: value for key, value in raw_data.items() if key != "hmac"}
        computed_hmac = self.compute_hmac(content)

        if not self.validate_hmac(stored_hmac, computed_hmac):
            raise TamperingError(
                code="hmac_mismatch",
                message="HMAC validation failed - data may have been tampered with",
                details={"file_path": str(self._file_path)},
            )

        try:
            domains = {
                name: domain_from_dict(data)
                for name, data in content.get("domains", {}).items()
            }
            notifications = [
                notification_from_dict(data)
                for data in content.get("notifications", [])
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(
                code="parse_error",
                message=f"Malformed record in state file: {e}",
                details={"file_path": str(self._file_path)},
            )

        self._domains = domains
        self._notifications = notifications
        self._settings = dict(content.get("settings", {}))
        self._last_updated = content.get("last_updated", "")
        return True

    def flush(self) -> None:
        """
        Write the complete state to file with HMAC protection.

        Raises:
            PersistenceError: If file cannot be written
        """
        now = datetime.now(timezone.utc).isoformat()

        content = {
            "version": self.VERSION,
            "domains": {
                name: domain_to_dict(record) for name, record in self._domains.items()
            },
            "notifications": [notification_to_dict(n) for n in self._notifications],
            "settings": dict(self._settings),
            "last_updated": now,
        }
        output_data = dict(content, hmac=self.compute_hmac(content))

        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._file_path, "w", encoding="utf-8") as f:
                json.dump(output_data, f, indent=2, sort_keys=True, ensure_ascii=False)
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to write state file: {e}",
                details={"file_path": str(self._file_path)},
            )

        self._last_updated = now

    def add_domain(self, record: DomainRecord) -> None:
        """
        Insert a new domain record.

        Raises:
            PersistenceError: If a domain with the same name exists
        """
        if record.name in self._domains:
            raise PersistenceError(
                code="duplicate_domain",
                message=f"Domain already registered: {record.name}",
                details={"domain": record.name},
            )
        self._domains[record.name] = record
        try:
            self.flush()
        except PersistenceError:
            del self._domains[record.name]
            raise

    def save(self, record: DomainRecord) -> None:
        """Insert or replace a domain record and persist it."""
        previous = self._domains.get(record.name)
        self._domains[record.name] = record
        try:
            self.flush()
        except PersistenceError:
            if previous is None:
                del self._domains[record.name]
            else:
                self._domains[record.name] = previous
            raise

    def remove_domain(self, name: str) -> bool:
        """Delete a domain record. Its notification history is kept."""
        if name not in self._domains:
            return False
        del self._domains[name]
        self.flush()
        return True

    def get_domain(self, name: str) -> Optional[DomainRecord]:
        return self._domains.get(name)

    def list_domains(self) -> list[DomainRecord]:
        """Return all domains ordered by expiry date, unknown expiry last."""
        return sorted(
            self._domains.values(),
            key=lambda d: (d.expiry_date is None, d.expiry_date or datetime.min.replace(tzinfo=timezone.utc)),
        )

    def find_active_domains(self) -> list[DomainRecord]:
        return [record for record in self._domains.values() if record.is_active]

    def append_notification(self, record: NotificationRecord) -> None:
        self._notifications.append(record)
        try:
            self.flush()
        except PersistenceError:
            self._notifications.pop()
            raise

    def list_notifications(self, domain_name: Optional[str] = None) -> list[NotificationRecord]:
        """Return notification records, newest first."""
        records = [
            n for n in self._notifications
            if domain_name is None or n.domain_name == domain_name
        ]
        return list(reversed(records))

    def get_settings(self) -> dict[str, str]:
        return dict(self._settings)

    def set_setting(self, key: str, value: str) -> None:
        self._settings[key] = value
        self.flush()

    def compute_hmac(self, data: dict) -> str:
        """
        Compute HMAC-SHA256 over serialized data.

        Args:
            data: Dictionary to compute HMAC over

        Returns:
            Hexadecimal HMAC string
        """
        serialized = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hmac.new(
            self._hmac_secret,
            serialized.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def validate_hmac(self, stored_hmac: str, computed_hmac: str) -> bool:
        """Validate HMAC using constant-time comparison."""
        return hmac.compare_digest(stored_hmac, computed_hmac)

    @property
    def last_updated(self) -> str:
        return self._last_updated

    @property
    def file_path(self) -> Path:
        """Get the state file path."""
        return self._file_path
