"""
Data models for the domain monitor.

This module defines the monitored domain record, the notification audit
record, the facts returned by a WHOIS lookup, and the result types of the
monitoring and dispatch operations.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .enums import NotificationStatus


@dataclass
class DomainRecord:
    """A monitored domain and its last known registration state."""

    name: str  # Canonical domain name, unique
    registrar: str = ""
    expiry_date: Optional[datetime] = None
    created_date: Optional[datetime] = None
    updated_date: Optional[datetime] = None
    status: str = ""  # Provider-supplied lifecycle status
    days_remaining: int = 0  # Derived from expiry_date, may be negative
    last_checked: Optional[datetime] = None
    is_active: bool = True
    tags: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class NotificationRecord:
    """Append-only audit entry for one channel delivery attempt."""

    domain_name: str
    channel: str
    content: str
    status: NotificationStatus
    sent_at: datetime


@dataclass
class DomainFacts:
    """Registration facts extracted from a WHOIS lookup."""

    domain: str
    registrar: str = ""
    expiry_date: Optional[datetime] = None
    created_date: Optional[datetime] = None
    updated_date: Optional[datetime] = None
    status: str = ""
    name_servers: list[str] = field(default_factory=list)
    raw_data: str = ""


@dataclass
class ChannelResult:
    """Outcome of one channel inside a dispatch."""

    channel: str
    success: bool
    error: Optional[str] = None


@dataclass
class DispatchResult:
    """Aggregate outcome of a dispatch across all channels."""

    domain_name: str
    days_remaining: int
    results: list[ChannelResult] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.results if not r.success)


@dataclass
class BatchCheckSummary:
    """Counts of a bulk check run. Individual errors go to the logger only."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0


@dataclass
class ImportResult:
    """Result of a bulk domain import."""

    imported: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
