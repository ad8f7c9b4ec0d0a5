"""
Monitor engine for the domain monitor.

This module coordinates the lookup client, the domain store and the
notification dispatcher:
- a single check refreshes one record from the WHOIS API and persists it
- a bulk check walks every active domain and never stops on one failure
- threshold evaluation fires at most one dispatch per check, on an exact
  match between the remaining days and a configured alert day
- newly registered domains get their first check as a background task
"""

import asyncio
import math
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from .audit_logger import AuditLogger
from .config import DEFAULT_ALERT_DAYS
from .domain_validator import DomainValidator
from .enums import LogLevel
from .exceptions import NotificationError, PersistenceError, ValidationError
from .models import BatchCheckSummary, DispatchResult, DomainRecord, ImportResult
from .notifications import NotificationDispatcher
from .state_store import DomainStore
from .whois_client import WhoisClient


SECONDS_PER_DAY = 86400


def compute_days_remaining(expiry_date: datetime, now: datetime) -> int:
    """Whole days from now until expiry, rounded down (negative once expired)."""
    return math.floor((expiry_date - now).total_seconds() / SECONDS_PER_DAY)


class DomainMonitor:
    """
    Checks domains against the WHOIS API and raises expiry notifications.

    The store is injected; there is no mutual exclusion between concurrent
    checks of the same domain.
    """

    COMPONENT = "DomainMonitor"

    def __init__(
        self,
        whois_client: WhoisClient,
        store: DomainStore,
        dispatcher: Optional[NotificationDispatcher] = None,
        alert_days: Optional[list[int]] = None,
        logger: Optional[AuditLogger] = None,
        validator: Optional[DomainValidator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Initialize the monitor.

        Args:
            whois_client: Client used for registration lookups
            store: Storage for domain records and the notification trail
            dispatcher: Optional dispatcher; without one no notification is sent
            alert_days: Ordered alert thresholds in days
            logger: Optional audit logger
            validator: Domain validator used on registration
            clock: Optional time source returning an aware datetime
        """
        self._whois_client = whois_client
        self._store = store
        self._dispatcher = dispatcher
        self._alert_days = list(alert_days if alert_days is not None else DEFAULT_ALERT_DAYS)
        self._logger = logger
        self._validator = validator or DomainValidator()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._background_tasks: set[asyncio.Task] = set()

    async def check_domain(self, record: DomainRecord) -> DomainRecord:
        """
        Refresh one domain from the WHOIS API and persist it.

        Args:
            record: The stored domain record

        Returns:
            The updated record

        Raises:
            WhoisLookupError: If the lookup failed; nothing is modified
            PersistenceError: If the updated record could not be saved
        """
        facts = await self._whois_client.lookup(record.name)
        now = self._clock()

        updated = replace(
            record,
            registrar=facts.registrar,
            expiry_date=facts.expiry_date,
            created_date=facts.created_date,
            updated_date=facts.updated_date,
            status=facts.status,
            last_checked=now,
            updated_at=now,
        )
        if facts.expiry_date is not None:
            updated.days_remaining = compute_days_remaining(facts.expiry_date, now)

        self._store.save(updated)

        self._log_info(
            f"Checked {updated.name}: {updated.days_remaining} days remaining",
            {
                "domain": updated.name,
                "days_remaining": updated.days_remaining,
                "expiry_date": updated.expiry_date.isoformat() if updated.expiry_date else None,
            },
        )

        try:
            await self.check_and_notify(updated)
        except (NotificationError, PersistenceError) as e:
            self._log_error(f"Notification failed for {updated.name}", e, {"domain": updated.name})

        return updated

    async def check_all_domains(self) -> BatchCheckSummary:
        """
        Check every active domain, one after another.

        A failing domain is logged and skipped. Only loading the domain list
        can fail the whole run.

        Returns:
            BatchCheckSummary with the counts of the run
        """
        domains = self._store.find_active_domains()
        summary = BatchCheckSummary(total=len(domains))

        for record in domains:
            try:
                await self.check_domain(record)
            except Exception as e:
                summary.failed += 1
                self._log_error(f"Failed to check {record.name}", e, {"domain": record.name})
            else:
                summary.succeeded += 1

        self._log_info(
            "Bulk check finished",
            {"total": summary.total, "succeeded": summary.succeeded, "failed": summary.failed},
        )
        return summary

    async def check_and_notify(self, record: DomainRecord) -> Optional[int]:
        """
        Dispatch one notification if the remaining days hit an alert day.

        Thresholds are scanned in configured order and only an exact match
        counts; a threshold skipped between two checks is not caught up.

        Returns:
            The matched threshold, or None if nothing was dispatched
        """
        if self._dispatcher is None:
            return None

        for threshold in self._alert_days:
            if record.days_remaining == threshold:
                await self._dispatcher.send_notification(record, threshold)
                return threshold

        return None

    async def trigger_notification(self, record: DomainRecord) -> DispatchResult:
        """
        Dispatch a notification regardless of thresholds.

        Raises:
            NotificationError: If no dispatcher is configured or every channel failed
        """
        if self._dispatcher is None:
            raise NotificationError(
                code="no_dispatcher",
                message="Notification service not configured",
                details={"domain": record.name},
            )
        return await self._dispatcher.send_notification(record, record.days_remaining)

    async def register_domain(self, name: str, tags: str = "") -> DomainRecord:
        """
        Register a domain for monitoring and start its first check.

        The check runs as a background task; this returns as soon as the
        record is stored.

        Raises:
            ValidationError: If the name is not a valid domain
            PersistenceError: If the domain is already registered or cannot be stored
        """
        canonical = self._validator.canonicalize(name)
        now = self._clock()
        record = DomainRecord(
            name=canonical,
            tags=tags,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        self._store.add_domain(record)

        self._log_info(f"Registered {canonical}", {"domain": canonical, "tags": tags})
        self.spawn_check(record)
        return record

    async def import_domains(self, names: Iterable[str]) -> ImportResult:
        """Register many domains; invalid and duplicate names are skipped."""
        result = ImportResult()

        for name in names:
            name = name.strip()
            if not name:
                continue
            try:
                record = await self.register_domain(name)
            except (ValidationError, PersistenceError) as e:
                result.skipped.append(name)
                self._log(
                    LogLevel.WARN,
                    f"Skipped {name}: {e.message}",
                    {"domain": name, "error_code": e.code},
                )
            else:
                result.imported.append(record.name)

        return result

    def spawn_check(self, record: DomainRecord) -> asyncio.Task:
        """Run check_domain in a detached task; failures are only logged."""
        task = asyncio.create_task(self._background_check(record))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def wait_for_background_checks(self) -> None:
        """Wait until every spawned background check has finished."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks))

    async def _background_check(self, record: DomainRecord) -> None:
        try:
            await self.check_domain(record)
        except Exception as e:
            self._log_error(f"Background check failed for {record.name}", e, {"domain": record.name})

    @property
    def alert_days(self) -> list[int]:
        return self._alert_days.copy()

    @property
    def pending_checks(self) -> int:
        """Number of background checks still running."""
        return len(self._background_tasks)

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, self.COMPONENT, message, data)

    def _log_info(self, message: str, data: dict) -> None:
        """Log an info message if logger is available."""
        self._log(LogLevel.INFO, message, data)

    def _log_error(self, message: str, error: Exception, data: dict) -> None:
        """Log an error message if logger is available."""
        if self._logger:
            self._logger.log_error(self.COMPONENT, message, error, data)
