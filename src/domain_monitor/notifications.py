"""
Notification module for the domain monitor.

Provides the expiry-warning channels (Email, Webhook, Telegram, DingTalk)
and the dispatcher that fans one notification out to every enabled channel.

Dispatch semantics:
- every channel gets exactly one attempt per dispatch, in registration order
- one audit record is appended after each attempt
- the dispatch succeeds if at least one channel succeeded; otherwise the
  last channel error is raised
- there are no retries
"""

import asyncio
import base64
import hashlib
import hmac
import smtplib
import ssl
import time
from abc import abstractmethod
from datetime import datetime, timezone
from email.header import Header
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Callable, Optional, Protocol, runtime_checkable
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx

from .audit_logger import AuditLogger
from .config import (
    DingTalkConfig,
    EmailConfig,
    NotificationConfig,
    TelegramConfig,
    WebhookConfig,
)
from .enums import ChannelType, LogLevel, NotificationStatus, Urgency
from .exceptions import NotificationError, PersistenceError
from .i18n import get_message
from .models import ChannelResult, DispatchResult, DomainRecord, NotificationRecord
from .state_store import DomainStore


# Some SMTP servers answer the final QUIT with a malformed line after the
# message was already queued. That one error means the mail went out.
BENIGN_SMTP_ERROR = "short response"

TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"

DEFAULT_TIMEOUT = 30.0


def urgency_for(days_remaining: int) -> Urgency:
    """Map remaining days to an urgency tier: <=7 critical, <=30 warning."""
    if days_remaining <= 7:
        return Urgency.CRITICAL
    if days_remaining <= 30:
        return Urgency.WARNING
    return Urgency.NORMAL


def format_date(value: Optional[datetime]) -> str:
    """Format a date as YYYY-MM-DD, or '-' when unknown."""
    return value.strftime("%Y-%m-%d") if value is not None else "-"


def notification_summary(record: DomainRecord, days_remaining: int) -> str:
    """Content stored in the notification audit trail."""
    return f"Domain {record.name} expires in {days_remaining} days"


def generate_signature(timestamp: str, secret: str) -> str:
    """
    Compute the DingTalk robot signature.

    The signature is base64(HMAC-SHA256(key=secret, msg="<timestamp>\\n<secret>")).

    Args:
        timestamp: Milliseconds since the epoch, as a string
        secret: Shared signing secret

    Returns:
        Base64-encoded signature
    """
    string_to_sign = f"{timestamp}\n{secret}"
    digest = hmac.new(
        secret.encode("utf-8"),
        string_to_sign.encode("utf-8"),
        hashlib.sha256,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def build_signed_url(webhook_url: str, secret: str, timestamp: str) -> str:
    """Append timestamp and sign query parameters to a webhook URL."""
    parts = urlsplit(webhook_url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.append(("timestamp", timestamp))
    query.append(("sign", generate_signature(timestamp, secret)))
    return urlunsplit(parts._replace(query=urlencode(query)))


async def _post_json(
    client: httpx.AsyncClient,
    channel: str,
    url: str,
    payload: dict,
    headers: Optional[dict[str, str]] = None,
) -> httpx.Response:
    """POST a JSON payload, mapping transport failures to NotificationError."""
    try:
        return await client.post(url, json=payload, headers=headers)
    except httpx.TimeoutException as e:
        raise NotificationError(
            code="timeout",
            message=f"{channel} request timed out",
            details={"channel": channel},
        ) from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise NotificationError(
            code="network_error",
            message=f"{channel} request failed: {e}",
            details={"channel": channel},
        ) from e


@runtime_checkable
class NotificationChannel(Protocol):
    """Protocol defining the interface for notification channels."""

    @abstractmethod
    async def send(self, record: DomainRecord, days_remaining: int) -> None:
        """
        Deliver one expiry warning.

        Args:
            record: Snapshot of the domain being reported
            days_remaining: Day count to report

        Raises:
            NotificationError: If delivery failed
        """
        ...

    @abstractmethod
    def get_name(self) -> str:
        """
        Get the channel name.

        Returns:
            The channel type identifier recorded in the audit trail
        """
        ...


class EmailChannel:
    """Email notification channel using authenticated SMTP."""

    COMPONENT = "EmailChannel"

    def __init__(
        self,
        config: EmailConfig,
        simulation_mode: bool = False,
        language: str = "en",
        logger: Optional[AuditLogger] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """
        Initialize Email channel.

        Args:
            config: Email configuration with SMTP settings
            simulation_mode: If True, no real network requests are made
            language: Language of the rendered message
            logger: Optional audit logger
            timeout: SMTP socket timeout in seconds
        """
        self._smtp_host = config.smtp_host
        self._smtp_port = config.smtp_port
        self._username = config.username or config.from_address
        self._password = config.password
        self._from_address = config.from_address
        self._to_addresses = list(config.to_addresses)
        self._simulation_mode = simulation_mode
        self._language = language
        self._logger = logger
        self._timeout = timeout

    async def send(self, record: DomainRecord, days_remaining: int) -> None:
        """Send notification via SMTP."""
        if self._simulation_mode:
            return

        if not self._to_addresses:
            raise NotificationError(
                code="no_recipients",
                message="Email channel has no recipients configured",
                details={"channel": self.get_name()},
            )

        msg = self.format_email(record, days_remaining)

        # smtplib is blocking, run it off the event loop
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._send_sync, msg)
        except (smtplib.SMTPException, OSError) as e:
            if BENIGN_SMTP_ERROR in str(e):
                if self._logger:
                    self._logger.log(
                        LogLevel.INFO,
                        self.COMPONENT,
                        f"Email sent for {record.name} (ignoring '{BENIGN_SMTP_ERROR}' from SMTP server)",
                        {"domain": record.name},
                    )
                return
            raise NotificationError(
                code="smtp_error",
                message=f"Failed to send email: {e}",
                details={"channel": self.get_name(), "smtp_host": self._smtp_host},
            ) from e

        if self._logger:
            self._logger.log(
                LogLevel.INFO,
                self.COMPONENT,
                f"Email sent for {record.name}",
                {"domain": record.name, "recipients": self._to_addresses},
            )

    def _send_sync(self, msg: MIMEMultipart) -> None:
        """Synchronous email sending."""
        context = ssl.create_default_context()

        if self._smtp_port == 465:
            server = smtplib.SMTP_SSL(
                self._smtp_host, self._smtp_port, timeout=self._timeout, context=context
            )
        else:
            server = smtplib.SMTP(self._smtp_host, self._smtp_port, timeout=self._timeout)

        with server:
            if self._smtp_port != 465:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls(context=context)
                    server.ehlo()
            if self._password:
                server.login(self._username, self._password)
            server.sendmail(self._from_address, self._to_addresses, msg.as_string())

    def get_name(self) -> str:
        """Return channel name."""
        return ChannelType.EMAIL.value

    def format_email(self, record: DomainRecord, days_remaining: int) -> MIMEMultipart:
        """Render the plaintext expiry reminder."""
        lang = self._language
        subject = get_message(
            "notification.email_subject", lang, domain=record.name, days=days_remaining
        )
        urgency = get_message(f"urgency.{urgency_for(days_remaining).value}", lang)
        checked = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        body = (
            f"{get_message('notification.title', lang)}\n\n"
            f"{get_message('notification.status_label', lang)}: {urgency}\n"
            f"{get_message('notification.domain_label', lang)}: {record.name}\n"
            f"{get_message('notification.days_label', lang)}: "
            f"{get_message('notification.days_value', lang, days=days_remaining)}\n"
            f"{get_message('notification.expiry_label', lang)}: {format_date(record.expiry_date)}\n"
            f"{get_message('notification.registrar_label', lang)}: {record.registrar}\n"
            f"{get_message('notification.domain_status_label', lang)}: {record.status}\n"
            f"{get_message('notification.checked_label', lang)}: {checked}\n\n"
            f"{get_message('notification.renew_hint', lang)}\n"
        )

        msg = MIMEMultipart()
        msg["From"] = self._from_address
        msg["To"] = ", ".join(self._to_addresses)
        msg["Subject"] = Header(subject, "utf-8")
        msg.attach(MIMEText(body, "plain", "utf-8"))

        return msg


class WebhookChannel:
    """Generic webhook notification channel using HTTP POST."""

    def __init__(
        self,
        config: WebhookConfig,
        simulation_mode: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize Webhook channel.

        Args:
            config: Webhook configuration with URL and optional headers
            simulation_mode: If True, no real network requests are made
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self._url = config.url
        self._headers = config.headers.copy()
        self._simulation_mode = simulation_mode
        self._timeout = timeout
        self._transport = transport

    async def send(self, record: DomainRecord, days_remaining: int) -> None:
        """Send notification via HTTP POST webhook."""
        if self._simulation_mode:
            return

        headers = {"Content-Type": "application/json"}
        headers.update(self._headers)

        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            response = await _post_json(
                client, self.get_name(), self._url, self.build_payload(record, days_remaining), headers
            )

        # Any 2xx counts as delivered; Telegram and DingTalk accept only 200
        if not 200 <= response.status_code < 300:
            raise NotificationError(
                code="http_error",
                message=f"webhook returned status {response.status_code}",
                details={"channel": self.get_name(), "http_status_code": response.status_code},
            )

    def build_payload(self, record: DomainRecord, days_remaining: int) -> dict:
        return {
            "domain": record.name,
            "days_remaining": days_remaining,
            "expiry_date": record.expiry_date.strftime("%Y-%m-%d") if record.expiry_date else None,
            "registrar": record.registrar,
            "status": record.status,
        }

    def get_name(self) -> str:
        """Return channel name."""
        return ChannelType.WEBHOOK.value


class TelegramChannel:
    """Telegram notification channel using the Bot API."""

    COMPONENT = "TelegramChannel"

    def __init__(
        self,
        config: TelegramConfig,
        simulation_mode: bool = False,
        language: str = "en",
        logger: Optional[AuditLogger] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize Telegram channel.

        Args:
            config: Telegram configuration with bot_token, chat_id and optional proxy
            simulation_mode: If True, no real network requests are made
            language: Language of the rendered message
            logger: Optional audit logger
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self._bot_token = config.bot_token
        self._chat_id = config.chat_id
        self._proxy_url = config.proxy_url
        self._simulation_mode = simulation_mode
        self._language = language
        self._logger = logger
        self._timeout = timeout
        self._transport = transport

    @property
    def api_url(self) -> str:
        return TELEGRAM_API_URL.format(token=self._bot_token)

    async def send(self, record: DomainRecord, days_remaining: int) -> None:
        """Send notification via Telegram Bot API."""
        if self._simulation_mode:
            return

        payload = {
            "chat_id": self._chat_id,
            "text": self.format_message(record, days_remaining),
        }

        async with self._build_client() as client:
            response = await _post_json(client, self.get_name(), self.api_url, payload)

        if response.status_code != 200:
            raise NotificationError(
                code="http_error",
                message=f"telegram API returned status {response.status_code}",
                details={"channel": self.get_name(), "http_status_code": response.status_code},
            )

    def _build_client(self) -> httpx.AsyncClient:
        """
        Build the HTTP client, routed through the configured proxy if possible.

        A proxy that cannot be set up is logged and a direct client is
        returned instead.
        """
        if self._proxy_url:
            try:
                client = httpx.AsyncClient(
                    proxy=self._proxy_url,
                    timeout=self._timeout,
                    transport=self._transport,
                )
            except (ValueError, ImportError, httpx.InvalidURL) as e:
                if self._logger:
                    self._logger.log(
                        LogLevel.WARN,
                        self.COMPONENT,
                        f"Failed to set up proxy, connecting directly: {e}",
                        {"proxy_url": self._proxy_url},
                    )
            else:
                if self._logger:
                    self._logger.log(
                        LogLevel.DEBUG,
                        self.COMPONENT,
                        f"Using proxy: {self._proxy_url}",
                    )
                return client

        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def get_name(self) -> str:
        """Return channel name."""
        return ChannelType.TELEGRAM.value

    def format_message(self, record: DomainRecord, days_remaining: int) -> str:
        """Format the notification message for Telegram."""
        lang = self._language
        return (
            f"⚠️ {get_message('notification.title', lang)}\n\n"
            f"{get_message('notification.domain_label', lang)}: {record.name}\n"
            f"{get_message('notification.days_label', lang)}: {days_remaining}\n"
            f"{get_message('notification.expiry_label', lang)}: {format_date(record.expiry_date)}\n"
            f"{get_message('notification.registrar_label', lang)}: {record.registrar}"
        )


class DingTalkChannel:
    """DingTalk robot channel with optional request signing."""

    def __init__(
        self,
        config: DingTalkConfig,
        simulation_mode: bool = False,
        language: str = "en",
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize DingTalk channel.

        Args:
            config: DingTalk configuration with webhook_url and optional secret
            simulation_mode: If True, no real network requests are made
            language: Language of the rendered message
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self._webhook_url = config.webhook_url
        self._secret = config.secret
        self._simulation_mode = simulation_mode
        self._language = language
        self._timeout = timeout
        self._transport = transport

    async def send(self, record: DomainRecord, days_remaining: int) -> None:
        """Send a markdown message to the DingTalk robot."""
        if self._simulation_mode:
            return

        url = self._webhook_url
        if self._secret:
            url = build_signed_url(url, self._secret, str(int(time.time() * 1000)))

        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            response = await _post_json(
                client, self.get_name(), url, self.build_payload(record, days_remaining)
            )

        if response.status_code != 200:
            raise NotificationError(
                code="http_error",
                message=f"dingtalk webhook returned status {response.status_code}",
                details={"channel": self.get_name(), "http_status_code": response.status_code},
            )

        # DingTalk reports errors in the body with HTTP 200
        try:
            body = response.json()
        except ValueError:
            return

        if isinstance(body, dict) and body.get("errcode", 0) != 0:
            raise NotificationError(
                code="api_error",
                message=f"dingtalk API error: {body.get('errmsg', '')}",
                details={"channel": self.get_name(), "errcode": body.get("errcode")},
            )

    def build_payload(self, record: DomainRecord, days_remaining: int) -> dict:
        lang = self._language
        title = get_message("notification.title", lang)
        emoji = get_message(f"urgency.{urgency_for(days_remaining).value}", lang).split()[0]

        text = (
            f"## {emoji} {title}\n\n"
            f"**{get_message('notification.domain_label', lang)}**: {record.name}\n\n"
            f"**{get_message('notification.days_label', lang)}**: "
            f"{get_message('notification.days_value', lang, days=days_remaining)}\n\n"
            f"**{get_message('notification.expiry_label', lang)}**: {format_date(record.expiry_date)}\n\n"
            f"**{get_message('notification.registrar_label', lang)}**: {record.registrar}\n\n"
            f"**{get_message('notification.domain_status_label', lang)}**: {record.status}"
        )

        return {
            "msgtype": "markdown",
            "markdown": {"title": title, "text": text},
        }

    def get_name(self) -> str:
        """Return channel name."""
        return ChannelType.DINGTALK.value


def build_channels(
    config: NotificationConfig,
    simulation_mode: bool = False,
    language: str = "en",
    logger: Optional[AuditLogger] = None,
) -> list[NotificationChannel]:
    """
    Construct the enabled channels in dispatch order.

    The order is email, webhook, telegram, dingtalk; disabled channels are
    left out.
    """
    channels: list[NotificationChannel] = []

    if config.email.enabled:
        channels.append(EmailChannel(config.email, simulation_mode, language, logger))

    if config.webhook.enabled:
        channels.append(WebhookChannel(config.webhook, simulation_mode))

    if config.telegram.enabled:
        channels.append(TelegramChannel(config.telegram, simulation_mode, language, logger))

    if config.dingtalk.enabled:
        channels.append(DingTalkChannel(config.dingtalk, simulation_mode, language))

    return channels


class NotificationDispatcher:
    """
    Fans a notification out to every registered channel.

    A dispatcher is built for one configuration snapshot; reconfiguring
    means building a new one. Each dispatch appends one audit record per
    channel to the store.
    """

    COMPONENT = "NotificationDispatcher"

    def __init__(
        self,
        store: DomainStore,
        channels: Optional[list[NotificationChannel]] = None,
        logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            store: Storage receiving the notification audit records
            channels: Channels in dispatch order
            logger: Optional audit logger
            clock: Optional time source for audit timestamps
        """
        self._store = store
        self._channels: list[NotificationChannel] = list(channels or [])
        self._logger = logger
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_config(
        cls,
        config: NotificationConfig,
        store: DomainStore,
        logger: Optional[AuditLogger] = None,
        simulation_mode: bool = False,
        language: str = "en",
    ) -> "NotificationDispatcher":
        """Build a dispatcher with the channels enabled in the configuration."""
        channels = build_channels(config, simulation_mode, language, logger)
        return cls(store, channels, logger)

    def register_channel(self, channel: NotificationChannel) -> None:
        """Append a channel to the dispatch order."""
        self._channels.append(channel)

    @property
    def channels(self) -> list[NotificationChannel]:
        """Get list of registered channels."""
        return self._channels.copy()

    async def send_notification(
        self, record: DomainRecord, days_remaining: int
    ) -> DispatchResult:
        """
        Send one expiry warning through every channel.

        Args:
            record: The domain to report
            days_remaining: Day count to report

        Returns:
            DispatchResult with the per-channel outcomes, if at least one
            channel succeeded

        Raises:
            NotificationError: If no channel is registered or every channel failed
            PersistenceError: If an audit record could not be stored; raised
                after all channels were attempted
        """
        if not self._channels:
            raise NotificationError(
                code="no_channels",
                message="No notification channels configured",
                details={"domain": record.name},
            )

        result = DispatchResult(domain_name=record.name, days_remaining=days_remaining)
        last_error: Optional[NotificationError] = None
        audit_error: Optional[PersistenceError] = None

        for channel in self._channels:
            channel_name = channel.get_name()
            try:
                await channel.send(record, days_remaining)
            except Exception as e:
                if isinstance(e, NotificationError):
                    error = e
                else:
                    error = NotificationError(
                        code="channel_error",
                        message=f"{channel_name} notification failed: {e}",
                        details={"channel": channel_name},
                    )
                last_error = error
                status = NotificationStatus.FAILED
                result.results.append(
                    ChannelResult(channel=channel_name, success=False, error=error.message)
                )
                self._log_error(
                    f"{channel_name} notification failed",
                    error,
                    {"channel": channel_name, "domain": record.name},
                )
            else:
                status = NotificationStatus.SUCCESS
                result.results.append(ChannelResult(channel=channel_name, success=True))
                self._log(
                    LogLevel.INFO,
                    f"{channel_name} notification sent",
                    {"channel": channel_name, "domain": record.name, "days_remaining": days_remaining},
                )

            try:
                self._store.append_notification(
                    NotificationRecord(
                        domain_name=record.name,
                        channel=channel_name,
                        content=notification_summary(record, days_remaining),
                        status=status,
                        sent_at=self._clock(),
                    )
                )
            except PersistenceError as e:
                audit_error = e
                self._log_error(
                    "Failed to record notification",
                    e,
                    {"channel": channel_name, "domain": record.name},
                )

        if audit_error is not None:
            raise audit_error

        if result.success_count == 0:
            raise last_error

        return result

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, self.COMPONENT, message, data)

    def _log_error(self, message: str, error: Exception, data: dict) -> None:
        if self._logger:
            self._logger.log_error(self.COMPONENT, message, error, data)
