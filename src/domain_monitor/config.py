"""
Configuration dataclasses for the domain monitor.

This module defines all configuration structures used throughout the system:
the WHOIS lookup API, the monitoring cadence and alert thresholds, the
notification channels, persistence and logging. It also applies overrides
from the environment and from persisted key/value settings.
"""

import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigError


DEFAULT_ALERT_DAYS = [30, 14, 7, 1]


@dataclass
class WhoisConfig:
    """WHOIS lookup API configuration."""

    api_url: str = ""
    timeout_seconds: float = 30.0


@dataclass
class MonitorConfig:
    """Monitoring cadence and alert thresholds."""

    check_interval_seconds: float = 86400.0
    alert_days: list[int] = field(default_factory=lambda: list(DEFAULT_ALERT_DAYS))
    allowed_tlds: Optional[list[str]] = None  # None accepts any TLD


@dataclass
class EmailConfig:
    """Email notification channel configuration."""

    enabled: bool = False
    smtp_host: str = ""
    smtp_port: int = 587
    from_address: str = ""
    password: str = ""
    to_addresses: list[str] = field(default_factory=list)
    username: Optional[str] = None  # Defaults to from_address


@dataclass
class WebhookConfig:
    """Generic webhook notification channel configuration."""

    enabled: bool = False
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class TelegramConfig:
    """Telegram notification channel configuration."""

    enabled: bool = False
    bot_token: str = ""
    chat_id: str = ""
    proxy_url: Optional[str] = None  # e.g. socks5://127.0.0.1:7890


@dataclass
class DingTalkConfig:
    """DingTalk robot webhook configuration."""

    enabled: bool = False
    webhook_url: str = ""
    secret: str = ""


@dataclass
class NotificationConfig:
    """Notification channels configuration."""

    email: EmailConfig = field(default_factory=EmailConfig)
    webhook: WebhookConfig = field(default_factory=WebhookConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    dingtalk: DingTalkConfig = field(default_factory=DingTalkConfig)


@dataclass
class PersistenceConfig:
    """Persistence and state storage configuration."""

    state_file_path: Path
    hmac_secret: str


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class SystemConfig:
    """Main system configuration combining all sub-configurations."""

    whois: WhoisConfig
    monitor: MonitorConfig
    notifications: NotificationConfig
    persistence: PersistenceConfig
    logging: LoggingConfig
    language: str = "en"  # 'de' or 'en'
    simulation_mode: bool = False


def validate_alert_days(alert_days: list[int]) -> list[int]:
    """
    Check that alert thresholds are distinct non-negative integers.

    Raises:
        ConfigError: If a threshold is negative or repeated
    """
    seen: set[int] = set()
    for day in alert_days:
        if not isinstance(day, int) or isinstance(day, bool) or day < 0:
            raise ConfigError(
                code="invalid_alert_days",
                message=f"Alert day must be a non-negative integer, got {day!r}",
                details={"alert_days": list(alert_days)},
            )
        if day in seen:
            raise ConfigError(
                code="invalid_alert_days",
                message=f"Alert day {day} is listed more than once",
                details={"alert_days": list(alert_days)},
            )
        seen.add(day)
    return list(alert_days)


def validate_check_interval(interval_seconds: float) -> float:
    """
    Check that the monitoring interval is a finite, positive number of seconds.

    Raises:
        ConfigError: If the interval is zero, negative, infinite or NaN
    """
    if (
        isinstance(interval_seconds, bool)
        or not isinstance(interval_seconds, (int, float))
        or not math.isfinite(interval_seconds)
        or interval_seconds <= 0
    ):
        raise ConfigError(
            code="invalid_check_interval",
            message=f"Check interval must be a positive number of seconds, got {interval_seconds!r}",
            details={"check_interval_seconds": interval_seconds},
        )
    return float(interval_seconds)


def parse_alert_days(value: str) -> list[int]:
    """Parse a comma-separated day list, skipping entries that are not integers."""
    days = []
    for part in value.split(","):
        try:
            days.append(int(part.strip()))
        except ValueError:
            continue
    return days


def _split_list(value: str) -> list[str]:
    return [a.strip() for a in value.split(",") if a.strip()]


def apply_settings_overrides(config: SystemConfig, settings: dict[str, str]) -> SystemConfig:
    """
    Override configuration with persisted key/value settings.

    Keys follow the dotted naming of the settings table, e.g.
    ``monitor.alert_days`` or ``telegram.bot_token``. Boolean flags are
    enabled only by the literal string ``"true"``. Values that cannot be
    parsed leave the current setting untouched.

    Args:
        config: Configuration to update in place
        settings: Mapping of setting key to string value

    Returns:
        The updated configuration
    """
    monitor = config.monitor
    notifications = config.notifications

    value = settings.get("monitor.check_interval")
    if value:
        try:
            interval = float(value)
        except ValueError:
            interval = None
        if interval is not None and math.isfinite(interval) and interval > 0:
            monitor.check_interval_seconds = interval

    value = settings.get("monitor.alert_days")
    if value:
        days = parse_alert_days(value)
        if days:
            monitor.alert_days = days

    value = settings.get("monitor.allowed_tlds")
    if value:
        tlds = _split_list(value)
        if tlds:
            monitor.allowed_tlds = tlds

    if "whois.api_url" in settings and settings["whois.api_url"]:
        config.whois.api_url = settings["whois.api_url"]

    email = notifications.email
    if "email.enabled" in settings:
        email.enabled = settings["email.enabled"] == "true"
    if "email.smtp_host" in settings:
        email.smtp_host = settings["email.smtp_host"]
    if "email.smtp_port" in settings:
        try:
            email.smtp_port = int(settings["email.smtp_port"])
        except ValueError:
            pass
    if "email.from" in settings:
        email.from_address = settings["email.from"]
    if "email.password" in settings:
        email.password = settings["email.password"]
    if settings.get("email.to"):
        email.to_addresses = _split_list(settings["email.to"])

    webhook = notifications.webhook
    if "webhook.enabled" in settings:
        webhook.enabled = settings["webhook.enabled"] == "true"
    if "webhook.url" in settings:
        webhook.url = settings["webhook.url"]

    telegram = notifications.telegram
    if "telegram.enabled" in settings:
        telegram.enabled = settings["telegram.enabled"] == "true"
    if "telegram.bot_token" in settings:
        telegram.bot_token = settings["telegram.bot_token"]
    if "telegram.chat_id" in settings:
        telegram.chat_id = settings["telegram.chat_id"]
    if "telegram.proxy_url" in settings:
        telegram.proxy_url = settings["telegram.proxy_url"] or None

    dingtalk = notifications.dingtalk
    if "dingding.enabled" in settings:
        dingtalk.enabled = settings["dingding.enabled"] == "true"
    if "dingding.webhook" in settings:
        dingtalk.webhook_url = settings["dingding.webhook"]
    if "dingding.secret" in settings:
        dingtalk.secret = settings["dingding.secret"]

    return config


# Environment variable name -> settings key understood by apply_settings_overrides
ENV_SETTINGS = {
    "WHOIS_API_URL": "whois.api_url",
    "CHECK_INTERVAL_SECONDS": "monitor.check_interval",
    "ALERT_DAYS": "monitor.alert_days",
    "ALLOWED_TLDS": "monitor.allowed_tlds",
    "SMTP_ENABLED": "email.enabled",
    "SMTP_HOST": "email.smtp_host",
    "SMTP_PORT": "email.smtp_port",
    "SMTP_FROM": "email.from",
    "SMTP_PASSWORD": "email.password",
    "SMTP_TO": "email.to",
    "WEBHOOK_ENABLED": "webhook.enabled",
    "WEBHOOK_URL": "webhook.url",
    "TELEGRAM_ENABLED": "telegram.enabled",
    "TELEGRAM_BOT_TOKEN": "telegram.bot_token",
    "TELEGRAM_CHAT_ID": "telegram.chat_id",
    "TELEGRAM_PROXY_URL": "telegram.proxy_url",
    "DINGTALK_ENABLED": "dingding.enabled",
    "DINGTALK_WEBHOOK": "dingding.webhook",
    "DINGTALK_SECRET": "dingding.secret",
}


def apply_env_overrides(
    config: SystemConfig,
    env_file: Optional[Path] = None,
) -> SystemConfig:
    """
    Override configuration from environment variables (and a .env file).

    Args:
        config: Configuration to update in place
        env_file: Optional explicit .env path; defaults to dotenv's lookup

    Returns:
        The updated configuration
    """
    load_dotenv(dotenv_path=env_file)

    settings = {}
    for env_name, key in ENV_SETTINGS.items():
        value = os.getenv(env_name)
        if value is None:
            continue
        value = value.strip()
        if key.endswith(".enabled"):
            value = "true" if value.lower() in ("1", "true", "yes") else "false"
        settings[key] = value

    return apply_settings_overrides(config, settings)
