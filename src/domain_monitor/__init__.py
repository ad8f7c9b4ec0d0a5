"""
Domain Monitor - domain expiry monitoring with multi-channel notifications.

This package periodically looks up domain registration data through an HTTP
WHOIS API, stores the expiry state of every monitored domain, and sends
expiry warnings by email, webhook, Telegram and DingTalk.
"""

__version__ = "0.1.0"
__author__ = "Domain Monitor Team"

from domain_monitor.exceptions import (
    DomainMonitorError,
    ValidationError,
    ConfigError,
    WhoisLookupError,
    PersistenceError,
    TamperingError,
    NotificationError,
)
from domain_monitor.enums import (
    LogLevel,
    DomainValidationErrorCode,
    LookupErrorCode,
    ChannelType,
    NotificationStatus,
    Urgency,
)
from domain_monitor.domain_validator import (
    DomainValidator,
    DomainValidationResult,
    DomainValidationError,
)
from domain_monitor.config import (
    DEFAULT_ALERT_DAYS,
    WhoisConfig,
    MonitorConfig,
    EmailConfig,
    WebhookConfig,
    TelegramConfig,
    DingTalkConfig,
    NotificationConfig,
    PersistenceConfig,
    LoggingConfig,
    SystemConfig,
    apply_env_overrides,
    apply_settings_overrides,
    validate_alert_days,
    validate_check_interval,
)
from domain_monitor.models import (
    DomainRecord,
    NotificationRecord,
    DomainFacts,
    ChannelResult,
    DispatchResult,
    BatchCheckSummary,
    ImportResult,
)
from domain_monitor.whois_client import (
    WhoisClient,
    parse_date,
)
from domain_monitor.state_store import (
    DomainStore,
    StateStore,
)
from domain_monitor.audit_logger import (
    AuditLogger,
    LogEntry,
)
from domain_monitor.notifications import (
    NotificationChannel,
    EmailChannel,
    WebhookChannel,
    TelegramChannel,
    DingTalkChannel,
    NotificationDispatcher,
    generate_signature,
    urgency_for,
)
from domain_monitor.i18n import (
    get_message,
    get_all_message_keys,
    get_missing_translations,
    TRANSLATIONS,
    SUPPORTED_LANGUAGES,
    DEFAULT_LANGUAGE,
)
from domain_monitor.monitor import (
    DomainMonitor,
    compute_days_remaining,
)
from domain_monitor.scheduler import (
    CheckScheduler,
)
from domain_monitor.cli import (
    main as cli_main,
    create_parser,
    create_default_config,
    load_config_from_file,
    save_config_to_file,
)

__all__ = [
    # Exceptions
    "DomainMonitorError",
    "ValidationError",
    "ConfigError",
    "WhoisLookupError",
    "PersistenceError",
    "TamperingError",
    "NotificationError",
    # Enums
    "LogLevel",
    "DomainValidationErrorCode",
    "LookupErrorCode",
    "ChannelType",
    "NotificationStatus",
    "Urgency",
    # Domain Validator
    "DomainValidator",
    "DomainValidationResult",
    "DomainValidationError",
    # Configuration
    "DEFAULT_ALERT_DAYS",
    "WhoisConfig",
    "MonitorConfig",
    "EmailConfig",
    "WebhookConfig",
    "TelegramConfig",
    "DingTalkConfig",
    "NotificationConfig",
    "PersistenceConfig",
    "LoggingConfig",
    "SystemConfig",
    "apply_env_overrides",
    "apply_settings_overrides",
    "validate_alert_days",
    "validate_check_interval",
    # Models
    "DomainRecord",
    "NotificationRecord",
    "DomainFacts",
    "ChannelResult",
    "DispatchResult",
    "BatchCheckSummary",
    "ImportResult",
    # WHOIS Client
    "WhoisClient",
    "parse_date",
    # State Store
    "DomainStore",
    "StateStore",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Notifications
    "NotificationChannel",
    "EmailChannel",
    "WebhookChannel",
    "TelegramChannel",
    "DingTalkChannel",
    "NotificationDispatcher",
    "generate_signature",
    "urgency_for",
    # I18n
    "get_message",
    "get_all_message_keys",
    "get_missing_translations",
    "TRANSLATIONS",
    "SUPPORTED_LANGUAGES",
    "DEFAULT_LANGUAGE",
    # Monitor
    "DomainMonitor",
    "compute_days_remaining",
    # Scheduler
    "CheckScheduler",
    # CLI
    "cli_main",
    "create_parser",
    "create_default_config",
    "load_config_from_file",
    "save_config_to_file",
]
