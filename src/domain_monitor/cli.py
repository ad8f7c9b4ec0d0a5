"""
Command-line interface for the domain monitor.

This module provides the main CLI entry point with commands for:
- add / import: Register domains for monitoring
- list / history: Show monitored domains and sent notifications
- check / check-all: Refresh expiry data from the WHOIS API
- notify: Send a test notification for one domain
- run: Periodic monitoring loop
- config: Configuration management
"""

import argparse
import asyncio
import json
import signal
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .audit_logger import AuditLogger
from .config import (
    DEFAULT_ALERT_DAYS,
    DingTalkConfig,
    EmailConfig,
    LoggingConfig,
    MonitorConfig,
    NotificationConfig,
    PersistenceConfig,
    SystemConfig,
    TelegramConfig,
    WebhookConfig,
    WhoisConfig,
    apply_env_overrides,
    apply_settings_overrides,
    validate_alert_days,
    validate_check_interval,
)
from .domain_validator import DomainValidator
from .exceptions import ConfigError, DomainMonitorError
from .i18n import get_message
from .monitor import DomainMonitor
from .notifications import NotificationDispatcher, format_date
from .scheduler import CheckScheduler
from .state_store import StateStore
from .whois_client import WhoisClient


DEFAULT_HOME = Path.home() / ".domain_monitor"


def create_default_config(
    simulation_mode: bool = False,
    language: str = "en",
    state_file: Optional[Path] = None,
    hmac_secret: str = "default-secret-change-me",
) -> SystemConfig:
    """
    Create a default system configuration.

    Args:
        simulation_mode: Enable simulation mode (no real network requests)
        language: Output language ('de' or 'en')
        state_file: Path to state file for persistence
        hmac_secret: Secret for HMAC protection

    Returns:
        SystemConfig with default settings
    """
    if state_file is None:
        state_file = DEFAULT_HOME / "state.json"

    return SystemConfig(
        whois=WhoisConfig(),
        monitor=MonitorConfig(),
        notifications=NotificationConfig(),
        persistence=PersistenceConfig(
            state_file_path=state_file,
            hmac_secret=hmac_secret,
        ),
        logging=LoggingConfig(
            level="info",
            output_format="text",
        ),
        language=language,
        simulation_mode=simulation_mode,
    )


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Args:
        config_path: Path to the configuration file

    Returns:
        SystemConfig if successful, None otherwise
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        whois_data = data.get("whois", {})
        whois = WhoisConfig(
            api_url=whois_data.get("api_url", ""),
            timeout_seconds=float(whois_data.get("timeout_seconds", 30.0)),
        )

        monitor_data = data.get("monitor", {})
        allowed_tlds = monitor_data.get("allowed_tlds")
        if allowed_tlds is not None and not isinstance(allowed_tlds, list):
            raise TypeError("monitor.allowed_tlds must be a list")
        monitor = MonitorConfig(
            check_interval_seconds=validate_check_interval(
                float(monitor_data.get("check_interval_seconds", 86400.0))
            ),
            alert_days=validate_alert_days(monitor_data.get("alert_days", DEFAULT_ALERT_DAYS)),
            allowed_tlds=allowed_tlds,
        )

        persistence_data = data.get("persistence", {})
        state_file_path = persistence_data.get("state_file_path")
        if state_file_path:
            state_file_path = Path(state_file_path)
        else:
            state_file_path = DEFAULT_HOME / "state.json"

        persistence = PersistenceConfig(
            state_file_path=state_file_path,
            hmac_secret=persistence_data.get("hmac_secret", "default-secret-change-me"),
        )

        logging_data = data.get("logging", {})
        logging_config = LoggingConfig(
            level=logging_data.get("level", "info"),
            output_format=logging_data.get("output_format", "text"),
        )

        notifications_data = data.get("notifications", {})

        email_data = notifications_data.get("email", {})
        webhook_data = notifications_data.get("webhook", {})
        telegram_data = notifications_data.get("telegram", {})
        dingtalk_data = notifications_data.get("dingtalk", {})

        notifications = NotificationConfig(
            email=EmailConfig(
                enabled=bool(email_data.get("enabled", False)),
                smtp_host=email_data.get("smtp_host", ""),
                smtp_port=int(email_data.get("smtp_port", 587)),
                from_address=email_data.get("from_address", ""),
                password=email_data.get("password", ""),
                to_addresses=list(email_data.get("to_addresses", [])),
                username=email_data.get("username"),
            ),
            webhook=WebhookConfig(
                enabled=bool(webhook_data.get("enabled", False)),
                url=webhook_data.get("url", ""),
                headers=dict(webhook_data.get("headers", {})),
            ),
            telegram=TelegramConfig(
                enabled=bool(telegram_data.get("enabled", False)),
                bot_token=telegram_data.get("bot_token", ""),
                chat_id=str(telegram_data.get("chat_id", "")),
                proxy_url=telegram_data.get("proxy_url"),
            ),
            dingtalk=DingTalkConfig(
                enabled=bool(dingtalk_data.get("enabled", False)),
                webhook_url=dingtalk_data.get("webhook_url", ""),
                secret=dingtalk_data.get("secret", ""),
            ),
        )

        return SystemConfig(
            whois=whois,
            monitor=monitor,
            notifications=notifications,
            persistence=persistence,
            logging=logging_config,
            language=data.get("language", "en"),
            simulation_mode=data.get("simulation_mode", False),
        )

    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return None
    except ConfigError as e:
        print(f"Error loading config: {e.message}", file=sys.stderr)
        return None
    except FileNotFoundError:
        return None


def save_config_to_file(config: SystemConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Args:
        config: SystemConfig to save
        config_path: Path to save the configuration

    Returns:
        True if successful, False otherwise
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        notifications = config.notifications
        data = {
            "whois": {
                "api_url": config.whois.api_url,
                "timeout_seconds": config.whois.timeout_seconds,
            },
            "monitor": {
                "check_interval_seconds": config.monitor.check_interval_seconds,
                "alert_days": list(config.monitor.alert_days),
                "allowed_tlds": config.monitor.allowed_tlds,
            },
            "notifications": {
                "email": {
                    "enabled": notifications.email.enabled,
                    "smtp_host": notifications.email.smtp_host,
                    "smtp_port": notifications.email.smtp_port,
                    "from_address": notifications.email.from_address,
                    "password": notifications.email.password,
                    "to_addresses": list(notifications.email.to_addresses),
                    "username": notifications.email.username,
                },
                "webhook": {
                    "enabled": notifications.webhook.enabled,
                    "url": notifications.webhook.url,
                    "headers": dict(notifications.webhook.headers),
                },
                "telegram": {
                    "enabled": notifications.telegram.enabled,
                    "bot_token": notifications.telegram.bot_token,
                    "chat_id": notifications.telegram.chat_id,
                    "proxy_url": notifications.telegram.proxy_url,
                },
                "dingtalk": {
                    "enabled": notifications.dingtalk.enabled,
                    "webhook_url": notifications.dingtalk.webhook_url,
                    "secret": notifications.dingtalk.secret,
                },
            },
            "persistence": {
                "state_file_path": str(config.persistence.state_file_path),
                "hmac_secret": config.persistence.hmac_secret,
            },
            "logging": {
                "level": config.logging.level,
                "output_format": config.logging.output_format,
            },
            "language": config.language,
            "simulation_mode": config.simulation_mode,
        }

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        return True

    except (OSError, TypeError) as e:
        print(f"Error saving config: {e}", file=sys.stderr)
        return False


def resolve_config(args: argparse.Namespace) -> Optional[SystemConfig]:
    """Load the config file (or defaults) and apply command line and environment overrides."""
    config = None
    if args.config:
        config = load_config_from_file(Path(args.config))
        if config is None:
            print(f"Error: Could not load config from {args.config}", file=sys.stderr)
            return None

    if config is None:
        config = create_default_config(language=args.language or "en")

    if args.dry_run:
        config.simulation_mode = True
    if args.language:
        config.language = args.language

    apply_env_overrides(config)
    return config


def create_logger(config: SystemConfig, verbose: bool = False) -> AuditLogger:
    level = "debug" if verbose else config.logging.level
    return AuditLogger.from_level_name(level, config.logging.output_format)


def create_monitor(
    config: SystemConfig,
    logger: Optional[AuditLogger] = None,
) -> tuple[DomainMonitor, StateStore]:
    """
    Open the state store and wire up the monitor from configuration.

    Persisted settings take precedence over the loaded configuration.

    Raises:
        PersistenceError: If the state file cannot be loaded
        ConfigError: If the resulting alert days or check interval are invalid
    """
    store = StateStore(
        file_path=config.persistence.state_file_path,
        hmac_secret=config.persistence.hmac_secret,
    )
    store.load()

    apply_settings_overrides(config, store.get_settings())
    validate_alert_days(config.monitor.alert_days)
    validate_check_interval(config.monitor.check_interval_seconds)

    whois_client = WhoisClient(
        api_url=config.whois.api_url,
        timeout=config.whois.timeout_seconds,
        simulation_mode=config.simulation_mode,
        logger=logger,
    )

    dispatcher = NotificationDispatcher.from_config(
        config.notifications,
        store,
        logger=logger,
        simulation_mode=config.simulation_mode,
        language=config.language,
    )
    if not dispatcher.channels:
        dispatcher = None

    monitor = DomainMonitor(
        whois_client=whois_client,
        store=store,
        dispatcher=dispatcher,
        alert_days=config.monitor.alert_days,
        validator=DomainValidator(config.monitor.allowed_tlds),
        logger=logger,
    )
    return monitor, store


def print_domain_result(record, language: str) -> None:
    print(get_message(
        "cli.check_result",
        language,
        domain=record.name,
        days=record.days_remaining,
        expiry=format_date(record.expiry_date),
    ))


async def add_domain(config: SystemConfig, domain: str, tags: str, verbose: bool = False) -> int:
    """Register one domain and wait for its first check."""
    language = config.language
    monitor, store = create_monitor(config, create_logger(config, verbose))

    record = await monitor.register_domain(domain, tags=tags)
    print(get_message("cli.domain_added", language, domain=record.name))

    await monitor.wait_for_background_checks()

    checked = store.get_domain(record.name)
    if checked is not None and checked.last_checked is not None:
        print_domain_result(checked, language)
    return 0


async def import_domain_file(config: SystemConfig, domains_file: Path, verbose: bool = False) -> int:
    """Register all domains listed in a file, one per line."""
    language = config.language

    try:
        with open(domains_file, "r", encoding="utf-8") as f:
            names = [line.strip() for line in f if line.strip() and not line.startswith("#")]
    except FileNotFoundError:
        print(f"Error: File not found: {domains_file}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error reading file: {e}", file=sys.stderr)
        return 1

    monitor, _ = create_monitor(config, create_logger(config, verbose))
    result = await monitor.import_domains(names)
    await monitor.wait_for_background_checks()

    print(get_message(
        "cli.import_summary",
        language,
        imported=len(result.imported),
        skipped=len(result.skipped),
    ))
    for name in result.skipped:
        print(f"  - {name}")

    return 0 if result.imported else 1


async def check_single_domain(config: SystemConfig, domain: str, verbose: bool = False) -> int:
    """
    Check one registered domain.

    Returns:
        Exit code (0 on success, 1 if the domain is unknown or the check failed)
    """
    language = config.language
    monitor, store = create_monitor(config, create_logger(config, verbose))

    # Lookups ignore the TLD allowlist
    name = DomainValidator().canonicalize(domain)
    record = store.get_domain(name)
    if record is None:
        print(get_message("cli.domain_not_found", language, domain=name), file=sys.stderr)
        return 1

    print(get_message("cli.checking_domain", language, domain=name))

    try:
        updated = await monitor.check_domain(record)
    except DomainMonitorError as e:
        print(get_message("cli.check_failed", language, domain=name, error=e.message), file=sys.stderr)
        return 1

    print_domain_result(updated, language)

    if verbose:
        print(f"  Registrar: {updated.registrar}")
        print(f"  Status: {updated.status}")
    return 0


async def check_all(config: SystemConfig, verbose: bool = False) -> int:
    language = config.language
    monitor, _ = create_monitor(config, create_logger(config, verbose))

    summary = await monitor.check_all_domains()
    print(get_message(
        "cli.batch_summary",
        language,
        succeeded=summary.succeeded,
        total=summary.total,
        failed=summary.failed,
    ))
    return 0 if summary.failed == 0 else 1


async def send_test_notification(config: SystemConfig, domain: str, verbose: bool = False) -> int:
    """Send a notification for one domain regardless of its alert days."""
    language = config.language
    monitor, store = create_monitor(config, create_logger(config, verbose))

    name = DomainValidator().canonicalize(domain)
    record = store.get_domain(name)
    if record is None:
        print(get_message("cli.domain_not_found", language, domain=name), file=sys.stderr)
        return 1

    try:
        result = await monitor.trigger_notification(record)
    except DomainMonitorError as e:
        print(get_message("cli.notification_failed", language, error=e.message), file=sys.stderr)
        return 1

    print(get_message(
        "cli.notification_sent",
        language,
        succeeded=result.success_count,
        total=len(result.results),
    ))
    for channel_result in result.results:
        if not channel_result.success:
            print(f"  {channel_result.channel}: {channel_result.error}")
    return 0


async def run_monitor(config: SystemConfig, verbose: bool = False) -> int:
    """Run bulk checks on the configured interval until interrupted."""
    language = config.language
    logger = create_logger(config, verbose)
    monitor, _ = create_monitor(config, logger)

    scheduler = CheckScheduler(
        callback=monitor.check_all_domains,
        interval_seconds=config.monitor.check_interval_seconds,
        logger=logger,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers
            pass

    print(get_message("cli.scheduler_started", language, interval=config.monitor.check_interval_seconds))
    await scheduler.run(stop_event)
    return 0


def _run(args: argparse.Namespace, coro_factory) -> int:
    """Resolve configuration and run a command coroutine, reporting domain errors."""
    config = resolve_config(args)
    if config is None:
        return 1

    if config.simulation_mode:
        print(get_message("simulation.enabled", config.language))

    try:
        return asyncio.run(coro_factory(config))
    except DomainMonitorError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


def cmd_add(args: argparse.Namespace) -> int:
    """Handle the 'add' command."""
    return _run(args, lambda config: add_domain(config, args.domain, args.tags, args.verbose))


def cmd_import(args: argparse.Namespace) -> int:
    """Handle the 'import' command."""
    return _run(args, lambda config: import_domain_file(config, Path(args.file), args.verbose))


def cmd_list(args: argparse.Namespace) -> int:
    """Handle the 'list' command."""
    config = resolve_config(args)
    if config is None:
        return 1

    store = StateStore(config.persistence.state_file_path, config.persistence.hmac_secret)
    try:
        store.load()
    except DomainMonitorError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    domains = store.list_domains()
    if not domains:
        print(get_message("cli.no_domains", config.language))
        return 0

    for record in domains:
        active = "" if record.is_active else " (inactive)"
        print(
            f"{record.name:<40} {record.days_remaining:>6}  "
            f"{format_date(record.expiry_date):<10}  {record.registrar}{active}"
        )
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Handle the 'check' command."""
    return _run(args, lambda config: check_single_domain(config, args.domain, args.verbose))


def cmd_check_all(args: argparse.Namespace) -> int:
    """Handle the 'check-all' command."""
    return _run(args, lambda config: check_all(config, args.verbose))


def cmd_notify(args: argparse.Namespace) -> int:
    """Handle the 'notify' command."""
    return _run(args, lambda config: send_test_notification(config, args.domain, args.verbose))


def cmd_history(args: argparse.Namespace) -> int:
    """Handle the 'history' command."""
    config = resolve_config(args)
    if config is None:
        return 1

    store = StateStore(config.persistence.state_file_path, config.persistence.hmac_secret)
    try:
        store.load()
        domain = DomainValidator().canonicalize(args.domain) if args.domain else None
    except DomainMonitorError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    records = store.list_notifications(domain)[: args.limit]
    if not records:
        print(get_message("cli.no_notifications", config.language))
        return 0

    for record in records:
        print(
            f"{record.sent_at.strftime('%Y-%m-%d %H:%M:%S')}  {record.channel:<9} "
            f"{record.status.value:<8} {record.content}"
        )
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """Handle the 'run' command."""
    return _run(args, lambda config: run_monitor(config, args.verbose))


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_HOME / "config.json"

    if args.action == "show":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return 1

        channels = [
            name
            for name, channel in (
                ("email", config.notifications.email),
                ("webhook", config.notifications.webhook),
                ("telegram", config.notifications.telegram),
                ("dingtalk", config.notifications.dingtalk),
            )
            if channel.enabled
        ]

        print(f"Configuration from: {config_path}")
        print(f"  Language: {config.language}")
        print(f"  Simulation mode: {config.simulation_mode}")
        print(f"  WHOIS API: {config.whois.api_url or '-'}")
        print(f"  Check interval: {config.monitor.check_interval_seconds}s")
        print(f"  Alert days: {', '.join(str(d) for d in config.monitor.alert_days)}")
        print(f"  Allowed TLDs: {', '.join(config.monitor.allowed_tlds or []) or '-'}")
        print(f"  Channels: {', '.join(channels) or '-'}")
        print(f"  State file: {config.persistence.state_file_path}")
        print(f"  Log level: {config.logging.level}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        config = create_default_config(language=args.language or "en")
        if save_config_to_file(config, config_path):
            print(f"Configuration created at: {config_path}")
            return 0
        return 1

    elif args.action == "validate":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"Error: Could not load config from {config_path}", file=sys.stderr)
            return 1

        print(f"Configuration at {config_path} is valid.")
        return 0

    return 1


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Simulation mode - no real network requests",
    )
    parser.add_argument(
        "--language", "-l",
        choices=["de", "en"],
        default=None,
        help="Output language (default: from configuration, else en)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="domain-monitor",
        description="Domain expiry monitor with multi-channel notifications",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'add' command
    add_parser = subparsers.add_parser(
        "add",
        help="Register a domain for monitoring",
    )
    add_parser.add_argument(
        "domain",
        help="Domain to monitor (e.g., example.com)",
    )
    add_parser.add_argument(
        "--tags", "-t",
        default="",
        help="Free-form tags stored with the domain",
    )
    _add_common_arguments(add_parser)
    add_parser.set_defaults(func=cmd_add)

    # 'import' command
    import_parser = subparsers.add_parser(
        "import",
        help="Register multiple domains from a file",
    )
    import_parser.add_argument(
        "file",
        help="Path to file containing domains (one per line)",
    )
    _add_common_arguments(import_parser)
    import_parser.set_defaults(func=cmd_import)

    # 'list' command
    list_parser = subparsers.add_parser(
        "list",
        help="List monitored domains by expiry date",
    )
    _add_common_arguments(list_parser)
    list_parser.set_defaults(func=cmd_list)

    # 'check' command
    check_parser = subparsers.add_parser(
        "check",
        help="Check a single registered domain",
    )
    check_parser.add_argument(
        "domain",
        help="Domain to check",
    )
    _add_common_arguments(check_parser)
    check_parser.set_defaults(func=cmd_check)

    # 'check-all' command
    check_all_parser = subparsers.add_parser(
        "check-all",
        help="Check all active domains once",
    )
    _add_common_arguments(check_all_parser)
    check_all_parser.set_defaults(func=cmd_check_all)

    # 'notify' command
    notify_parser = subparsers.add_parser(
        "notify",
        help="Send a test notification for a domain",
    )
    notify_parser.add_argument(
        "domain",
        help="Registered domain to report",
    )
    _add_common_arguments(notify_parser)
    notify_parser.set_defaults(func=cmd_notify)

    # 'history' command
    history_parser = subparsers.add_parser(
        "history",
        help="Show sent notifications, newest first",
    )
    history_parser.add_argument(
        "domain",
        nargs="?",
        help="Only show notifications for this domain",
    )
    history_parser.add_argument(
        "--limit", "-n",
        type=int,
        default=50,
        help="Maximum number of entries (default: 50)",
    )
    _add_common_arguments(history_parser)
    history_parser.set_defaults(func=cmd_history)

    # 'run' command
    run_parser = subparsers.add_parser(
        "run",
        help="Check all domains periodically until interrupted",
    )
    _add_common_arguments(run_parser)
    run_parser.set_defaults(func=cmd_run)

    # 'config' command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "init", "validate"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.add_argument(
        "--language", "-l",
        choices=["de", "en"],
        default=None,
        help="Default language for new configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
