"""
Internationalization (i18n) module for the domain monitor.

Provides translations for notification texts and CLI output in German (de)
and English (en).
"""

from typing import Optional


SUPPORTED_LANGUAGES = frozenset({"de", "en"})
DEFAULT_LANGUAGE = "en"


# Structure: {message_key: {language_code: translated_message}}
TRANSLATIONS: dict[str, dict[str, str]] = {
    # Urgency tiers
    "urgency.critical": {
        "de": "🔴 Dringend",
        "en": "🔴 Critical",
    },
    "urgency.warning": {
        "de": "🟡 Warnung",
        "en": "🟡 Warning",
    },
    "urgency.normal": {
        "de": "🟢 Normal",
        "en": "🟢 Normal",
    },

    # Notification texts
    "notification.title": {
        "de": "Domain-Ablauferinnerung",
        "en": "Domain expiry reminder",
    },
    "notification.email_subject": {
        "de": "Domain-Ablauferinnerung: {domain} läuft in {days} Tagen ab",
        "en": "Domain expiry reminder: {domain} expires in {days} days",
    },
    "notification.status_label": {
        "de": "Status",
        "en": "Status",
    },
    "notification.domain_label": {
        "de": "Domain",
        "en": "Domain",
    },
    "notification.days_label": {
        "de": "Verbleibende Tage",
        "en": "Days remaining",
    },
    "notification.days_value": {
        "de": "{days} Tage",
        "en": "{days} days",
    },
    "notification.expiry_label": {
        "de": "Ablaufdatum",
        "en": "Expiry date",
    },
    "notification.registrar_label": {
        "de": "Registrar",
        "en": "Registrar",
    },
    "notification.domain_status_label": {
        "de": "Domain-Status",
        "en": "Domain status",
    },
    "notification.checked_label": {
        "de": "Zuletzt geprüft",
        "en": "Last checked",
    },
    "notification.renew_hint": {
        "de": "Bitte rechtzeitig verlängern, damit die Domain nicht ausläuft!",
        "en": "Please renew in time to keep the domain from expiring!",
    },

    # CLI messages
    "cli.checking_domain": {
        "de": "Prüfe Domain: {domain}",
        "en": "Checking domain: {domain}",
    },
    "cli.check_result": {
        "de": "{domain}: noch {days} Tage (Ablauf: {expiry})",
        "en": "{domain}: {days} days remaining (expires: {expiry})",
    },
    "cli.check_failed": {
        "de": "Prüfung fehlgeschlagen für {domain}: {error}",
        "en": "Check failed for {domain}: {error}",
    },
    "cli.batch_summary": {
        "de": "{succeeded}/{total} Domain(s) geprüft, {failed} fehlgeschlagen",
        "en": "{succeeded}/{total} domain(s) checked, {failed} failed",
    },
    "cli.domain_added": {
        "de": "Domain hinzugefügt: {domain}",
        "en": "Domain added: {domain}",
    },
    "cli.domain_not_found": {
        "de": "Domain nicht gefunden: {domain}",
        "en": "Domain not found: {domain}",
    },
    "cli.import_summary": {
        "de": "{imported} Domain(s) importiert, {skipped} übersprungen",
        "en": "{imported} domain(s) imported, {skipped} skipped",
    },
    "cli.no_domains": {
        "de": "Keine Domains registriert.",
        "en": "No domains registered.",
    },
    "cli.no_notifications": {
        "de": "Keine Benachrichtigungen vorhanden.",
        "en": "No notifications recorded.",
    },
    "cli.notification_sent": {
        "de": "Testbenachrichtigung gesendet ({succeeded}/{total} Kanäle erfolgreich)",
        "en": "Test notification sent ({succeeded}/{total} channels succeeded)",
    },
    "cli.notification_failed": {
        "de": "Benachrichtigung fehlgeschlagen: {error}",
        "en": "Notification failed: {error}",
    },
    "cli.scheduler_started": {
        "de": "Überwachung gestartet, Intervall: {interval}s",
        "en": "Monitoring started, interval: {interval}s",
    },
    "simulation.enabled": {
        "de": "⚠️ Simulationsmodus aktiv - keine echten Netzwerkanfragen",
        "en": "⚠️ Simulation mode enabled - no real network requests",
    },
}


def get_message(
    key: str,
    language: Optional[str] = None,
    **kwargs,
) -> str:
    """
    Get a translated message by key.

    Args:
        key: The message key (e.g., 'notification.title')
        language: Language code ('de' or 'en'). Defaults to DEFAULT_LANGUAGE.
        **kwargs: Format arguments for the message template

    Returns:
        The translated and formatted message string.
        If the key is not found, returns the key itself.
        If the language is not found, falls back to DEFAULT_LANGUAGE.

    Examples:
        >>> get_message('urgency.warning', 'en')
        '🟡 Warning'
        >>> get_message('notification.days_value', 'de', days=7)
        '7 Tage'
    """
    if language is None or language not in SUPPORTED_LANGUAGES:
        language = DEFAULT_LANGUAGE

    translations = TRANSLATIONS.get(key)
    if translations is None:
        return key

    message = translations.get(language) or translations.get(DEFAULT_LANGUAGE)
    if message is None:
        return key

    if kwargs:
        try:
            message = message.format(**kwargs)
        except KeyError:
            pass

    return message


def get_all_message_keys() -> set[str]:
    """Get all available message keys."""
    return set(TRANSLATIONS.keys())


def get_missing_translations(language: str) -> set[str]:
    """
    Get all message keys that are missing translations for a language.

    Args:
        language: The language code to check

    Returns:
        Set of message keys missing translations for the specified language.
    """
    return {key for key, translations in TRANSLATIONS.items() if language not in translations}
