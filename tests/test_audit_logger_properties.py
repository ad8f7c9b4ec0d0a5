"""
Property-based tests for Audit Logger module.

Uses Hypothesis for property-based testing of the output formats, the
minimum level threshold, credential masking and error context.
"""

import json
from io import StringIO

import pytest
from hypothesis import assume, given, settings
from hypothesis import strategies as st

from domain_monitor.audit_logger import AuditLogger
from domain_monitor.enums import LogLevel
from domain_monitor.exceptions import NotificationError


SENSITIVE_PATTERNS = [
    "token", "secret", "password", "api_key", "webhook_url",
    "auth", "credential", "private_key",
]


# Strategies for generating valid test data

@st.composite
def component_name_strategy(draw) -> str:
    """Generate valid component names."""
    return draw(st.text(
        alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_"),
        min_size=1,
        max_size=30,
    ))


@st.composite
def message_strategy(draw) -> str:
    """Generate single-line log messages."""
    return draw(st.text(
        alphabet=st.characters(
            whitelist_categories=("L", "N", "P", "S", "Zs"),
            blacklist_characters="\x00\n\r",
        ),
        min_size=1,
        max_size=100,
    ))


@st.composite
def non_sensitive_key_strategy(draw) -> str:
    key = draw(st.text(alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz_"), min_size=1, max_size=20))
    for pattern in SENSITIVE_PATTERNS:
        assume(pattern not in key)
    return key


@st.composite
def sensitive_key_strategy(draw) -> str:
    """Generate keys naming a credential, in any case and with affixes."""
    base = draw(st.sampled_from(["smtp_password", "bot_token", "secret", "dingtalk_secret",
                                 "hmac_secret", "api_key", "webhook_url", "Authorization"]))
    prefix = draw(st.sampled_from(["", "email_", "x_"]))
    key = f"{prefix}{base}"
    return key.upper() if draw(st.booleans()) else key


class TestOutputFormatProperty:
    """Property-based tests for the JSON and text formats."""

    @given(
        level=st.sampled_from(list(LogLevel)),
        component=component_name_strategy(),
        message=message_strategy(),
        domain=st.sampled_from(["example.com", "beispiel.de", "xn--fsqu00a.cn"]),
    )
    @settings(max_examples=100)
    def test_both_format_writes_json_then_text(
        self, level: LogLevel, component: str, message: str, domain: str
    ) -> None:
        """
        Property 1: Dual format writes both renderings.

        *For any* entry, the 'both' format SHALL write one JSON line carrying
        the entry fields followed by one text line.
        """
        output = StringIO()
        logger = AuditLogger(output_format="both", output_stream=output)

        logger.log(level, component, message, {"domain": domain})

        json_line, text_line = output.getvalue().rstrip("\n").split("\n")
        parsed = json.loads(json_line)
        assert parsed["level"] == level.value
        assert parsed["component"] == component
        assert parsed["message"] == message
        assert parsed["data"] == {"domain": domain}
        assert text_line.startswith(f"[{parsed['timestamp']}] {level.value.upper()} [{component}] ")
        assert domain in text_line

    def test_json_only(self) -> None:
        output = StringIO()
        AuditLogger(output_format="json", output_stream=output).log(LogLevel.INFO, "Monitor", "Checked")

        assert json.loads(output.getvalue())["message"] == "Checked"

    def test_text_without_data_has_no_trailing_object(self) -> None:
        output = StringIO()
        AuditLogger(output_format="text", output_stream=output).log(LogLevel.WARN, "Monitor", "Skipped")

        assert output.getvalue().rstrip("\n").endswith("WARN [Monitor] Skipped")

    def test_invalid_format_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            AuditLogger(output_format="xml")


class TestMinimumLevelProperty:
    """Property-based tests for the level threshold."""

    ORDER = [LogLevel.DEBUG, LogLevel.INFO, LogLevel.WARN, LogLevel.ERROR]

    @given(min_level=st.sampled_from(ORDER), level=st.sampled_from(ORDER))
    @settings(max_examples=50)
    def test_entries_below_threshold_are_dropped(self, min_level: LogLevel, level: LogLevel) -> None:
        """
        Property 2: Entries below the minimum level are dropped.

        *For any* threshold and entry level, the entry SHALL be recorded and
        written exactly when its level is at or above the threshold.
        """
        output = StringIO()
        logger = AuditLogger(output_stream=output, min_level=min_level)

        entry = logger.log(level, "Monitor", "message")

        expected = self.ORDER.index(level) >= self.ORDER.index(min_level)
        assert (entry is not None) == expected
        assert (output.getvalue() != "") == expected
        assert len(logger.entries) == int(expected)

    def test_from_level_name(self) -> None:
        assert AuditLogger.from_level_name("WARN").min_level == LogLevel.WARN
        assert AuditLogger.from_level_name("verbose").min_level == LogLevel.INFO


class TestSensitiveDataMaskingProperty:
    """Property-based tests for credential masking."""

    @given(
        sensitive_key=sensitive_key_strategy(),
        sensitive_value=st.text(alphabet=st.sampled_from("QWXYZ"), min_size=5, max_size=20),
    )
    @settings(max_examples=100)
    def test_sensitive_values_never_reach_output(self, sensitive_key: str, sensitive_value: str) -> None:
        """
        Property 3: Credentials are masked in entries and output.

        *For any* key naming a credential, the value SHALL be replaced with
        the mask both in the stored entry and in the written JSON.
        """
        output = StringIO()
        logger = AuditLogger(output_format="json", output_stream=output)

        entry = logger.log(LogLevel.INFO, "Notifier", "Channel configured", {sensitive_key: sensitive_value})

        assert entry.data[sensitive_key] == AuditLogger.MASK_VALUE
        assert sensitive_value not in output.getvalue()
        assert json.loads(output.getvalue())["data"][sensitive_key] == AuditLogger.MASK_VALUE

    @given(key=non_sensitive_key_strategy(), value=st.text(max_size=50))
    @settings(max_examples=100)
    def test_other_values_are_preserved(self, key: str, value: str) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO())

        entry = logger.log(LogLevel.INFO, "Notifier", "Sent", {key: value})

        assert entry.data[key] == value

    @given(sensitive_key=sensitive_key_strategy())
    @settings(max_examples=50)
    def test_nested_and_listed_values_are_masked(self, sensitive_key: str) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO())
        data = {
            "channel": {sensitive_key: "hidden", "name": "telegram"},
            "channels": [{sensitive_key: "hidden"}, "email"],
        }

        entry = logger.log(LogLevel.DEBUG, "Notifier", "Channels", data)

        assert entry.data["channel"] == {sensitive_key: AuditLogger.MASK_VALUE, "name": "telegram"}
        assert entry.data["channels"] == [{sensitive_key: AuditLogger.MASK_VALUE}, "email"]
        assert data["channel"][sensitive_key] == "hidden"


class TestErrorContextProperty:
    """Property-based tests for error context logging."""

    @given(
        component=component_name_strategy(),
        message=message_strategy(),
        error_message=message_strategy(),
        extra_key=non_sensitive_key_strategy(),
    )
    @settings(max_examples=100)
    def test_error_context_is_recorded(
        self, component: str, message: str, error_message: str, extra_key: str
    ) -> None:
        """
        Property 4: Error logs include the failure context.

        *For any* exception, the ERROR entry SHALL carry its message and
        type alongside the additional data.
        """
        assume(extra_key not in ("error_message", "error_type", "error_code"))
        logger = AuditLogger(output_format="json", output_stream=StringIO())

        entry = logger.log_error(component, message, RuntimeError(error_message), {extra_key: "value"})

        assert entry.level == LogLevel.ERROR
        assert entry.data["error_message"] == error_message
        assert entry.data["error_type"] == "RuntimeError"
        assert entry.data[extra_key] == "value"
        assert "error_code" not in entry.data

    def test_monitor_error_code_is_recorded(self) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO())
        error = NotificationError(code="http_error", message="Webhook returned 500")

        entry = logger.log_error("Dispatcher", "Channel failed", error)

        assert entry.data["error_code"] == "http_error"
        assert entry.data["error_type"] == "NotificationError"

    def test_without_exception(self) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO())

        entry = logger.log_error("Monitor", "Bulk check aborted", additional_data={"checked": 3})

        assert entry.data == {"checked": 3}
