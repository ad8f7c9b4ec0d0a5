"""
Tests for the command-line interface.

Commands run against a state file in a temporary directory and in
simulation mode, so no network requests are made.
"""

import json
from pathlib import Path

import pytest

from domain_monitor.cli import (
    create_default_config,
    create_parser,
    load_config_from_file,
    main,
    save_config_to_file,
)
from domain_monitor.state_store import StateStore


def write_config(tmp_path: Path, language: str = "en", allowed_tlds=None) -> Path:
    config = create_default_config(language=language, state_file=tmp_path / "state.json", hmac_secret="x" * 16)
    config.monitor.allowed_tlds = allowed_tlds
    config_path = tmp_path / "config.json"
    assert save_config_to_file(config, config_path)
    return config_path


class TestConfigCommand:
    """Tests for 'config init/show/validate'."""

    @pytest.mark.parametrize("language", ["de", "en"])
    def test_init_writes_loadable_config(self, tmp_path: Path, language: str) -> None:
        config_path = tmp_path / "nested" / "config.json"

        assert main(["config", "init", "--path", str(config_path), "--language", language]) == 0

        config = load_config_from_file(config_path)
        assert config is not None
        assert config.language == language
        assert config.monitor.alert_days == [30, 14, 7, 1]

    def test_init_refuses_to_overwrite(self, tmp_path: Path) -> None:
        config_path = write_config(tmp_path)

        assert main(["config", "init", "--path", str(config_path)]) == 1
        assert main(["config", "init", "--path", str(config_path), "--force"]) == 0

    def test_show_lists_settings(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        config_path = write_config(tmp_path)

        assert main(["config", "show", "--path", str(config_path)]) == 0

        out = capsys.readouterr().out
        assert "Alert days: 30, 14, 7, 1" in out
        assert "Channels: -" in out

    def test_validate_rejects_duplicate_alert_days(self, tmp_path: Path) -> None:
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"monitor": {"alert_days": [7, 7]}}), encoding="utf-8")

        assert main(["config", "validate", "--path", str(config_path)]) == 1

    def test_show_missing_config(self, tmp_path: Path) -> None:
        assert main(["config", "show", "--path", str(tmp_path / "none.json")]) == 1

    def test_validate_rejects_zero_interval(self, tmp_path: Path) -> None:
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"monitor": {"check_interval_seconds": 0}}), encoding="utf-8")

        assert main(["config", "validate", "--path", str(config_path)]) == 1
        assert main(["run", "--config", str(config_path), "--dry-run"]) == 1


class TestDomainCommands:
    """Tests for the domain commands in simulation mode."""

    def test_add_registers_and_checks(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        config_path = write_config(tmp_path)

        assert main(["add", "Example.COM", "--tags", "prod", "--config", str(config_path), "--dry-run"]) == 0

        store = StateStore(tmp_path / "state.json", "x" * 16)
        store.load()
        record = store.get_domain("example.com")
        assert record is not None
        assert record.tags == "prod"
        assert record.last_checked is not None
        assert record.expiry_date is not None
        assert "Domain added: example.com" in capsys.readouterr().out

    def test_add_respects_tld_allowlist(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        config_path = write_config(tmp_path, allowed_tlds=["de", "com"])

        assert main(["add", "example.org", "--config", str(config_path), "--dry-run"]) == 1
        assert "TLD 'org'" in capsys.readouterr().err
        assert main(["add", "example.de", "--config", str(config_path), "--dry-run"]) == 0

        store = StateStore(tmp_path / "state.json", "x" * 16)
        store.load()
        assert store.get_domain("example.org") is None
        assert store.get_domain("example.de") is not None

    def test_list_after_import(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        config_path = write_config(tmp_path)
        domains_file = tmp_path / "domains.txt"
        domains_file.write_text("# monitored\nexample.com\n\nbad domain.com\nexample.org\n", encoding="utf-8")

        assert main(["import", str(domains_file), "--config", str(config_path), "--dry-run"]) == 0
        out = capsys.readouterr().out
        assert "2 domain(s) imported, 1 skipped" in out

        assert main(["list", "--config", str(config_path)]) == 0
        out = capsys.readouterr().out
        assert "example.com" in out
        assert "example.org" in out

    def test_check_unknown_domain(self, tmp_path: Path) -> None:
        config_path = write_config(tmp_path)

        assert main(["check", "unknown.com", "--config", str(config_path), "--dry-run"]) == 1

    def test_notify_without_channels_fails(self, tmp_path: Path) -> None:
        config_path = write_config(tmp_path)
        assert main(["add", "example.com", "--config", str(config_path), "--dry-run"]) == 0

        assert main(["notify", "example.com", "--config", str(config_path), "--dry-run"]) == 1

    def test_empty_history(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        config_path = write_config(tmp_path, language="de")

        assert main(["history", "--config", str(config_path)]) == 0
        assert "Keine Benachrichtigungen vorhanden." in capsys.readouterr().out


class TestParser:
    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture) -> None:
        assert main([]) == 0
        assert "domain-monitor" in capsys.readouterr().out

    def test_history_limit_is_int(self) -> None:
        args = create_parser().parse_args(["history", "example.com", "-n", "5"])

        assert args.limit == 5
        assert args.domain == "example.com"
