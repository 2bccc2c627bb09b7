"""Unit tests for calendar_enhancer.core.config_manager."""

import os
from pathlib import Path
from types import SimpleNamespace

import pytest

from calendar_enhancer.core.config_manager import (
    DEFAULT_ALLOWED_HOSTS,
    DEFAULT_MAX_BODY_BYTES,
    ConfigManager,
    default_config,
    get_config_value,
)

pytestmark = pytest.mark.unit


def _unset(monkeypatch, key: str) -> None:
    """Unset ``key`` so that values written by load_env_file are undone after the test."""
    monkeypatch.setenv(key, "")
    monkeypatch.delenv(key)


class TestLoadEnvFile:
    """Tests for .env loading."""

    def test_load_env_file_when_valid_file_then_keys_set(self, tmp_path: Path, monkeypatch) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# proxy settings\n"
            "CALENDAR_ENHANCER_WEB_PORT=9090\n"
            "CALENDAR_ENHANCER_CALENDAR_NAME=\"Stundenplan\"\n"
            "not a setting\n"
            "\n",
            encoding="utf-8",
        )
        _unset(monkeypatch, "CALENDAR_ENHANCER_WEB_PORT")
        _unset(monkeypatch, "CALENDAR_ENHANCER_CALENDAR_NAME")

        loaded = ConfigManager(env_file).load_env_file()

        assert loaded == ["CALENDAR_ENHANCER_WEB_PORT", "CALENDAR_ENHANCER_CALENDAR_NAME"]
        assert os.environ["CALENDAR_ENHANCER_WEB_PORT"] == "9090"
        assert os.environ["CALENDAR_ENHANCER_CALENDAR_NAME"] == "Stundenplan"

    def test_load_env_file_when_key_already_set_then_not_overridden(
        self, tmp_path: Path, monkeypatch
    ) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("CALENDAR_ENHANCER_WEB_PORT=9090\n", encoding="utf-8")
        monkeypatch.setenv("CALENDAR_ENHANCER_WEB_PORT", "7000")

        loaded = ConfigManager(env_file).load_env_file()

        assert loaded == []
        assert os.environ["CALENDAR_ENHANCER_WEB_PORT"] == "7000"

    def test_load_env_file_when_missing_then_empty(self, tmp_path: Path) -> None:
        assert ConfigManager(tmp_path / "absent.env").load_env_file() == []


class TestBuildConfigFromEnv:
    """Tests for environment-driven configuration."""

    def test_build_config_when_no_env_then_defaults(self) -> None:
        cfg = ConfigManager(Path("/nonexistent/.env")).build_config_from_env()

        assert cfg == default_config()
        assert cfg["allowed_hosts"] == list(DEFAULT_ALLOWED_HOSTS)
        assert cfg["max_body_bytes"] == DEFAULT_MAX_BODY_BYTES == 10 * 1024 * 1024
        assert cfg["server_port"] == 8080

    def test_build_config_when_env_set_then_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("CALENDAR_ENHANCER_WEB_HOST", "127.0.0.1")
        monkeypatch.setenv("CALENDAR_ENHANCER_WEB_PORT", "9000")
        monkeypatch.setenv("CALENDAR_ENHANCER_ALLOWED_HOSTS", " Cal.Example.edu , ,other.example.org")
        monkeypatch.setenv("CALENDAR_ENHANCER_MAX_BODY_BYTES", "2048")
        monkeypatch.setenv("CALENDAR_ENHANCER_REQUEST_TIMEOUT", "12")
        monkeypatch.setenv("CALENDAR_ENHANCER_MAX_RETRIES", "0")
        monkeypatch.setenv("CALENDAR_ENHANCER_CALENDAR_NAME", "Stundenplan")
        monkeypatch.setenv("CALENDAR_ENHANCER_DOWNLOAD_FILENAME", "plan.ics")
        monkeypatch.setenv("CALENDAR_ENHANCER_DEBUG", "yes")

        cfg = ConfigManager().build_config_from_env()

        assert cfg["server_bind"] == "127.0.0.1"
        assert cfg["server_port"] == 9000
        assert cfg["allowed_hosts"] == ["cal.example.edu", "other.example.org"]
        assert cfg["max_body_bytes"] == 2048
        assert cfg["request_timeout"] == 12
        assert cfg["max_retries"] == 0
        assert cfg["calendar_name"] == "Stundenplan"
        assert cfg["download_filename"] == "plan.ics"
        assert cfg["debug_logging"] is True

    def test_build_config_when_int_invalid_then_default_kept(self, monkeypatch) -> None:
        monkeypatch.setenv("CALENDAR_ENHANCER_WEB_PORT", "eighty")

        cfg = ConfigManager().build_config_from_env()

        assert cfg["server_port"] == 8080

    def test_load_full_config_reads_env_file_first(self, tmp_path: Path, monkeypatch) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("CALENDAR_ENHANCER_MAX_RETRIES=5\n", encoding="utf-8")
        _unset(monkeypatch, "CALENDAR_ENHANCER_MAX_RETRIES")

        cfg = ConfigManager(env_file).load_full_config()

        assert cfg["max_retries"] == 5


class TestGetConfigValue:
    """Tests for dict / attribute access helper."""

    def test_get_config_value_from_dict(self) -> None:
        assert get_config_value({"a": 1}, "a") == 1
        assert get_config_value({}, "a", 2) == 2

    def test_get_config_value_from_object(self) -> None:
        config = SimpleNamespace(a=1)
        assert get_config_value(config, "a") == 1
        assert get_config_value(config, "missing", "fallback") == "fallback"
