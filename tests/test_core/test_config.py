"""Tests for src/core/config.py — YAML loading, defaults, overrides, SecretStr."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from src.core.config import (
    GotifyConfig,
    LoggingConfig,
    RelayConfig,
    ServerConfig,
    Settings,
    get_settings,
    load_settings,
    reset_settings,
)
from src.core.types import ResolvedPolicy


@pytest.fixture(autouse=True)
def _clean_settings() -> None:
    """Reset the global settings cache before each test."""
    reset_settings()


class TestDefaults:
    """Settings should have sensible defaults when no YAML is provided."""

    def test_default_gotify_config(self) -> None:
        cfg = GotifyConfig()
        assert cfg.url == ""
        assert cfg.token.get_secret_value() == ""
        assert cfg.client_token.get_secret_value() == ""
        assert cfg.timeout_secs == 10.0
        assert cfg.page_limit == 100

    def test_default_relay_config(self) -> None:
        cfg = RelayConfig()
        assert cfg.resolved == ResolvedPolicy.NOTIFY
        assert cfg.exit_after_secs == 0
        assert cfg.shutdown_timeout_secs == 2.0

    def test_default_server_config(self) -> None:
        cfg = ServerConfig()
        assert cfg.socket_activation is True
        assert cfg.path == ""

    def test_default_logging_config(self) -> None:
        cfg = LoggingConfig()
        assert cfg.level == "INFO"
        assert cfg.format == "json"

    def test_get_settings_caches(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        assert get_settings() is get_settings()


class TestValidation:
    def test_delete_requires_client_token(self) -> None:
        with pytest.raises(ValidationError, match="client_token"):
            Settings(relay=RelayConfig(resolved=ResolvedPolicy.DELETE))

    def test_delete_with_client_token(self) -> None:
        s = Settings(
            gotify=GotifyConfig(client_token="ctok"),  # type: ignore[arg-type]
            relay=RelayConfig(resolved=ResolvedPolicy.DELETE),
        )
        assert s.relay.resolved == ResolvedPolicy.DELETE

    def test_unknown_policy_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RelayConfig(resolved="forget")  # type: ignore[arg-type]

    def test_negative_exit_after_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RelayConfig(exit_after_secs=-1)

    def test_unknown_log_format_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LoggingConfig(format="xml")  # type: ignore[arg-type]

    def test_page_limit_bounds(self) -> None:
        with pytest.raises(ValidationError):
            GotifyConfig(page_limit=500)


class TestYamlLoading:
    """Settings should load correctly from YAML files."""

    def test_load_from_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "gotify": {
                "url": "https://gotify.example.com",
                "token": "app-token",
                "client_token": "client-token",
            },
            "relay": {"resolved": "delete", "exit_after_secs": 300},
            "logging": {"level": "DEBUG", "format": "console"},
        }
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump(config_data))

        settings = load_settings(config_file)

        assert settings.gotify.url == "https://gotify.example.com"
        assert settings.gotify.token.get_secret_value() == "app-token"
        assert settings.gotify.client_token.get_secret_value() == "client-token"
        assert settings.relay.resolved == ResolvedPolicy.DELETE
        assert settings.relay.exit_after_secs == 300
        assert settings.logging.level == "DEBUG"
        assert settings.logging.format == "console"

    def test_load_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.relay.resolved == ResolvedPolicy.NOTIFY

    def test_load_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        settings = load_settings(config_file)
        assert settings.gotify.timeout_secs == 10.0

    def test_partial_yaml_merges_with_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump({"relay": {"resolved": "ignore"}}))

        settings = load_settings(config_file)
        assert settings.relay.resolved == ResolvedPolicy.IGNORE
        # Other defaults still intact
        assert settings.relay.shutdown_timeout_secs == 2.0
        assert settings.server.socket_activation is True

    def test_load_caches_globally(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert get_settings() is settings


class TestOverrides:
    def test_overrides_win_over_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump({
            "gotify": {"url": "https://old.example.com", "token": "keep-me"},
        }))

        settings = load_settings(
            config_file,
            overrides={"gotify": {"url": "https://new.example.com"}},
        )
        assert settings.gotify.url == "https://new.example.com"
        assert settings.gotify.token.get_secret_value() == "keep-me"

    def test_overrides_without_file(self, tmp_path: Path) -> None:
        settings = load_settings(
            tmp_path / "nonexistent.yaml",
            overrides={"relay": {"exit_after_secs": 60}},
        )
        assert settings.relay.exit_after_secs == 60


class TestSecretStr:
    """Tokens should use SecretStr to prevent leaking."""

    def test_secret_str_repr_does_not_leak(self) -> None:
        cfg = GotifyConfig(
            token="super-secret",  # type: ignore[arg-type]
            client_token="also-secret",  # type: ignore[arg-type]
        )
        repr_str = repr(cfg)
        assert "super-secret" not in repr_str
        assert "also-secret" not in repr_str
        assert "**********" in repr_str
