"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, SecretStr, model_validator

from src.core.types import ResolvedPolicy

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class GotifyConfig(BaseModel):
    """Gotify server connection and credentials."""

    url: str = ""
    token: SecretStr = SecretStr("")  # application token (send scope)
    client_token: SecretStr = SecretStr("")  # client token (management scope)
    timeout_secs: float = 10.0
    page_limit: int = Field(default=100, ge=1, le=200)


class RelayConfig(BaseModel):
    """Alert handling behaviour."""

    resolved: ResolvedPolicy = ResolvedPolicy.NOTIFY
    exit_after_secs: int = Field(default=0, ge=0)
    shutdown_timeout_secs: float = 2.0


class ServerConfig(BaseModel):
    """Inbound webhook listener.

    With ``socket_activation`` the listener is inherited from the service
    manager; ``host``/``port`` are only used when it is disabled.
    """

    socket_activation: bool = True
    host: str = "127.0.0.1"
    port: int = 9095
    path: str = ""  # empty: accept the webhook on any path


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["json", "console"] = "json"


class Settings(BaseModel):
    """Root settings container."""

    gotify: GotifyConfig = GotifyConfig()
    relay: RelayConfig = RelayConfig()
    server: ServerConfig = ServerConfig()
    logging: LoggingConfig = LoggingConfig()

    @model_validator(mode="after")
    def _client_token_for_delete(self) -> Settings:
        if (
            self.relay.resolved == ResolvedPolicy.DELETE
            and not self.gotify.client_token.get_secret_value()
        ):
            raise ValueError("relay.resolved=delete requires gotify.client_token")
        return self


def load_settings(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.
        overrides: Nested mapping merged over the file contents
            (e.g. values from command-line flags).

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    if overrides:
        data = _merge(data, overrides)

    _settings = Settings(**data)
    return _settings


def _merge(base: dict[str, Any], extra: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in extra.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
