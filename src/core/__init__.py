"""Core module — config, types, logging."""

from src.core.config import Settings, get_settings, load_settings, reset_settings
from src.core.logging import setup_logging
from src.core.types import (
    FINGERPRINT_KEY,
    Alert,
    AlertBatch,
    AlertStatus,
    OutboundMessage,
    ResolvedPolicy,
    ServerVersion,
    SinkApplication,
    SinkMessage,
)

__all__ = [
    "FINGERPRINT_KEY",
    "Alert",
    "AlertBatch",
    "AlertStatus",
    "OutboundMessage",
    "ResolvedPolicy",
    "ServerVersion",
    "Settings",
    "SinkApplication",
    "SinkMessage",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
