"""Alert → Gotify message translation."""

from __future__ import annotations

import re

import structlog

from src.core.types import (
    FINGERPRINT_KEY,
    LEVEL_KEY,
    Alert,
    AlertStatus,
    OutboundMessage,
)
from src.gotify.client import MessageSender

logger = structlog.get_logger(__name__)

DEFAULT_PRIORITY = 5
DEFAULT_LEVEL = "warning"
RESOLVED_LEVEL = "resolved"

# Plain ASCII decimal, optionally signed; Gotify stores priority as int64.
_PRIORITY_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def alert_level(alert: Alert) -> str:
    """Notification level: the severity label for firing alerts."""
    if alert.status == AlertStatus.RESOLVED:
        return RESOLVED_LEVEL
    return alert.labels.get("severity") or DEFAULT_LEVEL


def alert_priority(alert: Alert) -> int:
    """Gotify priority from the ``p`` label, falling back to the default."""
    raw = alert.labels.get("p", "")
    if not _PRIORITY_RE.fullmatch(raw):
        return DEFAULT_PRIORITY
    value = int(raw)
    if not _INT64_MIN <= value <= _INT64_MAX:
        return DEFAULT_PRIORITY
    return value


def build_message(alert: Alert) -> OutboundMessage:
    """Pure mapping from one alert to the message that represents it."""
    instance = alert.labels.get("instance", "")
    description = alert.annotations.get("description", "")
    body = f"{instance}: {description}" if instance else description
    level = alert_level(alert)

    return OutboundMessage(
        title=f"[{alert.status}] {alert.annotations.get('summary', '')}",
        message=body,
        priority=alert_priority(alert),
        level=level,
        extras={FINGERPRINT_KEY: alert.fingerprint, LEVEL_KEY: level},
    )


class AlertTranslator:
    """Sends one Gotify message per firing (or resolved-notify) alert.

    Errors from Gotify propagate to the caller unchanged; nothing is
    retried here.
    """

    def __init__(self, sender: MessageSender) -> None:
        self._sender = sender

    async def translate(self, alert: Alert) -> OutboundMessage:
        msg = build_message(alert)
        created = await self._sender.create_message(msg)
        logger.info(
            "message_sent",
            message_id=created.id,
            fingerprint=alert.fingerprint,
            level=msg.level,
            priority=msg.priority,
        )
        return msg
