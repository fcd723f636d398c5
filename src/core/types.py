"""Domain types for Alertmanager webhooks and Gotify messages."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Extras key holding the originating alert fingerprint on every sent message.
FINGERPRINT_KEY = "am2gotify/fp"
LEVEL_KEY = "am2gotify/level"


class AlertStatus(StrEnum):
    """Alert lifecycle states Alertmanager sends."""

    FIRING = "firing"
    RESOLVED = "resolved"


class ResolvedPolicy(StrEnum):
    """What to do with resolved alerts."""

    NOTIFY = "notify"  # send a "[resolved]" message
    IGNORE = "ignore"
    DELETE = "delete"  # remove earlier messages with the same fingerprint


class Alert(BaseModel):
    """A single alert from an Alertmanager webhook.

    ``status`` is kept as sent; anything other than ``resolved`` is
    handled as firing.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    fingerprint: str = ""
    starts_at: str = Field(default="", alias="startsAt")
    ends_at: str = Field(default="", alias="endsAt")
    generator_url: str = Field(default="", alias="generatorURL")

    @field_validator("labels", "annotations", mode="before")
    @classmethod
    def _null_as_empty(cls, v: Any) -> Any:
        return {} if v is None else v


class AlertBatch(BaseModel):
    """Alertmanager webhook payload — a group of alerts."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    alerts: list[Alert] = Field(default_factory=list)
    receiver: str = ""
    status: str = ""
    group_labels: dict[str, str] = Field(default_factory=dict, alias="groupLabels")
    common_labels: dict[str, str] = Field(default_factory=dict, alias="commonLabels")
    common_annotations: dict[str, str] = Field(
        default_factory=dict, alias="commonAnnotations"
    )
    external_url: str = Field(default="", alias="externalURL")
    version: str = ""
    group_key: str = Field(default="", alias="groupKey")
    truncated_alerts: int = Field(default=0, alias="truncatedAlerts")

    @field_validator("alerts", mode="before")
    @classmethod
    def _null_alerts(cls, v: Any) -> Any:
        return [] if v is None else v


class OutboundMessage(BaseModel):
    """Message ready to be created on Gotify."""

    title: str
    message: str = ""
    priority: int = 5
    level: str = ""
    extras: dict[str, Any] = Field(default_factory=dict)

    @property
    def fingerprint(self) -> str | None:
        return self.extras.get(FINGERPRINT_KEY)

    def to_payload(self) -> dict[str, Any]:
        """Body for ``POST /message``."""
        return {
            "title": self.title,
            "message": self.message,
            "priority": self.priority,
            "extras": self.extras,
        }


class SinkMessage(BaseModel):
    """Read-only view of a message stored on Gotify."""

    model_config = ConfigDict(extra="ignore")

    id: int
    appid: int = 0
    title: str = ""
    message: str = ""
    priority: int = 0
    extras: dict[str, Any] = Field(default_factory=dict)
    date: str = ""

    @field_validator("extras", mode="before")
    @classmethod
    def _null_extras(cls, v: Any) -> Any:
        return {} if v is None else v

    def has_fingerprint(self, fingerprint: str) -> bool:
        return self.extras.get(FINGERPRINT_KEY) == fingerprint


class SinkApplication(BaseModel):
    """A Gotify application (message source) as listed by the server."""

    model_config = ConfigDict(extra="ignore")

    id: int
    token: str = ""
    name: str = ""


class ServerVersion(BaseModel):
    """Gotify ``/version`` response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    version: str = ""
    commit: str = ""
    build_date: str = Field(default="", alias="buildDate")
