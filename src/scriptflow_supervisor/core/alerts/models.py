"""Alert models.

`AlertDraft` and `AlertChanges` validate user input before anything is
persisted; `Alert` and `AlertHistory` are the stored shapes.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _check_recipients(values: list[str]) -> list[str]:
    out: list[str] = []
    for raw in values:
        addr = raw.strip()
        if not addr:
            continue
        if not _EMAIL_RE.match(addr):
            raise ValueError(f"invalid e-mail recipient: {raw!r}")
        if addr not in out:
            out.append(addr)
    return out


class AlertStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    TRIGGERED = "triggered"


class AlertDraft(BaseModel):
    """Validated input for creating an alert."""

    name: str = Field(min_length=1)
    description: str | None = None
    condition_query: str = Field(min_length=1)
    threshold: int = Field(ge=1, description="Minimum matching logs to fire.")
    time_window_minutes: int = Field(ge=1, description="Trailing window size in minutes.")
    notify_email: bool = False
    notify_internal: bool = True
    email_recipients: list[str] = Field(default_factory=list)
    custom_message: str | None = None

    @field_validator("name", "condition_query")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("email_recipients")
    @classmethod
    def _recipients(cls, v: list[str]) -> list[str]:
        return _check_recipients(v)


class AlertChanges(BaseModel):
    """Partial update; only fields explicitly set are applied."""

    name: str | None = None
    description: str | None = None
    condition_query: str | None = None
    threshold: int | None = Field(default=None, ge=1)
    time_window_minutes: int | None = Field(default=None, ge=1)
    status: AlertStatus | None = None
    notify_email: bool | None = None
    notify_internal: bool | None = None
    email_recipients: list[str] | None = None
    custom_message: str | None = None

    @field_validator("status")
    @classmethod
    def _user_settable_status(cls, v: AlertStatus | None) -> AlertStatus | None:
        if v is AlertStatus.TRIGGERED:
            raise ValueError("status 'triggered' is set only by alert evaluation")
        return v


class Alert(BaseModel):
    """A user-owned monitoring rule."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    name: str
    description: str | None = None
    condition_query: str
    threshold: int = Field(ge=1)
    time_window_minutes: int = Field(ge=1)
    status: AlertStatus = AlertStatus.ACTIVE
    notify_email: bool = False
    notify_internal: bool = True
    email_recipients: list[str] = Field(default_factory=list)
    custom_message: str | None = None
    last_triggered_at: datetime | None = None
    trigger_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class AlertHistory(BaseModel):
    """One firing of an alert. Never mutated after insert."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    alert_id: str
    triggered_at: datetime
    matched_logs_count: int = Field(ge=0)
    notification_sent: bool = False
    notification_error: str | None = None
    sample_logs: list[dict[str, Any]] = Field(default_factory=list)


class NotificationResult(BaseModel):
    sent: bool
    error: str | None = None
