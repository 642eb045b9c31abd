"""Alert notification channels.

Every channel is fire-and-report: `send` returns a NotificationResult and
never raises for delivery problems. Retries belong to the relay, not here.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any, Protocol
from uuid import uuid4

import httpx
from pydantic import BaseModel, Field

from ..models import LogRecord
from ..storage.base import record_to_dict
from .models import Alert, NotificationResult
from .redaction import redact_sample

logger = logging.getLogger(__name__)

DEFAULT_EMAIL_TIMEOUT = 10.0


class Notifier(Protocol):
    async def send(
        self,
        alert: Alert,
        sample: Sequence[LogRecord],
        matched_count: int,
    ) -> NotificationResult:
        ...


def alert_message(alert: Alert, matched_count: int) -> str:
    if alert.custom_message:
        return alert.custom_message
    return (
        f"{matched_count} log(s) matched '{alert.condition_query}' "
        f"in the last {alert.time_window_minutes} minute(s) (threshold {alert.threshold})."
    )


class Notification(BaseModel):
    """One entry in a user's in-app notification list."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    alert_id: str
    title: str
    message: str
    matched_count: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    read: bool = False


class InternalInbox:
    """In-app notification bell: a per-user list, newest first."""

    def __init__(self, *, max_per_user: int = 200) -> None:
        self.max_per_user = max_per_user
        self._items: dict[str, list[Notification]] = {}

    async def send(
        self,
        alert: Alert,
        sample: Sequence[LogRecord],
        matched_count: int,
    ) -> NotificationResult:
        note = Notification(
            user_id=alert.user_id,
            alert_id=alert.id,
            title=f"Alerta: {alert.name}",
            message=alert_message(alert, matched_count),
            matched_count=matched_count,
        )
        items = self._items.setdefault(alert.user_id, [])
        items.insert(0, note)
        del items[self.max_per_user :]
        return NotificationResult(sent=True)

    def list(self, user_id: str, *, unread_only: bool = False) -> list[Notification]:
        items = self._items.get(user_id, [])
        return [n.model_copy() for n in items if not (unread_only and n.read)]

    def unread_count(self, user_id: str) -> int:
        return sum(1 for n in self._items.get(user_id, []) if not n.read)

    def mark_read(self, user_id: str, notification_id: str | None = None) -> int:
        """Mark one notification (or all, when id is None) as read; return how many changed."""
        changed = 0
        for n in self._items.get(user_id, []):
            if n.read or (notification_id is not None and n.id != notification_id):
                continue
            n.read = True
            changed += 1
        return changed

    def dismiss(self, user_id: str, notification_id: str) -> bool:
        items = self._items.get(user_id, [])
        kept = [n for n in items if n.id != notification_id]
        self._items[user_id] = kept
        return len(kept) != len(items)


class EmailRelayNotifier:
    """POST alert e-mails as JSON to an HTTP relay.

    The relay owns SMTP delivery and retries. A non-2xx response or transport
    failure is reported in the result, not raised.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = DEFAULT_EMAIL_TIMEOUT,
        redact: bool = True,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.redact = redact
        self._client = client

    def build_payload(
        self,
        alert: Alert,
        sample: Sequence[LogRecord],
        matched_count: int,
    ) -> dict[str, Any]:
        rows = [record_to_dict(r) for r in sample]
        if self.redact:
            rows = [redact_sample(r) for r in rows]
        return {
            "to": list(alert.email_recipients),
            "subject": f"[ScriptFlow] Alerta: {alert.name}",
            "body": alert_message(alert, matched_count),
            "alert": {
                "id": alert.id,
                "name": alert.name,
                "condition_query": alert.condition_query,
                "threshold": alert.threshold,
                "time_window_minutes": alert.time_window_minutes,
            },
            "matched_count": matched_count,
            "sample_logs": rows,
        }

    async def _post(self, client: httpx.AsyncClient, payload: dict[str, Any]) -> None:
        resp = await client.post(self.url, json=payload, timeout=self.timeout)
        resp.raise_for_status()

    async def send(
        self,
        alert: Alert,
        sample: Sequence[LogRecord],
        matched_count: int,
    ) -> NotificationResult:
        if not alert.email_recipients:
            return NotificationResult(sent=False, error="no e-mail recipients configured")
        payload = self.build_payload(alert, sample, matched_count)
        try:
            if self._client is not None:
                await self._post(self._client, payload)
            else:
                async with httpx.AsyncClient() as client:
                    await self._post(client, payload)
        except httpx.HTTPStatusError as exc:
            logger.warning("E-mail relay rejected alert %s: %s", alert.id, exc.response.status_code)
            return NotificationResult(sent=False, error=f"relay returned HTTP {exc.response.status_code}")
        except httpx.HTTPError as exc:
            logger.warning("E-mail relay unreachable for alert %s: %s", alert.id, exc)
            return NotificationResult(sent=False, error=f"relay error: {exc}")
        return NotificationResult(sent=True)


class AlertDispatcher:
    """Fan an alert firing out to the channels the alert asks for."""

    def __init__(
        self,
        *,
        internal: Notifier | None = None,
        email: Notifier | None = None,
    ) -> None:
        self.internal = internal
        self.email = email

    async def _deliver(
        self,
        name: str,
        channel: Notifier | None,
        alert: Alert,
        sample: Sequence[LogRecord],
        matched_count: int,
    ) -> NotificationResult:
        if channel is None:
            return NotificationResult(sent=False, error=f"{name} delivery is not configured")
        try:
            return await channel.send(alert, sample, matched_count)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("%s notification for alert %s failed: %s", name, alert.id, exc)
            return NotificationResult(sent=False, error=f"{name}: {exc}")

    async def dispatch(
        self,
        alert: Alert,
        sample: Sequence[LogRecord],
        matched_count: int,
    ) -> NotificationResult:
        """Return `sent=True` if any requested channel delivered.

        Errors from every failed channel are joined into `error`.
        """
        results: list[NotificationResult] = []
        if alert.notify_internal:
            results.append(await self._deliver("internal", self.internal, alert, sample, matched_count))
        if alert.notify_email:
            results.append(await self._deliver("email", self.email, alert, sample, matched_count))
        if not results:
            return NotificationResult(sent=False)

        errors = [r.error for r in results if r.error]
        return NotificationResult(
            sent=any(r.sent for r in results),
            error="; ".join(errors) or None,
        )
