"""Store interfaces and LogRecord (de)serialization."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

from ..models import EventType, LogQuery, LogRecord, Severity

if TYPE_CHECKING:
    from ..alerts.models import Alert, AlertHistory
    from ..saved_queries import SavedQuery


class StoreError(RuntimeError):
    """Raised by a backend when the underlying storage fails."""


class LogStore(Protocol):
    """Append-only log store with filtered reads (newest first)."""

    async def append(self, record: LogRecord) -> None:
        ...

    async def search(
        self,
        query: LogQuery,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[LogRecord]:
        ...

    async def count(self, query: LogQuery) -> int:
        ...


class AlertRepository(Protocol):
    async def put_alert(self, alert: Alert) -> None:
        ...

    async def get_alert(self, alert_id: str) -> Alert | None:
        ...

    async def delete_alert(self, alert_id: str) -> bool:
        ...

    async def list_alerts(self, user_id: str | None = None) -> list[Alert]:
        ...

    async def record_trigger(
        self,
        alert_id: str,
        *,
        expected_last_triggered_at: datetime | None,
        now: datetime,
    ) -> Alert | None:
        """Mark an alert triggered iff `last_triggered_at` is still the expected value."""
        ...

    async def add_history(self, entry: AlertHistory) -> None:
        ...

    async def list_history(self, alert_id: str | None = None, *, limit: int = 100) -> list[AlertHistory]:
        ...


class SavedQueryRepository(Protocol):
    async def put_query(self, query: SavedQuery) -> None:
        ...

    async def get_query(self, query_id: str) -> SavedQuery | None:
        ...

    async def delete_query(self, query_id: str) -> bool:
        ...

    async def list_queries(self, user_id: str) -> list[SavedQuery]:
        ...


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        ts = value
    else:
        ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


def format_ts(ts: datetime) -> str:
    """Fixed-width UTC ISO string, so lexical order equals time order."""
    return ts.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def record_to_dict(record: LogRecord) -> dict[str, Any]:
    """Convert a LogRecord into a JSON-serializable dict."""
    return {
        "id": record.id,
        "timestamp": format_ts(record.timestamp),
        "user_id": record.user_id,
        "user_email": record.user_email,
        "event_type": record.event_type.value,
        "severity": record.severity.value,
        "message": record.message,
        "origin": record.origin,
        "entity_type": record.entity_type,
        "entity_id": record.entity_id,
        "payload": dict(record.payload),
        "ip_address": record.ip_address,
        "user_agent": record.user_agent,
    }


def record_from_dict(data: Mapping[str, Any]) -> LogRecord:
    """Build a LogRecord from a stored row; raises ValueError/KeyError on bad rows."""
    return LogRecord(
        id=str(data["id"]),
        timestamp=_parse_ts(data["timestamp"]),
        event_type=EventType(data["event_type"]),
        severity=Severity(data.get("severity") or Severity.INFO.value),
        message=data.get("message") or "",
        origin=data.get("origin") or "system",
        user_id=data.get("user_id"),
        user_email=data.get("user_email"),
        entity_type=data.get("entity_type"),
        entity_id=data.get("entity_id"),
        payload=dict(data.get("payload") or {}),
        ip_address=data.get("ip_address"),
        user_agent=data.get("user_agent"),
    )


def newest_first(records: list[LogRecord]) -> list[LogRecord]:
    return sorted(records, key=lambda r: r.timestamp, reverse=True)


def page(records: list[LogRecord], *, offset: int, limit: int | None) -> list[LogRecord]:
    if offset < 0:
        raise ValueError("offset must be >= 0")
    if limit is None:
        return records[offset:]
    if limit < 0:
        raise ValueError("limit must be >= 0")
    return records[offset : offset + limit]
