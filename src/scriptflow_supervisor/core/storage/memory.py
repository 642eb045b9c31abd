"""In-memory stores (tests, demos and the default `memory` backend)."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from datetime import datetime

from ..alerts.models import Alert, AlertHistory, AlertStatus
from ..models import LogQuery, LogRecord
from ..predicates import compile_query
from ..saved_queries import SavedQuery
from .base import newest_first, page


class MemoryLogStore:
    def __init__(self, records: Iterable[LogRecord] = ()) -> None:
        self._records: list[LogRecord] = list(records)

    async def append(self, record: LogRecord) -> None:
        self._records.append(record)

    def _matching(self, query: LogQuery) -> list[LogRecord]:
        pred = compile_query(query)
        return [r for r in self._records if pred(r)]

    async def search(
        self,
        query: LogQuery,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[LogRecord]:
        return page(newest_first(self._matching(query)), offset=offset, limit=limit)

    async def count(self, query: LogQuery) -> int:
        return len(self._matching(query))

    def __len__(self) -> int:
        return len(self._records)


class MemoryAlertRepository:
    def __init__(self) -> None:
        self._alerts: dict[str, Alert] = {}
        self._history: list[AlertHistory] = []
        self._lock = asyncio.Lock()

    async def put_alert(self, alert: Alert) -> None:
        self._alerts[alert.id] = alert.model_copy(deep=True)

    async def get_alert(self, alert_id: str) -> Alert | None:
        alert = self._alerts.get(alert_id)
        return alert.model_copy(deep=True) if alert is not None else None

    async def delete_alert(self, alert_id: str) -> bool:
        self._history = [h for h in self._history if h.alert_id != alert_id]
        return self._alerts.pop(alert_id, None) is not None

    async def list_alerts(self, user_id: str | None = None) -> list[Alert]:
        alerts = [
            a.model_copy(deep=True)
            for a in self._alerts.values()
            if user_id is None or a.user_id == user_id
        ]
        return sorted(alerts, key=lambda a: a.created_at, reverse=True)

    async def record_trigger(
        self,
        alert_id: str,
        *,
        expected_last_triggered_at: datetime | None,
        now: datetime,
    ) -> Alert | None:
        async with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None or alert.last_triggered_at != expected_last_triggered_at:
                return None
            updated = alert.model_copy(
                update={
                    "status": AlertStatus.TRIGGERED,
                    "last_triggered_at": now,
                    "trigger_count": alert.trigger_count + 1,
                    "updated_at": now,
                }
            )
            self._alerts[alert_id] = updated
            return updated.model_copy(deep=True)

    async def add_history(self, entry: AlertHistory) -> None:
        self._history.append(entry)

    async def list_history(self, alert_id: str | None = None, *, limit: int = 100) -> list[AlertHistory]:
        rows = [h for h in self._history if alert_id is None or h.alert_id == alert_id]
        rows.sort(key=lambda h: h.triggered_at, reverse=True)
        return rows[:limit]


class MemorySavedQueryRepository:
    def __init__(self) -> None:
        self._queries: dict[str, SavedQuery] = {}

    async def put_query(self, query: SavedQuery) -> None:
        self._queries[query.id] = query.model_copy()

    async def get_query(self, query_id: str) -> SavedQuery | None:
        q = self._queries.get(query_id)
        return q.model_copy() if q is not None else None

    async def delete_query(self, query_id: str) -> bool:
        return self._queries.pop(query_id, None) is not None

    async def list_queries(self, user_id: str) -> list[SavedQuery]:
        return [q.model_copy() for q in self._queries.values() if q.user_id == user_id]
