"""SQLite backend for logs, alerts, alert history and saved queries.

sqlite3 is blocking; every call runs in a worker thread behind a lock.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

from ..alerts.models import Alert, AlertHistory, AlertStatus
from ..models import LogQuery, LogRecord
from ..saved_queries import SavedQuery
from .base import StoreError, format_ts, record_from_dict, record_to_dict
from .sql import LOG_COLUMNS, build_where_clause, register_functions

T = TypeVar("T")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS system_logs (
    id TEXT PRIMARY KEY,
    timestamp TEXT NOT NULL,
    user_id TEXT,
    user_email TEXT,
    event_type TEXT NOT NULL,
    severity TEXT NOT NULL,
    message TEXT NOT NULL,
    origin TEXT NOT NULL,
    entity_type TEXT,
    entity_id TEXT,
    payload TEXT NOT NULL DEFAULT '{}',
    ip_address TEXT,
    user_agent TEXT
);
CREATE INDEX IF NOT EXISTS idx_system_logs_timestamp ON system_logs (timestamp);

CREATE TABLE IF NOT EXISTS alerts (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    last_triggered_at TEXT,
    data TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS alert_history (
    id TEXT PRIMARY KEY,
    alert_id TEXT NOT NULL,
    triggered_at TEXT NOT NULL,
    data TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_alert_history_alert ON alert_history (alert_id);

CREATE TABLE IF NOT EXISTS saved_queries (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    data TEXT NOT NULL
);
"""


def _ts_or_none(ts: datetime | None) -> str | None:
    return format_ts(ts) if ts is not None else None


class SQLiteDatabase:
    """Shared connection used by the SQLite stores."""

    def __init__(self, path: str | Path = ":memory:") -> None:
        self.path = str(path)
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        if self._conn is None:
            if self.path != ":memory:":
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            register_functions(conn)
            conn.executescript(_SCHEMA)
            conn.commit()
            self._conn = conn
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _locked(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        with self._lock:
            conn = self.connect()
            try:
                result = fn(conn)
                conn.commit()
                return result
            except sqlite3.Error as exc:
                conn.rollback()
                raise StoreError(f"SQLite error: {exc}") from exc

    async def run(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        return await asyncio.to_thread(self._locked, fn)


def _row_to_record(row: sqlite3.Row) -> LogRecord:
    data = dict(row)
    data["payload"] = json.loads(data.get("payload") or "{}")
    return record_from_dict(data)


class SQLiteLogStore:
    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    async def append(self, record: LogRecord) -> None:
        row = record_to_dict(record)
        row["payload"] = json.dumps(row["payload"], ensure_ascii=False)
        cols = ", ".join(LOG_COLUMNS)
        marks = ", ".join("?" for _ in LOG_COLUMNS)
        values = [row[c] for c in LOG_COLUMNS]
        await self.db.run(
            lambda conn: conn.execute(f"INSERT INTO system_logs ({cols}) VALUES ({marks})", values)
        )

    async def search(
        self,
        query: LogQuery,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[LogRecord]:
        if offset < 0:
            raise ValueError("offset must be >= 0")
        where, params = build_where_clause(query)
        sql = "SELECT * FROM system_logs"
        if where:
            sql += f" WHERE {where}"
        sql += " ORDER BY timestamp DESC LIMIT ? OFFSET ?"
        args = [*params, -1 if limit is None else limit, offset]

        def _fetch(conn: sqlite3.Connection) -> list[LogRecord]:
            return [_row_to_record(row) for row in conn.execute(sql, args).fetchall()]

        return await self.db.run(_fetch)

    async def count(self, query: LogQuery) -> int:
        where, params = build_where_clause(query)
        sql = "SELECT COUNT(*) FROM system_logs"
        if where:
            sql += f" WHERE {where}"
        return await self.db.run(lambda conn: conn.execute(sql, params).fetchone()[0])


class SQLiteAlertRepository:
    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    async def put_alert(self, alert: Alert) -> None:
        await self.db.run(
            lambda conn: conn.execute(
                "INSERT OR REPLACE INTO alerts (id, user_id, created_at, last_triggered_at, data) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    alert.id,
                    alert.user_id,
                    format_ts(alert.created_at),
                    _ts_or_none(alert.last_triggered_at),
                    alert.model_dump_json(),
                ),
            )
        )

    async def get_alert(self, alert_id: str) -> Alert | None:
        row = await self.db.run(
            lambda conn: conn.execute("SELECT data FROM alerts WHERE id = ?", (alert_id,)).fetchone()
        )
        return Alert.model_validate_json(row["data"]) if row is not None else None

    async def delete_alert(self, alert_id: str) -> bool:
        def _delete(conn: sqlite3.Connection) -> bool:
            conn.execute("DELETE FROM alert_history WHERE alert_id = ?", (alert_id,))
            return conn.execute("DELETE FROM alerts WHERE id = ?", (alert_id,)).rowcount > 0

        return await self.db.run(_delete)

    async def list_alerts(self, user_id: str | None = None) -> list[Alert]:
        sql = "SELECT data FROM alerts"
        params: Sequence[Any] = ()
        if user_id is not None:
            sql += " WHERE user_id = ?"
            params = (user_id,)
        sql += " ORDER BY created_at DESC"
        rows = await self.db.run(lambda conn: conn.execute(sql, params).fetchall())
        return [Alert.model_validate_json(r["data"]) for r in rows]

    async def record_trigger(
        self,
        alert_id: str,
        *,
        expected_last_triggered_at: datetime | None,
        now: datetime,
    ) -> Alert | None:
        expected = _ts_or_none(expected_last_triggered_at)

        def _swap(conn: sqlite3.Connection) -> Alert | None:
            row = conn.execute("SELECT data FROM alerts WHERE id = ?", (alert_id,)).fetchone()
            if row is None:
                return None
            alert = Alert.model_validate_json(row["data"])
            updated = alert.model_copy(
                update={
                    "status": AlertStatus.TRIGGERED,
                    "last_triggered_at": now,
                    "trigger_count": alert.trigger_count + 1,
                    "updated_at": now,
                }
            )
            cur = conn.execute(
                "UPDATE alerts SET last_triggered_at = ?, data = ? "
                "WHERE id = ? AND last_triggered_at IS ?",
                (format_ts(now), updated.model_dump_json(), alert_id, expected),
            )
            return updated if cur.rowcount == 1 else None

        return await self.db.run(_swap)

    async def add_history(self, entry: AlertHistory) -> None:
        await self.db.run(
            lambda conn: conn.execute(
                "INSERT INTO alert_history (id, alert_id, triggered_at, data) VALUES (?, ?, ?, ?)",
                (entry.id, entry.alert_id, format_ts(entry.triggered_at), entry.model_dump_json()),
            )
        )

    async def list_history(self, alert_id: str | None = None, *, limit: int = 100) -> list[AlertHistory]:
        sql = "SELECT data FROM alert_history"
        params: list[Any] = []
        if alert_id is not None:
            sql += " WHERE alert_id = ?"
            params.append(alert_id)
        sql += " ORDER BY triggered_at DESC LIMIT ?"
        params.append(limit)
        rows = await self.db.run(lambda conn: conn.execute(sql, params).fetchall())
        return [AlertHistory.model_validate_json(r["data"]) for r in rows]


class SQLiteSavedQueryRepository:
    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    async def put_query(self, query: SavedQuery) -> None:
        await self.db.run(
            lambda conn: conn.execute(
                "INSERT OR REPLACE INTO saved_queries (id, user_id, data) VALUES (?, ?, ?)",
                (query.id, query.user_id, query.model_dump_json()),
            )
        )

    async def get_query(self, query_id: str) -> SavedQuery | None:
        row = await self.db.run(
            lambda conn: conn.execute(
                "SELECT data FROM saved_queries WHERE id = ?", (query_id,)
            ).fetchone()
        )
        return SavedQuery.model_validate_json(row["data"]) if row is not None else None

    async def delete_query(self, query_id: str) -> bool:
        return await self.db.run(
            lambda conn: conn.execute("DELETE FROM saved_queries WHERE id = ?", (query_id,)).rowcount > 0
        )

    async def list_queries(self, user_id: str) -> list[SavedQuery]:
        rows = await self.db.run(
            lambda conn: conn.execute(
                "SELECT data FROM saved_queries WHERE user_id = ?", (user_id,)
            ).fetchall()
        )
        return [SavedQuery.model_validate_json(r["data"]) for r in rows]
