"""Writing system log rows and fanning them out to live subscribers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from .models import EventType, LogRecord, Session, Severity
from .storage.base import LogStore

logger = logging.getLogger(__name__)


class LogEventBus:
    """In-process pub/sub for freshly written log records.

    Each subscriber gets its own bounded queue. When a slow subscriber's queue
    is full the record is dropped for that subscriber only.
    """

    def __init__(self, *, max_queue: int = 1000) -> None:
        self.max_queue = max_queue
        self._queues: set[asyncio.Queue[LogRecord]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)

    def publish(self, record: LogRecord) -> None:
        for queue in self._queues:
            try:
                queue.put_nowait(record)
            except asyncio.QueueFull:
                logger.warning("Dropping log %s for a slow subscriber", record.id)

    async def subscribe(self) -> AsyncIterator[LogRecord]:
        queue: asyncio.Queue[LogRecord] = asyncio.Queue(maxsize=self.max_queue)
        self._queues.add(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._queues.discard(queue)


async def log_action(
    store: LogStore,
    session: Session | None,
    event_type: EventType | str,
    message: str,
    *,
    severity: Severity | str = Severity.INFO,
    origin: str = "system",
    entity_type: str | None = None,
    entity_id: str | None = None,
    payload: Mapping[str, Any] | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    bus: LogEventBus | None = None,
    now: datetime | None = None,
) -> LogRecord:
    """Append one system log row on behalf of `session` and return it.

    `session` may be None for rows written by the system itself.
    """
    if not message.strip():
        raise ValueError("message must not be blank")
    record = LogRecord(
        id=str(uuid4()),
        timestamp=now or datetime.now(UTC),
        event_type=EventType(event_type),
        severity=Severity(severity),
        message=message,
        origin=origin,
        user_id=session.user_id if session else None,
        user_email=session.user_email if session else None,
        entity_type=entity_type,
        entity_id=entity_id,
        payload=dict(payload or {}),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    await store.append(record)
    logger.debug("Logged %s %s: %s", record.event_type.value, record.id, message)
    if bus is not None:
        bus.publish(record)
    return record
