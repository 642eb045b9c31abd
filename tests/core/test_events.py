from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from scriptflow_supervisor.core.events import LogEventBus, log_action
from scriptflow_supervisor.core.models import EventType, LogQuery, Session, Severity
from scriptflow_supervisor.core.storage.memory import MemoryLogStore


@pytest.mark.asyncio
async def test_log_action_appends_record(session: Session, now: datetime) -> None:
    store = MemoryLogStore()

    record = await log_action(
        store,
        session,
        EventType.CHAMADO_CREATED,
        "Chamado #42 criado",
        origin="chamados",
        entity_type="chamado",
        entity_id="42",
        payload={"nivel": "N2"},
        now=now,
    )

    assert record.user_id == "user-1"
    assert record.user_email == "ana@exemplo.com"
    assert record.severity is Severity.INFO
    assert record.timestamp == now
    (stored,) = await store.search(LogQuery())
    assert stored == record


@pytest.mark.asyncio
async def test_log_action_accepts_plain_strings_and_system_session() -> None:
    store = MemoryLogStore()
    record = await log_action(store, None, "error", "falhou", severity="critical")
    assert record.event_type is EventType.ERROR
    assert record.severity is Severity.CRITICAL
    assert record.user_id is None


@pytest.mark.asyncio
async def test_log_action_rejects_bad_input(session: Session) -> None:
    store = MemoryLogStore()
    with pytest.raises(ValueError):
        await log_action(store, session, EventType.SYSTEM, "   ")
    with pytest.raises(ValueError):
        await log_action(store, session, "not_an_event", "x")
    assert len(store) == 0


@pytest.mark.asyncio
async def test_bus_delivers_to_every_subscriber(session: Session) -> None:
    bus = LogEventBus()
    store = MemoryLogStore()

    async def first(n: int) -> list[str]:
        out: list[str] = []
        async for record in bus.subscribe():
            out.append(record.message)
            if len(out) == n:
                break
        return out

    a = asyncio.create_task(first(2))
    b = asyncio.create_task(first(1))
    await asyncio.sleep(0)
    assert bus.subscriber_count == 2

    await log_action(store, session, EventType.USER_LOGIN, "entrou", bus=bus)
    await log_action(store, session, EventType.USER_LOGOUT, "saiu", bus=bus)

    assert await a == ["entrou", "saiu"]
    assert await b == ["entrou"]


@pytest.mark.asyncio
async def test_bus_drops_for_full_subscriber(make_record) -> None:
    bus = LogEventBus(max_queue=1)
    stream = bus.subscribe()

    async def _next() -> str:
        return (await anext(stream)).message

    pending = asyncio.create_task(_next())
    await asyncio.sleep(0)

    bus.publish(make_record("um"))
    bus.publish(make_record("dois"))

    assert await pending == "um"
    bus.publish(make_record("tres"))
    assert await _next() == "tres"
    await stream.aclose()
    assert bus.subscriber_count == 0
