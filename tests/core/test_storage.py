from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from scriptflow_supervisor.core.models import EventType, LogQuery, LogRecord, Severity
from scriptflow_supervisor.core.query_parser import parse_query
from scriptflow_supervisor.core.storage.base import LogStore, record_to_dict
from scriptflow_supervisor.core.storage.jsonl import JsonlLogStore
from scriptflow_supervisor.core.storage.memory import MemoryLogStore
from scriptflow_supervisor.core.storage.sqlite import SQLiteDatabase, SQLiteLogStore


@pytest.fixture(params=["memory", "jsonl", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> Iterator[LogStore]:
    if request.param == "memory":
        yield MemoryLogStore()
    elif request.param == "jsonl":
        yield JsonlLogStore(tmp_path / "logs" / "system_logs.jsonl")
    else:
        db = SQLiteDatabase(tmp_path / "scriptflow.db")
        yield SQLiteLogStore(db)
        db.close()


async def _fill(store: LogStore, records: list[LogRecord]) -> None:
    for r in records:
        await store.append(r)


async def _messages(store: LogStore, raw: str, now: datetime) -> set[str]:
    rows = await store.search(LogQuery(parsed=parse_query(raw, now=now)))
    return {r.message for r in rows}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (
            "",
            {
                "Usuário entrou",
                "Usuário saiu",
                "Falha de conexão com o banco",
                "Chamado criado",
                "Tempo de resposta alto",
            },
        ),
        ("type=erro severity=critical", {"Falha de conexão com o banco"}),
        ("type=login OR type=logout", {"Usuário entrou", "Usuário saiu"}),
        ("type=login OR type=logout origin=auth", {"Usuário entrou", "Usuário saiu"}),
        (
            "type=erro AND severity=critical OR origin=api",
            {"Falha de conexão com o banco", "Tempo de resposta alto"},
        ),
        ("severity>=warning", {"Falha de conexão com o banco", "Tempo de resposta alto"}),
        ("severity<warning", {"Usuário entrou", "Usuário saiu", "Chamado criado"}),
        ("message~CONEXÃO", {"Falha de conexão com o banco"}),
        ("attempts>5", {"Chamado criado"}),
        ("attempts=3", {"Falha de conexão com o banco"}),
        (
            "date:24h",
            {"Usuário entrou", "Usuário saiu", "Falha de conexão com o banco", "Tempo de resposta alto"},
        ),
        ("origin!=auth", {"Falha de conexão com o banco", "Chamado criado", "Tempo de resposta alto"}),
        ("user=ana@exemplo.com", {"Usuário entrou"}),
        ("entity=chamado", {"Chamado criado"}),
        ("banco", {"Falha de conexão com o banco"}),
        ("usuário date:1h", {"Usuário entrou", "Usuário saiu"}),
        (
            "timestamp>=2025-12-30T14:00:00Z",
            {"Usuário entrou", "Usuário saiu", "Falha de conexão com o banco"},
        ),
        ("severity>bogus", set()),
        ("nada_disso=1", set()),
    ],
)
async def test_backends_agree_on_query_semantics(
    store: LogStore,
    sample_records: list[LogRecord],
    now: datetime,
    raw: str,
    expected: set[str],
) -> None:
    await _fill(store, sample_records)
    assert await _messages(store, raw, now) == expected


@pytest.mark.asyncio
async def test_search_is_newest_first_and_paginated(
    store: LogStore,
    sample_records: list[LogRecord],
) -> None:
    await _fill(store, sample_records)

    everything = await store.search(LogQuery())
    assert [r.message for r in everything] == [
        "Usuário entrou",
        "Usuário saiu",
        "Falha de conexão com o banco",
        "Tempo de resposta alto",
        "Chamado criado",
    ]

    page = await store.search(LogQuery(), offset=1, limit=2)
    assert [r.message for r in page] == ["Usuário saiu", "Falha de conexão com o banco"]
    assert await store.count(LogQuery()) == 5


@pytest.mark.asyncio
async def test_base_filters_and_bounds(
    store: LogStore,
    sample_records: list[LogRecord],
    now: datetime,
) -> None:
    await _fill(store, sample_records)

    query = LogQuery(event_type=EventType.USER_LOGOUT)
    assert [r.message for r in await store.search(query)] == ["Usuário saiu"]

    query = LogQuery(severity=Severity.WARNING, origin="api")
    assert await store.count(query) == 1

    query = LogQuery(start=now - timedelta(minutes=15), end=now - timedelta(minutes=5))
    assert {r.message for r in await store.search(query)} == {"Usuário entrou", "Usuário saiu"}


@pytest.mark.asyncio
async def test_records_round_trip(store: LogStore, make_record) -> None:
    record = make_record(
        "com payload",
        event_type=EventType.SCRIPT_EXECUTED,
        severity=Severity.ERROR,
        user_id="u1",
        user_email="ana@exemplo.com",
        entity_type="script",
        entity_id="s-9",
        payload={"duration_ms": 1200, "tags": ["a", "b"]},
        ip_address="10.0.0.1",
        user_agent="pytest",
    )
    await store.append(record)
    (stored,) = await store.search(LogQuery())
    assert record_to_dict(stored) == record_to_dict(record)


@pytest.mark.asyncio
async def test_negative_offset_rejected(store: LogStore) -> None:
    with pytest.raises(ValueError):
        await store.search(LogQuery(), offset=-1)


@pytest.mark.asyncio
async def test_jsonl_skips_malformed_lines(tmp_path: Path, make_record) -> None:
    path = tmp_path / "system_logs.jsonl"
    store = JsonlLogStore(path)
    await store.append(make_record("primeiro"))
    with path.open("a", encoding="utf-8") as f:
        f.write("{not json}\n\n")
        f.write('{"id": "x", "timestamp": "2025-12-30T10:00:00Z", "event_type": "nope"}\n')
    await store.append(make_record("segundo", minutes_ago=1))

    rows = await store.search(LogQuery())
    assert [r.message for r in rows] == ["primeiro", "segundo"]


@pytest.mark.asyncio
async def test_jsonl_missing_file_is_empty(tmp_path: Path) -> None:
    store = JsonlLogStore(tmp_path / "missing.jsonl")
    assert await store.search(LogQuery()) == []
    assert await store.count(LogQuery()) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("retry=true", 1),
        ("retry=True", 0),
        ("retry=1", 0),
        ("retry!=false", 1),
        ("ratio>1", 1),
        ("ratio=1.5", 1),
        ('tags~"b"', 1),
        ("missing=true", 0),
    ],
)
async def test_non_string_payload_values_match_alike(
    store: LogStore,
    make_record,
    now: datetime,
    raw: str,
    expected: int,
) -> None:
    await store.append(make_record("retentativa", payload={"retry": True, "ratio": 1.5, "tags": ["a", "b"]}))

    assert await store.count(LogQuery(parsed=parse_query(raw, now=now))) == expected
