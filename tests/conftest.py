from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any
from uuid import uuid4

import pytest

from scriptflow_supervisor.config import SupervisorConfig
from scriptflow_supervisor.core.models import EventType, LogRecord, Session, Severity
from scriptflow_supervisor.runtime import Runtime, build_runtime

NOW = datetime(2025, 12, 30, 15, 0, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def session() -> Session:
    return Session(user_id="user-1", user_email="ana@exemplo.com")


@pytest.fixture
def make_record() -> Callable[..., LogRecord]:
    def _make(
        message: str = "evento",
        *,
        minutes_ago: float = 0,
        event_type: EventType = EventType.SYSTEM,
        severity: Severity = Severity.INFO,
        origin: str = "system",
        **extra: Any,
    ) -> LogRecord:
        return LogRecord(
            id=extra.pop("id", str(uuid4())),
            timestamp=NOW - timedelta(minutes=minutes_ago),
            event_type=event_type,
            severity=severity,
            message=message,
            origin=origin,
            **extra,
        )

    return _make


@pytest.fixture
def sample_records(make_record: Callable[..., LogRecord]) -> list[LogRecord]:
    return [
        make_record(
            "Usuário entrou",
            minutes_ago=5,
            event_type=EventType.USER_LOGIN,
            origin="auth",
            user_email="ana@exemplo.com",
        ),
        make_record(
            "Usuário saiu",
            minutes_ago=10,
            event_type=EventType.USER_LOGOUT,
            origin="auth",
            user_email="bruno@exemplo.com",
        ),
        make_record(
            "Falha de conexão com o banco",
            minutes_ago=20,
            event_type=EventType.ERROR,
            severity=Severity.CRITICAL,
            origin="database",
            payload={"attempts": 3},
        ),
        make_record(
            "Chamado criado",
            minutes_ago=60 * 26,
            event_type=EventType.CHAMADO_CREATED,
            origin="chamados",
            entity_type="chamado",
            entity_id="42",
            payload={"attempts": 12},
        ),
        make_record(
            "Tempo de resposta alto",
            minutes_ago=90,
            event_type=EventType.SYSTEM,
            severity=Severity.WARNING,
            origin="api",
        ),
    ]


@pytest.fixture
def memory_config() -> SupervisorConfig:
    return SupervisorConfig(store="memory")


@pytest.fixture
def runtime(memory_config: SupervisorConfig) -> Runtime:
    return build_runtime(memory_config)


@pytest.fixture
def sqlite_config(tmp_path: Path) -> SupervisorConfig:
    return SupervisorConfig(store="sqlite", db_path=tmp_path / "scriptflow.db")
