from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from scriptflow_supervisor.core.date_range import local_midnight, parse_instant, resolve_date_range
from scriptflow_supervisor.core.models import DateRange

SAO_PAULO = timezone(timedelta(hours=-3))


def test_relative_hours(now: datetime) -> None:
    dr = resolve_date_range("24h", now=now)
    assert dr.start == now - timedelta(hours=24)
    assert dr.end is None


@pytest.mark.parametrize(
    ("value", "delta"),
    [
        ("7d", timedelta(days=7)),
        ("30m", timedelta(minutes=30)),
        ("2w", timedelta(weeks=2)),
        ("3horas", timedelta(hours=3)),
        ("2dias", timedelta(days=2)),
        ("15min", timedelta(minutes=15)),
        ("2semanas", timedelta(weeks=2)),
        ("12H", timedelta(hours=12)),
    ],
)
def test_relative_units(now: datetime, value: str, delta: timedelta) -> None:
    assert resolve_date_range(value, now=now) == DateRange(start=now - delta)


@pytest.mark.parametrize("value", ["hoje", "today", "HOJE"])
def test_today(now: datetime, value: str) -> None:
    dr = resolve_date_range(value, now=now)
    assert dr == DateRange(start=datetime(2025, 12, 30, tzinfo=UTC))


@pytest.mark.parametrize("value", ["ontem", "yesterday"])
def test_yesterday_window(now: datetime, value: str) -> None:
    dr = resolve_date_range(value, now=now)
    assert dr.start == datetime(2025, 12, 29, tzinfo=UTC)
    assert dr.end == datetime(2025, 12, 30, tzinfo=UTC)


def test_named_days_use_configured_timezone() -> None:
    # 01:30 UTC is still the previous evening in Sao Paulo (UTC-3).
    now = datetime(2025, 12, 30, 1, 30, tzinfo=UTC)
    dr = resolve_date_range("hoje", now=now, tz=SAO_PAULO)
    assert dr.start == datetime(2025, 12, 29, 3, 0, tzinfo=UTC)


def test_absolute_range() -> None:
    dr = resolve_date_range("2025-01-01..2025-01-31")
    assert dr.start == datetime(2025, 1, 1, tzinfo=UTC)
    assert dr.end == datetime(2025, 1, 31, tzinfo=UTC)


def test_absolute_range_with_bad_end() -> None:
    dr = resolve_date_range("2025-01-01..??")
    assert dr.start == datetime(2025, 1, 1, tzinfo=UTC)
    assert dr.end is None


def test_single_absolute_date_is_a_start_bound() -> None:
    dr = resolve_date_range("2025-06-15")
    assert dr == DateRange(start=datetime(2025, 6, 15, tzinfo=UTC))


def test_unit_without_number_gives_empty_range(now: datetime) -> None:
    assert resolve_date_range("h", now=now).is_empty
    assert resolve_date_range("semana", now=now).is_empty


def test_garbage_gives_empty_range(now: datetime) -> None:
    assert resolve_date_range("", now=now).is_empty
    assert resolve_date_range("???", now=now).is_empty


def test_parse_instant_naive_uses_tz() -> None:
    dt = parse_instant("2025-12-30T10:00:00", tz=SAO_PAULO)
    assert dt == datetime(2025, 12, 30, 13, 0, tzinfo=UTC)


def test_parse_instant_rejects_garbage() -> None:
    assert parse_instant("not a date") is None
    assert parse_instant("  ") is None


def test_local_midnight_days_back(now: datetime) -> None:
    assert local_midnight(now, days_back=2) == datetime(2025, 12, 28, tzinfo=UTC)
