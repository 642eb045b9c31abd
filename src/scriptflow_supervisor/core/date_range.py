"""Date-range parsing for `date:`/`data:` directives.

Converts relative (`24h`, `7d`), named (`hoje`, `ontem`) and absolute
(`2025-12-01..2025-12-31`) expressions into UTC datetime bounds.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta, tzinfo

from .models import DateRange

_LEADING_INT_RE = re.compile(r"^\s*(\d+)")

# Word indicators are checked before single letters so that `2semanas`
# resolves to weeks instead of hitting the `m` of minutes.
_UNIT_INDICATORS: tuple[tuple[str, timedelta], ...] = (
    ("hora", timedelta(hours=1)),
    ("dia", timedelta(days=1)),
    ("min", timedelta(minutes=1)),
    ("semana", timedelta(weeks=1)),
    ("h", timedelta(hours=1)),
    ("d", timedelta(days=1)),
    ("m", timedelta(minutes=1)),
    ("w", timedelta(weeks=1)),
)

_TODAY = {"hoje", "today"}
_YESTERDAY = {"ontem", "yesterday"}


def parse_instant(s: str, *, tz: tzinfo = UTC) -> datetime | None:
    """Parse an ISO8601 date or datetime; naive values are read in `tz`.

    Returns None for anything unparseable.
    """
    s = s.strip()
    if not s:
        return None
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz)
    return dt.astimezone(UTC)


def local_midnight(now: datetime, *, tz: tzinfo = UTC, days_back: int = 0) -> datetime:
    """Return midnight (in `tz`) of the day `days_back` days before `now`, as UTC."""
    local = now.astimezone(tz)
    day = local.date() - timedelta(days=days_back)
    return datetime(day.year, day.month, day.day, tzinfo=tz).astimezone(UTC)


def _unit_for(value: str) -> timedelta | None:
    for indicator, unit in _UNIT_INDICATORS:
        if indicator in value:
            return unit
    return None


def resolve_date_range(
    value: str,
    *,
    now: datetime | None = None,
    tz: tzinfo = UTC,
) -> DateRange:
    """Resolve the expression after `date:` into a DateRange.

    Never raises: an unparseable bound is simply left unset.
    """
    now = now if now is not None else datetime.now(UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    key = value.strip().lower()

    if key in _TODAY:
        return DateRange(start=local_midnight(now, tz=tz))
    if key in _YESTERDAY:
        return DateRange(
            start=local_midnight(now, tz=tz, days_back=1),
            end=local_midnight(now, tz=tz),
        )

    unit = _unit_for(key)
    if unit is not None:
        m = _LEADING_INT_RE.match(key)
        if not m:
            return DateRange()
        return DateRange(start=now.astimezone(UTC) - int(m.group(1)) * unit)

    if ".." in value:
        start_s, _, end_s = value.partition("..")
        return DateRange(
            start=parse_instant(start_s, tz=tz),
            end=parse_instant(end_s, tz=tz),
        )

    return DateRange(start=parse_instant(value, tz=tz))
