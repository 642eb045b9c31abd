"""In-process evaluation of a LogQuery against LogRecord objects.

Used by the memory and JSON-lines stores. The SQLite store builds the same
semantics as a WHERE clause (see `storage.sql`).
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import fields
from datetime import datetime
from enum import Enum
from typing import Any

from .date_range import parse_instant
from .models import FilterOperator, Logic, LogQuery, LogRecord, QueryFilter, Severity

Predicate = Callable[[LogRecord], bool]

RECORD_FIELDS = frozenset(f.name for f in fields(LogRecord))

_ORDERED = {
    FilterOperator.GT: lambda a, b: a > b,
    FilterOperator.LT: lambda a, b: a < b,
    FilterOperator.GTE: lambda a, b: a >= b,
    FilterOperator.LTE: lambda a, b: a <= b,
}


def field_value(record: LogRecord, field: str) -> Any:
    """Read a canonical column, falling back to the record payload."""
    if field in RECORD_FIELDS:
        value = getattr(record, field)
    else:
        value = record.payload.get(field)
    if isinstance(value, Enum):
        return value.value
    return value


def value_text(value: Any) -> str:
    """Render a field value the way filters compare it as text (JSON spelling for payload values)."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, sort_keys=True)
    return str(value)


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value))
    except ValueError:
        return None


def compare_values(actual: Any, expected: str) -> int:
    """Return -1/0/1, comparing numerically when both sides are numbers, else as text."""
    a_num, e_num = _as_number(actual), _as_number(expected)
    if a_num is not None and e_num is not None:
        a, b = a_num, e_num
    else:
        a, b = value_text(actual), expected
    return (a > b) - (a < b)


def _ordered_pair(field: str, actual: Any, expected: str) -> tuple[Any, Any] | None:
    """Coerce both sides of an ordered comparison to comparable values."""
    if field == "severity":
        try:
            return Severity(actual).rank, Severity(expected.lower()).rank
        except ValueError:
            return None
    if isinstance(actual, datetime):
        bound = parse_instant(expected)
        if bound is None:
            return None
        return actual, bound
    return compare_values(actual, expected), 0


def filter_predicate(flt: QueryFilter) -> Predicate:
    """Compile one QueryFilter into a predicate."""
    field, op, expected = flt.field, flt.operator, flt.value

    def check(record: LogRecord) -> bool:
        actual = field_value(record, field)
        if actual is None:
            return False
        if isinstance(actual, datetime) and op in (FilterOperator.EQUALS, FilterOperator.NOT_EQUALS):
            instant = parse_instant(expected)
            if instant is not None:
                return (actual == instant) is (op is FilterOperator.EQUALS)
        if op is FilterOperator.EQUALS:
            return value_text(actual) == expected
        if op is FilterOperator.NOT_EQUALS:
            return value_text(actual) != expected
        if op is FilterOperator.CONTAINS:
            return expected.lower() in value_text(actual).lower()
        pair = _ordered_pair(field, actual, expected)
        if pair is None:
            return False
        return _ORDERED[op](*pair)

    return check


def _either(left: Predicate, right: Predicate) -> Predicate:
    return lambda r: left(r) or right(r)


def _both(left: Predicate, right: Predicate) -> Predicate:
    return lambda r: left(r) and right(r)


def fold_filters(filters: tuple[QueryFilter, ...]) -> Predicate | None:
    """Combine filters left to right: `acc = acc OR f` when f.logic is OR, else `acc AND f`.

    There is no grouping: `a AND b OR c` means `(a AND b) OR c`.
    """
    acc: Predicate | None = None
    for flt in filters:
        pred = filter_predicate(flt)
        if acc is None:
            acc = pred
        elif flt.logic is Logic.OR:
            acc = _either(acc, pred)
        else:
            acc = _both(acc, pred)
    return acc


def compile_query(query: LogQuery) -> Predicate:
    """Compile a LogQuery into a single predicate over LogRecord."""
    checks: list[Predicate] = []
    parsed = query.parsed

    folded = fold_filters(parsed.filters)
    if folded is not None:
        checks.append(folded)

    if parsed.text_search:
        needle = parsed.text_search.lower()
        checks.append(lambda r: needle in r.message.lower())

    bounds = [query.start]
    upper = [query.end]
    if parsed.date_range is not None:
        bounds.append(parsed.date_range.start)
        upper.append(parsed.date_range.end)
    for start in filter(None, bounds):
        checks.append(lambda r, start=start: r.timestamp >= start)
    for end in filter(None, upper):
        checks.append(lambda r, end=end: r.timestamp <= end)

    if query.event_type is not None:
        checks.append(lambda r: r.event_type == query.event_type)
    if query.severity is not None:
        checks.append(lambda r: r.severity == query.severity)
    if query.origin is not None:
        checks.append(lambda r: r.origin == query.origin)

    return lambda record: all(check(record) for check in checks)
