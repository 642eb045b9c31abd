"""WHERE-clause construction for the SQLite log store.

Mirrors `predicates.compile_query` so that interactive search and alert
evaluation see the same rows whichever backend is configured.
"""

from __future__ import annotations

import json
from typing import Any

from ..date_range import parse_instant
from ..models import FilterOperator, Logic, LogQuery, QueryFilter, Severity
from ..predicates import compare_values, value_text
from .base import format_ts

LOG_COLUMNS: tuple[str, ...] = (
    "id",
    "timestamp",
    "user_id",
    "user_email",
    "event_type",
    "severity",
    "message",
    "origin",
    "entity_type",
    "entity_id",
    "payload",
    "ip_address",
    "user_agent",
)

SEVERITY_RANK_SQL = (
    "CASE severity "
    + " ".join(f"WHEN '{s.value}' THEN {s.rank}" for s in Severity)
    + " END"
)

_SQL_OPS = {
    FilterOperator.GT: ">",
    FilterOperator.LT: "<",
    FilterOperator.GTE: ">=",
    FilterOperator.LTE: "<=",
}


def contains_ci(haystack: Any, needle: Any) -> int:
    """SQLite function: case-insensitive substring test (Unicode aware)."""
    if haystack is None or needle is None:
        return 0
    return int(str(needle).lower() in str(haystack).lower())


def compare_sql(actual: Any, expected: Any) -> int | None:
    """SQLite function: -1/0/1 ordering with numeric-then-text coercion."""
    if actual is None or expected is None:
        return None
    return compare_values(actual, str(expected))


def payload_text(payload: Any, key: Any) -> str | None:
    """SQLite function: one payload value rendered like `predicates.value_text`."""
    if payload is None:
        return None
    try:
        data = json.loads(payload)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    value = data.get(key)
    return None if value is None else value_text(value)


def register_functions(conn: Any) -> None:
    conn.create_function("payload_text", 2, payload_text, deterministic=True)
    conn.create_function("contains_ci", 2, contains_ci, deterministic=True)
    conn.create_function("compare_sql", 2, compare_sql, deterministic=True)


def _column(field: str) -> tuple[str, list[Any]]:
    if field in LOG_COLUMNS:
        return field, []
    return "payload_text(payload, ?)", [field]


def filter_condition(flt: QueryFilter) -> tuple[str, list[Any]]:
    """Return `(sql, params)` for one QueryFilter."""
    expr, params = _column(flt.field)
    op, value = flt.operator, flt.value

    if flt.field == "timestamp":
        instant = parse_instant(value)
        if instant is not None:
            value = format_ts(instant)
        elif op in _SQL_OPS:
            return "0", []

    if op is FilterOperator.EQUALS:
        return f"{expr} = ?", params + [value]
    if op is FilterOperator.NOT_EQUALS:
        return f"{expr} != ?", params + [value]
    if op is FilterOperator.CONTAINS:
        return f"contains_ci({expr}, ?)", params + [value]

    sql_op = _SQL_OPS[op]
    if flt.field == "severity":
        try:
            rank = Severity(value.lower()).rank
        except ValueError:
            return "0", []
        return f"{SEVERITY_RANK_SQL} {sql_op} ?", [rank]
    if flt.field == "timestamp":
        return f"timestamp {sql_op} ?", [value]
    return f"compare_sql({expr}, ?) {sql_op} 0", params + [value]


def build_where_clause(query: LogQuery) -> tuple[str, list[Any]]:
    """Build a parameterised WHERE clause (without the keyword) for a LogQuery.

    Returns `("", [])` when the query places no restriction.
    """
    parts: list[str] = []
    params: list[Any] = []
    parsed = query.parsed

    folded: str | None = None
    for flt in parsed.filters:
        cond, cond_params = filter_condition(flt)
        params.extend(cond_params)
        if folded is None:
            folded = f"({cond})"
        else:
            joiner = "OR" if flt.logic is Logic.OR else "AND"
            folded = f"({folded} {joiner} ({cond}))"
    if folded is not None:
        parts.append(folded)

    if parsed.text_search:
        parts.append("contains_ci(message, ?)")
        params.append(parsed.text_search)

    starts = [query.start]
    ends = [query.end]
    if parsed.date_range is not None:
        starts.append(parsed.date_range.start)
        ends.append(parsed.date_range.end)
    for start in filter(None, starts):
        parts.append("timestamp >= ?")
        params.append(format_ts(start))
    for end in filter(None, ends):
        parts.append("timestamp <= ?")
        params.append(format_ts(end))

    if query.event_type is not None:
        parts.append("event_type = ?")
        params.append(query.event_type.value)
    if query.severity is not None:
        parts.append("severity = ?")
        params.append(query.severity.value)
    if query.origin is not None:
        parts.append("origin = ?")
        params.append(query.origin)

    return " AND ".join(parts), params
