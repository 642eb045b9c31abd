"""Search-side tool implementations.

Keep this layer thin: validate inputs, translate them into core calls, and
return JSON-serializable data structures.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from scriptflow_supervisor.core.aliases import canonical_value
from scriptflow_supervisor.core.date_range import parse_instant
from scriptflow_supervisor.core.events import log_action
from scriptflow_supervisor.core.models import (
    EventType,
    LogQuery,
    LogRecord,
    ParsedQuery,
    Session,
    Severity,
)
from scriptflow_supervisor.core.query_parser import get_query_help
from scriptflow_supervisor.runtime import Runtime

HARD_PAGE_SIZE = 500


def _iso(ts: datetime | None) -> str | None:
    return ts.isoformat() if ts is not None else None


def record_to_json(record: LogRecord) -> dict[str, Any]:
    """Convert a LogRecord into a JSON-serializable dict."""
    d: dict[str, Any] = {
        "id": record.id,
        "timestamp": record.timestamp.isoformat(),
        "event_type": record.event_type.value,
        "severity": record.severity.value,
        "message": record.message,
        "origin": record.origin,
    }
    for key in ("user_id", "user_email", "entity_type", "entity_id", "ip_address", "user_agent"):
        value = getattr(record, key)
        if value is not None:
            d[key] = value
    if record.payload:
        d["payload"] = record.payload
    return d


def parsed_to_json(parsed: ParsedQuery) -> dict[str, Any]:
    date_range = None
    if parsed.date_range is not None:
        date_range = {
            "start": _iso(parsed.date_range.start),
            "end": _iso(parsed.date_range.end),
        }
    return {
        "filters": [
            {
                "field": f.field,
                "operator": f.operator.value,
                "value": f.value,
                **({"logic": f.logic.value} if f.logic is not None else {}),
            }
            for f in parsed.filters
        ],
        "text_search": parsed.text_search,
        "date_range": date_range,
    }


def _enum_or_none(enum_cls: type, value: str | None, label: str) -> Any:
    """Resolve an enum filter, accepting the same synonyms as the query language."""
    if value is None or not value.strip() or value.strip().lower() == "all":
        return None
    try:
        return enum_cls(canonical_value(label, value.strip()).lower())
    except ValueError as e:
        valid = ", ".join(m.value for m in enum_cls)
        raise ValueError(f"Unknown {label} '{value}'. Valid values: {valid}.") from e


def _instant_or_none(value: str | None, label: str, runtime: Runtime) -> datetime | None:
    if value is None or not value.strip():
        return None
    instant = parse_instant(value.strip(), tz=runtime.config.timezone)
    if instant is None:
        raise ValueError(f"{label} must be an ISO-8601 date or datetime, got {value!r}")
    return instant


async def search_logs_impl(
    runtime: Runtime,
    session: Session,
    *,
    query: str = "",
    page: int = 1,
    page_size: int | None = None,
    event_type: str | None = None,
    severity: str | None = None,
    origin: str | None = None,
    start: str | None = None,
    end: str | None = None,
) -> dict[str, Any]:
    """Implementation for the `search_logs` MCP tool.

    The console side filters (`event_type`, `severity`, `origin`, `start`,
    `end`) are ANDed with whatever the query string expresses.
    """
    if page < 1:
        raise ValueError("page must be >= 1")
    if page_size is not None:
        if page_size <= 0:
            raise ValueError("page_size must be > 0")
        page_size = min(page_size, HARD_PAGE_SIZE)

    base = LogQuery(
        event_type=_enum_or_none(EventType, event_type, "event_type"),
        severity=_enum_or_none(Severity, severity, "severity"),
        origin=origin.strip() if origin and origin.strip() else None,
        start=_instant_or_none(start, "start", runtime),
        end=_instant_or_none(end, "end", runtime),
    )
    result = await runtime.executor.search(session, query, page=page, page_size=page_size, base=base)
    return {
        "total_count": result.total_count,
        "page": result.page,
        "page_size": result.page_size,
        "count": len(result.records),
        "parsed": parsed_to_json(result.parsed),
        "records": [record_to_json(r) for r in result.records],
    }


def parse_query_impl(runtime: Runtime, query: str) -> dict[str, Any]:
    """Implementation for the `parse_query` MCP tool."""
    return parsed_to_json(runtime.executor.parse(query))


def query_help_impl() -> dict[str, Any]:
    return {"lines": get_query_help()}


async def log_event_impl(
    runtime: Runtime,
    session: Session,
    *,
    event_type: str,
    message: str,
    severity: str = "info",
    origin: str = "system",
    entity_type: str | None = None,
    entity_id: str | None = None,
    payload: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Implementation for the `log_event` MCP tool."""
    record = await log_action(
        runtime.store,
        session,
        _enum_or_none(EventType, event_type, "event_type") or EventType.CUSTOM,
        message,
        severity=_enum_or_none(Severity, severity, "severity") or Severity.INFO,
        origin=origin,
        entity_type=entity_type,
        entity_id=entity_id,
        payload=payload,
        bus=runtime.bus,
    )
    return record_to_json(record)
