"""Core data models for the supervisor log pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Severity(str, Enum):
    """Ordered log severity (info < warning < error < critical)."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.ERROR: 2,
    Severity.CRITICAL: 3,
}


class EventType(str, Enum):
    """Canonical event types written to the system log."""

    CHAMADO_CREATED = "chamado_created"
    CHAMADO_UPDATED = "chamado_updated"
    CHAMADO_DELETED = "chamado_deleted"
    CHAMADO_STATUS_CHANGED = "chamado_status_changed"
    SCRIPT_CREATED = "script_created"
    SCRIPT_UPDATED = "script_updated"
    SCRIPT_DELETED = "script_deleted"
    SCRIPT_EXECUTED = "script_executed"
    USER_LOGIN = "user_login"
    USER_LOGOUT = "user_logout"
    USER_SIGNUP = "user_signup"
    ERROR = "error"
    SYSTEM = "system"
    CUSTOM = "custom"


class FilterOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"


class Logic(str, Enum):
    AND = "AND"
    OR = "OR"


@dataclass(frozen=True, slots=True)
class Session:
    """Caller identity passed explicitly into every operation."""

    user_id: str
    user_email: str | None = None


@dataclass(frozen=True, slots=True)
class LogRecord:
    """Immutable system event as stored in the append-only log."""

    id: str
    timestamp: datetime
    event_type: EventType
    severity: Severity
    message: str
    origin: str = "system"
    user_id: str | None = None
    user_email: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True, slots=True)
class QueryFilter:
    """One `field<op>value` term; `logic` is None for the first filter."""

    field: str
    operator: FilterOperator
    value: str
    logic: Logic | None = None


@dataclass(frozen=True, slots=True)
class DateRange:
    start: datetime | None = None
    end: datetime | None = None

    @property
    def is_empty(self) -> bool:
        return self.start is None and self.end is None


@dataclass(frozen=True, slots=True)
class ParsedQuery:
    """Structured form of a raw query string."""

    filters: tuple[QueryFilter, ...] = ()
    text_search: str = ""
    date_range: DateRange | None = None

    @property
    def is_empty(self) -> bool:
        return not self.filters and not self.text_search and self.date_range is None


@dataclass(frozen=True, slots=True)
class LogQuery:
    """A parsed query plus the console side filters and an optional window.

    Base filters are plain equality checks; `start`/`end` are inclusive bounds
    applied on top of any date directive found in the query itself.
    """

    parsed: ParsedQuery = field(default_factory=ParsedQuery)
    event_type: EventType | None = None
    severity: Severity | None = None
    origin: str | None = None
    start: datetime | None = None
    end: datetime | None = None


@dataclass(frozen=True, slots=True)
class SearchPage:
    records: list[LogRecord]
    total_count: int
    page: int
    page_size: int
    parsed: ParsedQuery
