from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from scriptflow_supervisor.core.models import (
    DateRange,
    FilterOperator,
    Logic,
    ParsedQuery,
    QueryFilter,
)
from scriptflow_supervisor.core.query_parser import get_query_help, parse_operator, parse_query


@pytest.mark.parametrize("raw", ["", "   ", "\t\n"])
def test_empty_input(raw: str) -> None:
    parsed = parse_query(raw)
    assert parsed == ParsedQuery()
    assert parsed.filters == ()
    assert parsed.text_search == ""
    assert parsed.date_range is None
    assert parsed.is_empty


def test_parse_is_deterministic(now: datetime) -> None:
    raw = 'type=erro OR severity>=warning message~"falha de conexão" date:24h texto livre'
    assert parse_query(raw, now=now) == parse_query(raw, now=now)


def test_implicit_and_between_filters() -> None:
    parsed = parse_query("type=erro severity=critical")
    assert parsed.filters == (
        QueryFilter(field="event_type", operator=FilterOperator.EQUALS, value="error"),
        QueryFilter(
            field="severity",
            operator=FilterOperator.EQUALS,
            value="critical",
            logic=Logic.AND,
        ),
    )


def test_explicit_or() -> None:
    parsed = parse_query("type=login OR type=logout")
    assert [f.value for f in parsed.filters] == ["user_login", "user_logout"]
    assert parsed.filters[0].logic is None
    assert parsed.filters[1].logic is Logic.OR


def test_logic_keywords_are_case_insensitive_and_reset_after_use() -> None:
    parsed = parse_query("type=login or type=logout origin=auth")
    assert [f.logic for f in parsed.filters] == [None, Logic.OR, Logic.AND]


def test_leading_or_is_ignored_for_first_filter() -> None:
    parsed = parse_query("OR type=login")
    assert parsed.filters[0].logic is None


def test_alias_normalization() -> None:
    parsed = parse_query("severidade=erro")
    assert parsed.filters == (
        QueryFilter(field="severity", operator=FilterOperator.EQUALS, value="error"),
    )


@pytest.mark.parametrize(
    ("raw", "field", "value"),
    [
        ("tipo=cadastro", "event_type", "user_signup"),
        ("usuario=ana@exemplo.com", "user_email", "ana@exemplo.com"),
        ("usuário=ana@exemplo.com", "user_email", "ana@exemplo.com"),
        ("USUÁRIO=ana@exemplo.com", "user_email", "ana@exemplo.com"),
        ("ação=reinício", "ação", "reinício"),
        ("origem=chamados", "origin", "chamados"),
        ("mensagem~timeout", "message", "timeout"),
        ("status=aviso", "severity", "warning"),
        ("TYPE=LOGIN", "event_type", "user_login"),
        ("attempts>3", "attempts", "3"),
    ],
)
def test_field_and_value_aliases(raw: str, field: str, value: str) -> None:
    (flt,) = parse_query(raw).filters
    assert flt.field == field
    assert flt.value == value


@pytest.mark.parametrize(
    ("op", "expected"),
    [
        (":", FilterOperator.EQUALS),
        ("=", FilterOperator.EQUALS),
        ("!=", FilterOperator.NOT_EQUALS),
        ("<>", FilterOperator.NOT_EQUALS),
        (">", FilterOperator.GT),
        ("<", FilterOperator.LT),
        (">=", FilterOperator.GTE),
        ("<=", FilterOperator.LTE),
        ("~", FilterOperator.CONTAINS),
        ("*", FilterOperator.CONTAINS),
        ("??", FilterOperator.EQUALS),
    ],
)
def test_parse_operator(op: str, expected: FilterOperator) -> None:
    assert parse_operator(op) is expected


def test_two_char_operators_win_over_single_char() -> None:
    parsed = parse_query("severity>=warning attempts<=2 origin!=api origin<>db")
    assert [f.operator for f in parsed.filters] == [
        FilterOperator.GTE,
        FilterOperator.LTE,
        FilterOperator.NOT_EQUALS,
        FilterOperator.NOT_EQUALS,
    ]
    assert [f.value for f in parsed.filters] == ["warning", "2", "api", "db"]


def test_free_text_fallback() -> None:
    parsed = parse_query("erro no servidor")
    assert parsed.filters == ()
    assert parsed.text_search == "erro no servidor"


def test_quoted_phrase_preserved() -> None:
    parsed = parse_query('message~"falha de conexão"')
    assert parsed.filters == (
        QueryFilter(field="message", operator=FilterOperator.CONTAINS, value="falha de conexão"),
    )
    assert parsed.text_search == ""


def test_quoted_free_text_loses_quotes() -> None:
    parsed = parse_query('"banco de dados" lento')
    assert parsed.text_search == "banco de dados lento"


def test_dangling_operator_becomes_text() -> None:
    parsed = parse_query("type= >5 =x")
    assert parsed.filters == ()
    assert parsed.text_search == "type= >5 =x"


def test_mixed_filters_text_and_date(now: datetime) -> None:
    parsed = parse_query("type=erro banco date:24h lento", now=now)
    assert len(parsed.filters) == 1
    assert parsed.text_search == "banco lento"
    assert parsed.date_range == DateRange(start=now - timedelta(hours=24))


def test_data_prefix_and_last_directive_wins(now: datetime) -> None:
    parsed = parse_query("data:7d DATE:2h", now=now)
    assert parsed.date_range == DateRange(start=now - timedelta(hours=2))


def test_date_directive_keeps_iso_time_colons(now: datetime) -> None:
    parsed = parse_query("date:2025-12-30T10:00:00Z", now=now)
    assert parsed.date_range is not None
    assert parsed.date_range.start == datetime.fromisoformat("2025-12-30T10:00:00+00:00")


def test_bad_date_leaves_bounds_unset(now: datetime) -> None:
    parsed = parse_query("date:amanhã", now=now)
    assert parsed.date_range == DateRange()
    assert parsed.filters == ()
    assert parsed.text_search == ""


def test_help_mentions_every_operator() -> None:
    text = "\n".join(get_query_help())
    for op in ("=", "!=", "<>", "~", ">", "<", ">=", "<=", "AND", "OR", "date:24h", "ontem"):
        assert op in text
