"""Console query parser.

Grammar (informal)::

    query          := term (logic term)*
    term           := filter | date_directive | word
    filter         := FIELD OP VALUE        (no spaces around OP)
    date_directive := ("date" | "data") ":" DATE_EXPR
    logic          := "AND" | "OR"          (case-insensitive)

Parsing is best-effort and never raises: unknown fields pass through,
bad dates leave their bound unset and anything else becomes free text.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime, tzinfo

from .aliases import normalize, strip_quotes
from .date_range import resolve_date_range
from .models import DateRange, FilterOperator, Logic, ParsedQuery, QueryFilter
from .tokenizer import tokenize

_FILTER_RE = re.compile(r"^(?P<field>\w+)(?P<op>!=|<>|>=|<=|[:=<>~*])(?P<value>.+)$", re.DOTALL)
_DATE_PREFIXES = ("date:", "data:")

_OPERATORS: dict[str, FilterOperator] = {
    "!=": FilterOperator.NOT_EQUALS,
    "<>": FilterOperator.NOT_EQUALS,
    ">": FilterOperator.GT,
    "<": FilterOperator.LT,
    ">=": FilterOperator.GTE,
    "<=": FilterOperator.LTE,
    "~": FilterOperator.CONTAINS,
    "*": FilterOperator.CONTAINS,
}


def parse_operator(op: str) -> FilterOperator:
    """Map operator characters to a FilterOperator (`:`/`=` and unknowns mean equals)."""
    return _OPERATORS.get(op, FilterOperator.EQUALS)


def parse_query(
    raw: str,
    *,
    now: datetime | None = None,
    tz: tzinfo = UTC,
) -> ParsedQuery:
    """Parse a raw console query into a ParsedQuery."""
    if not raw.strip():
        return ParsedQuery()

    filters: list[QueryFilter] = []
    text_parts: list[str] = []
    date_range: DateRange | None = None
    current_logic = Logic.AND

    for token in tokenize(raw):
        upper = token.upper()
        if upper == "AND":
            current_logic = Logic.AND
            continue
        if upper == "OR":
            current_logic = Logic.OR
            continue

        if token.lower().startswith(_DATE_PREFIXES):
            _, _, expr = token.partition(":")
            date_range = resolve_date_range(strip_quotes(expr), now=now, tz=tz)
            continue

        m = _FILTER_RE.match(token)
        if m:
            field, value = normalize(m.group("field"), m.group("value"))
            filters.append(
                QueryFilter(
                    field=field,
                    operator=parse_operator(m.group("op")),
                    value=value,
                    logic=current_logic if filters else None,
                )
            )
            current_logic = Logic.AND
            continue

        text_parts.append(strip_quotes(token))

    return ParsedQuery(
        filters=tuple(filters),
        text_search=" ".join(text_parts),
        date_range=date_range,
    )


def get_query_help() -> list[str]:
    """Return the console cheat-sheet, one line per entry."""
    return [
        "Exemplos de consultas:",
        "  type=erro - Buscar por tipo de evento",
        "  severity=critical - Buscar por severidade",
        "  user=email@exemplo.com - Buscar por usuário",
        "  origin=chamados - Buscar por origem",
        "  message~texto - Buscar texto na mensagem",
        '  message~"falha de conexão" - Frase entre aspas',
        "  date:24h - Últimas 24 horas",
        "  date:7d - Últimos 7 dias",
        "  date:30m - Últimos 30 minutos",
        "  date:2w - Últimas 2 semanas",
        "  date:hoje - Eventos de hoje",
        "  date:ontem - Eventos de ontem",
        "  date:2025-01-01..2025-01-31 - Intervalo absoluto",
        "",
        "Operadores lógicos:",
        "  type=erro AND severity=critical",
        "  type=login OR type=logout",
        "  (sem parênteses: avaliado da esquerda para a direita)",
        "",
        "Operadores de comparação:",
        "  = ou : igual",
        "  != ou <> diferente",
        "  ~ ou * contém",
        "  > maior que",
        "  < menor que",
        "  >= maior ou igual",
        "  <= menor ou igual",
    ]
