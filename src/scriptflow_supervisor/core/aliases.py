"""Field and value aliases for the query language.

Users type Portuguese or English names; these tables map them onto the
canonical log-record columns and enum values.
"""

from __future__ import annotations

from .tokenizer import QUOTE_CHARS

FIELD_ALIASES: dict[str, str] = {
    "type": "event_type",
    "tipo": "event_type",
    "user": "user_email",
    "usuario": "user_email",
    "usuário": "user_email",
    "severity": "severity",
    "severidade": "severity",
    "status": "severity",
    "origin": "origin",
    "origem": "origin",
    "message": "message",
    "mensagem": "message",
    "entity": "entity_type",
    "entidade": "entity_type",
    "script": "entity_type",
    "chamado": "entity_type",
}

SEVERITY_ALIASES: dict[str, str] = {
    "erro": "error",
    "error": "error",
    "crítico": "critical",
    "critico": "critical",
    "critical": "critical",
    "aviso": "warning",
    "warning": "warning",
    "info": "info",
    "informação": "info",
    "informacao": "info",
}

EVENT_TYPE_ALIASES: dict[str, str] = {
    "login": "user_login",
    "logout": "user_logout",
    "signup": "user_signup",
    "cadastro": "user_signup",
    "chamado_criado": "chamado_created",
    "chamado_atualizado": "chamado_updated",
    "chamado_deletado": "chamado_deleted",
    "chamado_status": "chamado_status_changed",
    "script_criado": "script_created",
    "script_atualizado": "script_updated",
    "script_deletado": "script_deleted",
    "script_executado": "script_executed",
    "erro": "error",
    "error": "error",
    "sistema": "system",
    "system": "system",
}

_VALUE_ALIASES: dict[str, dict[str, str]] = {
    "severity": SEVERITY_ALIASES,
    "event_type": EVENT_TYPE_ALIASES,
}


def strip_quotes(value: str) -> str:
    """Remove one leading and one trailing quote character, if present."""
    if value[:1] in QUOTE_CHARS:
        value = value[1:]
    if value[-1:] in QUOTE_CHARS:
        value = value[:-1]
    return value


def canonical_field(name: str) -> str:
    """Resolve a user-facing field name; unknown names pass through unchanged."""
    return FIELD_ALIASES.get(name.lower(), name)


def canonical_value(field: str, value: str) -> str:
    """Map localized synonyms for enum-valued fields; other values are verbatim."""
    table = _VALUE_ALIASES.get(field)
    if table is None:
        return value
    return table.get(value.lower(), value)


def normalize(name: str, raw_value: str) -> tuple[str, str]:
    """Return `(canonical_field, canonical_value)` for a raw filter term."""
    field = canonical_field(name)
    return field, canonical_value(field, strip_quotes(raw_value))
