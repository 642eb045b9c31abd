"""MCP resource registry.

Resources are addressable by URI and can be fetched by the MCP client on demand.
"""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP

from scriptflow_supervisor.core.alerts import AlertDraft
from scriptflow_supervisor.core.models import EventType, Severity
from scriptflow_supervisor.core.query_parser import get_query_help

SAMPLE_QUERIES: tuple[tuple[str, str], ...] = (
    ("type=erro severity=critical", "Erros críticos"),
    ("type=login OR type=logout", "Entradas e saídas de usuários"),
    ('message~"falha de conexão" date:24h', "Falhas de conexão nas últimas 24 horas"),
    ("origem=chamados date:hoje", "Atividade de chamados hoje"),
    ("severity>=warning date:7d", "Avisos ou pior na última semana"),
    ("user=admin@exemplo.com date:ontem", "Ações de um usuário ontem"),
)


def register_resources(mcp: FastMCP) -> None:
    """Register resource handlers on the MCP server."""

    @mcp.resource("app://scriptflow/help")
    def help_resource() -> str:
        """Return the query language cheat-sheet."""
        return (
            "\n".join(get_query_help())
            + "\n\nResources:\n"
            "- app://scriptflow/help\n"
            "- app://scriptflow/examples/queries\n"
            "- app://scriptflow/vocabulary\n"
            "- app://scriptflow/schemas/alert-draft\n"
        )

    @mcp.resource("app://scriptflow/examples/queries")
    def sample_queries() -> list[dict[str, str]]:
        """Return example console queries with a short description each."""
        return [{"query": q, "description": d} for q, d in SAMPLE_QUERIES]

    @mcp.resource("app://scriptflow/vocabulary")
    def vocabulary() -> dict[str, list[str]]:
        """Return the canonical event types and severities."""
        return {
            "event_types": [e.value for e in EventType],
            "severities": [s.value for s in Severity],
        }

    @mcp.resource("app://scriptflow/schemas/alert-draft")
    def alert_draft_schema() -> dict[str, Any]:
        """Return the JSON schema accepted by create_alert."""
        return AlertDraft.model_json_schema()
