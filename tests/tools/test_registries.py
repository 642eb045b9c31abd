from __future__ import annotations

import pytest
from mcp.server.fastmcp import FastMCP

from scriptflow_supervisor.core.query_parser import parse_query
from scriptflow_supervisor.prompts.registry import register_prompts
from scriptflow_supervisor.resources.registry import SAMPLE_QUERIES, register_resources


@pytest.mark.parametrize(("query", "description"), SAMPLE_QUERIES)
def test_sample_queries_parse_to_structure(query: str, description: str) -> None:
    parsed = parse_query(query)
    assert description
    assert parsed.filters
    assert parsed.text_search == ""


@pytest.mark.asyncio
async def test_resources_and_prompts_are_registered() -> None:
    mcp = FastMCP("test")
    register_resources(mcp)
    register_prompts(mcp)

    uris = {str(r.uri) for r in await mcp.list_resources()}
    assert uris == {
        "app://scriptflow/help",
        "app://scriptflow/examples/queries",
        "app://scriptflow/vocabulary",
        "app://scriptflow/schemas/alert-draft",
    }
    names = {p.name for p in await mcp.list_prompts()}
    assert names == {"investigate_logs", "draft_alert"}
