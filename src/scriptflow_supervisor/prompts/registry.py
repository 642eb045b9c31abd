"""MCP prompt registry.

Prompts are predefined conversation/workflow templates that the client can invoke explicitly.
"""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP


def register_prompts(mcp: FastMCP) -> None:
    """Register prompt templates on the MCP server."""

    @mcp.prompt()
    def investigate_logs(
        user_id: str,
        question: str,
        query: str = "",
        since: str = "24h",
    ) -> list[dict[str, Any]]:
        """Build a prompt that investigates the system log with search_logs."""
        query_line = f"- query: {query} date:{since}" if query else f"- query: date:{since}"
        return [
            {
                "role": "system",
                "content": (
                    "You are a support supervisor assistant for the ScriptFlow ticket and script "
                    "system. Answer from log evidence only. Do not invent details; if the "
                    "evidence is insufficient, say so."
                ),
            },
            {
                "role": "user",
                "content": (
                    f"Question: {question}\n\n"
                    "Investigate using search_logs. Follow this workflow:\n"
                    "- Read app://scriptflow/help for the query syntax before searching.\n"
                    "- Start with the call below, then refine with field filters "
                    "(type=, severity=, user=, origin=, message~) as needed.\n"
                    "- AND/OR are evaluated left to right; there are no parentheses.\n"
                    "- If nothing matches, widen the date directive before concluding.\n\n"
                    "Call search_logs with:\n"
                    f"- user_id: {user_id}\n"
                    f"{query_line}\n\n"
                    "Return this structure:\n"
                    "1) Answer (1-3 sentences)\n"
                    "2) Evidence (2-5 log rows: timestamp, event_type, severity, message)\n"
                    "3) Follow-up queries worth saving (0-3)\n"
                ),
            },
        ]

    @mcp.prompt()
    def draft_alert(
        user_id: str,
        goal: str,
        threshold: int = 5,
        time_window_minutes: int = 15,
    ) -> list[dict[str, Any]]:
        """Build a prompt that turns a monitoring goal into a create_alert call."""
        return [
            {
                "role": "system",
                "content": (
                    "You configure threshold alerts over the system log. Conditions use the "
                    "console query language; the alert fires when at least `threshold` rows "
                    "match within the trailing window."
                ),
            },
            {
                "role": "user",
                "content": (
                    f"Goal: {goal}\n\n"
                    "- Write a condition_query and check it with parse_query first.\n"
                    "- Run it through search_logs to see how often it matches today.\n"
                    "- Do not put a date: directive in the condition; the window covers time.\n"
                    f"- Suggested threshold: {threshold}; window: {time_window_minutes} minutes. "
                    "Adjust if the search shows this would fire constantly or never.\n"
                    f"- Then call create_alert with user_id={user_id}.\n"
                ),
            },
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "Alert input schema:"},
                    {"type": "resource", "uri": "app://scriptflow/schemas/alert-draft"},
                ],
            },
        ]
