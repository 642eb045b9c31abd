"""MCP server entrypoint (stdio transport).

This module wires together:
- Tools: log search, alert management, saved queries and notifications
- Resources: query cheat-sheet, sample queries, vocabulary, schemas
- Prompts: investigation and alert-drafting workflows

The alert scheduler runs for the lifetime of the server.

Run locally (stdio):
    python -m scriptflow_supervisor.server.supervisor_server
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

from mcp.server.fastmcp import FastMCP

from scriptflow_supervisor.config import configure_logging, load_config
from scriptflow_supervisor.core.models import Session
from scriptflow_supervisor.prompts.registry import register_prompts
from scriptflow_supervisor.resources.registry import register_resources
from scriptflow_supervisor.runtime import Runtime, build_runtime
from scriptflow_supervisor.tools.alerts import (
    alert_history_impl,
    create_alert_impl,
    delete_alert_impl,
    evaluate_alerts_impl,
    list_alerts_impl,
    list_notifications_impl,
    toggle_alert_impl,
    update_alert_impl,
)
from scriptflow_supervisor.tools.saved_queries import (
    delete_saved_query_impl,
    list_saved_queries_impl,
    save_query_impl,
    toggle_favorite_query_impl,
)
from scriptflow_supervisor.tools.search import (
    log_event_impl,
    parse_query_impl,
    query_help_impl,
    search_logs_impl,
)

LOGGER = logging.getLogger(__name__)

_runtime: Runtime | None = None


def get_runtime() -> Runtime:
    global _runtime
    if _runtime is None:
        _runtime = build_runtime(load_config())
    return _runtime


def _session(user_id: str, user_email: str | None = None) -> Session:
    if not user_id or not user_id.strip():
        raise ValueError("user_id is required")
    return Session(user_id=user_id.strip(), user_email=user_email)


@asynccontextmanager
async def lifespan(_server: FastMCP) -> AsyncIterator[None]:
    runtime = get_runtime()
    runtime.scheduler.start()
    try:
        yield
    finally:
        await runtime.scheduler.stop()
        runtime.close()


mcp = FastMCP("scriptflow-supervisor", json_response=True, lifespan=lifespan)

register_resources(mcp)
register_prompts(mcp)


@mcp.tool()
async def search_logs(
    user_id: str,
    query: str = "",
    page: int = 1,
    page_size: int | None = None,
    event_type: str | None = None,
    severity: str | None = None,
    origin: str | None = None,
    start: str | None = None,
    end: str | None = None,
) -> dict[str, Any]:
    """Search the system log with the console query language.

    Parameters
    ----------
    user_id:
        Caller identity (every operation takes it explicitly).
    query:
        Free-form query, e.g. `type=erro severity=critical date:24h` or
        `message~"falha de conexão"`. See the app://scriptflow/help resource.
    page/page_size:
        1-based page number and rows per page (newest first).
    event_type/severity/origin:
        Optional equality side filters; `all` or empty means no filter.
    start/end:
        Optional ISO-8601 inclusive bounds on the timestamp.

    Returns
    -------
    dict:
        {"total_count", "page", "page_size", "count", "parsed", "records"}
    """
    return await search_logs_impl(
        get_runtime(),
        _session(user_id),
        query=query,
        page=page,
        page_size=page_size,
        event_type=event_type,
        severity=severity,
        origin=origin,
        start=start,
        end=end,
    )


@mcp.tool()
def query_help() -> dict[str, Any]:
    """Return the query language cheat-sheet."""
    return query_help_impl()


@mcp.tool()
def parse_query(query: str) -> dict[str, Any]:
    """Show how a query string is interpreted (filters, free text, date range)."""
    return parse_query_impl(get_runtime(), query)


@mcp.tool()
async def log_event(
    user_id: str,
    event_type: str,
    message: str,
    severity: str = "info",
    origin: str = "system",
    user_email: str | None = None,
    entity_type: str | None = None,
    entity_id: str | None = None,
    payload: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Append a row to the system log (e.g. a ticket or script action)."""
    return await log_event_impl(
        get_runtime(),
        _session(user_id, user_email),
        event_type=event_type,
        message=message,
        severity=severity,
        origin=origin,
        entity_type=entity_type,
        entity_id=entity_id,
        payload=payload,
    )


@mcp.tool()
async def create_alert(
    user_id: str,
    name: str,
    condition_query: str,
    threshold: int,
    time_window_minutes: int,
    description: str | None = None,
    notify_email: bool = False,
    notify_internal: bool = True,
    email_recipients: list[str] | None = None,
    custom_message: str | None = None,
) -> dict[str, Any]:
    """Create a threshold alert.

    The alert fires when at least `threshold` rows match `condition_query`
    within the trailing `time_window_minutes`. Both numbers must be >= 1.
    """
    return await create_alert_impl(
        get_runtime(),
        _session(user_id),
        name=name,
        condition_query=condition_query,
        threshold=threshold,
        time_window_minutes=time_window_minutes,
        description=description,
        notify_email=notify_email,
        notify_internal=notify_internal,
        email_recipients=email_recipients,
        custom_message=custom_message,
    )


@mcp.tool()
async def update_alert(
    user_id: str,
    alert_id: str,
    name: str | None = None,
    description: str | None = None,
    condition_query: str | None = None,
    threshold: int | None = None,
    time_window_minutes: int | None = None,
    notify_email: bool | None = None,
    notify_internal: bool | None = None,
    email_recipients: list[str] | None = None,
    custom_message: str | None = None,
) -> dict[str, Any]:
    """Update the given fields of an alert; omitted fields are unchanged."""
    return await update_alert_impl(
        get_runtime(),
        _session(user_id),
        alert_id,
        name=name,
        description=description,
        condition_query=condition_query,
        threshold=threshold,
        time_window_minutes=time_window_minutes,
        notify_email=notify_email,
        notify_internal=notify_internal,
        email_recipients=email_recipients,
        custom_message=custom_message,
    )


@mcp.tool()
async def delete_alert(user_id: str, alert_id: str) -> dict[str, Any]:
    """Delete an alert and its history."""
    return await delete_alert_impl(get_runtime(), _session(user_id), alert_id)


@mcp.tool()
async def toggle_alert(user_id: str, alert_id: str) -> dict[str, Any]:
    """Pause an active alert, or re-arm a paused/triggered one."""
    return await toggle_alert_impl(get_runtime(), _session(user_id), alert_id)


@mcp.tool()
async def list_alerts(user_id: str) -> dict[str, Any]:
    """List the caller's alerts, newest first."""
    return await list_alerts_impl(get_runtime(), _session(user_id))


@mcp.tool()
async def alert_history(user_id: str, alert_id: str | None = None, limit: int = 100) -> dict[str, Any]:
    """Return alert firings, newest first."""
    return await alert_history_impl(get_runtime(), _session(user_id), alert_id=alert_id, limit=limit)


@mcp.tool()
async def evaluate_alerts() -> dict[str, Any]:
    """Run one evaluation pass over all active alerts now."""
    return await evaluate_alerts_impl(get_runtime())


@mcp.tool()
async def save_query(
    user_id: str,
    name: str,
    query: str,
    description: str | None = None,
    is_favorite: bool = False,
) -> dict[str, Any]:
    """Save a console query under a name."""
    return await save_query_impl(
        get_runtime(),
        _session(user_id),
        name=name,
        query=query,
        description=description,
        is_favorite=is_favorite,
    )


@mcp.tool()
async def list_saved_queries(user_id: str) -> dict[str, Any]:
    """List saved queries, favourites first."""
    return await list_saved_queries_impl(get_runtime(), _session(user_id))


@mcp.tool()
async def toggle_favorite_query(user_id: str, query_id: str) -> dict[str, Any]:
    """Flip the favourite flag of a saved query."""
    return await toggle_favorite_query_impl(get_runtime(), _session(user_id), query_id)


@mcp.tool()
async def delete_saved_query(user_id: str, query_id: str) -> dict[str, Any]:
    """Delete a saved query."""
    return await delete_saved_query_impl(get_runtime(), _session(user_id), query_id)


@mcp.tool()
def list_notifications(user_id: str, unread_only: bool = False, mark_read: bool = False) -> dict[str, Any]:
    """Return the caller's in-app alert notifications, newest first."""
    return list_notifications_impl(
        get_runtime(),
        _session(user_id),
        unread_only=unread_only,
        mark_read=mark_read,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Start the MCP server over stdio."""
    configure_logging()
    LOGGER.debug("Starting MCP server (transport=stdio)")
    _ = argv or sys.argv[1:]
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
