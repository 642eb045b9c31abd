"""Saved-query tool implementations."""

from __future__ import annotations

from typing import Any

from scriptflow_supervisor.core.models import Session
from scriptflow_supervisor.core.saved_queries import SavedQuery
from scriptflow_supervisor.runtime import Runtime


def _saved_to_json(saved: SavedQuery) -> dict[str, Any]:
    return saved.model_dump(mode="json")


async def save_query_impl(
    runtime: Runtime,
    session: Session,
    *,
    name: str,
    query: str,
    description: str | None = None,
    is_favorite: bool = False,
) -> dict[str, Any]:
    saved = await runtime.saved_queries.create(
        session,
        name=name,
        query=query,
        description=description,
        is_favorite=is_favorite,
    )
    return _saved_to_json(saved)


async def list_saved_queries_impl(runtime: Runtime, session: Session) -> dict[str, Any]:
    """Favourites first, then most recently updated."""
    queries = await runtime.saved_queries.list(session)
    return {"count": len(queries), "queries": [_saved_to_json(q) for q in queries]}


async def toggle_favorite_query_impl(runtime: Runtime, session: Session, query_id: str) -> dict[str, Any]:
    saved = await runtime.saved_queries.toggle_favorite(session, query_id)
    return _saved_to_json(saved)


async def delete_saved_query_impl(runtime: Runtime, session: Session, query_id: str) -> dict[str, Any]:
    await runtime.saved_queries.delete(session, query_id)
    return {"deleted": query_id}
