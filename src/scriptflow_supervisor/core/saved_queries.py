"""Saved console queries (per user, with favourites)."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from .executor import QueryExecutor
from .models import SearchPage, Session
from .storage.base import SavedQueryRepository

logger = logging.getLogger(__name__)


class SavedQueryNotFoundError(KeyError):
    """Raised when a saved query id is unknown or owned by another user."""


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SavedQuery(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    name: str
    description: str | None = None
    query: str
    is_favorite: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("name", "query")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


def _sort_key(q: SavedQuery) -> tuple[bool, datetime]:
    return (q.is_favorite, q.updated_at)


class SavedQueryService:
    """CRUD for saved queries, scoped to the session user."""

    def __init__(self, repo: SavedQueryRepository, executor: QueryExecutor | None = None) -> None:
        self.repo = repo
        self.executor = executor

    async def _owned(self, session: Session, query_id: str) -> SavedQuery:
        q = await self.repo.get_query(query_id)
        if q is None or q.user_id != session.user_id:
            raise SavedQueryNotFoundError(query_id)
        return q

    async def create(
        self,
        session: Session,
        *,
        name: str,
        query: str,
        description: str | None = None,
        is_favorite: bool = False,
    ) -> SavedQuery:
        saved = SavedQuery(
            user_id=session.user_id,
            name=name,
            query=query,
            description=description,
            is_favorite=is_favorite,
        )
        await self.repo.put_query(saved)
        logger.info("Saved query %s (%s) for %s", saved.id, saved.name, session.user_id)
        return saved

    async def update(
        self,
        session: Session,
        query_id: str,
        *,
        name: str | None = None,
        query: str | None = None,
        description: str | None = None,
        is_favorite: bool | None = None,
    ) -> SavedQuery:
        current = await self._owned(session, query_id)
        data = current.model_dump()
        for key, value in (
            ("name", name),
            ("query", query),
            ("description", description),
            ("is_favorite", is_favorite),
        ):
            if value is not None:
                data[key] = value
        data["updated_at"] = _utcnow()
        updated = SavedQuery.model_validate(data)
        await self.repo.put_query(updated)
        return updated

    async def delete(self, session: Session, query_id: str) -> None:
        await self._owned(session, query_id)
        await self.repo.delete_query(query_id)

    async def toggle_favorite(self, session: Session, query_id: str) -> SavedQuery:
        current = await self._owned(session, query_id)
        return await self.update(session, query_id, is_favorite=not current.is_favorite)

    async def list(self, session: Session) -> list[SavedQuery]:
        """Favourites first, then most recently updated."""
        queries = await self.repo.list_queries(session.user_id)
        return sorted(queries, key=_sort_key, reverse=True)

    async def run(self, session: Session, query_id: str, *, page: int = 1) -> SearchPage:
        if self.executor is None:
            raise RuntimeError("SavedQueryService was built without an executor")
        saved = await self._owned(session, query_id)
        return await self.executor.search(session, saved.query, page=page)
