"""Query execution: raw string -> ParsedQuery -> filtered read on a LogStore.

The same executor serves the interactive console and the alert evaluator,
so both see identical filter semantics.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, tzinfo

from .models import LogQuery, LogRecord, ParsedQuery, SearchPage, Session
from .query_parser import parse_query
from .storage.base import LogStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 1000


class QueryExecutionError(RuntimeError):
    """The log store could not answer a query; safe to retry or report."""


class QueryExecutor:
    def __init__(
        self,
        store: LogStore,
        *,
        tz: tzinfo = UTC,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.store = store
        self.tz = tz
        self.page_size = page_size

    def parse(self, raw: str, *, now: datetime | None = None) -> ParsedQuery:
        return parse_query(raw, now=now, tz=self.tz)

    async def execute(
        self,
        query: LogQuery,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[LogRecord]:
        """Run a LogQuery and return matching records, newest first.

        Bad paging raises ValueError; anything the store raises becomes
        QueryExecutionError.
        """
        if offset < 0:
            raise ValueError("offset must be >= 0")
        if limit is not None and limit < 0:
            raise ValueError("limit must be >= 0")
        try:
            return await self.store.search(query, offset=offset, limit=limit)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise QueryExecutionError(f"Log search failed: {exc}") from exc

    async def count(
        self,
        parsed: ParsedQuery,
        *,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> int:
        """Count matches of `parsed`, additionally restricted to [since, until]."""
        try:
            return await self.store.count(LogQuery(parsed=parsed, start=since, end=until))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise QueryExecutionError(f"Log count failed: {exc}") from exc

    async def search(
        self,
        session: Session,
        raw: str,
        *,
        page: int = 1,
        page_size: int | None = None,
        base: LogQuery | None = None,
        now: datetime | None = None,
    ) -> SearchPage:
        """Parse `raw` and return one page of results plus the total count.

        `base` carries the console side filters (event type, severity, origin,
        start/end); its own `parsed` member is ignored.
        """
        if page < 1:
            raise ValueError("page must be >= 1")
        size = page_size or self.page_size
        if size < 1:
            raise ValueError("page_size must be >= 1")
        size = min(size, MAX_PAGE_SIZE)

        parsed = self.parse(raw, now=now)
        base = base or LogQuery()
        query = LogQuery(
            parsed=parsed,
            event_type=base.event_type,
            severity=base.severity,
            origin=base.origin,
            start=base.start,
            end=base.end,
        )
        logger.debug("Search by %s: %r -> %s", session.user_id, raw, parsed)

        records = await self.execute(query, offset=(page - 1) * size, limit=size)
        try:
            total = await self.store.count(query)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise QueryExecutionError(f"Log count failed: {exc}") from exc

        return SearchPage(
            records=records,
            total_count=total,
            page=page,
            page_size=size,
            parsed=parsed,
        )


class LatestQueryRunner:
    """Last-query-wins wrapper around QueryExecutor.search.

    Submitting a new search cancels the one still in flight; the superseded
    call returns None instead of stale results.
    """

    def __init__(self, executor: QueryExecutor) -> None:
        self.executor = executor
        self._current: asyncio.Task[SearchPage] | None = None

    async def search(self, session: Session, raw: str, **kwargs) -> SearchPage | None:
        previous = self._current
        if previous is not None and not previous.done():
            previous.cancel()

        task = asyncio.create_task(self.executor.search(session, raw, **kwargs))
        self._current = task
        try:
            return await task
        except asyncio.CancelledError:
            if task.cancelled() and self._current is not task:
                return None
            raise
        finally:
            if self._current is task:
                self._current = None
