"""Append-only JSON-lines log store.

One LogRecord per line. Reads stream the file asynchronously and apply the
same predicates as the memory store; malformed lines are skipped.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from pathlib import Path

import aiofiles

from ..models import LogQuery, LogRecord
from ..predicates import compile_query
from .base import StoreError, newest_first, page, record_from_dict, record_to_dict

logger = logging.getLogger(__name__)


class JsonlLogStore:
    def __init__(
        self,
        path: str | Path,
        *,
        encoding: str = "utf-8",
        decode_errors: str = "replace",
    ) -> None:
        self.path = Path(path)
        self.encoding = encoding
        self.decode_errors = decode_errors
        self._write_lock = asyncio.Lock()

    async def append(self, record: LogRecord) -> None:
        line = json.dumps(record_to_dict(record), ensure_ascii=False)
        async with self._write_lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                async with aiofiles.open(self.path, mode="a", encoding=self.encoding) as f:
                    await f.write(line + "\n")
            except OSError as exc:
                raise StoreError(f"Cannot append to {self.path}: {exc}") from exc

    async def iter_records(self) -> AsyncIterator[LogRecord]:
        """Yield every well-formed record in file order."""
        if not self.path.exists():
            return
        try:
            async with aiofiles.open(
                self.path, encoding=self.encoding, errors=self.decode_errors
            ) as f:
                line_no = 0
                async for line in f:
                    line_no += 1
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        yield record_from_dict(json.loads(line))
                    except (ValueError, KeyError, TypeError) as exc:
                        logger.warning("Skipping malformed log line %s:%s: %s", self.path, line_no, exc)
        except OSError as exc:
            raise StoreError(f"Cannot read {self.path}: {exc}") from exc

    async def _matching(self, query: LogQuery) -> list[LogRecord]:
        pred = compile_query(query)
        return [r async for r in self.iter_records() if pred(r)]

    async def search(
        self,
        query: LogQuery,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[LogRecord]:
        return page(newest_first(await self._matching(query)), offset=offset, limit=limit)

    async def count(self, query: LogQuery) -> int:
        return len(await self._matching(query))
