"""Background loop driving AlertEvaluator passes."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from ..events import LogEventBus
from .evaluator import AlertEvaluator

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 60.0


class AlertScheduler:
    """Run `AlertEvaluator.run_once` every `interval` seconds.

    With a LogEventBus, a freshly written log wakes the loop early so alerts
    react without waiting for the next tick. Several records arriving while a
    pass runs collapse into a single follow-up pass.
    """

    def __init__(
        self,
        evaluator: AlertEvaluator,
        *,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        bus: LogEventBus | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.evaluator = evaluator
        self.interval = interval
        self.bus = bus
        self.passes = 0
        self._wake = asyncio.Event()
        self._stopping = asyncio.Event()
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def start(self) -> None:
        if self.running:
            return
        self._stopping.clear()
        self._tasks = [asyncio.create_task(self._loop(), name="alert-scheduler")]
        if self.bus is not None:
            self._tasks.append(asyncio.create_task(self._listen(self.bus), name="alert-scheduler-feed"))
        logger.info("Alert scheduler started (interval=%ss, push=%s)", self.interval, self.bus is not None)

    def trigger(self) -> None:
        """Request an evaluation pass as soon as possible."""
        self._wake.set()

    async def _listen(self, bus: LogEventBus) -> None:
        async for _record in bus.subscribe():
            self._wake.set()

    async def _wait_for_tick(self) -> None:
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._wake.wait(), timeout=self.interval)
        self._wake.clear()

    async def _loop(self) -> None:
        while not self._stopping.is_set():
            try:
                await self.evaluator.run_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Alert evaluation pass failed")
            self.passes += 1
            await self._wait_for_tick()

    async def stop(self) -> None:
        self._stopping.set()
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if tasks:
            logger.info("Alert scheduler stopped after %s pass(es)", self.passes)
