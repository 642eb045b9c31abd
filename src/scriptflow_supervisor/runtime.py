"""Wiring of stores and services from a SupervisorConfig."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import SupervisorConfig
from .core.alerts import (
    AlertDispatcher,
    AlertEvaluator,
    AlertScheduler,
    AlertService,
    EmailRelayNotifier,
    InternalInbox,
)
from .core.events import LogEventBus
from .core.executor import QueryExecutor
from .core.saved_queries import SavedQueryService
from .core.storage.base import AlertRepository, LogStore, SavedQueryRepository
from .core.storage.jsonl import JsonlLogStore
from .core.storage.memory import MemoryAlertRepository, MemoryLogStore, MemorySavedQueryRepository
from .core.storage.sqlite import (
    SQLiteAlertRepository,
    SQLiteDatabase,
    SQLiteLogStore,
    SQLiteSavedQueryRepository,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Runtime:
    config: SupervisorConfig
    store: LogStore
    bus: LogEventBus
    executor: QueryExecutor
    alerts: AlertService
    inbox: InternalInbox
    evaluator: AlertEvaluator
    scheduler: AlertScheduler
    saved_queries: SavedQueryService
    db: SQLiteDatabase | None = None

    def close(self) -> None:
        if self.db is not None:
            self.db.close()


def _build_stores(
    config: SupervisorConfig,
) -> tuple[LogStore, AlertRepository, SavedQueryRepository, SQLiteDatabase | None]:
    if config.store == "sqlite":
        db = SQLiteDatabase(config.db_path)
        return SQLiteLogStore(db), SQLiteAlertRepository(db), SQLiteSavedQueryRepository(db), db
    if config.store == "jsonl":
        return JsonlLogStore(config.log_path), MemoryAlertRepository(), MemorySavedQueryRepository(), None
    return MemoryLogStore(), MemoryAlertRepository(), MemorySavedQueryRepository(), None


def build_runtime(config: SupervisorConfig) -> Runtime:
    store, alert_repo, query_repo, db = _build_stores(config)
    bus = LogEventBus()
    executor = QueryExecutor(store, tz=config.timezone, page_size=config.page_size)

    inbox = InternalInbox()
    email = None
    if config.email_webhook_url:
        email = EmailRelayNotifier(
            config.email_webhook_url,
            timeout=config.email_timeout_seconds,
            redact=config.redact_email,
        )
    dispatcher = AlertDispatcher(internal=inbox, email=email)
    evaluator = AlertEvaluator(
        alert_repo,
        executor,
        dispatcher,
        sample_size=config.alert_sample_size,
    )
    scheduler = AlertScheduler(evaluator, interval=config.alert_interval_seconds, bus=bus)
    logger.debug("Runtime built (store=%s, email=%s)", config.store, email is not None)
    return Runtime(
        config=config,
        store=store,
        bus=bus,
        executor=executor,
        alerts=AlertService(alert_repo),
        inbox=inbox,
        evaluator=evaluator,
        scheduler=scheduler,
        saved_queries=SavedQueryService(query_repo, executor),
        db=db,
    )
