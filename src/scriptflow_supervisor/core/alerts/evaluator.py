"""Periodic threshold evaluation of active alerts.

For each active alert the condition query is counted over the trailing
window `[now - time_window_minutes, now]`. Reaching the threshold fires the
alert: the repository's compare-and-swap moves it to `triggered`, one history
row is appended, and notifications are dispatched. Falling short changes
nothing; a triggered alert stays triggered until the owner re-arms it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from ..executor import QueryExecutor
from ..models import LogQuery
from ..storage.base import AlertRepository, record_to_dict
from .models import Alert, AlertHistory, AlertStatus, NotificationResult
from .notifications import AlertDispatcher

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_SIZE = 5


@dataclass(frozen=True, slots=True)
class EvaluationOutcome:
    alert_id: str
    matched_count: int = 0
    fired: bool = False
    history: AlertHistory | None = None
    error: str | None = None


def window_for(alert: Alert, now: datetime) -> tuple[datetime, datetime]:
    return now - timedelta(minutes=alert.time_window_minutes), now


def in_cooldown(alert: Alert, now: datetime) -> bool:
    """True when the alert already fired inside the current window."""
    if alert.last_triggered_at is None:
        return False
    since, _ = window_for(alert, now)
    return alert.last_triggered_at >= since


class AlertEvaluator:
    def __init__(
        self,
        repo: AlertRepository,
        executor: QueryExecutor,
        dispatcher: AlertDispatcher | None = None,
        *,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
    ) -> None:
        if sample_size < 0:
            raise ValueError("sample_size must be >= 0")
        self.repo = repo
        self.executor = executor
        self.dispatcher = dispatcher or AlertDispatcher()
        self.sample_size = sample_size

    async def evaluate_alert(self, alert: Alert, *, now: datetime | None = None) -> EvaluationOutcome:
        """Evaluate one alert; store errors propagate to the caller."""
        now = now or datetime.now(UTC)
        if alert.status is not AlertStatus.ACTIVE:
            return EvaluationOutcome(alert_id=alert.id)

        since, until = window_for(alert, now)
        parsed = self.executor.parse(alert.condition_query, now=now)
        matched = await self.executor.count(parsed, since=since, until=until)
        if matched < alert.threshold:
            return EvaluationOutcome(alert_id=alert.id, matched_count=matched)
        if in_cooldown(alert, now):
            logger.debug("Alert %s already fired in this window", alert.id)
            return EvaluationOutcome(alert_id=alert.id, matched_count=matched)

        sample = []
        if self.sample_size:
            sample = await self.executor.execute(
                LogQuery(parsed=parsed, start=since, end=until),
                limit=self.sample_size,
            )

        fired = await self.repo.record_trigger(
            alert.id,
            expected_last_triggered_at=alert.last_triggered_at,
            now=now,
        )
        if fired is None:
            logger.info("Alert %s was fired or removed concurrently; skipping", alert.id)
            return EvaluationOutcome(alert_id=alert.id, matched_count=matched)

        try:
            result = await self.dispatcher.dispatch(fired, sample, matched)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Notification dispatch for alert %s failed: %s", alert.id, exc)
            result = NotificationResult(sent=False, error=str(exc))

        entry = AlertHistory(
            alert_id=alert.id,
            triggered_at=now,
            matched_logs_count=matched,
            notification_sent=result.sent,
            notification_error=result.error,
            sample_logs=[record_to_dict(r) for r in sample],
        )
        try:
            await self.repo.add_history(entry)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # The swap already committed: the alert fired even though its row was lost.
            logger.exception("Alert %s fired but its history row could not be written", alert.id)
            return EvaluationOutcome(
                alert_id=alert.id,
                matched_count=matched,
                fired=True,
                error=f"history not recorded: {exc}",
            )
        logger.info(
            "Alert %s (%s) fired: %s matches >= %s in %s min",
            alert.id,
            alert.name,
            matched,
            alert.threshold,
            alert.time_window_minutes,
        )
        return EvaluationOutcome(alert_id=alert.id, matched_count=matched, fired=True, history=entry)

    async def run_once(self, *, now: datetime | None = None) -> list[EvaluationOutcome]:
        """Evaluate every active alert; one alert's failure never stops the pass."""
        now = now or datetime.now(UTC)
        outcomes: list[EvaluationOutcome] = []
        for alert in await self.repo.list_alerts():
            if alert.status is not AlertStatus.ACTIVE:
                continue
            try:
                outcomes.append(await self.evaluate_alert(alert, now=now))
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.exception("Evaluation of alert %s failed", alert.id)
                outcomes.append(EvaluationOutcome(alert_id=alert.id, error=str(exc)))
        fired = sum(1 for o in outcomes if o.fired)
        logger.debug("Alert pass at %s: %s evaluated, %s fired", now.isoformat(), len(outcomes), fired)
        return outcomes
