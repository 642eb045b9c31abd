"""Alert tool implementations (CRUD, history, on-demand evaluation, inbox)."""

from __future__ import annotations

from typing import Any

from scriptflow_supervisor.core.alerts import (
    Alert,
    AlertChanges,
    AlertDraft,
    AlertHistory,
    EvaluationOutcome,
)
from scriptflow_supervisor.core.models import Session
from scriptflow_supervisor.runtime import Runtime


def alert_to_json(alert: Alert) -> dict[str, Any]:
    return alert.model_dump(mode="json")


def history_to_json(entry: AlertHistory) -> dict[str, Any]:
    return entry.model_dump(mode="json")


def _outcome_to_json(outcome: EvaluationOutcome) -> dict[str, Any]:
    d: dict[str, Any] = {
        "alert_id": outcome.alert_id,
        "matched_count": outcome.matched_count,
        "fired": outcome.fired,
    }
    if outcome.history is not None:
        d["history_id"] = outcome.history.id
        d["notification_sent"] = outcome.history.notification_sent
        d["notification_error"] = outcome.history.notification_error
    if outcome.error is not None:
        d["error"] = outcome.error
    return d


async def create_alert_impl(
    runtime: Runtime,
    session: Session,
    *,
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
    """Implementation for the `create_alert` MCP tool.

    Invalid input (threshold or window below 1, blank name or query, bad
    recipient address) raises pydantic's ValidationError, a ValueError.
    """
    draft = AlertDraft(
        name=name,
        description=description,
        condition_query=condition_query,
        threshold=threshold,
        time_window_minutes=time_window_minutes,
        notify_email=notify_email,
        notify_internal=notify_internal,
        email_recipients=email_recipients or [],
        custom_message=custom_message,
    )
    alert = await runtime.alerts.create(session, draft)
    return alert_to_json(alert)


async def update_alert_impl(
    runtime: Runtime,
    session: Session,
    alert_id: str,
    **fields: Any,
) -> dict[str, Any]:
    """Apply the non-None keyword arguments as a partial update."""
    changes = AlertChanges(**{k: v for k, v in fields.items() if v is not None})
    alert = await runtime.alerts.update(session, alert_id, changes)
    return alert_to_json(alert)


async def delete_alert_impl(runtime: Runtime, session: Session, alert_id: str) -> dict[str, Any]:
    await runtime.alerts.delete(session, alert_id)
    return {"deleted": alert_id}


async def toggle_alert_impl(runtime: Runtime, session: Session, alert_id: str) -> dict[str, Any]:
    alert = await runtime.alerts.toggle(session, alert_id)
    return alert_to_json(alert)


async def list_alerts_impl(runtime: Runtime, session: Session) -> dict[str, Any]:
    alerts = await runtime.alerts.list(session)
    return {"count": len(alerts), "alerts": [alert_to_json(a) for a in alerts]}


async def alert_history_impl(
    runtime: Runtime,
    session: Session,
    *,
    alert_id: str | None = None,
    limit: int = 100,
) -> dict[str, Any]:
    rows = await runtime.alerts.history(session, alert_id, limit=limit)
    return {"count": len(rows), "history": [history_to_json(h) for h in rows]}


async def evaluate_alerts_impl(runtime: Runtime) -> dict[str, Any]:
    """Run one evaluation pass over every active alert right now."""
    outcomes = await runtime.evaluator.run_once()
    return {
        "evaluated": len(outcomes),
        "fired": sum(1 for o in outcomes if o.fired),
        "outcomes": [_outcome_to_json(o) for o in outcomes],
    }


def list_notifications_impl(
    runtime: Runtime,
    session: Session,
    *,
    unread_only: bool = False,
    mark_read: bool = False,
) -> dict[str, Any]:
    items = runtime.inbox.list(session.user_id, unread_only=unread_only)
    unread = runtime.inbox.unread_count(session.user_id)
    if mark_read:
        runtime.inbox.mark_read(session.user_id)
    return {
        "unread": unread,
        "count": len(items),
        "notifications": [n.model_dump(mode="json") for n in items],
    }
