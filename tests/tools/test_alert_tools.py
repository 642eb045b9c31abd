from __future__ import annotations

import pytest

from scriptflow_supervisor.core.alerts import AlertNotFoundError
from scriptflow_supervisor.core.models import Session
from scriptflow_supervisor.core.saved_queries import SavedQueryNotFoundError
from scriptflow_supervisor.runtime import Runtime
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
from scriptflow_supervisor.tools.search import log_event_impl


async def _create(runtime: Runtime, session: Session, **kw: object) -> dict:
    args: dict = {
        "name": "Erros no banco",
        "condition_query": "type=erro origin=database",
        "threshold": 2,
        "time_window_minutes": 60,
    }
    args.update(kw)
    return await create_alert_impl(runtime, session, **args)


@pytest.mark.asyncio
async def test_alert_crud(runtime: Runtime, session: Session) -> None:
    created = await _create(runtime, session, email_recipients=["ops@exemplo.com"])
    assert created["status"] == "active"
    assert created["trigger_count"] == 0
    assert created["email_recipients"] == ["ops@exemplo.com"]

    updated = await update_alert_impl(runtime, session, created["id"], threshold=5, name=None)
    assert updated["threshold"] == 5
    assert updated["name"] == "Erros no banco"

    paused = await toggle_alert_impl(runtime, session, created["id"])
    assert paused["status"] == "paused"

    listed = await list_alerts_impl(runtime, session)
    assert listed["count"] == 1
    assert listed["alerts"][0]["id"] == created["id"]

    assert await delete_alert_impl(runtime, session, created["id"]) == {"deleted": created["id"]}
    assert (await list_alerts_impl(runtime, session))["count"] == 0
    with pytest.raises(AlertNotFoundError):
        await delete_alert_impl(runtime, session, created["id"])


@pytest.mark.asyncio
async def test_create_alert_validates_input(runtime: Runtime, session: Session) -> None:
    with pytest.raises(ValueError):
        await _create(runtime, session, threshold=0)
    with pytest.raises(ValueError):
        await _create(runtime, session, name="  ")
    with pytest.raises(ValueError):
        await _create(runtime, session, email_recipients=["sem-arroba"])
    assert (await list_alerts_impl(runtime, session))["count"] == 0


@pytest.mark.asyncio
async def test_other_users_cannot_touch_alert(runtime: Runtime, session: Session) -> None:
    created = await _create(runtime, session)
    intruder = Session(user_id="user-2")

    with pytest.raises(AlertNotFoundError):
        await toggle_alert_impl(runtime, intruder, created["id"])
    with pytest.raises(AlertNotFoundError):
        await update_alert_impl(runtime, intruder, created["id"], threshold=9)
    assert (await list_alerts_impl(runtime, intruder))["count"] == 0


@pytest.mark.asyncio
async def test_evaluate_fires_and_notifies(runtime: Runtime, session: Session) -> None:
    alert = await _create(runtime, session, custom_message="Banco instável")
    await log_event_impl(runtime, session, event_type="erro", message="timeout", origin="database")

    quiet = await evaluate_alerts_impl(runtime)
    assert quiet == {
        "evaluated": 1,
        "fired": 0,
        "outcomes": [{"alert_id": alert["id"], "matched_count": 1, "fired": False}],
    }

    await log_event_impl(runtime, session, event_type="erro", message="timeout de novo", origin="database")
    fired = await evaluate_alerts_impl(runtime)
    assert fired["fired"] == 1
    (outcome,) = fired["outcomes"]
    assert outcome["matched_count"] == 2
    assert outcome["notification_sent"] is True
    assert outcome["notification_error"] is None

    history = await alert_history_impl(runtime, session, alert_id=alert["id"])
    assert history["count"] == 1
    assert history["history"][0]["id"] == outcome["history_id"]
    assert len(history["history"][0]["sample_logs"]) == 2

    (current,) = (await list_alerts_impl(runtime, session))["alerts"]
    assert current["status"] == "triggered"
    assert current["trigger_count"] == 1

    inbox = list_notifications_impl(runtime, session, mark_read=True)
    assert inbox["unread"] == 1
    assert inbox["notifications"][0]["message"] == "Banco instável"
    assert list_notifications_impl(runtime, session, unread_only=True)["count"] == 0


@pytest.mark.asyncio
async def test_saved_query_tools(runtime: Runtime, session: Session) -> None:
    first = await save_query_impl(runtime, session, name="Logins", query="type=login")
    second = await save_query_impl(runtime, session, name="Erros", query="type=erro", description="turno")

    starred = await toggle_favorite_query_impl(runtime, session, second["id"])
    assert starred["is_favorite"] is True

    listed = await list_saved_queries_impl(runtime, session)
    assert listed["count"] == 2
    assert listed["queries"][0]["id"] == second["id"]

    assert await delete_saved_query_impl(runtime, session, first["id"]) == {"deleted": first["id"]}
    assert (await list_saved_queries_impl(runtime, session))["count"] == 1
    with pytest.raises(SavedQueryNotFoundError):
        await toggle_favorite_query_impl(runtime, Session(user_id="user-2"), second["id"])
