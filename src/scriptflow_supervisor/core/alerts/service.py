"""Alert CRUD scoped to the session user."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from ..models import Session
from ..storage.base import AlertRepository
from .models import Alert, AlertChanges, AlertDraft, AlertHistory, AlertStatus

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100


class AlertNotFoundError(KeyError):
    """Raised when an alert id is unknown or owned by another user."""


class AlertService:
    def __init__(self, repo: AlertRepository) -> None:
        self.repo = repo

    async def _owned(self, session: Session, alert_id: str) -> Alert:
        alert = await self.repo.get_alert(alert_id)
        if alert is None or alert.user_id != session.user_id:
            raise AlertNotFoundError(alert_id)
        return alert

    async def create(self, session: Session, draft: AlertDraft) -> Alert:
        alert = Alert(user_id=session.user_id, **draft.model_dump())
        await self.repo.put_alert(alert)
        logger.info("Created alert %s (%s) for %s", alert.id, alert.name, session.user_id)
        return alert

    async def get(self, session: Session, alert_id: str) -> Alert:
        return await self._owned(session, alert_id)

    async def update(self, session: Session, alert_id: str, changes: AlertChanges) -> Alert:
        """Apply the explicitly set fields of `changes` and re-validate."""
        current = await self._owned(session, alert_id)
        data = current.model_dump()
        data.update(changes.model_dump(exclude_unset=True))
        data["updated_at"] = datetime.now(UTC)
        draft = AlertDraft.model_validate({k: data[k] for k in AlertDraft.model_fields})
        data.update(draft.model_dump())
        updated = Alert.model_validate(data)
        await self.repo.put_alert(updated)
        return updated

    async def delete(self, session: Session, alert_id: str) -> None:
        await self._owned(session, alert_id)
        await self.repo.delete_alert(alert_id)
        logger.info("Deleted alert %s", alert_id)

    async def list(self, session: Session) -> list[Alert]:
        """Newest first."""
        return await self.repo.list_alerts(session.user_id)

    async def toggle(self, session: Session, alert_id: str) -> Alert:
        """Pause an active alert; re-arm a paused or triggered one."""
        current = await self._owned(session, alert_id)
        status = AlertStatus.PAUSED if current.status is AlertStatus.ACTIVE else AlertStatus.ACTIVE
        return await self.update(session, alert_id, AlertChanges(status=status))

    async def history(
        self,
        session: Session,
        alert_id: str | None = None,
        *,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[AlertHistory]:
        """Firings newest first, for one alert or every alert the user owns."""
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if alert_id is not None:
            await self._owned(session, alert_id)
            return await self.repo.list_history(alert_id, limit=limit)
        rows: list[AlertHistory] = []
        for alert in await self.list(session):
            rows.extend(await self.repo.list_history(alert.id, limit=limit))
        rows.sort(key=lambda h: h.triggered_at, reverse=True)
        return rows[:limit]
