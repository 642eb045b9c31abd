"""Alert rules, threshold evaluation and notifications."""

from __future__ import annotations

from .evaluator import AlertEvaluator, EvaluationOutcome, in_cooldown
from .models import (
    Alert,
    AlertChanges,
    AlertDraft,
    AlertHistory,
    AlertStatus,
    NotificationResult,
)
from .notifications import (
    AlertDispatcher,
    EmailRelayNotifier,
    InternalInbox,
    Notification,
    Notifier,
)
from .scheduler import AlertScheduler
from .service import AlertNotFoundError, AlertService

__all__ = [
    "Alert",
    "AlertChanges",
    "AlertDispatcher",
    "AlertDraft",
    "AlertEvaluator",
    "AlertHistory",
    "AlertNotFoundError",
    "AlertScheduler",
    "AlertService",
    "AlertStatus",
    "EmailRelayNotifier",
    "EvaluationOutcome",
    "InternalInbox",
    "Notification",
    "NotificationResult",
    "Notifier",
    "in_cooldown",
]
