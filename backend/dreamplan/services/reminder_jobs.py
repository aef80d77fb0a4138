"""Batch job that nudges users about unfinished daily tasks."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from time import perf_counter
from typing import Optional
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import func
from sqlalchemy.orm import Session

from dreamplan.core.config import settings
from dreamplan.db.models.activity_log import ActivityLog
from dreamplan.db.models.notification_preferences import NotificationPreferences
from dreamplan.db.models.task import DailyTask
from dreamplan.observability.metrics import log_metric
from dreamplan.observability.tracing import trace
from dreamplan.services.notifier import STATUS_SKIPPED, DeliveryResult, Notifier, ReminderNotice, get_notifier

logger = logging.getLogger(__name__)

REMINDER_TYPE = "task_reminder"

REMINDER_MESSAGES = {
    "motivational": "🔥 You've got {count} habit(s) waiting today. Every rep counts, go crush it!",
    "funny": "😄 {count} task(s) are feeling lonely. Go give them some attention before they file a complaint.",
    "professional": "You have {count} incomplete task(s) scheduled for today.",
}


@dataclass
class ReminderRunResult:
    users_due: int = 0
    reminders_sent: int = 0
    skipped: int = 0


def reminder_hour(reminder_time: str) -> Optional[int]:
    try:
        hour = int(reminder_time.split(":", 1)[0])
    except (AttributeError, ValueError):
        return None
    return hour if 0 <= hour <= 23 else None


def reminder_message(tone: str, count: int) -> str:
    template = REMINDER_MESSAGES.get(tone) or REMINDER_MESSAGES["motivational"]
    return template.format(count=count)


def run_task_reminders(
    db: Session,
    *,
    now: Optional[datetime] = None,
    notifier: Optional[Notifier] = None,
) -> ReminderRunResult:
    """Send reminders to users whose reminder hour matches ``now`` (scheduler timezone)."""
    notifier = notifier or get_notifier()
    now = now or datetime.now(ZoneInfo(settings.scheduler_timezone))
    result = ReminderRunResult()
    start = perf_counter()

    with trace("notifications.task_reminders", metadata={"hour": now.hour}):
        candidates = db.query(NotificationPreferences).filter(NotificationPreferences.enabled.is_(True)).all()
        for prefs in candidates:
            if REMINDER_TYPE not in (prefs.notification_types or []):
                continue
            if reminder_hour(prefs.reminder_time) != now.hour:
                continue
            result.users_due += 1
            outcome = _remind_user(db, prefs, notifier)
            if outcome.skipped:
                result.skipped += 1
            else:
                result.reminders_sent += 1

    log_metric("notifications.task_reminders.sent", result.reminders_sent)
    log_metric("notifications.task_reminders.duration_ms", (perf_counter() - start) * 1000)
    return result


def _remind_user(
    db: Session,
    prefs: NotificationPreferences,
    notifier: Notifier,
) -> DeliveryResult:
    open_tasks = _count_open_tasks(db, prefs.user_id)
    message = reminder_message(prefs.ai_tone, open_tasks)

    if not settings.notifications_enabled:
        result = DeliveryResult(status=STATUS_SKIPPED, reason="notifications disabled")
    elif open_tasks == 0:
        result = DeliveryResult(status=STATUS_SKIPPED, reason="no open tasks")
    else:
        result = notifier.deliver(
            ReminderNotice(user_id=prefs.user_id, message=message, open_tasks=open_tasks, tone=prefs.ai_tone)
        )

    db.add(
        ActivityLog(
            user_id=prefs.user_id,
            action_type="notification_task_reminder",
            action_payload={
                "open_tasks": open_tasks,
                "tone": prefs.ai_tone,
                "provider": notifier.name,
                "result": result.as_payload(),
            },
            reason="Notification skipped" if result.skipped else "Notification dispatched",
        )
    )
    db.commit()
    return result


def _count_open_tasks(db: Session, user_id: UUID) -> int:
    return (
        db.query(func.count(DailyTask.id))
        .filter(DailyTask.user_id == user_id, DailyTask.completed.is_(False))
        .scalar()
        or 0
    )
