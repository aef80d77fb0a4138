"""Standalone worker that runs the hourly task-reminder job."""
from __future__ import annotations

import logging
from typing import Callable

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from dreamplan.core.config import settings
from dreamplan.core.logging import configure_logging
from dreamplan.db.session import SessionLocal
from dreamplan.services.reminder_jobs import ReminderRunResult, run_task_reminders

logger = logging.getLogger(__name__)

REMINDER_JOB_ID = "task_reminder_job"


def run_reminder_job(session_factory: Callable[[], Session] = SessionLocal) -> ReminderRunResult:
    """One reminder pass in its own session; failures propagate to the scheduler's job log."""
    session = session_factory()
    try:
        result = run_task_reminders(session)
    finally:
        session.close()
    logger.info(
        "Reminder job complete: due=%s sent=%s skipped=%s",
        result.users_due,
        result.reminders_sent,
        result.skipped,
    )
    return result


def build_scheduler() -> BlockingScheduler:
    scheduler = BlockingScheduler(timezone=settings.scheduler_timezone)
    # Reminder times are matched per hour, so one run at a fixed minute is enough.
    scheduler.add_job(
        run_reminder_job,
        trigger=CronTrigger(minute=settings.reminder_job_minute, timezone=settings.scheduler_timezone),
        id=REMINDER_JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    return scheduler


def main() -> None:
    configure_logging(log_level=settings.log_level)
    if not settings.scheduler_enabled:
        logger.warning("Scheduler disabled (SCHEDULER_ENABLED=false); worker exiting")
        return

    scheduler = build_scheduler()
    logger.info(
        "Scheduler worker starting: reminders hourly at :%02d %s",
        settings.reminder_job_minute,
        settings.scheduler_timezone,
    )
    if settings.jobs_run_on_startup:
        run_reminder_job()

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):  # pragma: no cover - manual stop
        logger.info("Scheduler worker stopped")


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
