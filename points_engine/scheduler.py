from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from points_engine.config import settings
from points_engine.extensions import db
from points_engine.services.handlers import sweep_login_streaks
from points_engine.services.notifications import notify_inline

log = logging.getLogger(__name__)

SWEEP_JOB_ID = "login_streak_sweep"


def run_login_streak_sweep() -> dict:
    session = db.new_session()
    try:
        return sweep_login_streaks(session, notify=notify_inline)
    finally:
        session.close()


def schedule_login_streak_sweep(scheduler: BackgroundScheduler) -> None:
    """Registers the daily streak/absence sweep at the configured UTC time."""
    scheduler.add_job(
        run_login_streak_sweep,
        "cron",
        hour=settings.STREAK_SWEEP_HOUR,
        minute=settings.STREAK_SWEEP_MINUTE,
        timezone="UTC",
        id=SWEEP_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    log.info(
        "login streak sweep scheduled daily at %02d:%02d UTC",
        settings.STREAK_SWEEP_HOUR, settings.STREAK_SWEEP_MINUTE,
    )


def create_scheduler() -> BackgroundScheduler:
    scheduler = BackgroundScheduler(timezone="UTC")
    schedule_login_streak_sweep(scheduler)
    return scheduler
