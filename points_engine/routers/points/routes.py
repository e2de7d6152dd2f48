from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from points_engine.dependencies import get_db, get_notifier, require_actor
from points_engine.schemas.point import ExamPass, LoginRecord, PointsEvent
from points_engine.services.awarding import Notify
from points_engine.services.handlers import (
    award_event,
    record_exam_pass,
    record_login,
    sweep_login_streaks,
)

router = APIRouter(prefix="/points", tags=["points"])


@router.post("/events", name="points.events")
def points_event(
    payload: PointsEvent,
    actor: str = Depends(require_actor),
    session: Session = Depends(get_db),
    notify: Notify = Depends(get_notifier),
):
    return award_event(session, payload.event_type, payload.data, awarded_by=actor, notify=notify)


@router.post("/logins", name="points.logins")
def login(
    payload: LoginRecord,
    session: Session = Depends(get_db),
    notify: Notify = Depends(get_notifier),
):
    return record_login(session, payload.user_id, login_time=payload.login_time, notify=notify)


@router.post("/exams/{attempt_id}/pass", name="points.exam_pass")
def exam_pass(
    attempt_id: str,
    payload: ExamPass,
    session: Session = Depends(get_db),
    notify: Notify = Depends(get_notifier),
):
    return record_exam_pass(session, attempt_id, payload.user_id, notify=notify)


@router.post("/sweeps/login-streaks", name="points.sweep_login_streaks")
def login_streak_sweep(
    reference_date: Optional[date] = None,
    actor: str = Depends(require_actor),
    session: Session = Depends(get_db),
    notify: Notify = Depends(get_notifier),
):
    return sweep_login_streaks(session, reference_date=reference_date, notify=notify)
