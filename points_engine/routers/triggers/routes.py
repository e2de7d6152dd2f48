from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from points_engine.dependencies import get_db, get_notifier
from points_engine.schemas.triggers import LifecycleTrigger
from points_engine.services.awarding import Notify
from points_engine.services.handlers import (
    process_attendance,
    process_grade,
    process_quiz_result,
    process_submission_timing,
)

router = APIRouter(prefix="/triggers", tags=["triggers"])


@router.post("/attendance", name="triggers.attendance")
def attendance_trigger(
    trigger: LifecycleTrigger,
    session: Session = Depends(get_db),
    notify: Notify = Depends(get_notifier),
):
    return process_attendance(session, trigger, notify=notify)


@router.post("/quiz-results", name="triggers.quiz_results")
def quiz_result_trigger(
    trigger: LifecycleTrigger,
    session: Session = Depends(get_db),
    notify: Notify = Depends(get_notifier),
):
    return process_quiz_result(session, trigger, notify=notify)


@router.post("/grades", name="triggers.grades")
def grade_trigger(
    trigger: LifecycleTrigger,
    session: Session = Depends(get_db),
    notify: Notify = Depends(get_notifier),
):
    return process_grade(session, trigger, notify=notify)


@router.post("/submissions", name="triggers.submissions")
def submission_trigger(
    trigger: LifecycleTrigger,
    session: Session = Depends(get_db),
    notify: Notify = Depends(get_notifier),
):
    return process_submission_timing(session, trigger, notify=notify)
