"""
Entry points that turn raw triggers into ledger awards.

Each handler validates its payload, decides between the create and update
paths, runs the reversal (update only) and the award, and reports a
JSON-shaped result. Point values live in ``rules``; idempotency lives in
``awarding``.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from points_engine.models import (
    SYSTEM_ACTOR,
    AssignmentTemplate,
    Cohort,
    LoginEvent,
    SourceType,
    Submission,
    SubmissionKind,
    User,
)
from points_engine.schemas.triggers import (
    AttendanceData,
    GradeData,
    LifecycleEvent,
    LifecycleTrigger,
    QuizResultData,
    SubmissionData,
)
from points_engine.services.awarding import ALREADY_AWARDED, AwardResult, Notify, award_points
from points_engine.services.reversal import reverse_changed_fact
from points_engine.services.rules import (
    CandidateEntry,
    EventKind,
    attendance_candidate,
    attendance_points,
    daily_login_candidate,
    exam_pass_candidate,
    grade_candidate,
    grade_points,
    quiz_candidates,
    submission_timing_candidate,
)
from points_engine.services.schedule import as_utc, assignment_dates
from points_engine.services.streaks import analyse_logins, login_date, milestone_candidates, utc_today

log = logging.getLogger(__name__)


class PayloadError(ValueError):
    """The trigger payload is missing fields or carries values we cannot score."""


def _parse(model: type[BaseModel], data: dict[str, Any]):
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise PayloadError(f"invalid {model.__name__}: {details}") from exc


def _points_or_zero(scorer, value) -> int:
    # Previous values come from the store as-is; an unscoreable one never earned points.
    try:
        return scorer(value)
    except ValueError:
        return 0


# --- lifecycle triggers ------------------------------------------------------

def process_attendance(
    session: Session,
    trigger: LifecycleTrigger,
    *,
    notify: Optional[Notify] = None,
    awarded_by: str = SYSTEM_ACTOR,
) -> dict[str, Any]:
    """present +10, absent -10, late nothing. Status edits reverse the old award."""
    if not trigger.data:
        return {"skipped": "no data"}

    data = _parse(AttendanceData, trigger.data)
    record_id = trigger.event.entity_id
    old = trigger.old_data or {}
    old_status = str(old["status"]).lower() if old.get("status") else None

    if trigger.is_update and old_status == data.status:
        return {"skipped": "status unchanged"}

    if trigger.is_update and old_status:
        reverse_changed_fact(
            session,
            old.get("student_user_id") or data.student_user_id,
            SourceType.ATTENDANCE,
            record_id,
            old_points=_points_or_zero(attendance_points, old_status),
            new_points=attendance_points(data.status),
        )

    candidate = attendance_candidate(record_id, data.status, data.date)
    if candidate is None:
        session.commit()
        return {"skipped": f"{data.status} - no points"}

    result = award_points(session, data.student_user_id, candidate, awarded_by=awarded_by, notify=notify)
    if not result.awarded:
        return {"skipped": result.skipped}
    return {"awarded": candidate.points, "student_user_id": data.student_user_id, "status": data.status}


def process_quiz_result(
    session: Session,
    trigger: LifecycleTrigger,
    *,
    notify: Optional[Notify] = None,
    awarded_by: str = SYSTEM_ACTOR,
) -> dict[str, Any]:
    """Award each named 1st/2nd/3rd place independently."""
    if not trigger.data:
        return {"skipped": "no data"}

    data = _parse(QuizResultData, trigger.data)
    quiz_result_id = trigger.event.entity_id
    placements = quiz_candidates(quiz_result_id, data.week_number, data.winners())

    if trigger.is_update and trigger.old_data:
        old = _parse(QuizResultData, trigger.old_data)
        current = {c.source_id: (user_id, c.points) for _, user_id, c in placements}
        for _, old_user, old_candidate in quiz_candidates(quiz_result_id, old.week_number, old.winners()):
            if current.get(old_candidate.source_id) != (old_user, old_candidate.points):
                reverse_changed_fact(
                    session, old_user, SourceType.ACHIEVEMENT, old_candidate.source_id, old_candidate.points,
                )

    if not placements:
        session.commit()
        return {"skipped": "no placements"}

    awarded = []
    already = []
    for position, user_id, candidate in placements:
        result = award_points(session, user_id, candidate, awarded_by=awarded_by, notify=notify)
        if result.awarded:
            awarded.append({"user_id": user_id, "position": position, "points": candidate.points})
        else:
            already.append({"user_id": user_id, "position": position})
    return {"awarded": awarded, "already_awarded": already}


def process_grade(
    session: Session,
    trigger: LifecycleTrigger,
    *,
    notify: Optional[Notify] = None,
    awarded_by: str = SYSTEM_ACTOR,
) -> dict[str, Any]:
    """Rubric grade points; the student is found through the graded submission."""
    if not trigger.data:
        return {"skipped": "no data"}

    data = _parse(GradeData, trigger.data)
    grade_id = trigger.event.entity_id

    submission = session.get(Submission, data.submission_id)
    if submission is None:
        return {"skipped": "submission not found"}
    student_id = submission.user_id

    old_grade = (trigger.old_data or {}).get("rubric_grade")
    if trigger.is_update and old_grade == data.rubric_grade:
        return {"skipped": "grade unchanged"}

    if trigger.is_update and old_grade:
        reverse_changed_fact(
            session,
            student_id,
            SourceType.ASSIGNMENT,
            grade_id,
            old_points=_points_or_zero(grade_points, old_grade),
            new_points=grade_points(data.rubric_grade),
        )

    candidate = grade_candidate(grade_id, data.rubric_grade)
    if candidate is None:
        session.commit()
        return {"skipped": f"{data.rubric_grade} grade - no points"}

    result = award_points(session, student_id, candidate, awarded_by=awarded_by, notify=notify)
    if not result.awarded:
        return {"skipped": result.skipped}
    return {"awarded": candidate.points, "rubric_grade": data.rubric_grade, "student_user_id": student_id}


def process_submission_timing(
    session: Session,
    trigger: LifecycleTrigger,
    *,
    notify: Optional[Notify] = None,
    awarded_by: str = SYSTEM_ACTOR,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """+10 when an assignment lands before its Friday 22:00 deadline, -15 after."""
    if not trigger.data:
        return {"skipped": "no data"}

    data = _parse(SubmissionData, trigger.data)
    if data.submission_kind != SubmissionKind.ASSIGNMENT:
        return {"skipped": "not an assignment"}
    if data.status != "submitted":
        return {"skipped": "not submitted"}
    if trigger.is_update and (trigger.old_data or {}).get("status") == "submitted":
        return {"skipped": "already submitted before"}
    if not data.user_id:
        raise PayloadError("invalid SubmissionData: user_id: Field required")

    submission_id = trigger.event.entity_id
    submitted_at = as_utc(data.submitted_date or now or datetime.now(timezone.utc))

    if not data.assignment_template_id:
        return {"skipped": "no assignment template id"}
    template = session.get(AssignmentTemplate, data.assignment_template_id)
    if template is None:
        return {"skipped": "template not found"}
    if not template.week_number or not data.cohort_id:
        return {"skipped": "missing week_number or cohort_id"}
    cohort = session.get(Cohort, data.cohort_id)
    if cohort is None:
        return {"skipped": "cohort not found"}

    _, due_at = assignment_dates(cohort.start_date, template.week_number)
    candidate = submission_timing_candidate(submission_id, submitted_at, due_at)

    result = award_points(session, data.user_id, candidate, awarded_by=awarded_by, notify=notify)
    if not result.awarded:
        return {"skipped": "timing points already awarded"}
    return {
        "awarded": candidate.points,
        "is_on_time": candidate.points > 0,
        "due_date": due_at.isoformat(),
        "submitted_at": submitted_at.isoformat(),
    }


# --- logins and streaks -----------------------------------------------------

def _login_dates(session: Session, user_id: str) -> set[date]:
    times = session.execute(select(LoginEvent.login_time).where(LoginEvent.user_id == user_id)).scalars()
    return {login_date(t) for t in times}


def _award_milestones(
    session: Session,
    user_id: str,
    dates: set[date],
    reference_date: date,
    *,
    notify: Optional[Notify],
    awarded_by: str,
) -> tuple[int, list[tuple[CandidateEntry, AwardResult]]]:
    report = analyse_logins(dates, reference_date)
    outcomes = [
        (candidate, award_points(session, user_id, candidate, awarded_by=awarded_by, notify=notify))
        for candidate in milestone_candidates(report)
    ]
    return report.streak_length, outcomes


def process_login_streak(
    session: Session,
    user_id: str,
    *,
    reference_date: Optional[date] = None,
    notify: Optional[Notify] = None,
    awarded_by: str = SYSTEM_ACTOR,
) -> dict[str, Any]:
    reference_date = reference_date or utc_today()
    streak_length, outcomes = _award_milestones(
        session, user_id, _login_dates(session, user_id), reference_date,
        notify=notify, awarded_by=awarded_by,
    )
    if not outcomes:
        return {"skipped": "no streak milestone today", "streak_length": streak_length}

    awarded = [c for c, r in outcomes if r.awarded]
    if not awarded:
        return {"skipped": ALREADY_AWARDED, "streak_length": streak_length}
    return {
        "awarded": sum(c.points for c in awarded),
        "reasons": [c.reason for c in awarded],
        "streak_length": streak_length,
    }


def record_login(
    session: Session,
    user_id: str,
    *,
    login_time: Optional[datetime] = None,
    notify: Optional[Notify] = None,
) -> dict[str, Any]:
    """Store the day's first login, pay the daily login bonus and check milestones."""
    if session.get(User, user_id) is None:
        return {"skipped": "user not found"}

    login_time = as_utc(login_time or datetime.now(timezone.utc))
    day = login_date(login_time)
    first_today = day not in _login_dates(session, user_id)
    if first_today:
        session.add(LoginEvent(user_id=user_id, login_time=login_time))
        try:
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise

    daily = award_points(session, user_id, daily_login_candidate(day), notify=notify)
    streak = process_login_streak(session, user_id, reference_date=day, notify=notify)
    return {
        "login_recorded": first_today,
        "daily_login": daily.entry.points if daily.awarded else 0,
        "streak": streak,
    }


def sweep_login_streaks(
    session: Session,
    *,
    reference_date: Optional[date] = None,
    notify: Optional[Notify] = None,
) -> dict[str, Any]:
    """Daily pass over every active student using the same milestone rules as the login path."""
    reference_date = reference_date or utc_today()
    students = session.execute(
        select(User).where(User.app_role == "student", User.is_active.is_(True)).order_by(User.id)
    ).scalars().all()

    results = []
    errors = []
    for student in students:
        try:
            dates = _login_dates(session, student.id)
            if not dates:
                continue
            _, outcomes = _award_milestones(
                session, student.id, dates, reference_date,
                notify=notify, awarded_by=SYSTEM_ACTOR,
            )
        except SQLAlchemyError:
            session.rollback()
            log.exception("login streak sweep failed for student %s", student.id)
            errors.append({"student_id": student.id, "error": "ledger store failure"})
            continue
        for candidate, result in outcomes:
            if result.awarded:
                results.append({"student_id": student.id, "awarded": candidate.points, "reason": candidate.reason})

    log.info(
        "login streak sweep %s: %d students, %d awards, %d failures",
        reference_date.isoformat(), len(students), len(results), len(errors),
    )
    return {
        "processed": len(students),
        "reference_date": reference_date.isoformat(),
        "results": results,
        "errors": errors,
    }


# --- exams and the generic facade ---------------------------------------------

def record_exam_pass(
    session: Session,
    attempt_id: str,
    user_id: str,
    *,
    awarded_by: str = SYSTEM_ACTOR,
    notify: Optional[Notify] = None,
) -> dict[str, Any]:
    if session.get(User, user_id) is None:
        return {"skipped": "student not found"}
    candidate = exam_pass_candidate(attempt_id)
    result = award_points(session, user_id, candidate, awarded_by=awarded_by, notify=notify)
    if not result.awarded:
        return {"skipped": result.skipped}
    return {"awarded": candidate.points, "attempt_id": attempt_id, "user_id": user_id}


def _required(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not value:
        raise PayloadError(f"{key} is required")
    return str(value)


def _as_create(entity_id: str, data: dict[str, Any]) -> LifecycleTrigger:
    return LifecycleTrigger(event=LifecycleEvent(type="create", entity_id=entity_id), data=data)


def award_event(
    session: Session,
    event_type: str,
    data: dict[str, Any],
    *,
    awarded_by: str = SYSTEM_ACTOR,
    notify: Optional[Notify] = None,
) -> dict[str, Any]:
    """Manual/operator entry point covering every event kind in one call."""
    try:
        kind = EventKind(event_type)
    except ValueError:
        raise PayloadError(f"Unknown event_type {event_type!r}") from None

    if kind is EventKind.ATTENDANCE:
        trigger = _as_create(_required(data, "record_id"), data)
        return process_attendance(session, trigger, notify=notify, awarded_by=awarded_by)
    if kind is EventKind.QUIZ:
        trigger = _as_create(_required(data, "quiz_result_id"), data)
        return process_quiz_result(session, trigger, notify=notify, awarded_by=awarded_by)
    if kind is EventKind.ASSIGNMENT_GRADE:
        trigger = _as_create(_required(data, "grade_id"), data)
        return process_grade(session, trigger, notify=notify, awarded_by=awarded_by)
    if kind is EventKind.SUBMISSION_TIMING:
        trigger = _as_create(_required(data, "submission_id"), data)
        return process_submission_timing(session, trigger, notify=notify, awarded_by=awarded_by)
    if kind is EventKind.LOGIN_STREAK:
        return process_login_streak(session, _required(data, "user_id"), notify=notify, awarded_by=awarded_by)
    return record_exam_pass(
        session, _required(data, "attempt_id"), _required(data, "user_id"),
        awarded_by=awarded_by, notify=notify,
    )
