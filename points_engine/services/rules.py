"""
Point values and dedup coordinates for every rewarded event.

Everything here is pure: callers pass the event facts in and get back a
``CandidateEntry`` (or ``None`` when the outcome is worth zero points). The
ledger write happens elsewhere.

The reason strings are matched by prefix downstream, so their shape must not
change.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional

from points_engine.models.point_ledger import SourceType

RULES_VERSION = "2024.1"

ATTENDANCE_POINTS = {"present": 10, "absent": -10, "late": 0}

WEEKLY_QUIZ_POINTS = {"first": 75, "second": 50, "third": 25}
FINAL_QUIZ_POINTS = {"first": 400, "second": 200, "third": 100}
FINAL_QUIZ_WEEK = 8
QUIZ_POSITIONS = ("first", "second", "third")

RUBRIC_GRADE_POINTS = {"Poor": 0, "Fair": 25, "Good": 50, "Excellent": 100}

ON_TIME_SUBMISSION_POINTS = 10
LATE_SUBMISSION_POINTS = -15

STREAK_LENGTH = 7
STREAK_BONUS_POINTS = 10
ABSENCE_DAYS = 3
ABSENCE_PENALTY_POINTS = -15

EXAM_PASS_POINTS = 100
DAILY_LOGIN_POINTS = 5


class EventKind(str, Enum):
    ATTENDANCE = "attendance"
    QUIZ = "quiz"
    ASSIGNMENT_GRADE = "assignment_grade"
    SUBMISSION_TIMING = "submission_timing"
    LOGIN_STREAK = "login_streak"
    EXAM_PASS = "exam_pass"


@dataclass(frozen=True)
class CandidateEntry:
    points: int
    reason: str
    source_type: str
    source_id: str


def attendance_points(status: Optional[str]) -> int:
    if status is None:
        return 0
    try:
        return ATTENDANCE_POINTS[status]
    except KeyError:
        raise ValueError(f"Unknown attendance status {status!r}") from None


def attendance_candidate(record_id: str, status: str, on: date | str) -> Optional[CandidateEntry]:
    points = attendance_points(status)
    if points == 0:
        return None
    return CandidateEntry(
        points=points,
        reason=f"attendance_{status}_{_iso(on)}",
        source_type=SourceType.ATTENDANCE,
        source_id=str(record_id),
    )


def quiz_source_id(quiz_result_id: str, position: str) -> str:
    return f"quiz_{quiz_result_id}_{position}"


def quiz_points(week_number: Optional[int], position: str) -> int:
    table = FINAL_QUIZ_POINTS if week_number == FINAL_QUIZ_WEEK else WEEKLY_QUIZ_POINTS
    return table[position]


def quiz_candidates(
    quiz_result_id: str,
    week_number: Optional[int],
    winners: dict[str, Optional[str]],
) -> list[tuple[str, str, CandidateEntry]]:
    """Fan a quiz result out into one ``(position, user_id, candidate)`` per named winner.

    ``winners`` maps ``"first"``/``"second"``/``"third"`` to a user id; missing
    or empty places are skipped.
    """
    kind = "final" if week_number == FINAL_QUIZ_WEEK else "weekly"
    week_suffix = f"_week{week_number}" if week_number else ""
    out = []
    for position in QUIZ_POSITIONS:
        user_id = winners.get(position)
        if not user_id:
            continue
        out.append((
            position,
            user_id,
            CandidateEntry(
                points=quiz_points(week_number, position),
                reason=f"quiz_{kind}_{position}_place{week_suffix}",
                source_type=SourceType.ACHIEVEMENT,
                source_id=quiz_source_id(quiz_result_id, position),
            ),
        ))
    return out


def grade_points(rubric_grade: Optional[str]) -> int:
    if rubric_grade is None:
        return 0
    try:
        return RUBRIC_GRADE_POINTS[rubric_grade]
    except KeyError:
        raise ValueError(f"Unknown rubric grade {rubric_grade!r}") from None


def grade_candidate(grade_id: str, rubric_grade: str) -> Optional[CandidateEntry]:
    points = grade_points(rubric_grade)
    if points == 0:
        return None
    return CandidateEntry(
        points=points,
        reason=f"assignment_grade_{rubric_grade.lower()}",
        source_type=SourceType.ASSIGNMENT,
        source_id=str(grade_id),
    )


def submission_timing_candidate(submission_id: str, submitted_at: datetime, due_at: datetime) -> CandidateEntry:
    on_time = submitted_at <= due_at
    return CandidateEntry(
        points=ON_TIME_SUBMISSION_POINTS if on_time else LATE_SUBMISSION_POINTS,
        reason="assignment_submitted_on_time" if on_time else "assignment_submitted_late",
        source_type=SourceType.ASSIGNMENT,
        source_id=f"submission_timing_{submission_id}",
    )


def streak_bonus_candidate(on: date) -> CandidateEntry:
    return CandidateEntry(
        points=STREAK_BONUS_POINTS,
        reason="7_day_login_streak_bonus",
        source_type=SourceType.BONUS,
        source_id=f"streak_7_{on.isoformat()}",
    )


def absence_penalty_candidate(on: date) -> CandidateEntry:
    return CandidateEntry(
        points=ABSENCE_PENALTY_POINTS,
        reason="3_day_absence_penalty",
        source_type=SourceType.BONUS,
        source_id=f"absence_3day_{on.isoformat()}",
    )


def daily_login_candidate(on: date) -> CandidateEntry:
    return CandidateEntry(
        points=DAILY_LOGIN_POINTS,
        reason="daily_login",
        source_type=SourceType.BONUS,
        source_id=f"daily_login_{on.isoformat()}",
    )


def exam_pass_candidate(attempt_id: str) -> CandidateEntry:
    return CandidateEntry(
        points=EXAM_PASS_POINTS,
        reason="exam_passed",
        source_type=SourceType.EXAM,
        source_id=str(attempt_id),
    )


def _iso(value: date | str) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)
