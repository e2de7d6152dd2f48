"""
In-app notifications for new ledger entries.

Messages are chosen by prefix-matching the entry's reason. Dispatch is best
effort and always runs in its own session after the ledger commit.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from points_engine.config import settings
from points_engine.extensions import db
from points_engine.models import Notification
from points_engine.schemas.point import LedgerEntryOut

log = logging.getLogger(__name__)

# Too frequent to be worth an alert.
SKIP_REASONS = {"daily_login"}

DASHBOARD_URL = "/StudentDashboard"
ASSIGNMENTS_URL = "/StudentAssignments"

_PLACE = re.compile(r"(first|second|third)_place")


@dataclass(frozen=True)
class NotificationDraft:
    user_id: str
    type: str
    title: str
    message: str
    link_url: str
    related_entity_id: Optional[str]


def compose_notification(entry: LedgerEntryOut) -> Optional[NotificationDraft]:
    reason = entry.reason
    points = entry.points
    if reason in SKIP_REASONS:
        return None

    gain = points > 0
    link = DASHBOARD_URL

    if reason == "7_day_login_streak_bonus":
        ntype = "login_streak"
        title = "7-Day Login Streak!"
        message = f"You've logged in 7 days in a row! +{points} bonus points awarded."
    elif reason == "3_day_absence_penalty":
        ntype = "points_deducted"
        title = "Absence Penalty"
        message = f"You haven't logged in for 3 days. {points} points deducted. Keep your streak alive!"
    elif reason.startswith("attendance_present"):
        ntype = "points_awarded"
        title = f"+{points} Points - Attendance"
        message = f"You earned {points} points for attending today's session."
    elif reason.startswith("attendance_absent"):
        ntype = "points_deducted"
        title = f"{points} Points - Absence"
        message = f"{points} points deducted for missing today's session."
    elif reason.startswith("quiz_"):
        match = _PLACE.search(reason)
        place = match.group(1) if match else ""
        ntype = "achievement"
        title = f"+{points} Points - Quiz"
        message = f"You placed {place} in the quiz! +{points} points awarded."
    elif reason.startswith("assignment_grade"):
        ntype = "points_awarded"
        title = f"+{points} Points - Assignment Grade"
        message = f"You earned {points} points for your assignment quality."
        link = ASSIGNMENTS_URL
    elif reason == "assignment_submitted_on_time":
        ntype = "points_awarded"
        title = f"+{points} Points - On-Time Submission"
        message = f"Great job submitting on time! +{points} bonus points."
        link = ASSIGNMENTS_URL
    elif reason == "assignment_submitted_late":
        ntype = "points_deducted"
        title = f"{points} Points - Late Submission"
        message = f"Your assignment was submitted after the deadline. {points} points deducted."
        link = ASSIGNMENTS_URL
    elif reason == "exam_passed":
        ntype = "achievement"
        title = f"+{points} Points - Exam Passed"
        message = f"Congratulations on passing your exam! +{points} points awarded."
    else:
        ntype = "points_awarded" if gain else "points_deducted"
        title = f"+{points} Points Earned" if gain else f"{points} Points Deducted"
        message = f"Your points balance has been updated by {'+' if gain else ''}{points} points."

    return NotificationDraft(
        user_id=entry.user_id,
        type=ntype,
        title=title,
        message=message,
        link_url=link,
        related_entity_id=entry.id,
    )


def notify_inline(entry) -> None:
    notify_points_awarded(LedgerEntryOut.model_validate(entry))


def notify_points_awarded(entry: LedgerEntryOut) -> Optional[Notification]:
    """Create the notification row for ``entry``. Never raises."""
    if not settings.NOTIFICATIONS_ENABLED:
        return None
    draft = compose_notification(entry)
    if draft is None:
        return None

    session = None
    try:
        session = db.new_session()
        notification = Notification(
            user_id=draft.user_id,
            type=draft.type,
            title=draft.title,
            message=draft.message,
            link_url=draft.link_url,
            related_entity_id=draft.related_entity_id,
        )
        session.add(notification)
        session.commit()
        return notification
    except Exception:
        if session is not None:
            session.rollback()
        log.exception("could not create notification for ledger entry %s", entry.id)
        return None
    finally:
        if session is not None:
            session.close()
