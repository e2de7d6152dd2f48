from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

from points_engine.services.rules import (
    ABSENCE_DAYS,
    STREAK_LENGTH,
    CandidateEntry,
    absence_penalty_candidate,
    streak_bonus_candidate,
)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def login_date(login_time: datetime) -> date:
    """Calendar date of a login, in UTC. Naive timestamps are taken as UTC."""
    if login_time.tzinfo is not None:
        login_time = login_time.astimezone(timezone.utc)
    return login_time.date()


def is_streak_milestone(streak_length: int) -> bool:
    return streak_length >= STREAK_LENGTH and streak_length % STREAK_LENGTH == 0


@dataclass(frozen=True)
class StreakReport:
    reference_date: date
    streak_length: int
    days_since_last_login: Optional[int]

    @property
    def streak_milestone(self) -> bool:
        return is_streak_milestone(self.streak_length)

    @property
    def absence_milestone(self) -> bool:
        # Exactly N days: a student who stays away is not re-penalised daily
        return self.days_since_last_login == ABSENCE_DAYS


def analyse_logins(dates: Iterable[date], reference_date: Optional[date] = None) -> StreakReport:
    """
    Count the consecutive-day login streak ending on ``reference_date`` and the
    gap since the most recent login. Logins after the reference date are ignored.
    """
    reference_date = reference_date or utc_today()
    ordered = sorted({d for d in dates if d <= reference_date}, reverse=True)

    streak = 0
    for i, d in enumerate(ordered):
        if d != reference_date - timedelta(days=i):
            break
        streak += 1

    days_since = (reference_date - ordered[0]).days if ordered else None
    return StreakReport(reference_date=reference_date, streak_length=streak, days_since_last_login=days_since)


def milestone_candidates(report: StreakReport) -> list[CandidateEntry]:
    out = []
    if report.streak_milestone:
        out.append(streak_bonus_candidate(report.reference_date))
    if report.absence_milestone:
        out.append(absence_penalty_candidate(report.reference_date))
    return out
