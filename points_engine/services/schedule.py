from datetime import date, datetime, time as dtime, timedelta, timezone

SATURDAY = 5
UNLOCK_TIME = dtime(12, 0)
DUE_TIME = dtime(22, 0)


def first_saturday(start: date) -> date:
    return start + timedelta(days=(SATURDAY - start.weekday()) % 7)


def assignment_dates(cohort_start: date, week_number: int) -> tuple[datetime, datetime]:
    """Unlock and due datetimes (UTC) for a cohort's week N assignment.

    Week 1 unlocks at noon on the first Saturday on/after the cohort start and
    is due at 22:00 the following Friday.
    """
    if week_number < 1:
        raise ValueError(f"week_number must be >= 1, got {week_number}")
    unlock_day = first_saturday(cohort_start) + timedelta(weeks=week_number - 1)
    unlock = datetime.combine(unlock_day, UNLOCK_TIME, tzinfo=timezone.utc)
    due = datetime.combine(unlock_day + timedelta(days=6), DUE_TIME, tzinfo=timezone.utc)
    return unlock, due


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
