from datetime import date, datetime, time, timedelta, timezone

from points_engine.models import LoginEvent
from points_engine.services.ledger_store import LedgerStore


def ledger(session, **fields):
    return LedgerStore(session).filter(**fields)


def add_logins(session, user_id, days):
    for d in days:
        session.add(LoginEvent(user_id=user_id, login_time=datetime.combine(d, time(9, 30), tzinfo=timezone.utc)))
    session.commit()


def days_back(reference: date, *offsets: int):
    return [reference - timedelta(days=n) for n in offsets]
