from datetime import datetime, timezone

from sqlalchemy.orm import configure_mappers

from points_engine.extensions import db
from points_engine.models import LoginEvent, Submission, User


def test_mappers_configure():
    configure_mappers()

    assert User.login_events.property.secondary is None
    assert Submission.student.property.mapper.class_ is User


def test_login_events_relationship(session, student):
    session.add(LoginEvent(user_id=student.id, login_time=datetime(2024, 3, 14, 9, 30, tzinfo=timezone.utc)))
    session.commit()

    fetched = session.execute(db.select(User).where(User.id == student.id)).scalar_one()

    assert [event.user.id for event in fetched.login_events] == [student.id]
