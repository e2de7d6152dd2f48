import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STREAK_SWEEP_ENABLED"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient

from points_engine.dependencies import get_db
from points_engine.extensions import db
from points_engine.main import app
from points_engine.models import User


@pytest.fixture(name="session")
def session_fixture():
    db.create_all()
    session = db.new_session()
    yield session
    session.close()
    db.drop_all()


@pytest.fixture(name="client")
def client_fixture(session):
    def get_db_override():
        yield session

    app.dependency_overrides[get_db] = get_db_override
    client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="sent")
def sent_fixture():
    return []


@pytest.fixture(name="notify")
def notify_fixture(sent):
    return sent.append


@pytest.fixture(name="student")
def student_fixture(session):
    user = User(id="stu-ada", email="ada@example.com", full_name="Ada Lovelace", app_role="student")
    session.add(user)
    session.commit()
    return user
