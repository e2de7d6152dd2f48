from typing import Iterator

from fastapi import BackgroundTasks, HTTPException, Request
from sqlalchemy.orm import Session

from points_engine.extensions import db
from points_engine.schemas.point import LedgerEntryOut
from points_engine.security import token_subject
from points_engine.services.awarding import Notify
from points_engine.services.notifications import notify_points_awarded


def get_db() -> Iterator[Session]:
    """Dependency to provide a database session."""
    session = db.new_session()
    try:
        yield session
    finally:
        session.close()


def get_notifier(background_tasks: BackgroundTasks) -> Notify:
    """Queues the notification for a committed ledger entry to run after the response."""
    def notify(entry) -> None:
        background_tasks.add_task(notify_points_awarded, LedgerEntryOut.model_validate(entry))
    return notify


def require_actor(request: Request) -> str:
    """Identifies the operator calling the manual award endpoints from a bearer token."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    actor = token_subject(token)
    if actor is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return actor
