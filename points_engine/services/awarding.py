from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from points_engine.models import SYSTEM_ACTOR, PointsLedger
from points_engine.services.ledger_store import LedgerStore
from points_engine.services.rules import CandidateEntry

log = logging.getLogger(__name__)

ALREADY_AWARDED = "already awarded"

Notify = Callable[[PointsLedger], None]


@dataclass(frozen=True)
class AwardResult:
    entry: Optional[PointsLedger] = None
    skipped: Optional[str] = None

    @property
    def awarded(self) -> bool:
        return self.entry is not None


def award_points(
    session: Session,
    user_id: str,
    candidate: CandidateEntry,
    *,
    awarded_by: str = SYSTEM_ACTOR,
    notify: Optional[Notify] = None,
    commit: bool = True,
) -> AwardResult:
    """
    Idempotently write one candidate to the ledger for ``user_id``.

    The unique (user_id, source_type, source_id) constraint decides whether the
    fact was already rewarded; there is no separate existence check. If
    commit=True (default), commits the session (including anything the caller
    staged, such as a reversal) and then hands the entry to ``notify``;
    otherwise the caller is responsible for committing and notifying.
    """
    if candidate.points == 0:
        raise ValueError("Ledger entries require a non-zero point value")

    entry = PointsLedger(
        user_id=user_id,
        points=candidate.points,
        reason=candidate.reason,
        source_type=candidate.source_type,
        source_id=candidate.source_id,
        awarded_by=awarded_by or SYSTEM_ACTOR,
    )
    store = LedgerStore(session)
    try:
        created = store.insert_if_absent(entry)
        if commit:
            session.commit()
    except SQLAlchemyError:
        session.rollback()
        log.exception(
            "ledger write failed user_id=%s source=%s:%s",
            user_id, candidate.source_type, candidate.source_id,
        )
        raise

    if created is None:
        return AwardResult(skipped=ALREADY_AWARDED)

    log.info(
        "awarded %+d to user_id=%s reason=%s source=%s:%s",
        entry.points, user_id, entry.reason, entry.source_type, entry.source_id,
    )
    if commit:
        dispatch_notification(entry, notify)
    return AwardResult(entry=entry)


def dispatch_notification(entry: PointsLedger, notify: Optional[Notify]) -> None:
    """Best effort: the ledger entry is already committed and stays that way."""
    if notify is None:
        return
    try:
        notify(entry)
    except Exception:
        log.exception("notification dispatch failed for ledger entry %s", entry.id)
