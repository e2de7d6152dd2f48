from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from points_engine.services.ledger_store import LedgerStore

log = logging.getLogger(__name__)


def reverse_changed_fact(
    session: Session,
    user_id: Optional[str],
    source_type: str,
    source_id: str,
    old_points: int,
    new_points: Optional[int] = None,
) -> int:
    """
    Delete the ledger entries for a fact whose rewarded value changed.

    Every entry at the coordinate goes, whatever it is worth, so a ledger that
    missed an earlier update still ends up matching the current record. A
    redelivered update removes and then re-awards the same value. A zero-point
    previous value never produced an entry and is a no-op, as is an unchanged
    value. The delete is flushed but not committed so it lands in the same
    transaction as the replacement award.
    Returns the number of entries removed.
    """
    if not user_id or old_points == 0:
        return 0
    if new_points is not None and new_points == old_points:
        return 0

    try:
        removed = LedgerStore(session).delete_for_source(user_id, source_type, source_id)
    except SQLAlchemyError:
        session.rollback()
        log.exception("reversal failed user_id=%s source=%s:%s", user_id, source_type, source_id)
        raise

    if removed:
        log.info("reversed %d entry(s) user_id=%s source=%s:%s", removed, user_id, source_type, source_id)
    return removed
