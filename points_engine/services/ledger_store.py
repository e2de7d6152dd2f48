from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from points_engine.models import PointsLedger

log = logging.getLogger(__name__)

DEDUP_CONSTRAINT = "uq_ledger_source"


class LedgerStore:
    """Append-only access to ``points_ledger`` rows over one session.

    Nothing here commits; the caller owns the transaction.
    """

    def __init__(self, session: Session):
        self.session = session

    def filter(self, **fields: Any) -> list[PointsLedger]:
        stmt = select(PointsLedger).filter_by(**fields).order_by(PointsLedger.created_at)
        return list(self.session.execute(stmt).scalars().all())

    def insert_if_absent(self, entry: PointsLedger) -> Optional[PointsLedger]:
        """
        Insert ``entry`` unless a row with the same (user_id, source_type, source_id)
        exists. Returns the inserted entry, or None when the unique constraint
        rejected it. Runs in a SAVEPOINT so a duplicate leaves the surrounding
        transaction usable.
        """
        try:
            with self.session.begin_nested():
                self.session.add(entry)
        except IntegrityError as exc:
            if not _is_dedup_violation(exc):
                raise
            log.debug(
                "ledger entry exists user_id=%s source=%s:%s",
                entry.user_id, entry.source_type, entry.source_id,
            )
            return None
        return entry

    def delete_for_source(
        self,
        user_id: str,
        source_type: str,
        source_id: str,
    ) -> int:
        """Delete the entries for one dedup coordinate."""
        stmt = delete(PointsLedger).where(
            PointsLedger.user_id == user_id,
            PointsLedger.source_type == source_type,
            PointsLedger.source_id == source_id,
        )
        result = self.session.execute(stmt)
        return result.rowcount or 0


def _is_dedup_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    # Postgres names the constraint; SQLite lists the columns.
    return DEDUP_CONSTRAINT in message or (
        "unique" in message and "points_ledger.source_id" in message
    )
