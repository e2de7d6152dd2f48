from datetime import datetime, timezone

from points_engine.extensions import db
from points_engine.models._ids import new_id


class SourceType:
    ATTENDANCE = "attendance"
    ACHIEVEMENT = "achievement"
    ASSIGNMENT = "assignment"
    BONUS = "bonus"
    EXAM = "exam"

    ALL = (ATTENDANCE, ACHIEVEMENT, ASSIGNMENT, BONUS, EXAM)


SYSTEM_ACTOR = "system"


class PointsLedger(db.Model):
    """One immutable signed point adjustment. Corrections delete and re-create."""

    __tablename__ = "points_ledger"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    user_id = db.Column(db.String(64), nullable=False)
    points = db.Column(db.Integer, nullable=False)  # can be negative
    reason = db.Column(db.String(255), nullable=False)
    source_type = db.Column(db.String(20), nullable=False)  # attendance|achievement|assignment|bonus|exam
    source_id = db.Column(db.String(255), nullable=False)
    awarded_by = db.Column(db.String(64), nullable=False, default=SYSTEM_ACTOR)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("user_id", "source_type", "source_id", name="uq_ledger_source"),
        db.CheckConstraint("points <> 0", name="ck_ledger_points_nonzero"),
        db.Index("ix_ledger_user_id", "user_id"),
        db.Index("ix_ledger_created_at", "created_at"),
    )

    def __repr__(self):
        return (
            f"<PointsLedger id={self.id} user_id={self.user_id} points={self.points} "
            f"source={self.source_type}:{self.source_id}>"
        )
