from points_engine.extensions import db
from points_engine.models._ids import new_id


class LoginEvent(db.Model):
    __tablename__ = "login_events"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False)
    login_time = db.Column(db.DateTime(timezone=True), nullable=False)

    user = db.relationship("User", back_populates="login_events")

    __table_args__ = (
        db.Index("ix_login_events_user", "user_id"),
    )
