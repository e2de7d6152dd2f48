from datetime import datetime, timezone

from points_engine.extensions import db
from points_engine.models._ids import new_id


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(200), nullable=True)
    app_role = db.Column(db.String(20), nullable=False, default="student")  # student|tutor|admin
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    login_events = db.relationship(
        "LoginEvent",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<User id={self.id} {self.email} role={self.app_role}>"
