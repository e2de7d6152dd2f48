from datetime import datetime, timezone

from points_engine.extensions import db
from points_engine.models._ids import new_id


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    type = db.Column(db.String(40), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    link_url = db.Column(db.String(255), nullable=True)
    related_entity_id = db.Column(db.String(255), nullable=True)
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
