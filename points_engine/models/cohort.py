from points_engine.extensions import db
from points_engine.models._ids import new_id


class Cohort(db.Model):
    __tablename__ = "cohorts"

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    name = db.Column(db.String(200), nullable=False)
    start_date = db.Column(db.Date, nullable=False)

    def __repr__(self):
        return f"<Cohort id={self.id} {self.name} start={self.start_date}>"


class AssignmentTemplate(db.Model):
    __tablename__ = "assignment_templates"

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    title = db.Column(db.String(255), nullable=False)
    week_number = db.Column(db.Integer, nullable=True)
