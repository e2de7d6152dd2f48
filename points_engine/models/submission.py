from points_engine.extensions import db
from points_engine.models._ids import new_id


class SubmissionKind:
    ASSIGNMENT = "assignment"
    PROJECT = "project"


class Submission(db.Model):
    __tablename__ = "submissions"

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False)
    cohort_id = db.Column(db.String(64), db.ForeignKey("cohorts.id"), nullable=True)
    assignment_template_id = db.Column(db.String(64), db.ForeignKey("assignment_templates.id"), nullable=True)
    submission_kind = db.Column(db.String(20), nullable=False, default=SubmissionKind.ASSIGNMENT)
    status = db.Column(db.String(20), nullable=False, default="draft")  # draft|submitted|graded|needs_revision
    submitted_date = db.Column(db.DateTime(timezone=True), nullable=True)

    student = db.relationship("User")
    cohort = db.relationship("Cohort")
    template = db.relationship("AssignmentTemplate")
