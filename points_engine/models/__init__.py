# Re-export models so external code can keep using: from points_engine.models import User, PointsLedger, ...
from .user import User
from .cohort import Cohort, AssignmentTemplate
from .submission import Submission, SubmissionKind
from .login_event import LoginEvent
from .notification import Notification
from .point_ledger import PointsLedger, SourceType, SYSTEM_ACTOR

__all__ = [
    # collaborator records
    "User", "Cohort", "AssignmentTemplate", "Submission", "SubmissionKind", "LoginEvent",
    # ledger
    "PointsLedger", "SourceType", "SYSTEM_ACTOR",
    # notifications
    "Notification",
]
