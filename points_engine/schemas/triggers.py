from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class LifecycleEvent(BaseModel):
    type: Literal["create", "update"]
    entity_id: str


class LifecycleTrigger(BaseModel):
    """Record create/update notification from the entity store."""

    event: LifecycleEvent
    data: Optional[dict[str, Any]] = None
    old_data: Optional[dict[str, Any]] = None

    @property
    def is_update(self) -> bool:
        return self.event.type == "update"


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class AttendanceData(_Payload):
    student_user_id: str
    status: Literal["present", "absent", "late"]
    date: date
    cohort_id: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _lower(cls, value):
        return value.lower() if isinstance(value, str) else value


class QuizResultData(_Payload):
    week_number: Optional[int] = None
    first_place_user_id: Optional[str] = None
    second_place_user_id: Optional[str] = None
    third_place_user_id: Optional[str] = None
    cohort_id: Optional[str] = None

    def winners(self) -> dict[str, Optional[str]]:
        return {
            "first": self.first_place_user_id,
            "second": self.second_place_user_id,
            "third": self.third_place_user_id,
        }


class GradeData(_Payload):
    submission_id: str
    rubric_grade: Literal["Poor", "Fair", "Good", "Excellent"]


class SubmissionData(_Payload):
    user_id: Optional[str] = None
    cohort_id: Optional[str] = None
    assignment_template_id: Optional[str] = None
    submission_kind: Optional[str] = None
    status: Optional[str] = None
    submitted_date: Optional[datetime] = None
