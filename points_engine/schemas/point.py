from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class LedgerEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    points: int
    reason: str
    source_type: str
    source_id: str
    awarded_by: str
    created_at: Optional[datetime] = None


class LoginRecord(BaseModel):
    user_id: str
    login_time: Optional[datetime] = None


class ExamPass(BaseModel):
    user_id: str


class PointsEvent(BaseModel):
    event_type: str
    data: dict
