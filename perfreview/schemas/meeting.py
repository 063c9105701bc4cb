from datetime import datetime
from pydantic import BaseModel, Field


class MeetingCreate(BaseModel):
    scheduled_at: datetime
    duration_minutes: int = Field(default=45, ge=15, le=180)
    meeting_link: str | None = Field(default=None, max_length=500)


class MeetingUpdate(BaseModel):
    notes: str | None = None


class MeetingOut(BaseModel):
    id: str
    review_id: str
    manager_id: str
    employee_id: str
    scheduled_at: datetime
    duration_minutes: int
    meeting_link: str | None
    status: str
    notes: str | None
    created_at: datetime
