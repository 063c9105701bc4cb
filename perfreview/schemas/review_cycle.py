from datetime import date, datetime
from pydantic import BaseModel, Field


class ReviewCycleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    start_date: date
    end_date: date
    self_assessment_deadline: date
    feedback_deadline: date
    review_deadline: date
    meeting_deadline: date


class ReviewCycleOut(BaseModel):
    id: str
    name: str
    start_date: date
    end_date: date
    self_assessment_deadline: date
    feedback_deadline: date
    review_deadline: date
    meeting_deadline: date
    is_active: bool
    created_by_id: str | None
    created_at: datetime
    updated_at: datetime


class CloseFeedbackOut(BaseModel):
    cycle_id: str
    advanced_review_ids: list[str]
