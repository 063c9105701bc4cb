from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class AppealCreate(BaseModel):
    reason: str
    desired_outcome: str
    supporting_documents: list[str] | None = None


class AppealResolve(BaseModel):
    decision: Literal["accepted", "rejected"]
    response: str | None = None
    override_rating: int | None = Field(default=None, ge=1, le=5)


class AppealComplete(BaseModel):
    final_rating: int | None = Field(default=None, ge=1, le=5)


class AppealOut(BaseModel):
    id: str
    review_id: str
    employee_id: str
    reason: str
    desired_outcome: str | None
    supporting_documents: list[str] | None
    status: str
    manager_id: str | None
    manager_response: str | None
    final_rating: int | None
    created_at: datetime
    updated_at: datetime
