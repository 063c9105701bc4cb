import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ReviewCreate(BaseModel):
    employee_id: uuid.UUID | None = None  # defaults to the caller
    cycle_id: uuid.UUID | None = None  # defaults to the active cycle


class SelfAssessmentPayload(BaseModel):
    """Self-assessment form. Stored as submitted, keyed by the camelCase form names."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    current_ctc: Decimal = Field(alias="currentCtc", ge=0)
    expected_ctc: Decimal = Field(alias="expectedCtc", ge=0)
    expected_increment_percentage: Decimal = Field(alias="expectedIncrementPercentage", ge=0)
    career_goals: str = Field(alias="careerGoals", min_length=10)
    training_needs: str | None = Field(default=None, alias="trainingNeeds")
    work_from_home_preference: Literal["yes", "no", "hybrid"] = Field(alias="workFromHomePreference")
    project_contributions: str = Field(alias="projectContributions", min_length=10)
    team_collaboration: int = Field(alias="teamCollaboration", ge=1, le=5)
    initiatives: str = Field(min_length=10)
    challenges: str = Field(min_length=10)
    areas_of_improvement: str = Field(alias="areasOfImprovement", min_length=10)
    self_ratings: dict[str, int] | None = Field(default=None, alias="selfRatings")
    category_specific_fields: dict[str, str] | None = Field(default=None, alias="categorySpecificFields")
    additional_comments: str | None = Field(default=None, alias="additionalComments")

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class KraScore(BaseModel):
    kra: str = Field(min_length=1, max_length=200)
    weight: Decimal | None = Field(default=None, gt=0)
    score: int = Field(ge=1, le=5)


class ManagerInput(BaseModel):
    comments: str | None = None
    l3_rating: int | None = Field(default=None, ge=1, le=5)
    kra_scores: list[KraScore] | None = None


class FinalizeReview(BaseModel):
    final_increment_percentage: Decimal = Field(ge=0)
    final_rating: int | None = Field(default=None, ge=1, le=5)
    comments: str | None = None


class ReviewOut(BaseModel):
    id: str
    employee_id: str
    cycle_id: str
    status: str
    self_assessment_data: dict[str, Any] | None
    current_ctc: Decimal | None
    expected_ctc: Decimal | None
    expected_increment_percentage: Decimal | None
    l3_rating: int | None
    kra_scores: list[dict[str, Any]] | None
    weighted_rating: Decimal | None
    final_rating: int | None
    final_increment_percentage: Decimal | None
    l3_comments: str | None
    l2_comments: str | None
    l1_comments: str | None
    founder_comments: str | None
    meeting_notes: str | None
    appeal_used: bool
    created_at: datetime
    updated_at: datetime
    version: int


class RatingBreakdownOut(BaseModel):
    review_id: str
    inputs: dict[str, Decimal | None]
    substituted: list[str]
    weighted_rating: Decimal
    suggested_final_rating: int
