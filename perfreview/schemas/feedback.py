from datetime import datetime
from pydantic import BaseModel, Field


class FeedbackCreate(BaseModel):
    technical_competence: int = Field(ge=1, le=5)
    communication_skills: int = Field(ge=1, le=5)
    team_collaboration: int = Field(ge=1, le=5)
    problem_solving: int = Field(ge=1, le=5)
    leadership_potential: int = Field(ge=1, le=5)
    reliability: int = Field(ge=1, le=5)
    innovation: int = Field(ge=1, le=5)
    overall_feedback: str
    strengths: str
    improvements: str | None = None
    is_anonymous: bool = True


class FeedbackOut(BaseModel):
    id: str
    review_id: str
    feedback_from_id: str | None  # hidden when anonymous
    technical_competence: int
    communication_skills: int
    team_collaboration: int
    problem_solving: int
    leadership_potential: int
    reliability: int
    innovation: int
    overall_feedback: str
    strengths: str
    improvements: str | None
    is_anonymous: bool
    created_at: datetime
