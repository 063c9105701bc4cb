import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from perfreview.db.base import Base

RATING_FIELDS = (
    "technical_competence",
    "communication_skills",
    "team_collaboration",
    "problem_solving",
    "leadership_potential",
    "reliability",
    "innovation",
)

# Only these four feed the 360° average used for the weighted rating
SCORED_RATING_FIELDS = (
    "technical_competence",
    "communication_skills",
    "team_collaboration",
    "problem_solving",
)


class Feedback(Base):
    __tablename__ = "feedback"
    __table_args__ = (
        UniqueConstraint("review_id", "feedback_from_id", name="uq_feedback_review_rater"),
        *(
            CheckConstraint(f"{field} BETWEEN 1 AND 5", name=f"ck_feedback_{field}")
            for field in RATING_FIELDS
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    review_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("employee_reviews.id", ondelete="CASCADE"), nullable=False, index=True
    )
    feedback_from_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False
    )

    technical_competence: Mapped[int] = mapped_column(Integer, nullable=False)
    communication_skills: Mapped[int] = mapped_column(Integer, nullable=False)
    team_collaboration: Mapped[int] = mapped_column(Integer, nullable=False)
    problem_solving: Mapped[int] = mapped_column(Integer, nullable=False)
    leadership_potential: Mapped[int] = mapped_column(Integer, nullable=False)
    reliability: Mapped[int] = mapped_column(Integer, nullable=False)
    innovation: Mapped[int] = mapped_column(Integer, nullable=False)

    overall_feedback: Mapped[str] = mapped_column(Text, nullable=False)
    strengths: Mapped[str] = mapped_column(Text, nullable=False)
    improvements: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
