import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from perfreview.db.base import Base, JSONDocument
from perfreview.models.enums import ReviewStatus, sql_in


class EmployeeReview(Base):
    __tablename__ = "employee_reviews"
    __table_args__ = (
        UniqueConstraint("employee_id", "cycle_id", name="uq_employee_reviews_employee_cycle"),
        CheckConstraint(f"status IN ({sql_in(ReviewStatus)})", name="ck_employee_reviews_status"),
        CheckConstraint(
            "final_rating IS NULL OR (final_rating BETWEEN 1 AND 5)",
            name="ck_employee_reviews_final_rating",
        ),
        CheckConstraint(
            "l3_rating IS NULL OR (l3_rating BETWEEN 1 AND 5)",
            name="ck_employee_reviews_l3_rating",
        ),
        # completed reviews always carry a rating and an increment
        CheckConstraint(
            "(status <> 'completed') OR (final_rating IS NOT NULL AND final_increment_percentage IS NOT NULL)",
            name="ck_employee_reviews_completed_fields",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    cycle_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("review_cycles.id", ondelete="CASCADE"), nullable=False, index=True
    )

    status: Mapped[str] = mapped_column(String(30), nullable=False, default=ReviewStatus.NOT_STARTED.value)

    self_assessment_data: Mapped[dict[str, Any] | None] = mapped_column(JSONDocument, nullable=True)

    # compensation figures captured from the self-assessment
    current_ctc: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    expected_ctc: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    expected_increment_percentage: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)

    # rating inputs recorded during manager review
    l3_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    kra_scores: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONDocument, nullable=True)

    weighted_rating: Mapped[Decimal | None] = mapped_column(Numeric(3, 1), nullable=True)
    final_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    final_increment_percentage: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)

    l3_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    l2_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    l1_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    founder_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    meeting_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # write-once: set on the first appeal, never cleared
    appeal_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Optimistic locking
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version}

    employee = relationship("Employee")
    cycle = relationship("ReviewCycle")
