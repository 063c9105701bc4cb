import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from perfreview.db.base import Base, JSONDocument
from perfreview.models.enums import AppealStatus, sql_in


class Appeal(Base):
    __tablename__ = "appeals"
    __table_args__ = (
        CheckConstraint(f"status IN ({sql_in(AppealStatus)})", name="ck_appeals_status"),
        CheckConstraint(
            "final_rating IS NULL OR (final_rating BETWEEN 1 AND 5)",
            name="ck_appeals_final_rating",
        ),
        # a handled appeal always records who handled it
        CheckConstraint(
            "(status = 'pending') OR (manager_id IS NOT NULL)",
            name="ck_appeals_handled_by",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    review_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("employee_reviews.id", ondelete="CASCADE"), nullable=False, index=True
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False)

    reason: Mapped[str] = mapped_column(Text, nullable=False)
    desired_outcome: Mapped[str | None] = mapped_column(Text, nullable=True)
    supporting_documents: Mapped[list[str] | None] = mapped_column(JSONDocument, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=AppealStatus.PENDING.value)

    # handling manager, set on first response
    manager_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True
    )
    manager_response: Mapped[str | None] = mapped_column(Text, nullable=True)
    final_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )
