"""initial review schema

Revision ID: 5f2c1a9d7e10
Revises:
Create Date: 2026-10-19 09:12:41.203118
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "5f2c1a9d7e10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_DOCUMENT = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

ROLES = "'founder','l1_manager','l2_manager','l3_manager','peer'"
CATEGORIES = "'software_developer','ml_engineer','qa_engineer','ui_ux_developer'"
REVIEW_STATUSES = (
    "'not_started','self_assessment','feedback_collection','manager_review',"
    "'meeting_scheduled','completed','appeal_requested','appeal_completed'"
)
FEEDBACK_RATINGS = (
    "technical_competence",
    "communication_skills",
    "team_collaboration",
    "problem_solving",
    "leadership_potential",
    "reliability",
    "innovation",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "employees",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("category", sa.String(40), nullable=True),
        sa.Column("department", sa.String(120), nullable=True),
        sa.Column("manager_id", sa.Uuid(), sa.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(f"role IN ({ROLES})", name="ck_employees_role"),
        sa.CheckConstraint(f"category IS NULL OR category IN ({CATEGORIES})", name="ck_employees_category"),
    )
    op.create_index("ix_employees_email", "employees", ["email"], unique=True)
    op.create_index("ix_employees_manager_id", "employees", ["manager_id"])

    op.create_table(
        "review_cycles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("self_assessment_deadline", sa.Date(), nullable=False),
        sa.Column("feedback_deadline", sa.Date(), nullable=False),
        sa.Column("review_deadline", sa.Date(), nullable=False),
        sa.Column("meeting_deadline", sa.Date(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_by_id", sa.Uuid(), sa.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "employee_reviews",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("employee_id", sa.Uuid(), sa.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("cycle_id", sa.Uuid(), sa.ForeignKey("review_cycles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(30), nullable=False),
        sa.Column("self_assessment_data", JSON_DOCUMENT, nullable=True),
        sa.Column("current_ctc", sa.Numeric(14, 2), nullable=True),
        sa.Column("expected_ctc", sa.Numeric(14, 2), nullable=True),
        sa.Column("expected_increment_percentage", sa.Numeric(6, 2), nullable=True),
        sa.Column("l3_rating", sa.Integer(), nullable=True),
        sa.Column("kra_scores", JSON_DOCUMENT, nullable=True),
        sa.Column("weighted_rating", sa.Numeric(3, 1), nullable=True),
        sa.Column("final_rating", sa.Integer(), nullable=True),
        sa.Column("final_increment_percentage", sa.Numeric(6, 2), nullable=True),
        sa.Column("l3_comments", sa.Text(), nullable=True),
        sa.Column("l2_comments", sa.Text(), nullable=True),
        sa.Column("l1_comments", sa.Text(), nullable=True),
        sa.Column("founder_comments", sa.Text(), nullable=True),
        sa.Column("meeting_notes", sa.Text(), nullable=True),
        sa.Column("appeal_used", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.UniqueConstraint("employee_id", "cycle_id", name="uq_employee_reviews_employee_cycle"),
        sa.CheckConstraint(f"status IN ({REVIEW_STATUSES})", name="ck_employee_reviews_status"),
        sa.CheckConstraint(
            "final_rating IS NULL OR (final_rating BETWEEN 1 AND 5)",
            name="ck_employee_reviews_final_rating",
        ),
        sa.CheckConstraint(
            "l3_rating IS NULL OR (l3_rating BETWEEN 1 AND 5)",
            name="ck_employee_reviews_l3_rating",
        ),
        sa.CheckConstraint(
            "(status <> 'completed') OR (final_rating IS NOT NULL AND final_increment_percentage IS NOT NULL)",
            name="ck_employee_reviews_completed_fields",
        ),
    )
    op.create_index("ix_employee_reviews_employee_id", "employee_reviews", ["employee_id"])
    op.create_index("ix_employee_reviews_cycle_id", "employee_reviews", ["cycle_id"])

    op.create_table(
        "feedback",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("review_id", sa.Uuid(), sa.ForeignKey("employee_reviews.id", ondelete="CASCADE"), nullable=False),
        sa.Column("feedback_from_id", sa.Uuid(), sa.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False),
        *(sa.Column(field, sa.Integer(), nullable=False) for field in FEEDBACK_RATINGS),
        sa.Column("overall_feedback", sa.Text(), nullable=False),
        sa.Column("strengths", sa.Text(), nullable=False),
        sa.Column("improvements", sa.Text(), nullable=True),
        sa.Column("is_anonymous", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("review_id", "feedback_from_id", name="uq_feedback_review_rater"),
        *(
            sa.CheckConstraint(f"{field} BETWEEN 1 AND 5", name=f"ck_feedback_{field}")
            for field in FEEDBACK_RATINGS
        ),
    )
    op.create_index("ix_feedback_review_id", "feedback", ["review_id"])

    op.create_table(
        "meetings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("review_id", sa.Uuid(), sa.ForeignKey("employee_reviews.id", ondelete="CASCADE"), nullable=False),
        sa.Column("manager_id", sa.Uuid(), sa.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("employee_id", sa.Uuid(), sa.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="45"),
        sa.Column("meeting_link", sa.String(500), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("status IN ('scheduled','completed','cancelled')", name="ck_meetings_status"),
        sa.CheckConstraint("duration_minutes BETWEEN 15 AND 180", name="ck_meetings_duration"),
    )
    op.create_index("ix_meetings_review_id", "meetings", ["review_id"])

    op.create_table(
        "appeals",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("review_id", sa.Uuid(), sa.ForeignKey("employee_reviews.id", ondelete="CASCADE"), nullable=False),
        sa.Column("employee_id", sa.Uuid(), sa.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("desired_outcome", sa.Text(), nullable=True),
        sa.Column("supporting_documents", JSON_DOCUMENT, nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("manager_id", sa.Uuid(), sa.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True),
        sa.Column("manager_response", sa.Text(), nullable=True),
        sa.Column("final_rating", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("status IN ('pending','accepted','rejected','completed')", name="ck_appeals_status"),
        sa.CheckConstraint("final_rating IS NULL OR (final_rating BETWEEN 1 AND 5)", name="ck_appeals_final_rating"),
        sa.CheckConstraint("(status = 'pending') OR (manager_id IS NOT NULL)", name="ck_appeals_handled_by"),
    )
    op.create_index("ix_appeals_review_id", "appeals", ["review_id"])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("actor_id", sa.Uuid(), sa.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("entity_type", sa.String(50), nullable=True),
        sa.Column("entity_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_activity_logs_entity_id", "activity_logs", ["entity_id"])


def downgrade() -> None:
    op.drop_table("activity_logs")
    op.drop_table("appeals")
    op.drop_table("meetings")
    op.drop_table("feedback")
    op.drop_table("employee_reviews")
    op.drop_table("review_cycles")
    op.drop_table("employees")
