import logging
import uuid
from decimal import Decimal
from typing import Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from perfreview.core.activity import log_activity
from perfreview.core.errors import ConflictError, ValidationError
from perfreview.core.hierarchy import OrgChart
from perfreview.core.policy import Action, authorize
from perfreview.core.rating import mean
from perfreview.core.workflow import require_status
from perfreview.models.enums import ReviewStatus
from perfreview.models.feedback import RATING_FIELDS, SCORED_RATING_FIELDS, Feedback
from perfreview.services.lookups import get_employee_or_404, get_review_or_404, lock_review_or_404

logger = logging.getLogger(__name__)

MIN_OVERALL_FEEDBACK_CHARS = 50
MIN_STRENGTHS_CHARS = 10


def _validate_ratings(ratings: Mapping[str, int]) -> dict[str, int]:
    missing = [name for name in RATING_FIELDS if ratings.get(name) is None]
    if missing:
        raise ValidationError("Missing feedback ratings", details={"fields": missing})

    clean: dict[str, int] = {}
    for name in RATING_FIELDS:
        value = ratings[name]
        if isinstance(value, bool) or not isinstance(value, int) or not (1 <= value <= 5):
            raise ValidationError(f"{name} must be an integer between 1 and 5", details={"field": name})
        clean[name] = value
    return clean


def _require_length(field: str, value: str | None, minimum: int) -> str:
    text = (value or "").strip()
    if len(text) < minimum:
        raise ValidationError(
            f"{field} must be at least {minimum} characters",
            details={"field": field, "min_length": minimum},
        )
    return text


def submit_feedback(
    db: Session,
    *,
    review_id: uuid.UUID,
    actor_id: uuid.UUID,
    ratings: Mapping[str, int],
    overall_feedback: str,
    strengths: str,
    improvements: str | None = None,
    is_anonymous: bool = True,
) -> Feedback:
    actor = get_employee_or_404(db, actor_id)
    # Row lock serializes concurrent submissions for the same review
    review = lock_review_or_404(db, review_id)

    chart = OrgChart.load(db)
    authorize(actor.role, Action.SUBMIT_FEEDBACK, chart.context_for(actor.id, review.employee_id))
    require_status(review, ReviewStatus.FEEDBACK_COLLECTION)

    clean_ratings = _validate_ratings(ratings)
    overall = _require_length("overall_feedback", overall_feedback, MIN_OVERALL_FEEDBACK_CHARS)
    strong = _require_length("strengths", strengths, MIN_STRENGTHS_CHARS)

    existing = (
        db.query(Feedback.id)
        .filter(Feedback.review_id == review.id, Feedback.feedback_from_id == actor.id)
        .first()
    )
    if existing:
        raise ConflictError("Feedback already submitted for this review")

    feedback = Feedback(
        review_id=review.id,
        feedback_from_id=actor.id,
        overall_feedback=overall,
        strengths=strong,
        improvements=(improvements or "").strip() or None,
        is_anonymous=is_anonymous,
        **clean_ratings,
    )
    try:
        with db.begin_nested():
            db.add(feedback)
            db.flush()
    except IntegrityError:
        raise ConflictError("Feedback already submitted for this review")

    log_activity(
        db=db,
        actor=actor,
        action="feedback_submitted",
        description="Submitted 360 feedback",
        entity_type="review",
        entity_id=review.id,
    )
    db.flush()
    logger.info("Feedback %s submitted on review %s", feedback.id, review.id)
    return feedback


def list_feedback(db: Session, review_id: uuid.UUID) -> list[Feedback]:
    return (
        db.query(Feedback)
        .filter(Feedback.review_id == review_id)
        .order_by(Feedback.created_at.asc(), Feedback.id.asc())
        .all()
    )


def list_feedback_for_viewer(db: Session, *, review_id: uuid.UUID, actor_id: uuid.UUID) -> list[Feedback]:
    actor = get_employee_or_404(db, actor_id)
    review = get_review_or_404(db, review_id)
    chart = OrgChart.load(db)
    authorize(actor.role, Action.VIEW_REVIEW, chart.context_for(actor.id, review.employee_id))
    return list_feedback(db, review.id)


def entry_average(feedback: Feedback) -> Decimal:
    return mean(Decimal(getattr(feedback, name)) for name in SCORED_RATING_FIELDS)


def feedback_average(db: Session, review_id: uuid.UUID) -> Decimal | None:
    """Mean over raters of each rater's technical/communication/collaboration/problem-solving average."""
    return mean(entry_average(f) for f in list_feedback(db, review_id))
