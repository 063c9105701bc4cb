import logging

from sqlalchemy.orm import Session

from perfreview.core.activity import log_activity
from perfreview.core.errors import ConflictError
from perfreview.models.employee import Employee
from perfreview.models.employee_review import EmployeeReview
from perfreview.models.enums import ReviewStatus

logger = logging.getLogger(__name__)

# Legal status edges of an employee review. Strictly forward; the appeal
# branch is only reachable from a completed review.
TRANSITIONS: dict[ReviewStatus, frozenset[ReviewStatus]] = {
    ReviewStatus.NOT_STARTED: frozenset({ReviewStatus.SELF_ASSESSMENT}),
    ReviewStatus.SELF_ASSESSMENT: frozenset({ReviewStatus.FEEDBACK_COLLECTION}),
    ReviewStatus.FEEDBACK_COLLECTION: frozenset({ReviewStatus.MANAGER_REVIEW}),
    ReviewStatus.MANAGER_REVIEW: frozenset({ReviewStatus.MEETING_SCHEDULED}),
    ReviewStatus.MEETING_SCHEDULED: frozenset({ReviewStatus.COMPLETED}),
    ReviewStatus.COMPLETED: frozenset({ReviewStatus.APPEAL_REQUESTED}),
    ReviewStatus.APPEAL_REQUESTED: frozenset({ReviewStatus.APPEAL_COMPLETED}),
    ReviewStatus.APPEAL_COMPLETED: frozenset(),
}


def can_transition(current: str, target: ReviewStatus) -> bool:
    return target in TRANSITIONS.get(ReviewStatus(current), frozenset())


def require_status(review: EmployeeReview, *allowed: ReviewStatus) -> None:
    if review.status not in {s.value for s in allowed}:
        raise ConflictError(
            f"Review is '{review.status}', expected {' or '.join(repr(s.value) for s in allowed)}",
            details={"status": review.status},
        )


def apply_transition(
    *,
    db: Session,
    review: EmployeeReview,
    target: ReviewStatus,
    actor: Employee | None,
    action: str,
    description: str,
) -> None:
    """Move a review along one legal edge and record exactly one activity entry."""
    if not can_transition(review.status, target):
        raise ConflictError(
            f"Cannot move review from '{review.status}' to '{target.value}'",
            details={"status": review.status, "target": target.value},
        )

    previous = review.status
    review.status = target.value
    log_activity(
        db=db,
        actor=actor,
        action=action,
        description=description,
        entity_type="review",
        entity_id=review.id,
    )
    logger.info("Review %s: %s -> %s (%s)", review.id, previous, target.value, action)
