import logging
import uuid

from sqlalchemy.orm import Session

from perfreview.core.activity import log_activity
from perfreview.core.errors import ConflictError, ValidationError
from perfreview.core.hierarchy import OrgChart
from perfreview.core.notifications import (
    APPEAL_NOTIFICATION,
    REVIEW_NOTIFICATION,
    Notifier,
    dispatch,
    get_notifier,
)
from perfreview.core.optimistic_lock import flush_or_conflict
from perfreview.core.policy import Action, PolicyContext, authorize, permit
from perfreview.core.workflow import apply_transition, require_status
from perfreview.models.appeal import Appeal
from perfreview.models.employee import Employee
from perfreview.models.employee_review import EmployeeReview
from perfreview.models.enums import AppealStatus, ReviewStatus, Role
from perfreview.services.lookups import (
    get_appeal_or_404,
    get_employee_or_404,
    lock_appeal_or_404,
    lock_review_or_404,
)

logger = logging.getLogger(__name__)

MIN_REASON_CHARS = 50
MIN_DESIRED_OUTCOME_CHARS = 20

DECISIONS = (AppealStatus.ACCEPTED, AppealStatus.REJECTED)


def _require_length(field: str, value: str | None, minimum: int) -> str:
    text = (value or "").strip()
    if len(text) < minimum:
        raise ValidationError(
            f"{field} must be at least {minimum} characters",
            details={"field": field, "min_length": minimum},
        )
    return text


def _validate_rating(field: str, value: int | None) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not (1 <= value <= 5):
        raise ValidationError(f"{field} must be an integer between 1 and 5", details={"field": field})
    return value


def handling_manager(db: Session, chart: OrgChart, employee: Employee) -> Employee | None:
    """First L2 manager or founder above the employee, else the direct manager."""
    manager_id = chart.first_in_chain_with_role(employee.id, (Role.L2_MANAGER, Role.FOUNDER))
    if manager_id is None:
        manager_id = chart.manager_of(employee.id)
    return db.get(Employee, manager_id) if manager_id else None


def get_appeal(db: Session, *, appeal_id: uuid.UUID, actor_id: uuid.UUID) -> Appeal:
    actor = get_employee_or_404(db, actor_id)
    appeal = get_appeal_or_404(db, appeal_id)
    chart = OrgChart.load(db)
    authorize(actor.role, Action.VIEW_REVIEW, chart.context_for(actor.id, appeal.employee_id))
    return appeal


def pending_appeals(
    db: Session, *, actor_id: uuid.UUID, cycle_id: uuid.UUID | None = None
) -> list[Appeal]:
    """Pending appeals the actor may decide, oldest first. Never includes the actor's own."""
    actor = get_employee_or_404(db, actor_id)
    if not permit(actor.role, Action.RESOLVE_APPEAL, PolicyContext(is_self=False)):
        return []

    q = db.query(Appeal).filter(
        Appeal.status == AppealStatus.PENDING.value,
        Appeal.employee_id != actor.id,
    )
    if cycle_id is not None:
        q = q.join(EmployeeReview, EmployeeReview.id == Appeal.review_id).filter(
            EmployeeReview.cycle_id == cycle_id
        )
    return q.order_by(Appeal.created_at.asc()).all()


def file_appeal(
    db: Session,
    *,
    review_id: uuid.UUID,
    actor_id: uuid.UUID,
    reason: str,
    desired_outcome: str,
    supporting_documents: list[str] | None = None,
    notifier: Notifier | None = None,
) -> Appeal:
    actor = get_employee_or_404(db, actor_id)
    review = lock_review_or_404(db, review_id)

    chart = OrgChart.load(db)
    authorize(actor.role, Action.FILE_APPEAL, chart.context_for(actor.id, review.employee_id))

    if review.appeal_used:
        raise ConflictError("An appeal has already been filed for this review")
    require_status(review, ReviewStatus.COMPLETED)

    clean_reason = _require_length("reason", reason, MIN_REASON_CHARS)
    clean_outcome = _require_length("desired_outcome", desired_outcome, MIN_DESIRED_OUTCOME_CHARS)
    documents = [d.strip() for d in (supporting_documents or []) if d and d.strip()]

    appeal = Appeal(
        review_id=review.id,
        employee_id=review.employee_id,
        reason=clean_reason,
        desired_outcome=clean_outcome,
        supporting_documents=documents or None,
        status=AppealStatus.PENDING.value,
    )
    db.add(appeal)

    review.appeal_used = True
    apply_transition(
        db=db,
        review=review,
        target=ReviewStatus.APPEAL_REQUESTED,
        actor=actor,
        action="appeal_submitted",
        description="Filed an appeal against the final rating",
    )
    flush_or_conflict(db)

    employee = review.employee
    manager = handling_manager(db, chart, employee)
    if manager is None:
        logger.warning("No manager to notify for appeal %s", appeal.id)
    else:
        dispatch(
            notifier or get_notifier(),
            manager.email,
            APPEAL_NOTIFICATION,
            {
                "employee_name": employee.full_name,
                "manager_name": manager.full_name,
                "reason": clean_reason,
                "appeal_id": str(appeal.id),
            },
        )
    return appeal


def resolve_appeal(
    db: Session,
    *,
    appeal_id: uuid.UUID,
    actor_id: uuid.UUID,
    decision: AppealStatus | str,
    response: str | None = None,
    override_rating: int | None = None,
    notifier: Notifier | None = None,
) -> Appeal:
    actor = get_employee_or_404(db, actor_id)
    appeal = lock_appeal_or_404(db, appeal_id)
    review = lock_review_or_404(db, appeal.review_id)

    chart = OrgChart.load(db)
    authorize(actor.role, Action.RESOLVE_APPEAL, chart.context_for(actor.id, review.employee_id))

    if appeal.status != AppealStatus.PENDING.value:
        raise ConflictError(
            f"Appeal is '{appeal.status}', expected 'pending'",
            details={"status": appeal.status},
        )
    require_status(review, ReviewStatus.APPEAL_REQUESTED)

    try:
        outcome = AppealStatus(decision)
    except ValueError:
        outcome = None
    if outcome not in DECISIONS:
        raise ValidationError("decision must be 'accepted' or 'rejected'", details={"field": "decision"})

    rating = _validate_rating("override_rating", override_rating)
    if rating is not None and outcome is not AppealStatus.ACCEPTED:
        raise ValidationError(
            "A rating override requires an accepted appeal",
            details={"field": "override_rating"},
        )

    appeal.status = outcome.value
    appeal.manager_id = actor.id
    appeal.manager_response = (response or "").strip() or None
    if rating is not None:
        appeal.final_rating = rating
        review.final_rating = rating

    apply_transition(
        db=db,
        review=review,
        target=ReviewStatus.APPEAL_COMPLETED,
        actor=actor,
        action="appeal_processed",
        description=f"Appeal {outcome.value}" + (f", rating set to {rating}" if rating is not None else ""),
    )
    flush_or_conflict(db)

    employee = review.employee
    dispatch(
        notifier or get_notifier(),
        employee.email,
        REVIEW_NOTIFICATION,
        {"employee_name": employee.full_name, "action": f"Appeal {outcome.value}"},
    )
    return appeal


def complete_appeal(
    db: Session,
    *,
    appeal_id: uuid.UUID,
    actor_id: uuid.UUID,
    final_rating: int | None = None,
) -> Appeal:
    actor = get_employee_or_404(db, actor_id)
    appeal = lock_appeal_or_404(db, appeal_id)
    review = lock_review_or_404(db, appeal.review_id)

    chart = OrgChart.load(db)
    authorize(actor.role, Action.COMPLETE_APPEAL, chart.context_for(actor.id, review.employee_id))

    if appeal.status not in {s.value for s in DECISIONS}:
        raise ConflictError(
            f"Appeal is '{appeal.status}', expected 'accepted' or 'rejected'",
            details={"status": appeal.status},
        )

    rating = _validate_rating("final_rating", final_rating)
    if rating is not None and appeal.status != AppealStatus.ACCEPTED.value:
        raise ValidationError(
            "Only an accepted appeal can change the final rating",
            details={"field": "final_rating"},
        )

    appeal.status = AppealStatus.COMPLETED.value
    if rating is not None:
        appeal.final_rating = rating
        review.final_rating = rating

    log_activity(
        db=db,
        actor=actor,
        action="appeal_completed",
        description="Closed appeal" + (f" with final rating {rating}" if rating is not None else ""),
        entity_type="appeal",
        entity_id=appeal.id,
    )
    flush_or_conflict(db)
    return appeal
