import logging
import uuid
from datetime import date

from sqlalchemy.orm import Session

from perfreview.core.activity import log_activity
from perfreview.core.errors import ConflictError, ValidationError
from perfreview.core.policy import Action, authorize
from perfreview.models.review_cycle import ReviewCycle
from perfreview.services.lookups import get_cycle_or_404, get_employee_or_404

logger = logging.getLogger(__name__)

_DEADLINE_ORDER = (
    "start_date",
    "self_assessment_deadline",
    "feedback_deadline",
    "review_deadline",
    "meeting_deadline",
    "end_date",
)


def get_active_cycle(db: Session) -> ReviewCycle | None:
    return (
        db.query(ReviewCycle)
        .filter(ReviewCycle.is_active.is_(True))
        .order_by(ReviewCycle.created_at.desc())
        .first()
    )


def _validate_dates(dates: dict[str, date]) -> None:
    for earlier, later in zip(_DEADLINE_ORDER, _DEADLINE_ORDER[1:]):
        if dates[earlier] > dates[later]:
            raise ValidationError(
                f"{earlier} must not be after {later}",
                details={"field": later},
            )


def create_cycle(
    db: Session,
    *,
    actor_id: uuid.UUID,
    name: str,
    start_date: date,
    end_date: date,
    self_assessment_deadline: date,
    feedback_deadline: date,
    review_deadline: date,
    meeting_deadline: date,
) -> ReviewCycle:
    actor = get_employee_or_404(db, actor_id)
    authorize(actor.role, Action.CREATE_CYCLE)

    if not name or not name.strip():
        raise ValidationError("Cycle name is required", details={"field": "name"})

    dates = {
        "start_date": start_date,
        "self_assessment_deadline": self_assessment_deadline,
        "feedback_deadline": feedback_deadline,
        "review_deadline": review_deadline,
        "meeting_deadline": meeting_deadline,
        "end_date": end_date,
    }
    _validate_dates(dates)

    cycle = ReviewCycle(name=name.strip(), is_active=False, created_by_id=actor.id, **dates)
    db.add(cycle)
    db.flush()  # ensures cycle.id exists for the activity entry

    log_activity(
        db=db,
        actor=actor,
        action="cycle_created",
        description=f"Created review cycle '{cycle.name}'",
        entity_type="cycle",
        entity_id=cycle.id,
    )
    logger.info("Cycle %s created by %s", cycle.id, actor.id)
    return cycle


def activate_cycle(db: Session, *, cycle_id: uuid.UUID, actor_id: uuid.UUID) -> ReviewCycle:
    actor = get_employee_or_404(db, actor_id)
    authorize(actor.role, Action.ACTIVATE_CYCLE)

    cycle = get_cycle_or_404(db, cycle_id)

    # Idempotent success: if already active, just return it
    if cycle.is_active:
        return cycle

    previous = (
        db.query(ReviewCycle)
        .filter(ReviewCycle.is_active.is_(True), ReviewCycle.id != cycle.id)
        .with_for_update()
        .all()
    )
    for other in previous:
        other.is_active = False
        log_activity(
            db=db,
            actor=actor,
            action="cycle_deactivated",
            description=f"Deactivated review cycle '{other.name}'",
            entity_type="cycle",
            entity_id=other.id,
        )

    cycle.is_active = True
    log_activity(
        db=db,
        actor=actor,
        action="cycle_activated",
        description=f"Activated review cycle '{cycle.name}'",
        entity_type="cycle",
        entity_id=cycle.id,
    )
    db.flush()
    logger.info("Cycle %s activated (%d deactivated)", cycle.id, len(previous))
    return cycle


def close_cycle(db: Session, *, cycle_id: uuid.UUID, actor_id: uuid.UUID) -> ReviewCycle:
    actor = get_employee_or_404(db, actor_id)
    authorize(actor.role, Action.CLOSE_CYCLE)

    cycle = get_cycle_or_404(db, cycle_id)
    if not cycle.is_active:
        raise ConflictError("Only the active cycle can be closed")

    cycle.is_active = False
    log_activity(
        db=db,
        actor=actor,
        action="cycle_closed",
        description=f"Closed review cycle '{cycle.name}'",
        entity_type="cycle",
        entity_id=cycle.id,
    )
    db.flush()
    return cycle
