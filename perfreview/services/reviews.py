"""
Review lifecycle operations.

Every operation validates the actor, the source state and its inputs before
touching the review, then changes state through ``apply_transition`` so each
status change leaves exactly one activity entry. Callers own the transaction;
these functions only flush.
"""
import logging
import uuid
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from perfreview.core.activity import log_activity
from perfreview.core.errors import ConflictError, ValidationError
from perfreview.core.hierarchy import OrgChart
from perfreview.core.notifications import (
    MEETING_INVITATION,
    REVIEW_NOTIFICATION,
    Notifier,
    dispatch,
    get_notifier,
)
from perfreview.core.optimistic_lock import assert_version_matches, flush_or_conflict
from perfreview.core.policy import Action, authorize
from perfreview.core.rating import (
    RatingBreakdown,
    kra_score,
    rating_breakdown,
    self_assessment_score,
)
from perfreview.core.workflow import apply_transition, require_status
from perfreview.models.employee import Employee
from perfreview.models.employee_review import EmployeeReview
from perfreview.models.enums import MeetingStatus, ReviewStatus, Role
from perfreview.models.meeting import DEFAULT_MEETING_MINUTES, Meeting
from perfreview.services.feedback import feedback_average
from perfreview.services.lookups import (
    get_cycle_or_404,
    get_employee_or_404,
    get_meeting_or_404,
    get_review_or_404,
    lock_review_or_404,
)

logger = logging.getLogger(__name__)

MIN_MEETING_MINUTES = 15
MAX_MEETING_MINUTES = 180

# Which comment column a manager writes to
COMMENT_FIELD_BY_ROLE = {
    Role.L3_MANAGER.value: "l3_comments",
    Role.L2_MANAGER.value: "l2_comments",
    Role.L1_MANAGER.value: "l1_comments",
    Role.FOUNDER.value: "founder_comments",
}

# self-assessment payload key -> review column
COMPENSATION_FIELDS = {
    "currentCtc": "current_ctc",
    "expectedCtc": "expected_ctc",
    "expectedIncrementPercentage": "expected_increment_percentage",
}


def _notify(
    notifier: Notifier | None,
    recipient: Employee | None,
    template_kind: str,
    context: Mapping[str, Any],
) -> bool:
    if recipient is None:
        logger.warning("No recipient for %s", template_kind)
        return False
    return dispatch(notifier or get_notifier(), recipient.email, template_kind, context)


def _decimal_or_none(field: str, value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", details={"field": field})
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number", details={"field": field})
    if number < 0:
        raise ValidationError(f"{field} must not be negative", details={"field": field})
    return number


def _rating_or_none(field: str, value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not (1 <= value <= 5):
        raise ValidationError(f"{field} must be an integer between 1 and 5", details={"field": field})
    return value


def _validate_kra_scores(entries: Any) -> list[dict[str, Any]]:
    if not isinstance(entries, list):
        raise ValidationError("kra_scores must be a list", details={"field": "kra_scores"})
    clean: list[dict[str, Any]] = []
    for entry in entries:
        if not isinstance(entry, Mapping) or not str(entry.get("kra") or "").strip():
            raise ValidationError("Each KRA entry needs a name", details={"field": "kra_scores"})
        if entry.get("score") is None:
            raise ValidationError("Each KRA entry needs a score", details={"field": "kra_scores"})
        clean.append(dict(entry))
    # raises on out-of-range scores
    kra_score(clean)
    return clean


def get_review_for(db: Session, *, employee_id: uuid.UUID, cycle_id: uuid.UUID) -> EmployeeReview | None:
    return (
        db.query(EmployeeReview)
        .filter(EmployeeReview.employee_id == employee_id, EmployeeReview.cycle_id == cycle_id)
        .one_or_none()
    )


def get_review(db: Session, *, review_id: uuid.UUID, actor_id: uuid.UUID) -> EmployeeReview:
    actor = get_employee_or_404(db, actor_id)
    review = get_review_or_404(db, review_id)
    chart = OrgChart.load(db)
    authorize(actor.role, Action.VIEW_REVIEW, chart.context_for(actor.id, review.employee_id))
    return review


def review_rating_breakdown(db: Session, review: EmployeeReview) -> RatingBreakdown:
    return rating_breakdown(
        self_assessment_score(review.self_assessment_data),
        feedback_average(db, review.id),
        review.l3_rating,
        kra_score(review.kra_scores),
    )


def preview_rating(db: Session, *, review_id: uuid.UUID, actor_id: uuid.UUID) -> RatingBreakdown:
    review = get_review(db, review_id=review_id, actor_id=actor_id)
    return review_rating_breakdown(db, review)


def create_review(
    db: Session,
    *,
    employee_id: uuid.UUID,
    cycle_id: uuid.UUID,
    actor_id: uuid.UUID,
) -> EmployeeReview:
    """Get-or-create the employee's review for a cycle and open self-assessment."""
    actor = get_employee_or_404(db, actor_id)
    employee = get_employee_or_404(db, employee_id)

    chart = OrgChart.load(db)
    authorize(actor.role, Action.CREATE_REVIEW, chart.context_for(actor.id, employee.id))

    cycle = get_cycle_or_404(db, cycle_id)
    if not cycle.is_active:
        raise ConflictError("Reviews can only be started in the active cycle")

    existing = get_review_for(db, employee_id=employee.id, cycle_id=cycle.id)
    if existing:
        return existing

    review = EmployeeReview(
        employee_id=employee.id,
        cycle_id=cycle.id,
        status=ReviewStatus.NOT_STARTED.value,
    )
    try:
        with db.begin_nested():
            db.add(review)
            db.flush()
    except IntegrityError:
        # Lost a create race; the other request's row wins
        existing = get_review_for(db, employee_id=employee.id, cycle_id=cycle.id)
        if existing:
            return existing
        raise

    apply_transition(
        db=db,
        review=review,
        target=ReviewStatus.SELF_ASSESSMENT,
        actor=actor,
        action="review_created",
        description=f"Started review for {employee.full_name} in '{cycle.name}'",
    )
    flush_or_conflict(db)
    return review


def submit_self_assessment(
    db: Session,
    *,
    review_id: uuid.UUID,
    actor_id: uuid.UUID,
    payload: Mapping[str, Any] | None,
    expected_version: int | None = None,
) -> EmployeeReview:
    actor = get_employee_or_404(db, actor_id)
    review = lock_review_or_404(db, review_id)

    chart = OrgChart.load(db)
    authorize(actor.role, Action.SUBMIT_SELF_ASSESSMENT, chart.context_for(actor.id, review.employee_id))
    assert_version_matches(current_version=review.version, expected_version=expected_version)
    require_status(review, ReviewStatus.SELF_ASSESSMENT)

    if not payload:
        raise ValidationError("Self-assessment is empty", details={"field": "payload"})

    compensation = {
        column: _decimal_or_none(key, payload.get(key))
        for key, column in COMPENSATION_FIELDS.items()
    }

    review.self_assessment_data = dict(payload)
    for column, value in compensation.items():
        setattr(review, column, value)

    apply_transition(
        db=db,
        review=review,
        target=ReviewStatus.FEEDBACK_COLLECTION,
        actor=actor,
        action="self_assessment_completed",
        description="Submitted self-assessment",
    )
    flush_or_conflict(db)
    return review


def _notify_manager_review_started(
    notifier: Notifier | None, review: EmployeeReview, employee: Employee
) -> None:
    _notify(
        notifier,
        employee.manager,
        REVIEW_NOTIFICATION,
        {
            "employee_name": employee.full_name,
            "action": "Manager review",
            "deadline": review.cycle.review_deadline.isoformat() if review.cycle else None,
        },
    )


def advance_to_manager_review(
    db: Session,
    *,
    review_id: uuid.UUID,
    actor_id: uuid.UUID,
    notifier: Notifier | None = None,
    expected_version: int | None = None,
) -> EmployeeReview:
    actor = get_employee_or_404(db, actor_id)
    review = lock_review_or_404(db, review_id)

    chart = OrgChart.load(db)
    authorize(actor.role, Action.ADVANCE_TO_MANAGER_REVIEW, chart.context_for(actor.id, review.employee_id))
    assert_version_matches(current_version=review.version, expected_version=expected_version)
    require_status(review, ReviewStatus.FEEDBACK_COLLECTION)

    apply_transition(
        db=db,
        review=review,
        target=ReviewStatus.MANAGER_REVIEW,
        actor=actor,
        action="manager_review_started",
        description="Closed feedback collection and started manager review",
    )
    flush_or_conflict(db)

    _notify_manager_review_started(notifier, review, review.employee)
    return review


def close_feedback_window(
    db: Session,
    *,
    cycle_id: uuid.UUID,
    actor_id: uuid.UUID,
    today: date | None = None,
    notifier: Notifier | None = None,
) -> list[EmployeeReview]:
    """Move every review still collecting feedback in the cycle to manager review."""
    actor = get_employee_or_404(db, actor_id)
    authorize(actor.role, Action.CLOSE_FEEDBACK_WINDOW)

    cycle = get_cycle_or_404(db, cycle_id)
    today = today or date.today()
    if today <= cycle.feedback_deadline:
        raise ConflictError(
            "Feedback window is still open",
            details={"feedback_deadline": cycle.feedback_deadline.isoformat()},
        )

    reviews = (
        db.query(EmployeeReview)
        .filter(
            EmployeeReview.cycle_id == cycle.id,
            EmployeeReview.status == ReviewStatus.FEEDBACK_COLLECTION.value,
        )
        .order_by(EmployeeReview.created_at.asc())
        .with_for_update()
        .all()
    )
    for review in reviews:
        apply_transition(
            db=db,
            review=review,
            target=ReviewStatus.MANAGER_REVIEW,
            actor=actor,
            action="manager_review_started",
            description=f"Feedback deadline {cycle.feedback_deadline.isoformat()} passed",
        )
    flush_or_conflict(db)
    logger.info("Closed feedback window of cycle %s: %d reviews advanced", cycle.id, len(reviews))

    for review in reviews:
        _notify_manager_review_started(notifier, review, review.employee)
    return reviews


def record_manager_input(
    db: Session,
    *,
    review_id: uuid.UUID,
    actor_id: uuid.UUID,
    comments: str | None = None,
    l3_rating: int | None = None,
    kra_scores: list[dict[str, Any]] | None = None,
    expected_version: int | None = None,
) -> EmployeeReview:
    actor = get_employee_or_404(db, actor_id)
    review = lock_review_or_404(db, review_id)

    chart = OrgChart.load(db)
    context = chart.context_for(actor.id, review.employee_id)
    authorize(actor.role, Action.RECORD_MANAGER_INPUT, context)
    if l3_rating is not None:
        authorize(actor.role, Action.SET_L3_RATING, context)

    assert_version_matches(current_version=review.version, expected_version=expected_version)
    require_status(review, ReviewStatus.MANAGER_REVIEW, ReviewStatus.MEETING_SCHEDULED)

    if comments is None and l3_rating is None and kra_scores is None:
        raise ValidationError("Nothing to record", details={"fields": ["comments", "l3_rating", "kra_scores"]})

    rating = _rating_or_none("l3_rating", l3_rating)
    kras = _validate_kra_scores(kra_scores) if kra_scores is not None else None

    changed: list[str] = []
    if comments is not None:
        field = COMMENT_FIELD_BY_ROLE[actor.role]
        setattr(review, field, comments.strip() or None)
        changed.append(field)
    if rating is not None:
        review.l3_rating = rating
        changed.append("l3_rating")
    if kras is not None:
        review.kra_scores = kras
        changed.append("kra_scores")

    log_activity(
        db=db,
        actor=actor,
        action="manager_input_recorded",
        description=f"Updated {', '.join(changed)}",
        entity_type="review",
        entity_id=review.id,
    )
    flush_or_conflict(db)
    return review


def _active_meeting(db: Session, review_id: uuid.UUID) -> Meeting | None:
    return (
        db.query(Meeting)
        .filter(Meeting.review_id == review_id, Meeting.status == MeetingStatus.SCHEDULED.value)
        .first()
    )


def schedule_meeting(
    db: Session,
    *,
    review_id: uuid.UUID,
    actor_id: uuid.UUID,
    scheduled_at: datetime,
    duration_minutes: int = DEFAULT_MEETING_MINUTES,
    meeting_link: str | None = None,
    notifier: Notifier | None = None,
    expected_version: int | None = None,
) -> Meeting:
    actor = get_employee_or_404(db, actor_id)
    review = lock_review_or_404(db, review_id)

    chart = OrgChart.load(db)
    authorize(actor.role, Action.SCHEDULE_MEETING, chart.context_for(actor.id, review.employee_id))
    assert_version_matches(current_version=review.version, expected_version=expected_version)
    require_status(review, ReviewStatus.MANAGER_REVIEW, ReviewStatus.MEETING_SCHEDULED)

    if scheduled_at is None:
        raise ValidationError("scheduled_at is required", details={"field": "scheduled_at"})
    if not (MIN_MEETING_MINUTES <= duration_minutes <= MAX_MEETING_MINUTES):
        raise ValidationError(
            f"duration_minutes must be between {MIN_MEETING_MINUTES} and {MAX_MEETING_MINUTES}",
            details={"field": "duration_minutes"},
        )

    rescheduling = review.status == ReviewStatus.MEETING_SCHEDULED.value
    if rescheduling and _active_meeting(db, review.id):
        raise ConflictError("Review already has a scheduled meeting")

    meeting = Meeting(
        review_id=review.id,
        manager_id=actor.id,
        employee_id=review.employee_id,
        scheduled_at=scheduled_at,
        duration_minutes=duration_minutes,
        meeting_link=meeting_link,
        status=MeetingStatus.SCHEDULED.value,
    )
    db.add(meeting)

    description = f"Scheduled 1:1 for {scheduled_at.isoformat()}"
    if rescheduling:
        log_activity(
            db=db,
            actor=actor,
            action="meeting_scheduled",
            description=f"Re-{description[0].lower()}{description[1:]}",
            entity_type="review",
            entity_id=review.id,
        )
    else:
        apply_transition(
            db=db,
            review=review,
            target=ReviewStatus.MEETING_SCHEDULED,
            actor=actor,
            action="meeting_scheduled",
            description=description,
        )
    flush_or_conflict(db)

    employee = review.employee
    _notify(
        notifier,
        employee,
        MEETING_INVITATION,
        {
            "employee_name": employee.full_name,
            "manager_name": actor.full_name,
            "scheduled_at": scheduled_at.isoformat(),
            "meeting_link": meeting_link,
        },
    )
    return meeting


def _close_meeting(
    db: Session,
    *,
    meeting_id: uuid.UUID,
    actor_id: uuid.UUID,
    target: MeetingStatus,
    notes: str | None,
) -> Meeting:
    actor = get_employee_or_404(db, actor_id)
    meeting = get_meeting_or_404(db, meeting_id)
    review = lock_review_or_404(db, meeting.review_id)

    chart = OrgChart.load(db)
    authorize(actor.role, Action.UPDATE_MEETING, chart.context_for(actor.id, review.employee_id))
    if meeting.status != MeetingStatus.SCHEDULED.value:
        raise ConflictError(
            f"Meeting is '{meeting.status}', expected 'scheduled'",
            details={"status": meeting.status},
        )

    meeting.status = target.value
    if notes is not None:
        meeting.notes = notes
        if target is MeetingStatus.COMPLETED:
            review.meeting_notes = notes

    log_activity(
        db=db,
        actor=actor,
        action=f"meeting_{target.value}",
        description=f"Meeting on {meeting.scheduled_at.isoformat()} {target.value}",
        entity_type="review",
        entity_id=review.id,
    )
    flush_or_conflict(db)
    return meeting


def complete_meeting(
    db: Session, *, meeting_id: uuid.UUID, actor_id: uuid.UUID, notes: str | None = None
) -> Meeting:
    return _close_meeting(db, meeting_id=meeting_id, actor_id=actor_id, target=MeetingStatus.COMPLETED, notes=notes)


def cancel_meeting(
    db: Session, *, meeting_id: uuid.UUID, actor_id: uuid.UUID, notes: str | None = None
) -> Meeting:
    return _close_meeting(db, meeting_id=meeting_id, actor_id=actor_id, target=MeetingStatus.CANCELLED, notes=notes)


def finalize_review(
    db: Session,
    *,
    review_id: uuid.UUID,
    actor_id: uuid.UUID,
    final_increment_percentage: Decimal | float | str | None,
    final_rating: int | None = None,
    comments: str | None = None,
    notifier: Notifier | None = None,
    expected_version: int | None = None,
) -> EmployeeReview:
    actor = get_employee_or_404(db, actor_id)
    review = lock_review_or_404(db, review_id)

    chart = OrgChart.load(db)
    authorize(actor.role, Action.FINALIZE_REVIEW, chart.context_for(actor.id, review.employee_id))
    assert_version_matches(current_version=review.version, expected_version=expected_version)
    require_status(review, ReviewStatus.MEETING_SCHEDULED)

    increment = _decimal_or_none("final_increment_percentage", final_increment_percentage)
    if increment is None:
        raise ValidationError(
            "final_increment_percentage is required",
            details={"field": "final_increment_percentage"},
        )
    manual_rating = _rating_or_none("final_rating", final_rating)

    breakdown = review_rating_breakdown(db, review)

    review.weighted_rating = breakdown.weighted_rating
    review.final_rating = manual_rating if manual_rating is not None else breakdown.suggested_final_rating
    review.final_increment_percentage = increment
    if comments is not None:
        setattr(review, COMMENT_FIELD_BY_ROLE[actor.role], comments.strip() or None)

    apply_transition(
        db=db,
        review=review,
        target=ReviewStatus.COMPLETED,
        actor=actor,
        action="review_completed",
        description=(
            f"Finalized with rating {review.final_rating} "
            f"(weighted {breakdown.weighted_rating}) and {increment}% increment"
        ),
    )
    flush_or_conflict(db)

    employee = review.employee
    _notify(
        notifier,
        employee,
        REVIEW_NOTIFICATION,
        {"employee_name": employee.full_name, "action": "Review completed"},
    )
    return review
