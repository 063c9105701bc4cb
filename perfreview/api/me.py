from fastapi import APIRouter, Depends, Header, Response
from sqlalchemy import or_
from sqlalchemy.orm import Session

from perfreview.api.meetings import meeting_to_out
from perfreview.api.reviews import review_to_out
from perfreview.core.errors import NotFoundError
from perfreview.core.hierarchy import OrgChart
from perfreview.core.optimistic_lock import parse_if_match, set_etag
from perfreview.core.security import get_current_user
from perfreview.db.session import get_db
from perfreview.models.employee import Employee
from perfreview.models.enums import MANAGER_ROLES, ReviewStatus
from perfreview.models.meeting import Meeting
from perfreview.schemas.employee import EmployeeOut, MeOut
from perfreview.schemas.meeting import MeetingOut
from perfreview.schemas.review import ReviewOut, SelfAssessmentPayload
from perfreview.schemas.stats import PendingActions
from perfreview.services import reviews as review_service
from perfreview.services.analytics import pending_approvals
from perfreview.services.appeals import pending_appeals
from perfreview.services.cycles import get_active_cycle

router = APIRouter(tags=["me"])

# What the employee is expected to do next, by review status
NEXT_ACTION = {
    ReviewStatus.NOT_STARTED.value: "start_review",
    ReviewStatus.SELF_ASSESSMENT.value: "submit_self_assessment",
    ReviewStatus.FEEDBACK_COLLECTION.value: "await_feedback",
    ReviewStatus.MANAGER_REVIEW.value: "await_manager_review",
    ReviewStatus.MEETING_SCHEDULED.value: "attend_meeting",
    ReviewStatus.APPEAL_REQUESTED.value: "await_appeal_decision",
}


def employee_to_out(e: Employee) -> EmployeeOut:
    return EmployeeOut(
        id=str(e.id),
        email=e.email,
        first_name=e.first_name,
        last_name=e.last_name,
        role=e.role,
        category=e.category,
        department=e.department,
        manager_id=str(e.manager_id) if e.manager_id else None,
        is_active=e.is_active,
    )


def _active_cycle_or_404(db: Session):
    cycle = get_active_cycle(db)
    if not cycle:
        raise NotFoundError("No active cycle")
    return cycle


@router.get("/me", response_model=MeOut)
def me(current_user: Employee = Depends(get_current_user)):
    return MeOut(**employee_to_out(current_user).model_dump(), full_name=current_user.full_name)


@router.get("/me/review", response_model=ReviewOut)
def my_review(
    response: Response,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """The caller's review in the active cycle."""
    cycle = _active_cycle_or_404(db)
    review = review_service.get_review_for(db, employee_id=current_user.id, cycle_id=cycle.id)
    if not review:
        raise NotFoundError("No review in the active cycle")
    set_etag(response, review.version)
    return review_to_out(review)


@router.post("/me/self-assessment", response_model=ReviewOut)
def submit_my_self_assessment(
    payload: SelfAssessmentPayload,
    response: Response,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
    if_match: str | None = Header(default=None, alias="If-Match"),
):
    """Starts the caller's review in the active cycle if needed, then submits the self-assessment."""
    cycle = _active_cycle_or_404(db)
    review = review_service.create_review(
        db, employee_id=current_user.id, cycle_id=cycle.id, actor_id=current_user.id
    )
    review = review_service.submit_self_assessment(
        db,
        review_id=review.id,
        actor_id=current_user.id,
        payload=payload.to_document(),
        expected_version=parse_if_match(if_match),
    )
    set_etag(response, review.version)
    return review_to_out(review)


@router.get("/me/team", response_model=list[EmployeeOut])
def my_team(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Direct reports of the caller."""
    report_ids = OrgChart.load(db).direct_reports(current_user.id)
    if not report_ids:
        return []
    reports = (
        db.query(Employee)
        .filter(Employee.id.in_(report_ids), Employee.is_active.is_(True))
        .order_by(Employee.first_name.asc(), Employee.last_name.asc())
        .all()
    )
    return [employee_to_out(e) for e in reports]


@router.get("/me/meetings", response_model=list[MeetingOut])
def my_meetings(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    meetings = (
        db.query(Meeting)
        .filter(or_(Meeting.employee_id == current_user.id, Meeting.manager_id == current_user.id))
        .order_by(Meeting.scheduled_at.asc())
        .all()
    )
    return [meeting_to_out(m) for m in meetings]


@router.get("/me/pending-actions", response_model=PendingActions)
def my_pending_actions(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    cycle = get_active_cycle(db)
    appeal_ids = [str(a.id) for a in pending_appeals(db, actor_id=current_user.id)]
    if not cycle:
        return PendingActions(cycle_id=None, pending_appeals=appeal_ids)

    review = review_service.get_review_for(db, employee_id=current_user.id, cycle_id=cycle.id)
    if review is None:
        next_action = "start_review"
    elif review.status == ReviewStatus.COMPLETED.value and not review.appeal_used:
        next_action = "view_result_or_appeal"
    else:
        next_action = NEXT_ACTION.get(review.status)

    approvals: list[str] = []
    if current_user.role in {r.value for r in MANAGER_ROLES}:
        approvals = [str(r.id) for r in pending_approvals(db, manager_id=current_user.id, cycle_id=cycle.id)]

    return PendingActions(
        cycle_id=str(cycle.id),
        own_review_id=str(review.id) if review else None,
        own_review_status=review.status if review else None,
        next_action=next_action,
        pending_approvals=approvals,
        pending_appeals=appeal_ids,
    )
