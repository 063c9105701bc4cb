import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from perfreview.core.errors import NotFoundError
from perfreview.core.security import get_current_user
from perfreview.db.session import get_db
from perfreview.models.employee import Employee
from perfreview.models.review_cycle import ReviewCycle
from perfreview.schemas.review_cycle import CloseFeedbackOut, ReviewCycleCreate, ReviewCycleOut
from perfreview.services import cycles as cycle_service
from perfreview.services.reviews import close_feedback_window

router = APIRouter(prefix="/cycles", tags=["review-cycles"])


def to_out(c: ReviewCycle) -> ReviewCycleOut:
    return ReviewCycleOut(
        id=str(c.id),
        name=c.name,
        start_date=c.start_date,
        end_date=c.end_date,
        self_assessment_deadline=c.self_assessment_deadline,
        feedback_deadline=c.feedback_deadline,
        review_deadline=c.review_deadline,
        meeting_deadline=c.meeting_deadline,
        is_active=c.is_active,
        created_by_id=str(c.created_by_id) if c.created_by_id else None,
        created_at=c.created_at,
        updated_at=c.updated_at,
    )


@router.get("", response_model=list[ReviewCycleOut])
def list_cycles(
    search: str | None = Query(default=None, description="Search by name"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    _: Employee = Depends(get_current_user),
):
    query = db.query(ReviewCycle)
    if search:
        query = query.filter(ReviewCycle.name.ilike(f"%{search.lower()}%"))
    cycles = query.order_by(ReviewCycle.start_date.desc()).offset(offset).limit(limit).all()
    return [to_out(c) for c in cycles]


@router.get("/active", response_model=ReviewCycleOut)
def get_active(
    db: Session = Depends(get_db),
    _: Employee = Depends(get_current_user),
):
    cycle = cycle_service.get_active_cycle(db)
    if not cycle:
        raise NotFoundError("No active cycle")
    return to_out(cycle)


@router.post("", response_model=ReviewCycleOut, status_code=status.HTTP_201_CREATED)
def create_cycle(
    payload: ReviewCycleCreate,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    cycle = cycle_service.create_cycle(db, actor_id=user.id, **payload.model_dump())
    return to_out(cycle)


@router.post("/{cycle_id}/activate", response_model=ReviewCycleOut)
def activate_cycle(
    cycle_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    return to_out(cycle_service.activate_cycle(db, cycle_id=cycle_id, actor_id=user.id))


@router.post("/{cycle_id}/close", response_model=ReviewCycleOut)
def close_cycle(
    cycle_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    return to_out(cycle_service.close_cycle(db, cycle_id=cycle_id, actor_id=user.id))


@router.post("/{cycle_id}/close-feedback", response_model=CloseFeedbackOut)
def close_feedback(
    cycle_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    """Advance every review still collecting feedback once the feedback deadline has passed."""
    reviews = close_feedback_window(db, cycle_id=cycle_id, actor_id=user.id)
    return CloseFeedbackOut(cycle_id=str(cycle_id), advanced_review_ids=[str(r.id) for r in reviews])
