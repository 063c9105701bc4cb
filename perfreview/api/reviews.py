import uuid

from fastapi import APIRouter, Depends, Header, Response, status
from sqlalchemy.orm import Session

from perfreview.core.errors import ConflictError
from perfreview.core.optimistic_lock import parse_if_match, set_etag
from perfreview.core.security import get_current_user
from perfreview.db.session import get_db
from perfreview.models.employee import Employee
from perfreview.models.employee_review import EmployeeReview
from perfreview.schemas.review import (
    FinalizeReview,
    ManagerInput,
    RatingBreakdownOut,
    ReviewCreate,
    ReviewOut,
    SelfAssessmentPayload,
)
from perfreview.services import reviews as review_service
from perfreview.services.cycles import get_active_cycle

router = APIRouter(prefix="/reviews", tags=["reviews"])


def review_to_out(r: EmployeeReview) -> ReviewOut:
    return ReviewOut(
        id=str(r.id),
        employee_id=str(r.employee_id),
        cycle_id=str(r.cycle_id),
        status=r.status,
        self_assessment_data=r.self_assessment_data,
        current_ctc=r.current_ctc,
        expected_ctc=r.expected_ctc,
        expected_increment_percentage=r.expected_increment_percentage,
        l3_rating=r.l3_rating,
        kra_scores=r.kra_scores,
        weighted_rating=r.weighted_rating,
        final_rating=r.final_rating,
        final_increment_percentage=r.final_increment_percentage,
        l3_comments=r.l3_comments,
        l2_comments=r.l2_comments,
        l1_comments=r.l1_comments,
        founder_comments=r.founder_comments,
        meeting_notes=r.meeting_notes,
        appeal_used=r.appeal_used,
        created_at=r.created_at,
        updated_at=r.updated_at,
        version=r.version,
    )


@router.post("", response_model=ReviewOut, status_code=status.HTTP_201_CREATED)
def create_review(
    payload: ReviewCreate,
    response: Response,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    """Start (or fetch) the review of an employee in a cycle."""
    cycle_id = payload.cycle_id
    if cycle_id is None:
        cycle = get_active_cycle(db)
        if not cycle:
            raise ConflictError("No active cycle")
        cycle_id = cycle.id

    review = review_service.create_review(
        db,
        employee_id=payload.employee_id or user.id,
        cycle_id=cycle_id,
        actor_id=user.id,
    )
    set_etag(response, review.version)
    return review_to_out(review)


@router.get("/{review_id}", response_model=ReviewOut)
def get_review(
    review_id: uuid.UUID,
    response: Response,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    review = review_service.get_review(db, review_id=review_id, actor_id=user.id)
    set_etag(response, review.version)
    return review_to_out(review)


@router.post("/{review_id}/self-assessment", response_model=ReviewOut)
def submit_self_assessment(
    review_id: uuid.UUID,
    payload: SelfAssessmentPayload,
    response: Response,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
    if_match: str | None = Header(default=None, alias="If-Match"),
):
    review = review_service.submit_self_assessment(
        db,
        review_id=review_id,
        actor_id=user.id,
        payload=payload.to_document(),
        expected_version=parse_if_match(if_match),
    )
    set_etag(response, review.version)
    return review_to_out(review)


@router.post("/{review_id}/advance", response_model=ReviewOut)
def advance_to_manager_review(
    review_id: uuid.UUID,
    response: Response,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
    if_match: str | None = Header(default=None, alias="If-Match"),
):
    review = review_service.advance_to_manager_review(
        db,
        review_id=review_id,
        actor_id=user.id,
        expected_version=parse_if_match(if_match),
    )
    set_etag(response, review.version)
    return review_to_out(review)


@router.post("/{review_id}/manager-input", response_model=ReviewOut)
def record_manager_input(
    review_id: uuid.UUID,
    payload: ManagerInput,
    response: Response,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
    if_match: str | None = Header(default=None, alias="If-Match"),
):
    kra_scores = None
    if payload.kra_scores is not None:
        kra_scores = [k.model_dump(mode="json", exclude_none=True) for k in payload.kra_scores]

    review = review_service.record_manager_input(
        db,
        review_id=review_id,
        actor_id=user.id,
        comments=payload.comments,
        l3_rating=payload.l3_rating,
        kra_scores=kra_scores,
        expected_version=parse_if_match(if_match),
    )
    set_etag(response, review.version)
    return review_to_out(review)


@router.get("/{review_id}/rating", response_model=RatingBreakdownOut)
def preview_rating(
    review_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    """Weighted rating the review would get if it were finalized now."""
    breakdown = review_service.preview_rating(db, review_id=review_id, actor_id=user.id)
    return RatingBreakdownOut(
        review_id=str(review_id),
        inputs=breakdown.inputs,
        substituted=breakdown.substituted,
        weighted_rating=breakdown.weighted_rating,
        suggested_final_rating=breakdown.suggested_final_rating,
    )


@router.post("/{review_id}/finalize", response_model=ReviewOut)
def finalize_review(
    review_id: uuid.UUID,
    payload: FinalizeReview,
    response: Response,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
    if_match: str | None = Header(default=None, alias="If-Match"),
):
    review = review_service.finalize_review(
        db,
        review_id=review_id,
        actor_id=user.id,
        final_increment_percentage=payload.final_increment_percentage,
        final_rating=payload.final_rating,
        comments=payload.comments,
        expected_version=parse_if_match(if_match),
    )
    set_etag(response, review.version)
    return review_to_out(review)
