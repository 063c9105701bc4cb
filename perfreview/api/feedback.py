import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from perfreview.core.security import get_current_user
from perfreview.db.session import get_db
from perfreview.models.employee import Employee
from perfreview.models.feedback import RATING_FIELDS, Feedback
from perfreview.schemas.feedback import FeedbackCreate, FeedbackOut
from perfreview.services import feedback as feedback_service

router = APIRouter(prefix="/reviews/{review_id}/feedback", tags=["feedback"])


def feedback_to_out(f: Feedback, *, viewer_id: uuid.UUID | None = None) -> FeedbackOut:
    # Anonymous raters are only visible to themselves
    show_rater = not f.is_anonymous or f.feedback_from_id == viewer_id
    return FeedbackOut(
        id=str(f.id),
        review_id=str(f.review_id),
        feedback_from_id=str(f.feedback_from_id) if show_rater else None,
        overall_feedback=f.overall_feedback,
        strengths=f.strengths,
        improvements=f.improvements,
        is_anonymous=f.is_anonymous,
        created_at=f.created_at,
        **{name: getattr(f, name) for name in RATING_FIELDS},
    )


@router.post("", response_model=FeedbackOut, status_code=status.HTTP_201_CREATED)
def submit_feedback(
    review_id: uuid.UUID,
    payload: FeedbackCreate,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    feedback = feedback_service.submit_feedback(
        db,
        review_id=review_id,
        actor_id=user.id,
        ratings=payload.model_dump(include=set(RATING_FIELDS)),
        overall_feedback=payload.overall_feedback,
        strengths=payload.strengths,
        improvements=payload.improvements,
        is_anonymous=payload.is_anonymous,
    )
    return feedback_to_out(feedback, viewer_id=user.id)


@router.get("", response_model=list[FeedbackOut])
def list_feedback(
    review_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    rows = feedback_service.list_feedback_for_viewer(db, review_id=review_id, actor_id=user.id)
    return [feedback_to_out(f, viewer_id=user.id) for f in rows]
