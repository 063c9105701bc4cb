import uuid

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session

from perfreview.core.optimistic_lock import parse_if_match
from perfreview.core.security import get_current_user
from perfreview.db.session import get_db
from perfreview.models.employee import Employee
from perfreview.models.meeting import Meeting
from perfreview.schemas.meeting import MeetingCreate, MeetingOut, MeetingUpdate
from perfreview.services import reviews as review_service

router = APIRouter(tags=["meetings"])


def meeting_to_out(m: Meeting) -> MeetingOut:
    return MeetingOut(
        id=str(m.id),
        review_id=str(m.review_id),
        manager_id=str(m.manager_id),
        employee_id=str(m.employee_id),
        scheduled_at=m.scheduled_at,
        duration_minutes=m.duration_minutes,
        meeting_link=m.meeting_link,
        status=m.status,
        notes=m.notes,
        created_at=m.created_at,
    )


@router.post("/reviews/{review_id}/meetings", response_model=MeetingOut, status_code=status.HTTP_201_CREATED)
def schedule_meeting(
    review_id: uuid.UUID,
    payload: MeetingCreate,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
    if_match: str | None = Header(default=None, alias="If-Match"),
):
    meeting = review_service.schedule_meeting(
        db,
        review_id=review_id,
        actor_id=user.id,
        scheduled_at=payload.scheduled_at,
        duration_minutes=payload.duration_minutes,
        meeting_link=payload.meeting_link,
        expected_version=parse_if_match(if_match),
    )
    return meeting_to_out(meeting)


@router.post("/meetings/{meeting_id}/complete", response_model=MeetingOut)
def complete_meeting(
    meeting_id: uuid.UUID,
    payload: MeetingUpdate | None = None,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    notes = payload.notes if payload else None
    return meeting_to_out(review_service.complete_meeting(db, meeting_id=meeting_id, actor_id=user.id, notes=notes))


@router.post("/meetings/{meeting_id}/cancel", response_model=MeetingOut)
def cancel_meeting(
    meeting_id: uuid.UUID,
    payload: MeetingUpdate | None = None,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    notes = payload.notes if payload else None
    return meeting_to_out(review_service.cancel_meeting(db, meeting_id=meeting_id, actor_id=user.id, notes=notes))
