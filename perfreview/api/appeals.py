import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from perfreview.core.security import get_current_user
from perfreview.db.session import get_db
from perfreview.models.appeal import Appeal
from perfreview.models.employee import Employee
from perfreview.schemas.appeal import AppealComplete, AppealCreate, AppealOut, AppealResolve
from perfreview.services import appeals as appeal_service

router = APIRouter(tags=["appeals"])


def appeal_to_out(a: Appeal) -> AppealOut:
    return AppealOut(
        id=str(a.id),
        review_id=str(a.review_id),
        employee_id=str(a.employee_id),
        reason=a.reason,
        desired_outcome=a.desired_outcome,
        supporting_documents=a.supporting_documents,
        status=a.status,
        manager_id=str(a.manager_id) if a.manager_id else None,
        manager_response=a.manager_response,
        final_rating=a.final_rating,
        created_at=a.created_at,
        updated_at=a.updated_at,
    )


@router.post("/reviews/{review_id}/appeal", response_model=AppealOut, status_code=status.HTTP_201_CREATED)
def file_appeal(
    review_id: uuid.UUID,
    payload: AppealCreate,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    appeal = appeal_service.file_appeal(
        db,
        review_id=review_id,
        actor_id=user.id,
        reason=payload.reason,
        desired_outcome=payload.desired_outcome,
        supporting_documents=payload.supporting_documents,
    )
    return appeal_to_out(appeal)


@router.get("/appeals/{appeal_id}", response_model=AppealOut)
def get_appeal(
    appeal_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    return appeal_to_out(appeal_service.get_appeal(db, appeal_id=appeal_id, actor_id=user.id))


@router.post("/appeals/{appeal_id}/resolve", response_model=AppealOut)
def resolve_appeal(
    appeal_id: uuid.UUID,
    payload: AppealResolve,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    appeal = appeal_service.resolve_appeal(
        db,
        appeal_id=appeal_id,
        actor_id=user.id,
        decision=payload.decision,
        response=payload.response,
        override_rating=payload.override_rating,
    )
    return appeal_to_out(appeal)


@router.post("/appeals/{appeal_id}/complete", response_model=AppealOut)
def complete_appeal(
    appeal_id: uuid.UUID,
    payload: AppealComplete | None = None,
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    appeal = appeal_service.complete_appeal(
        db,
        appeal_id=appeal_id,
        actor_id=user.id,
        final_rating=payload.final_rating if payload else None,
    )
    return appeal_to_out(appeal)
