import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from perfreview.core.policy import Action, authorize
from perfreview.core.security import get_current_user
from perfreview.db.session import get_db
from perfreview.models.activity_log import ActivityLog
from perfreview.models.employee import Employee
from perfreview.schemas.activity import ActivityOut

router = APIRouter(prefix="/activity", tags=["activity"])


@router.get("", response_model=list[ActivityOut])
def list_activity(
    entity_type: str | None = Query(default=None),
    entity_id: uuid.UUID | None = Query(default=None),
    action: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    """Most recent activity first."""
    authorize(user.role, Action.VIEW_ACTIVITY)

    q = db.query(ActivityLog)
    if entity_type:
        q = q.filter(ActivityLog.entity_type == entity_type)
    if entity_id:
        q = q.filter(ActivityLog.entity_id == entity_id)
    if action:
        q = q.filter(ActivityLog.action == action)

    rows = q.order_by(ActivityLog.created_at.desc()).limit(limit).all()
    return [
        ActivityOut(
            id=str(r.id),
            actor_id=str(r.actor_id) if r.actor_id else None,
            action=r.action,
            description=r.description,
            entity_type=r.entity_type,
            entity_id=str(r.entity_id) if r.entity_id else None,
            created_at=r.created_at,
        )
        for r in rows
    ]
