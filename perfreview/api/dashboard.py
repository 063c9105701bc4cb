import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from perfreview.core.errors import NotFoundError
from perfreview.core.security import get_current_user
from perfreview.db.session import get_db
from perfreview.models.employee import Employee
from perfreview.schemas.stats import DepartmentPerformance, ReviewStats
from perfreview.services import analytics
from perfreview.services.cycles import get_active_cycle

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def _resolve_cycle_id(db: Session, cycle_id: uuid.UUID | None) -> uuid.UUID:
    if cycle_id is not None:
        return cycle_id
    cycle = get_active_cycle(db)
    if not cycle:
        raise NotFoundError("No active cycle")
    return cycle.id


@router.get("/stats", response_model=ReviewStats)
def stats(
    cycle_id: uuid.UUID | None = Query(default=None, description="Defaults to the active cycle"),
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    data = analytics.review_stats(db, cycle_id=_resolve_cycle_id(db, cycle_id), actor_id=user.id)
    return ReviewStats(**data)


@router.get("/rating-distribution", response_model=dict[int, int])
def rating_distribution(
    cycle_id: uuid.UUID | None = Query(default=None, description="Defaults to the active cycle"),
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    return analytics.rating_distribution(db, cycle_id=_resolve_cycle_id(db, cycle_id), actor_id=user.id)


@router.get("/department-performance", response_model=list[DepartmentPerformance])
def department_performance(
    cycle_id: uuid.UUID | None = Query(default=None, description="Defaults to the active cycle"),
    db: Session = Depends(get_db),
    user: Employee = Depends(get_current_user),
):
    rows = analytics.department_performance(db, cycle_id=_resolve_cycle_id(db, cycle_id), actor_id=user.id)
    return [DepartmentPerformance(**row) for row in rows]
