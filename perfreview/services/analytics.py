"""
Read-only aggregates feeding the dashboards.

A review counts as finalized once it is ``completed`` or ``appeal_completed``;
reviews with an appeal in flight are excluded from rating figures until the
appeal is resolved.
"""
import uuid
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from perfreview.core.hierarchy import OrgChart
from perfreview.core.policy import Action, authorize
from perfreview.models.employee import Employee
from perfreview.models.employee_review import EmployeeReview
from perfreview.models.enums import FINALIZED_STATUSES, ReviewStatus
from perfreview.services.lookups import get_cycle_or_404, get_employee_or_404

PENDING_APPROVAL_STATUSES = (
    ReviewStatus.MANAGER_REVIEW.value,
    ReviewStatus.MEETING_SCHEDULED.value,
)

TWO_DECIMALS = Decimal("0.01")


def _avg(value) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value)).quantize(TWO_DECIMALS, rounding=ROUND_HALF_UP)


def _authorize_viewer(db: Session, actor_id: uuid.UUID) -> None:
    actor = get_employee_or_404(db, actor_id)
    authorize(actor.role, Action.VIEW_ANALYTICS)


def review_stats(db: Session, *, cycle_id: uuid.UUID, actor_id: uuid.UUID) -> dict:
    _authorize_viewer(db, actor_id)
    get_cycle_or_404(db, cycle_id)

    by_status = dict(
        db.query(EmployeeReview.status, func.count(EmployeeReview.id))
        .filter(EmployeeReview.cycle_id == cycle_id)
        .group_by(EmployeeReview.status)
        .all()
    )
    avg_rating = (
        db.query(func.avg(EmployeeReview.final_rating))
        .filter(
            EmployeeReview.cycle_id == cycle_id,
            EmployeeReview.status.in_(FINALIZED_STATUSES),
        )
        .scalar()
    )
    return {
        "cycle_id": str(cycle_id),
        "total": sum(by_status.values()),
        "completed": sum(by_status.get(s, 0) for s in FINALIZED_STATUSES),
        "average_final_rating": _avg(avg_rating),
        "by_status": {s.value: by_status.get(s.value, 0) for s in ReviewStatus},
    }


def rating_distribution(db: Session, *, cycle_id: uuid.UUID, actor_id: uuid.UUID) -> dict[int, int]:
    _authorize_viewer(db, actor_id)
    get_cycle_or_404(db, cycle_id)

    rows = (
        db.query(EmployeeReview.final_rating, func.count(EmployeeReview.id))
        .filter(
            EmployeeReview.cycle_id == cycle_id,
            EmployeeReview.status.in_(FINALIZED_STATUSES),
            EmployeeReview.final_rating.is_not(None),
        )
        .group_by(EmployeeReview.final_rating)
        .all()
    )
    distribution = {rating: 0 for rating in range(1, 6)}
    for rating, count in rows:
        distribution[int(rating)] = count
    return distribution


def department_performance(db: Session, *, cycle_id: uuid.UUID, actor_id: uuid.UUID) -> list[dict]:
    _authorize_viewer(db, actor_id)
    get_cycle_or_404(db, cycle_id)

    department = func.coalesce(Employee.department, "Unassigned")
    rows = (
        db.query(
            department,
            func.count(EmployeeReview.id),
            func.avg(EmployeeReview.final_rating),
        )
        .join(Employee, Employee.id == EmployeeReview.employee_id)
        .filter(
            EmployeeReview.cycle_id == cycle_id,
            EmployeeReview.status.in_(FINALIZED_STATUSES),
        )
        .group_by(department)
        .order_by(department)
        .all()
    )
    return [
        {"department": name, "employee_count": count, "average_rating": _avg(avg)}
        for name, count, avg in rows
    ]


def pending_approvals(db: Session, *, manager_id: uuid.UUID, cycle_id: uuid.UUID | None = None) -> list[EmployeeReview]:
    """Direct reports' reviews waiting on the manager (manager review or meeting)."""
    chart = OrgChart.load(db)
    reports = chart.direct_reports(manager_id)
    if not reports:
        return []

    q = db.query(EmployeeReview).filter(
        EmployeeReview.employee_id.in_(reports),
        EmployeeReview.status.in_(PENDING_APPROVAL_STATUSES),
    )
    if cycle_id is not None:
        q = q.filter(EmployeeReview.cycle_id == cycle_id)
    return q.order_by(EmployeeReview.updated_at.asc()).all()
