import uuid

from sqlalchemy.orm import Session

from perfreview.core.errors import NotFoundError
from perfreview.models.appeal import Appeal
from perfreview.models.employee import Employee
from perfreview.models.employee_review import EmployeeReview
from perfreview.models.meeting import Meeting
from perfreview.models.review_cycle import ReviewCycle


def get_employee_or_404(db: Session, employee_id: uuid.UUID) -> Employee:
    employee = db.get(Employee, employee_id)
    if not employee or not employee.is_active:
        raise NotFoundError("Employee not found")
    return employee


def get_cycle_or_404(db: Session, cycle_id: uuid.UUID) -> ReviewCycle:
    cycle = db.get(ReviewCycle, cycle_id)
    if not cycle:
        raise NotFoundError("Cycle not found")
    return cycle


def get_review_or_404(db: Session, review_id: uuid.UUID) -> EmployeeReview:
    review = db.get(EmployeeReview, review_id)
    if not review:
        raise NotFoundError("Review not found")
    return review


def lock_review_or_404(db: Session, review_id: uuid.UUID) -> EmployeeReview:
    review = (
        db.query(EmployeeReview)
        .filter(EmployeeReview.id == review_id)
        .with_for_update()
        .one_or_none()
    )
    if not review:
        raise NotFoundError("Review not found")
    return review


def lock_appeal_or_404(db: Session, appeal_id: uuid.UUID) -> Appeal:
    appeal = (
        db.query(Appeal)
        .filter(Appeal.id == appeal_id)
        .with_for_update()
        .one_or_none()
    )
    if not appeal:
        raise NotFoundError("Appeal not found")
    return appeal


def get_meeting_or_404(db: Session, meeting_id: uuid.UUID) -> Meeting:
    meeting = db.get(Meeting, meeting_id)
    if not meeting:
        raise NotFoundError("Meeting not found")
    return meeting


def get_appeal_or_404(db: Session, appeal_id: uuid.UUID) -> Appeal:
    appeal = db.get(Appeal, appeal_id)
    if not appeal:
        raise NotFoundError("Appeal not found")
    return appeal
