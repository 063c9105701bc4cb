from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session

from perfreview.core.notifications import Notifier
from perfreview.models.employee import Employee
from perfreview.models.enums import Role
from perfreview.models.feedback import RATING_FIELDS
from perfreview.models.review_cycle import ReviewCycle
from perfreview.services import feedback as feedback_service
from perfreview.services import reviews as review_service


def create_employee(
    db: Session,
    email: str,
    *,
    role: Role = Role.PEER,
    manager: Employee | None = None,
    first_name: str | None = None,
    last_name: str = "Test",
    department: str | None = "Engineering",
    category: str | None = None,
) -> Employee:
    e = Employee(
        email=email,
        first_name=first_name or email.split("@")[0].title(),
        last_name=last_name,
        role=role.value,
        category=category,
        department=department,
        manager_id=manager.id if manager else None,
        is_active=True,
    )
    db.add(e)
    db.commit()
    db.refresh(e)
    return e


@dataclass
class Org:
    founder: Employee
    l1: Employee
    l2: Employee
    l3: Employee
    peer: Employee
    colleague: Employee


def create_org(db: Session) -> Org:
    """founder -> l1 -> l2 -> l3 -> {peer, colleague}"""
    founder = create_employee(db, "founder@local.test", role=Role.FOUNDER, department=None)
    l1 = create_employee(db, "l1@local.test", role=Role.L1_MANAGER, manager=founder)
    l2 = create_employee(db, "l2@local.test", role=Role.L2_MANAGER, manager=l1)
    l3 = create_employee(db, "l3@local.test", role=Role.L3_MANAGER, manager=l2)
    peer = create_employee(
        db, "peer@local.test", role=Role.PEER, manager=l3, category="software_developer"
    )
    colleague = create_employee(
        db, "colleague@local.test", role=Role.PEER, manager=l3, category="qa_engineer"
    )
    return Org(founder=founder, l1=l1, l2=l2, l3=l3, peer=peer, colleague=colleague)


def create_cycle(
    db: Session,
    created_by: Employee | None = None,
    *,
    name: str = "2026 Annual Review",
    is_active: bool = True,
    start: date | None = None,
) -> ReviewCycle:
    start = start or date(2026, 1, 1)
    c = ReviewCycle(
        name=name,
        start_date=start,
        self_assessment_deadline=start + timedelta(days=14),
        feedback_deadline=start + timedelta(days=28),
        review_deadline=start + timedelta(days=42),
        meeting_deadline=start + timedelta(days=56),
        end_date=start + timedelta(days=60),
        is_active=is_active,
        created_by_id=created_by.id if created_by else None,
    )
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


def self_assessment_payload(**overrides) -> dict:
    payload = {
        "currentCtc": "1200000",
        "expectedCtc": "1400000",
        "expectedIncrementPercentage": "15",
        "careerGoals": "Lead the payments platform migration",
        "workFromHomePreference": "hybrid",
        "projectContributions": "Shipped the new billing pipeline",
        "teamCollaboration": 4,
        "initiatives": "Started a weekly design review",
        "challenges": "Legacy code with no tests, added coverage first",
        "areasOfImprovement": "Delegating work earlier",
    }
    payload.update(overrides)
    return payload


def feedback_payload(**overrides) -> dict:
    payload = {
        "technical_competence": 4,
        "communication_skills": 4,
        "team_collaboration": 4,
        "problem_solving": 4,
        "leadership_potential": 3,
        "reliability": 5,
        "innovation": 3,
        "overall_feedback": "Consistently delivers high quality work and helps the rest of the team get unblocked.",
        "strengths": "Ownership and clear code reviews",
        "improvements": "Could share context earlier",
        "is_anonymous": True,
    }
    payload.update(overrides)
    return payload


def headers(employee: Employee) -> dict[str, str]:
    return {"X-User-Email": employee.email}


class RecordingNotifier(Notifier):
    def __init__(self):
        self.sent: list[tuple[str, str, dict]] = []

    def notify(self, recipient_email, template_kind, context):
        self.sent.append((recipient_email, template_kind, dict(context)))
        return True


class FailingNotifier(Notifier):
    def notify(self, recipient_email, template_kind, context):
        raise RuntimeError("mail server down")


class RejectingNotifier(Notifier):
    def notify(self, recipient_email, template_kind, context):
        return False


def drive_review(db: Session, org: Org, cycle: ReviewCycle, *, until: str, notifier: Notifier | None = None):
    """Walk the peer's review through the normal lifecycle up to status ``until``."""
    notifier = notifier or RecordingNotifier()
    review = review_service.create_review(db, employee_id=org.peer.id, cycle_id=cycle.id, actor_id=org.peer.id)
    if review.status == until:
        return review

    review = review_service.submit_self_assessment(
        db, review_id=review.id, actor_id=org.peer.id, payload=self_assessment_payload()
    )
    if review.status == until:
        return review

    fb = feedback_payload()
    feedback_service.submit_feedback(
        db,
        review_id=review.id,
        actor_id=org.colleague.id,
        ratings={k: fb[k] for k in RATING_FIELDS},
        overall_feedback=fb["overall_feedback"],
        strengths=fb["strengths"],
        improvements=fb["improvements"],
        is_anonymous=fb["is_anonymous"],
    )
    review = review_service.advance_to_manager_review(
        db, review_id=review.id, actor_id=org.l3.id, notifier=notifier
    )
    if review.status == until:
        return review

    review_service.schedule_meeting(
        db,
        review_id=review.id,
        actor_id=org.l3.id,
        scheduled_at=datetime(2026, 2, 20, 10, 0),
        notifier=notifier,
    )
    if review.status == until:
        return review

    review = review_service.finalize_review(
        db,
        review_id=review.id,
        actor_id=org.l2.id,
        final_increment_percentage="10",
        notifier=notifier,
    )
    return review
