from decimal import Decimal

import pytest

from perfreview.core.errors import AuthorizationError, ConflictError, ValidationError
from perfreview.core.hierarchy import OrgChart
from perfreview.core.notifications import APPEAL_NOTIFICATION
from perfreview.models.employee_review import EmployeeReview
from perfreview.models.enums import AppealStatus, ReviewStatus, Role
from perfreview.services import appeals as appeal_service
from tests.helpers import RecordingNotifier, create_cycle, create_employee, create_org, drive_review

REASON = "The rating ignores the migration project I led for most of the second half of the year."
OUTCOME = "Re-evaluate the rating with the migration included."


@pytest.fixture()
def completed(db_session):
    org = create_org(db_session)
    cycle = create_cycle(db_session, org.founder)
    review = drive_review(db_session, org, cycle, until=ReviewStatus.COMPLETED.value)
    return org, review


def _file(db, org, review, **kwargs):
    params = {"reason": REASON, "desired_outcome": OUTCOME}
    params.update(kwargs)
    return appeal_service.file_appeal(db, review_id=review.id, actor_id=org.peer.id, **params)


def test_file_appeal(db_session, completed):
    org, review = completed
    notifier = RecordingNotifier()

    appeal = _file(db_session, org, review, supporting_documents=["q3-report.pdf", " "], notifier=notifier)

    assert appeal.status == AppealStatus.PENDING.value
    assert appeal.supporting_documents == ["q3-report.pdf"]
    assert review.status == ReviewStatus.APPEAL_REQUESTED.value
    assert review.appeal_used is True
    # first L2 manager up the chain handles appeals
    assert notifier.sent == [
        (
            org.l2.email,
            APPEAL_NOTIFICATION,
            {
                "employee_name": org.peer.full_name,
                "manager_name": org.l2.full_name,
                "reason": REASON,
                "appeal_id": str(appeal.id),
            },
        )
    ]


def test_appeal_is_single_use(db_session, completed):
    org, review = completed
    appeal = _file(db_session, org, review)
    with pytest.raises(ConflictError):
        _file(db_session, org, review)

    appeal_service.resolve_appeal(db_session, appeal_id=appeal.id, actor_id=org.l2.id, decision="rejected")
    with pytest.raises(ConflictError):
        _file(db_session, org, review)
    assert review.appeal_used is True


def test_appeal_validation_leaves_review_untouched(db_session, completed):
    org, review = completed
    with pytest.raises(ValidationError):
        _file(db_session, org, review, reason="Unfair")
    with pytest.raises(ValidationError):
        _file(db_session, org, review, desired_outcome="Higher")
    assert review.status == ReviewStatus.COMPLETED.value
    assert review.appeal_used is False


def test_only_the_employee_appeals(db_session, completed):
    org, review = completed
    with pytest.raises(AuthorizationError):
        appeal_service.file_appeal(
            db_session, review_id=review.id, actor_id=org.l3.id, reason=REASON, desired_outcome=OUTCOME
        )


def test_appeal_requires_completed_review(db_session):
    org = create_org(db_session)
    cycle = create_cycle(db_session, org.founder)
    review = drive_review(db_session, org, cycle, until=ReviewStatus.MEETING_SCHEDULED.value)
    with pytest.raises(ConflictError):
        _file(db_session, org, review)
    assert review.appeal_used is False


def test_accept_with_override_updates_review(db_session, completed):
    org, review = completed
    appeal = _file(db_session, org, review)

    with pytest.raises(AuthorizationError):
        appeal_service.resolve_appeal(db_session, appeal_id=appeal.id, actor_id=org.l3.id, decision="accepted")

    appeal = appeal_service.resolve_appeal(
        db_session,
        appeal_id=appeal.id,
        actor_id=org.l2.id,
        decision="accepted",
        response="Migration was under-weighted",
        override_rating=5,
    )
    assert appeal.status == AppealStatus.ACCEPTED.value
    assert appeal.manager_id == org.l2.id
    assert appeal.final_rating == 5
    assert review.final_rating == 5
    assert review.status == ReviewStatus.APPEAL_COMPLETED.value

    appeal = appeal_service.complete_appeal(db_session, appeal_id=appeal.id, actor_id=org.founder.id, final_rating=4)
    assert appeal.status == AppealStatus.COMPLETED.value
    assert review.final_rating == 4


@pytest.mark.parametrize("who", ["peer", "colleague", "l3", "l1"])
def test_resolve_requires_an_approver(db_session, completed, who):
    org, review = completed
    appeal = _file(db_session, org, review)

    with pytest.raises(AuthorizationError):
        appeal_service.resolve_appeal(
            db_session, appeal_id=appeal.id, actor_id=getattr(org, who).id, decision="accepted"
        )
    assert appeal.status == AppealStatus.PENDING.value
    assert review.status == ReviewStatus.APPEAL_REQUESTED.value


def test_founder_resolves_appeal(db_session, completed):
    org, review = completed
    appeal = _file(db_session, org, review)

    appeal = appeal_service.resolve_appeal(
        db_session, appeal_id=appeal.id, actor_id=org.founder.id, decision="rejected", response="Rating stands"
    )
    assert appeal.status == AppealStatus.REJECTED.value
    assert appeal.manager_id == org.founder.id
    assert appeal.manager_response == "Rating stands"
    assert review.status == ReviewStatus.APPEAL_COMPLETED.value


def _completed_review_for(db, employee, cycle):
    review = EmployeeReview(
        employee_id=employee.id,
        cycle_id=cycle.id,
        status=ReviewStatus.COMPLETED.value,
        final_rating=3,
        final_increment_percentage=Decimal("5"),
    )
    db.add(review)
    db.commit()
    return review


def test_approver_cannot_decide_own_appeal(db_session):
    org = create_org(db_session)
    cycle = create_cycle(db_session, org.founder)
    review = _completed_review_for(db_session, org.l2, cycle)
    notifier = RecordingNotifier()

    appeal = appeal_service.file_appeal(
        db_session, review_id=review.id, actor_id=org.l2.id, reason=REASON, desired_outcome=OUTCOME, notifier=notifier
    )
    # nobody above l2 is an L2 manager, so the founder handles it
    assert notifier.sent[0][0] == org.founder.email

    with pytest.raises(AuthorizationError):
        appeal_service.resolve_appeal(
            db_session, appeal_id=appeal.id, actor_id=org.l2.id, decision="accepted", override_rating=5
        )
    assert appeal.status == AppealStatus.PENDING.value
    assert review.final_rating == 3

    appeal_service.resolve_appeal(db_session, appeal_id=appeal.id, actor_id=org.founder.id, decision="accepted")
    with pytest.raises(AuthorizationError):
        appeal_service.complete_appeal(db_session, appeal_id=appeal.id, actor_id=org.l2.id, final_rating=5)
    assert review.final_rating == 3


def test_pending_appeals_for_approvers(db_session, completed):
    org, review = completed
    cycle = review.cycle
    peer_appeal = _file(db_session, org, review)
    own_review = _completed_review_for(db_session, org.l2, cycle)
    own_appeal = appeal_service.file_appeal(
        db_session, review_id=own_review.id, actor_id=org.l2.id, reason=REASON, desired_outcome=OUTCOME
    )

    def ids(who, **kwargs):
        return [a.id for a in appeal_service.pending_appeals(db_session, actor_id=who.id, **kwargs)]

    assert ids(org.l2) == [peer_appeal.id]
    assert ids(org.founder) == [peer_appeal.id, own_appeal.id]
    assert ids(org.founder, cycle_id=cycle.id) == [peer_appeal.id, own_appeal.id]
    assert ids(org.l3) == []
    assert ids(org.peer) == []

    appeal_service.resolve_appeal(db_session, appeal_id=peer_appeal.id, actor_id=org.founder.id, decision="rejected")
    assert ids(org.l2) == []
    assert ids(org.founder) == [own_appeal.id]


def test_resolve_rules(db_session, completed):
    org, review = completed
    appeal = _file(db_session, org, review)

    with pytest.raises(ValidationError):
        appeal_service.resolve_appeal(db_session, appeal_id=appeal.id, actor_id=org.l2.id, decision="maybe")
    with pytest.raises(ValidationError):
        appeal_service.resolve_appeal(
            db_session, appeal_id=appeal.id, actor_id=org.l2.id, decision="rejected", override_rating=5
        )
    with pytest.raises(ConflictError):
        appeal_service.complete_appeal(db_session, appeal_id=appeal.id, actor_id=org.l2.id)
    assert appeal.status == AppealStatus.PENDING.value
    assert review.status == ReviewStatus.APPEAL_REQUESTED.value

    appeal_service.resolve_appeal(db_session, appeal_id=appeal.id, actor_id=org.l2.id, decision="rejected")
    with pytest.raises(ConflictError):
        appeal_service.resolve_appeal(db_session, appeal_id=appeal.id, actor_id=org.l2.id, decision="accepted")
    with pytest.raises(ValidationError):
        appeal_service.complete_appeal(db_session, appeal_id=appeal.id, actor_id=org.l2.id, final_rating=5)


def test_handling_manager_falls_back_to_direct_manager(db_session):
    lead = create_employee(db_session, "lead@local.test", role=Role.L3_MANAGER)
    dev = create_employee(db_session, "dev@local.test", manager=lead)
    assert appeal_service.handling_manager(db_session, OrgChart.load(db_session), dev).id == lead.id

    founder = create_employee(db_session, "boss@local.test", role=Role.FOUNDER)
    lead.manager_id = founder.id
    db_session.commit()
    assert appeal_service.handling_manager(db_session, OrgChart.load(db_session), dev).id == founder.id
