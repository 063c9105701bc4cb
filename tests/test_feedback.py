import pytest

from perfreview.core.errors import AuthorizationError, ConflictError, ValidationError
from perfreview.models.enums import ReviewStatus
from perfreview.models.feedback import RATING_FIELDS, Feedback
from perfreview.services import feedback as feedback_service
from tests.helpers import create_cycle, create_employee, create_org, drive_review, feedback_payload


def _submit(db, review, rater, **overrides):
    fb = feedback_payload(**overrides)
    return feedback_service.submit_feedback(
        db,
        review_id=review.id,
        actor_id=rater.id,
        ratings={k: fb[k] for k in RATING_FIELDS},
        overall_feedback=fb["overall_feedback"],
        strengths=fb["strengths"],
        improvements=fb["improvements"],
        is_anonymous=fb["is_anonymous"],
    )


@pytest.fixture()
def collecting(db_session):
    org = create_org(db_session)
    cycle = create_cycle(db_session, org.founder)
    review = drive_review(db_session, org, cycle, until=ReviewStatus.FEEDBACK_COLLECTION.value)
    return org, review


def test_one_feedback_per_rater(db_session, collecting):
    org, review = collecting

    _submit(db_session, review, org.l2)
    with pytest.raises(ConflictError):
        _submit(db_session, review, org.l2)

    rows = db_session.query(Feedback).filter(Feedback.review_id == review.id).all()
    assert len(rows) == 1


def test_cannot_rate_yourself(db_session, collecting):
    org, review = collecting
    with pytest.raises(AuthorizationError):
        _submit(db_session, review, org.peer)


def test_feedback_text_minimums(db_session, collecting):
    org, review = collecting
    with pytest.raises(ValidationError):
        _submit(db_session, review, org.l2, overall_feedback="Too short")
    with pytest.raises(ValidationError):
        _submit(db_session, review, org.l2, strengths="ok")
    assert feedback_service.list_feedback(db_session, review.id) == []


def test_feedback_ratings_are_validated(db_session, collecting):
    org, review = collecting
    with pytest.raises(ValidationError):
        _submit(db_session, review, org.l2, innovation=0)
    with pytest.raises(ValidationError):
        feedback_service.submit_feedback(
            db_session,
            review_id=review.id,
            actor_id=org.l2.id,
            ratings={"technical_competence": 4},
            overall_feedback=feedback_payload()["overall_feedback"],
            strengths="Reliable and kind",
        )


def test_feedback_only_while_collecting(db_session):
    org = create_org(db_session)
    cycle = create_cycle(db_session, org.founder)
    review = drive_review(db_session, org, cycle, until=ReviewStatus.SELF_ASSESSMENT.value)
    with pytest.raises(ConflictError):
        _submit(db_session, review, org.colleague)


def test_average_uses_four_core_criteria(db_session, collecting):
    org, review = collecting
    outsider = create_employee(db_session, "outsider@local.test")

    _submit(db_session, review, org.colleague)
    _submit(
        db_session, review, org.l2,
        technical_competence=5, communication_skills=5, team_collaboration=5, problem_solving=5,
        leadership_potential=1, reliability=1, innovation=1,
    )
    _submit(
        db_session, review, outsider,
        technical_competence=3, communication_skills=3, team_collaboration=3, problem_solving=3,
    )
    assert feedback_service.feedback_average(db_session, review.id) == 4
    assert [f.feedback_from_id for f in feedback_service.list_feedback(db_session, review.id)] == [
        org.colleague.id,
        org.l2.id,
        outsider.id,
    ]


def test_average_without_feedback(db_session):
    org = create_org(db_session)
    cycle = create_cycle(db_session, org.founder)
    review = drive_review(db_session, org, cycle, until=ReviewStatus.SELF_ASSESSMENT.value)
    assert feedback_service.feedback_average(db_session, review.id) is None
