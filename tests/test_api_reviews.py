from decimal import Decimal

from fastapi.testclient import TestClient

from perfreview.main import app
from tests.helpers import create_cycle, create_org, feedback_payload, headers, self_assessment_payload


def test_requires_dev_auth_header(db_session):
    client = TestClient(app)
    r = client.post("/reviews", json={})
    assert r.status_code == 401

    r = client.post("/reviews", json={}, headers={"X-User-Email": "ghost@local.test"})
    assert r.status_code == 401


def test_review_flow_over_http(db_session):
    org = create_org(db_session)
    cycle = create_cycle(db_session, org.founder)
    client = TestClient(app)

    # start own review in the active cycle
    r = client.post("/reviews", json={}, headers=headers(org.peer))
    assert r.status_code == 201
    review = r.json()
    assert review["status"] == "self_assessment"
    assert review["cycle_id"] == str(cycle.id)
    review_id = review["id"]

    r = client.get(f"/reviews/{review_id}", headers=headers(org.peer))
    assert r.status_code == 200
    etag = r.headers["ETag"]

    r = client.post(
        f"/reviews/{review_id}/self-assessment",
        json=self_assessment_payload(),
        headers={**headers(org.peer), "If-Match": etag},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "feedback_collection"
    assert body["self_assessment_data"]["teamCollaboration"] == 4
    assert Decimal(body["current_ctc"]) == Decimal("1200000")

    r = client.post(f"/reviews/{review_id}/feedback", json=feedback_payload(), headers=headers(org.colleague))
    assert r.status_code == 201
    r = client.post(
        f"/reviews/{review_id}/feedback",
        json=feedback_payload(is_anonymous=False),
        headers=headers(org.l2),
    )
    assert r.status_code == 201

    # duplicate
    r = client.post(f"/reviews/{review_id}/feedback", json=feedback_payload(), headers=headers(org.colleague))
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "CONFLICT"

    # the reviewed employee sees feedback without anonymous raters
    r = client.get(f"/reviews/{review_id}/feedback", headers=headers(org.peer))
    assert r.status_code == 200
    raters = [f["feedback_from_id"] for f in r.json()]
    assert raters == [None, str(org.l2.id)]

    r = client.post(f"/reviews/{review_id}/advance", headers=headers(org.l3))
    assert r.status_code == 200
    assert r.json()["status"] == "manager_review"

    r = client.post(
        f"/reviews/{review_id}/manager-input",
        json={"comments": "Strong delivery", "l3_rating": 4, "kra_scores": [{"kra": "Delivery", "weight": 2, "score": 5}]},
        headers=headers(org.l3),
    )
    assert r.status_code == 200
    assert r.json()["kra_scores"] == [{"kra": "Delivery", "weight": "2", "score": 5}]

    r = client.get(f"/reviews/{review_id}/rating", headers=headers(org.l2))
    assert r.status_code == 200
    # 0.4*4 + 0.3*4 + 0.2*4 + 0.1*5
    assert Decimal(r.json()["weighted_rating"]) == Decimal("4.1")
    assert r.json()["suggested_final_rating"] == 4

    r = client.post(
        f"/reviews/{review_id}/meetings",
        json={"scheduled_at": "2026-02-20T10:00:00", "meeting_link": "https://meet.local.test/abc"},
        headers=headers(org.l3),
    )
    assert r.status_code == 201
    meeting_id = r.json()["id"]

    r = client.post(f"/meetings/{meeting_id}/complete", json={"notes": "Discussed goals"}, headers=headers(org.l3))
    assert r.status_code == 200
    assert r.json()["status"] == "completed"

    r = client.post(
        f"/reviews/{review_id}/finalize",
        json={"final_increment_percentage": "12"},
        headers=headers(org.l2),
    )
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "completed"
    assert body["final_rating"] == 4
    assert Decimal(body["weighted_rating"]) == Decimal("4.1")
    assert body["meeting_notes"] == "Discussed goals"

    r = client.post(
        f"/reviews/{review_id}/appeal",
        json={
            "reason": "My mentoring work for the new hires was not considered at all in this review.",
            "desired_outcome": "Consider the mentoring work",
        },
        headers=headers(org.peer),
    )
    assert r.status_code == 201
    appeal_id = r.json()["id"]

    r = client.get(f"/appeals/{appeal_id}", headers=headers(org.peer))
    assert r.status_code == 200
    assert r.json()["status"] == "pending"

    r = client.post(
        f"/appeals/{appeal_id}/resolve",
        json={"decision": "accepted", "override_rating": 5, "response": "Agreed"},
        headers=headers(org.l2),
    )
    assert r.status_code == 200
    assert r.json()["status"] == "accepted"

    r = client.post(f"/appeals/{appeal_id}/complete", headers=headers(org.l2))
    assert r.status_code == 200
    assert r.json()["status"] == "completed"

    r = client.get(f"/reviews/{review_id}", headers=headers(org.peer))
    assert r.json()["status"] == "appeal_completed"
    assert r.json()["final_rating"] == 5


def test_forbidden_action_returns_403_detail(db_session):
    org = create_org(db_session)
    create_cycle(db_session, org.founder)
    client = TestClient(app)

    review_id = client.post("/reviews", json={}, headers=headers(org.peer)).json()["id"]
    r = client.post(f"/reviews/{review_id}/advance", headers=headers(org.colleague))
    assert r.status_code == 403
    assert r.json()["detail"] == {
        "message": "Role 'peer' may not advance to manager review",
        "code": "NOT_PERMITTED",
        "action": "advance_to_manager_review",
    }

    r = client.get(f"/reviews/{review_id}", headers=headers(org.colleague))
    assert r.status_code == 403


def test_wrong_state_returns_409(db_session):
    org = create_org(db_session)
    create_cycle(db_session, org.founder)
    client = TestClient(app)

    review_id = client.post("/reviews", json={}, headers=headers(org.peer)).json()["id"]
    r = client.post(f"/reviews/{review_id}/advance", headers=headers(org.l3))
    assert r.status_code == 409
    assert r.json()["detail"]["status"] == "self_assessment"


def test_stale_if_match_returns_409(db_session):
    org = create_org(db_session)
    create_cycle(db_session, org.founder)
    client = TestClient(app)

    r = client.post("/reviews", json={}, headers=headers(org.peer))
    review_id = r.json()["id"]
    version = r.json()["version"]

    r = client.post(
        f"/reviews/{review_id}/self-assessment",
        json=self_assessment_payload(),
        headers={**headers(org.peer), "If-Match": f'"{version - 1}"'},
    )
    assert r.status_code == 409
    assert r.json()["detail"]["message"] == "Stale version"

    r = client.post(
        f"/reviews/{review_id}/self-assessment",
        json=self_assessment_payload(),
        headers={**headers(org.peer), "If-Match": "abc"},
    )
    assert r.status_code == 400


def test_invalid_payloads_return_422(db_session):
    org = create_org(db_session)
    create_cycle(db_session, org.founder)
    client = TestClient(app)

    review_id = client.post("/reviews", json={}, headers=headers(org.peer)).json()["id"]
    r = client.post(
        f"/reviews/{review_id}/self-assessment",
        json=self_assessment_payload(teamCollaboration=7),
        headers=headers(org.peer),
    )
    assert r.status_code == 422

    r = client.get(f"/reviews/{review_id}", headers=headers(org.peer))
    assert r.json()["status"] == "self_assessment"


def test_unknown_review_returns_404(db_session):
    org = create_org(db_session)
    client = TestClient(app)
    r = client.get("/reviews/00000000-0000-0000-0000-000000000000", headers=headers(org.founder))
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "NOT_FOUND"
