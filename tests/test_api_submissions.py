"""
tests/test_api_submissions.py -- Integration tests for /api/v1/submissions.

The walkthrough class follows one submission from creation to review across
three accounts; the remaining classes pin down role gates, row-level rules
and the error envelope for each route.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import bearer, register_account

_SUBMISSION = {
    "title": "Reef survey",
    "description": "Transect 4, section A-7",
    "dataType": "observation",
    "data": {"species": "Acropora cervicornis", "count": 12},
    "attachments": ["/uploads/reef-1.jpg"],
}


@pytest.fixture
def accounts(client: TestClient) -> dict[str, dict]:
    """Register gov, r1 and r2; return {name: {"id", "headers"}}."""
    out = {}
    for name, email, role in (
        ("gov", "gov@example.com", "government"),
        ("r1", "r1@lab.org", "researcher"),
        ("r2", "r2@lab.org", "researcher"),
    ):
        session = register_account(client, email, role=role)
        out[name] = {"id": session["user"]["id"], "headers": bearer(session["accessToken"])}
    return out


def _create(client: TestClient, headers: dict, **overrides) -> dict:
    resp = client.post("/api/v1/submissions", json={**_SUBMISSION, **overrides}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["submission"]


class TestWalkthrough:
    def test_create_hide_review_reveal(self, client: TestClient, accounts) -> None:
        gov, r1, r2 = accounts["gov"], accounts["r1"], accounts["r2"]

        resp = client.post("/api/v1/submissions", json=_SUBMISSION, headers=r1["headers"])
        assert resp.status_code == 201
        assert resp.json()["message"] == "Submission created successfully. Awaiting government approval."
        sub = resp.json()["submission"]
        assert sub["status"] == "pending"
        assert sub["submittedBy"] == r1["id"]
        assert sub["dataType"] == "observation"
        assert sub["reviewedBy"] is None

        # r2 cannot see r1's pending submission, in the list or directly.
        listed = client.get("/api/v1/submissions", headers=r2["headers"]).json()["submissions"]
        assert sub["id"] not in {s["id"] for s in listed}
        assert client.get(f"/api/v1/submissions/{sub['id']}", headers=r2["headers"]).status_code == 403

        # gov sees it in the queue and approves it.
        queue = client.get("/api/v1/submissions/pending", headers=gov["headers"]).json()
        assert [s["id"] for s in queue["submissions"]] == [sub["id"]]
        assert queue["meta"]["total"] == 1

        resp = client.post(
            f"/api/v1/submissions/{sub['id']}/review",
            json={"action": "approve", "notes": "looks good"},
            headers=gov["headers"],
        )
        assert resp.status_code == 200
        reviewed = resp.json()["submission"]
        assert reviewed["status"] == "approved"
        assert reviewed["reviewNotes"] == "looks good"
        assert reviewed["reviewedBy"] == gov["id"]
        assert reviewed["reviewedAt"]

        # Approved submissions are public to every researcher.
        resp = client.get(f"/api/v1/submissions/{sub['id']}", headers=r2["headers"])
        assert resp.status_code == 200
        assert resp.json()["submission"]["status"] == "approved"
        assert client.get("/api/v1/submissions/pending", headers=gov["headers"]).json()["meta"]["total"] == 0


class TestRoleGates:
    def test_requires_authentication(self, client: TestClient) -> None:
        resp = client.get("/api/v1/submissions")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_garbage_token(self, client: TestClient) -> None:
        assert client.get("/api/v1/submissions", headers=bearer("garbage")).status_code == 401

    def test_researcher_cannot_review(self, client: TestClient, accounts) -> None:
        sub = _create(client, accounts["r1"]["headers"])
        resp = client.post(
            f"/api/v1/submissions/{sub['id']}/review",
            json={"action": "approve"},
            headers=accounts["r1"]["headers"],
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "forbidden"

    def test_researcher_cannot_see_queue(self, client: TestClient, accounts) -> None:
        resp = client.get("/api/v1/submissions/pending", headers=accounts["r2"]["headers"])
        assert resp.status_code == 403

    def test_government_can_submit(self, client: TestClient, accounts) -> None:
        sub = _create(client, accounts["gov"]["headers"])
        assert sub["submittedBy"] == accounts["gov"]["id"]


class TestListing:
    def test_government_sees_all(self, client: TestClient, accounts) -> None:
        _create(client, accounts["r1"]["headers"])
        _create(client, accounts["r2"]["headers"])
        body = client.get("/api/v1/submissions", headers=accounts["gov"]["headers"]).json()
        assert body["meta"]["total"] == 2

    def test_researcher_sees_own_and_approved(self, client: TestClient, accounts) -> None:
        own = _create(client, accounts["r1"]["headers"], title="own")
        hidden = _create(client, accounts["r2"]["headers"], title="hidden")
        public = _create(client, accounts["r2"]["headers"], title="public")
        client.post(
            f"/api/v1/submissions/{public['id']}/review",
            json={"action": "approve"},
            headers=accounts["gov"]["headers"],
        )
        ids = {s["id"] for s in client.get("/api/v1/submissions", headers=accounts["r1"]["headers"]).json()["submissions"]}
        assert ids == {own["id"], public["id"]}
        assert hidden["id"] not in ids

    def test_unknown_submission(self, client: TestClient, accounts) -> None:
        resp = client.get("/api/v1/submissions/does-not-exist", headers=accounts["gov"]["headers"])
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"


class TestUpdate:
    def test_owner_edits_pending(self, client: TestClient, accounts) -> None:
        sub = _create(client, accounts["r1"]["headers"])
        resp = client.put(
            f"/api/v1/submissions/{sub['id']}",
            json={"title": "Reef survey (revised)", "data": {"count": 14}},
            headers=accounts["r1"]["headers"],
        )
        assert resp.status_code == 200
        updated = resp.json()["submission"]
        assert updated["title"] == "Reef survey (revised)"
        assert updated["data"] == {"count": 14}
        assert updated["description"] == _SUBMISSION["description"]

    def test_immutable_fields_in_body_are_ignored(self, client: TestClient, accounts) -> None:
        sub = _create(client, accounts["r1"]["headers"])
        resp = client.put(
            f"/api/v1/submissions/{sub['id']}",
            json={
                "id": "hijacked",
                "status": "approved",
                "submittedBy": accounts["r2"]["id"],
                "submittedAt": "1999-01-01T00:00:00+00:00",
                "description": "edited",
            },
            headers=accounts["r1"]["headers"],
        )
        assert resp.status_code == 200
        updated = resp.json()["submission"]
        assert updated["id"] == sub["id"]
        assert updated["status"] == "pending"
        assert updated["submittedBy"] == accounts["r1"]["id"]
        assert updated["submittedAt"] == sub["submittedAt"]
        assert updated["description"] == "edited"

    def test_non_owner_forbidden(self, client: TestClient, accounts) -> None:
        sub = _create(client, accounts["r1"]["headers"])
        resp = client.put(f"/api/v1/submissions/{sub['id']}", json={"title": "x"}, headers=accounts["r2"]["headers"])
        assert resp.status_code == 403

    def test_edit_after_review_rejected(self, client: TestClient, accounts) -> None:
        sub = _create(client, accounts["r1"]["headers"])
        client.post(
            f"/api/v1/submissions/{sub['id']}/review",
            json={"action": "reject", "notes": "incomplete"},
            headers=accounts["gov"]["headers"],
        )
        resp = client.put(f"/api/v1/submissions/{sub['id']}", json={"title": "x"}, headers=accounts["r1"]["headers"])
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_state"


class TestReview:
    def test_double_review_rejected(self, client: TestClient, accounts) -> None:
        sub = _create(client, accounts["r1"]["headers"])
        url = f"/api/v1/submissions/{sub['id']}/review"
        gov = accounts["gov"]["headers"]
        assert client.post(url, json={"action": "approve", "notes": "first"}, headers=gov).status_code == 200
        resp = client.post(url, json={"action": "reject", "notes": "second"}, headers=gov)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_state"
        current = client.get(f"/api/v1/submissions/{sub['id']}", headers=gov).json()["submission"]
        assert current["status"] == "approved"
        assert current["reviewNotes"] == "first"

    def test_invalid_action(self, client: TestClient, accounts) -> None:
        sub = _create(client, accounts["r1"]["headers"])
        resp = client.post(
            f"/api/v1/submissions/{sub['id']}/review",
            json={"action": "escalate"},
            headers=accounts["gov"]["headers"],
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"

    def test_review_unknown(self, client: TestClient, accounts) -> None:
        resp = client.post(
            "/api/v1/submissions/missing/review",
            json={"action": "approve"},
            headers=accounts["gov"]["headers"],
        )
        assert resp.status_code == 404


class TestValidation:
    def test_unknown_data_type(self, client: TestClient, accounts) -> None:
        resp = client.post(
            "/api/v1/submissions",
            json={**_SUBMISSION, "dataType": "satellite"},
            headers=accounts["r1"]["headers"],
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"

    def test_payload_must_be_object(self, client: TestClient, accounts) -> None:
        resp = client.post(
            "/api/v1/submissions",
            json={**_SUBMISSION, "data": [1, 2, 3]},
            headers=accounts["r1"]["headers"],
        )
        assert resp.status_code == 400

    def test_missing_title(self, client: TestClient, accounts) -> None:
        body = {k: v for k, v in _SUBMISSION.items() if k != "title"}
        resp = client.post("/api/v1/submissions", json=body, headers=accounts["r1"]["headers"])
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"

    def test_provenance_header_is_accepted(self, client: TestClient, accounts) -> None:
        headers = {
            **accounts["r1"]["headers"],
            "X-Client": "oceanos",
            "X-Provenance": '{"app": "oceanos", "sentAt": "2024-03-15T10:30:00Z", "environment": "test"}',
        }
        assert client.get("/api/v1/submissions", headers=headers).status_code == 200
