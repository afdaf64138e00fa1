"""Tests for the FastAPI routes.

Covers:
- GET  /protocols — list with reviewer / due-state / period / search filters
- GET  /protocols/{ref} — detail for flat and hierarchical refs, 404
- POST /protocols/{ref}/reassign — success, 404 for unknown reviewer, 400 for duplicates
- POST /protocols/bulk-reassign — per-protocol outcomes
- POST /protocols/{ref}/reviews/complete|reopen — workflow transitions
- GET  /reports/* — dashboard, overdue, reviewers, speed, periods, upcoming
"""
from __future__ import annotations


# ---------------------------------------------------------------------------
# /protocols
# ---------------------------------------------------------------------------


class TestListProtocols:
    def test_lists_every_record(self, client):
        response = client.get("/protocols", params={"as_of": "2025-03-10"})

        assert response.status_code == 200
        body = response.json()
        assert [p["ref"] for p in body] == ["February/week-1/P-HIER", "P-LEG", "P-CUR"]
        cur = body[2]
        assert cur["status"] == "In Progress"
        assert cur["due_date"] == "2025-03-12"
        assert cur["due_state"] == "Due Soon"
        assert (cur["completed_reviews"], cur["total_reviews"]) == (0, 2)
        assert cur["reviewers"][1]["form_name"] == "Informed Consent Assessment Form"

    def test_reviewer_filter(self, client):
        body = client.get("/protocols", params={"reviewer_name": "Carla Mendoza"}).json()
        assert [p["protocol_id"] for p in body] == ["P-HIER"]

    def test_due_state_filter(self, client):
        body = client.get("/protocols", params={"due_state": "overdue", "as_of": "2025-03-10"}).json()
        assert [p["protocol_id"] for p in body] == ["P-LEG"]
        assert body[0]["due_state"] == "Overdue"

    def test_invalid_due_state(self, client):
        assert client.get("/protocols", params={"due_state": "late"}).status_code == 400

    def test_release_and_search(self, client):
        assert [p["protocol_id"] for p in client.get("/protocols", params={"release_period": "Second Release"}).json()] == ["P-CUR"]
        assert [p["protocol_id"] for p in client.get("/protocols", params={"q": "sleep"}).json()] == ["P-LEG"]


class TestProtocolDetail:
    def test_hierarchical_ref(self, client):
        response = client.get("/protocols/February/week-1/P-HIER")

        assert response.status_code == 200
        body = response.json()
        assert body["protocol_id"] == "P-HIER"
        assert body["release_period"] == "February week-1"
        assert body["status"] == "Completed"
        assert body["history"] == []

    def test_legacy_record(self, client):
        body = client.get("/protocols/P-LEG").json()
        assert body["record_shape"] == "legacy"
        assert body["legacy_reviewer"] == "Dr. Alicia Reyes"
        assert body["academic_level"] == "BSN"

    def test_missing(self, client):
        assert client.get("/protocols/NOPE").status_code == 404


class TestReassign:
    def test_success(self, client):
        response = client.post(
            "/protocols/P-CUR/reassign",
            json={
                "from_reviewer_id": "DRBEN-014",
                "to_reviewer_id": "DRCAR-007",
                "to_reviewer_name": "Dr. Carla Mendoza",
                "reason": "Conflict of interest",
                "actor": "admin",
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert [r["id"] for r in body["reviewers"]] == ["DRAPL-001", "DRCAR-007"]
        assert body["history"][0]["from"] == "Dr. Benito Cruz"
        assert body["history"][0]["reason"] == "Conflict of interest"

    def test_unknown_reviewer_is_404(self, client):
        response = client.post(
            "/protocols/P-CUR/reassign",
            json={"from_reviewer_id": "DRZED-999", "from_reviewer_name": "Dr. Zed Quon", "to_reviewer_id": "X"},
        )
        assert response.status_code == 404

    def test_duplicate_is_400(self, client):
        response = client.post(
            "/protocols/P-CUR/reassign",
            json={"from_reviewer_id": "DRAPL-001", "to_reviewer_id": "DRBEN-014"},
        )
        assert response.status_code == 400

    def test_missing_protocol_is_404(self, client):
        response = client.post(
            "/protocols/NOPE/reassign",
            json={"from_reviewer_id": "A", "to_reviewer_id": "B"},
        )
        assert response.status_code == 404

    def test_bulk(self, client):
        response = client.post(
            "/protocols/bulk-reassign",
            json={
                "protocol_refs": ["P-CUR", "February/week-1/P-HIER", "NOPE"],
                "from_reviewer_id": "DRCAR-007",
                "from_reviewer_name": "Dr. Carla Mendoza",
                "to_reviewer_id": "DREVA-030",
                "to_reviewer_name": "Dr. Eva Lim",
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert (body["succeeded"], body["failed"]) == (1, 2)
        assert [r["ok"] for r in body["results"]] == [False, True, False]
        assert body["results"][1]["protocol"]["status"] == "Partially Completed"

    def test_bulk_requires_refs(self, client):
        response = client.post(
            "/protocols/bulk-reassign",
            json={"protocol_refs": [], "from_reviewer_id": "A", "to_reviewer_id": "B"},
        )
        assert response.status_code == 422


class TestReviewStatus:
    def test_complete_then_reopen(self, client):
        done = client.post(
            "/protocols/P-CUR/reviews/complete",
            json={"reviewer_id": "DRAPL-001", "completed_at": "2025-03-09T10:00:00Z"},
        )
        assert done.status_code == 200
        assert done.json()["status"] == "Partially Completed"
        assert done.json()["reviewers"][0]["completed_at"] == "2025-03-09"

        reopened = client.post("/protocols/P-CUR/reviews/reopen", json={"reviewer_id": "DRAPL-001"})
        assert reopened.status_code == 200
        assert reopened.json()["status"] == "In Progress"

    def test_invalid_transition_is_400(self, client):
        response = client.post("/protocols/P-CUR/reviews/reopen", json={"reviewer_id": "DRAPL-001"})
        assert response.status_code == 400

    def test_unknown_reviewer_is_404(self, client):
        response = client.post(
            "/protocols/P-CUR/reviews/complete",
            json={"reviewer_id": "DRZED-999", "reviewer_name": "Dr. Zed Quon"},
        )
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# /reports
# ---------------------------------------------------------------------------


class TestReports:
    def test_summary(self, client):
        body = client.get("/reports/summary", params={"as_of": "2025-03-10"}).json()

        assert body["total_protocols"] == 3
        assert body["total_reviews"] == 5
        assert (body["completed"], body["in_progress"], body["partially_completed"]) == (1, 2, 0)
        assert (body["overdue"], body["due_soon"]) == (1, 1)
        assert [u["protocol_id"] for u in body["upcoming"]] == ["P-CUR"]
        assert body["upcoming"][0]["due_date"] == "2025-03-12"

    def test_overdue_reviewers(self, client):
        body = client.get("/reports/overdue-reviewers", params={"as_of": "2025-03-10"}).json()
        assert [(r["protocol_id"], r["reviewer_id"], r["days_overdue"]) for r in body] == [
            ("P-LEG", "Dr. Alicia Reyes", 9)
        ]

    def test_reviewer_workload(self, client):
        body = client.get("/reports/reviewers", params={"as_of": "2025-03-10"}).json()
        by_id = {r["reviewer_id"]: r for r in body}
        assert by_id["DRCAR-007"]["completed"] == 1
        assert by_id["Dr. Alicia Reyes"]["overdue"] == 1
        assert by_id["DRAPL-001"]["pending"] == 1

    def test_reviewer_speed(self, client):
        body = client.get("/reports/reviewer-speed", params={"min_samples": 1}).json()
        assert [(r["reviewer_id"], r["mean_completion_days"]) for r in body] == [
            ("DRCAR-007", -2.0),
            ("DRDAN-022", 3.0),
        ]

    def test_completion_by_period(self, client):
        body = client.get("/reports/completion-by-period").json()
        assert [(t["release_period"], t["completed"], t["total"]) for t in body] == [
            ("Second Release", 0, 1),
            ("February week-1", 1, 1),
            ("Unspecified", 0, 1),
        ]

    def test_reminders(self, client):
        body = client.get("/reports/reminders", params={"as_of": "2025-03-10"}).json()

        assert [r["reviewer_id"] for r in body] == ["DRAPL-001", "Dr. Alicia Reyes"]
        assert [(i["protocol_id"], i["days_until_due"]) for i in body[0]["due_soon"]] == [("P-CUR", 2)]
        assert body[1]["overdue"][0]["due_date"] == "2025-03-01"

    def test_upcoming_window(self, client):
        body = client.get("/reports/upcoming", params={"as_of": "2025-03-10", "window_days": 1}).json()
        assert body == []
