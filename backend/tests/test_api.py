"""
HTTP surface. Run with: pytest backend/tests/test_api.py -v
"""
import pytest

API = "/api"


@pytest.fixture
def student(client):
    response = client.post(f"{API}/students", json={"name": "Ada Lovelace", "email": "ada@example.com"})
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def exam(client):
    response = client.post(f"{API}/exam-sessions", json={"title": "Algebra midterm", "duration": 60})
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def student_session(client, student, exam):
    response = client.post(f"{API}/student-sessions", json={"studentId": student["id"], "sessionId": exam["id"]})
    assert response.status_code == 201
    return response.json()


def report(client, student_session_id, kind="Tab Switch", details="Student switched away from exam tab"):
    return client.post(f"{API}/violations", json={
        "studentSessionId": student_session_id,
        "type": kind,
        "details": details,
    })


class TestStudents:
    def test_create_and_lookup_by_email(self, client, student):
        assert student["email"] == "ada@example.com"
        assert "createdAt" in student

        found = client.get(f"{API}/students", params={"email": "ada@example.com"})
        assert found.status_code == 200
        assert [s["id"] for s in found.json()] == [student["id"]]

        missing = client.get(f"{API}/students", params={"email": "nobody@example.com"})
        assert missing.json() == []

    def test_invalid_body(self, client):
        response = client.post(f"{API}/students", json={"name": "No Email"})
        assert response.status_code == 400

    def test_duplicate_email(self, client, student):
        response = client.post(f"{API}/students", json={"name": "Ada Again", "email": "ada@example.com"})
        assert response.status_code == 400
        assert response.json()["error"] == "Email already registered"


class TestExamSessions:
    def test_create_list_and_fetch(self, client, exam):
        assert exam["isActive"] is True
        assert exam["endedAt"] is None

        assert [e["id"] for e in client.get(f"{API}/exam-sessions").json()] == [exam["id"]]
        assert [e["id"] for e in client.get(f"{API}/exam-sessions/active").json()] == [exam["id"]]
        assert client.get(f"{API}/exam-sessions/{exam['id']}").json()["title"] == "Algebra midterm"

    def test_missing_exam(self, client):
        assert client.get(f"{API}/exam-sessions/missing").status_code == 404
        assert client.patch(f"{API}/exam-sessions/missing", json={"title": "x"}).status_code == 404

    def test_invalid_duration(self, client):
        response = client.post(f"{API}/exam-sessions", json={"title": "Broken", "duration": 0})
        assert response.status_code == 400

    def test_partial_update(self, client, exam):
        response = client.patch(f"{API}/exam-sessions/{exam['id']}", json={"description": "Chapters 1-4"})
        assert response.status_code == 200
        assert response.json()["description"] == "Chapters 1-4"
        assert response.json()["title"] == "Algebra midterm"

    def test_closing_exam_ends_student_sessions(self, client, exam, student_session):
        response = client.patch(f"{API}/exam-sessions/{exam['id']}", json={"isActive": False})
        assert response.status_code == 200
        assert response.json()["isActive"] is False
        assert response.json()["endedAt"] is not None

        session = client.get(f"{API}/student-sessions/{student_session['id']}").json()
        assert session["isActive"] is False
        assert client.get(f"{API}/exam-sessions/active").json() == []

        reopen = client.patch(f"{API}/exam-sessions/{exam['id']}", json={"isActive": True})
        assert reopen.status_code == 400


class TestStudentSessions:
    def test_join_is_idempotent_while_active(self, client, student, exam, student_session):
        again = client.post(f"{API}/student-sessions", json={"studentId": student["id"], "sessionId": exam["id"]})
        assert again.status_code == 201
        assert again.json()["id"] == student_session["id"]

    def test_join_with_unknown_exam(self, client, student):
        response = client.post(f"{API}/student-sessions", json={"studentId": student["id"], "sessionId": "missing"})
        assert response.status_code == 404

    def test_join_invalid_body(self, client):
        assert client.post(f"{API}/student-sessions", json={"studentId": "abc"}).status_code == 400

    def test_details_projection(self, client, student, exam, student_session):
        report(client, student_session["id"])

        details = client.get(f"{API}/student-sessions/{student_session['id']}").json()
        assert details["student"]["id"] == student["id"]
        assert details["session"]["id"] == exam["id"]
        assert details["sessionId"] == exam["id"]
        assert len(details["violations"]) == 1

    def test_listings(self, client, student, exam, student_session):
        active = client.get(f"{API}/student-sessions/active").json()
        assert [s["id"] for s in active] == [student_session["id"]]

        by_pair = client.get(
            f"{API}/student-sessions/by-student-exam",
            params={"studentId": student["id"], "sessionId": exam["id"]},
        ).json()
        assert [s["id"] for s in by_pair] == [student_session["id"]]

        by_exam = client.get(f"{API}/student-sessions", params={"sessionId": exam["id"]}).json()
        assert [s["id"] for s in by_exam] == [student_session["id"]]

    def test_by_student_exam_requires_both_ids(self, client, student):
        response = client.get(f"{API}/student-sessions/by-student-exam", params={"studentId": student["id"]})
        assert response.status_code == 400

    def test_missing_session(self, client):
        assert client.get(f"{API}/student-sessions/missing").status_code == 404
        assert client.patch(f"{API}/student-sessions/missing", json={"isActive": False}).status_code == 404
        assert client.post(f"{API}/student-sessions/missing/warning").status_code == 404

    def test_warning_endpoint_terminates_at_threshold(self, client, student_session):
        counts = []
        for _ in range(3):
            response = client.post(f"{API}/student-sessions/{student_session['id']}/warning")
            assert response.status_code == 200
            counts.append((response.json()["warningCount"], response.json()["isActive"]))
        assert counts == [(1, True), (2, True), (3, False)]

    def test_warning_after_submit_does_not_lock_out(self, client, student, exam, student_session):
        for _ in range(2):
            client.post(f"{API}/student-sessions/{student_session['id']}/warning")
        client.post(f"{API}/student-sessions/{student_session['id']}/submit")

        late = client.post(f"{API}/student-sessions/{student_session['id']}/warning")
        assert late.status_code == 409
        assert client.get(f"{API}/student-sessions/{student_session['id']}").json()["warningCount"] == 2

        rejoined = client.post(f"{API}/student-sessions", json={"studentId": student["id"], "sessionId": exam["id"]})
        assert rejoined.status_code == 201

    def test_patch_closes_and_cannot_reopen(self, client, student_session):
        closed = client.patch(f"{API}/student-sessions/{student_session['id']}", json={"isActive": False})
        assert closed.status_code == 200
        assert closed.json()["isActive"] is False
        assert closed.json()["leftAt"] is not None

        reopened = client.patch(f"{API}/student-sessions/{student_session['id']}", json={"isActive": True})
        assert reopened.status_code == 400

    def test_submit_then_rejoin(self, client, student, exam, student_session):
        report(client, student_session["id"])
        submitted = client.post(f"{API}/student-sessions/{student_session['id']}/submit").json()
        assert submitted["isActive"] is False
        assert submitted["warningCount"] == 1

        rejoined = client.post(f"{API}/student-sessions", json={"studentId": student["id"], "sessionId": exam["id"]})
        assert rejoined.status_code == 201
        assert rejoined.json()["id"] != student_session["id"]

    def test_force_logout(self, client, student_session):
        response = client.post(f"{API}/student-sessions/{student_session['id']}/force-logout")
        assert response.status_code == 200
        assert response.json()["isActive"] is False


class TestViolations:
    def test_three_strikes_and_lockout(self, client, student, exam, student_session):
        responses = [report(client, student_session["id"], kind) for kind in ("Tab Switch", "Copy Attempt", "Paste Attempt")]

        assert [r.status_code for r in responses] == [201, 201, 201]
        assert [r.json()["warningCount"] for r in responses] == [1, 2, 3]
        assert [r.json()["terminated"] for r in responses] == [False, False, True]

        rejoin = client.post(f"{API}/student-sessions", json={"studentId": student["id"], "sessionId": exam["id"]})
        assert rejoin.status_code == 403
        body = rejoin.json()
        assert body["terminated"] is True
        assert body["session"]["id"] == student_session["id"]
        assert body["session"]["warningCount"] == 3

    def test_report_on_closed_session(self, client, student_session):
        client.post(f"{API}/student-sessions/{student_session['id']}/submit")
        response = report(client, student_session["id"])
        assert response.status_code == 409

    def test_report_validation(self, client, student_session):
        assert client.post(f"{API}/violations", json={"studentSessionId": student_session["id"]}).status_code == 400
        assert report(client, "missing").status_code == 404

    def test_listings_and_stats(self, client, student, student_session):
        report(client, student_session["id"], "Tab Switch")
        report(client, student_session["id"], "Copy Attempt")

        everything = client.get(f"{API}/violations").json()
        assert len(everything) == 2
        assert everything[0]["studentSession"]["student"]["email"] == student["email"]

        own = client.get(f"{API}/violations/student-session/{student_session['id']}").json()
        assert {v["type"] for v in own} == {"Tab Switch", "Copy Attempt"}

        stats = client.get(f"{API}/violations/stats/{student_session['id']}").json()
        assert stats["totalViolations"] == 2
        assert stats["byType"] == {"Tab Switch": 1, "Copy Attempt": 1}

    def test_fetch_single_violation(self, client, student_session):
        created = report(client, student_session["id"]).json()

        fetched = client.get(f"{API}/violations/{created['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["type"] == "Tab Switch"
        assert fetched.json()["studentSessionId"] == student_session["id"]
        assert client.get(f"{API}/violations/missing").status_code == 404


def test_health(client):
    response = client.get(f"{API}/health")
    assert response.status_code == 200
    body = response.json()
    assert body["services"]["database"] == "healthy"
    assert body["connections"]["total"] == 0
    assert "X-Request-ID" in response.headers
    assert float(response.headers["X-Process-Time"]) >= 0
