from fastapi.testclient import TestClient
import pytest

from fakes import inline_spawn
from khodkquiz.core.models import AttemptEligibility, AttemptHistory
from khodkquiz.core.quiz_manager import QuizManager
from khodkquiz.core.services.auth_gateway import TokenAuthGateway
from khodkquiz.server.api_server import create_api_app


@pytest.fixture
def manager(api, auth, clock, notifier):
    quiz_manager = QuizManager(api=api, auth=auth, clock=clock, notifier=notifier, spawn=inline_spawn)
    yield quiz_manager
    quiz_manager.close()


@pytest.fixture
def client(manager):
    return TestClient(create_api_app(manager))


class TestPlayerPage:
    def test_serves_player_page(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "KhodKquiz" in response.text


class TestSessionEndpoints:
    def test_initial_session_state(self, client):
        state = client.get("/session").json()

        assert state["phase"] == "intro"
        assert state["quiz_id"] is None
        assert state["question"] is None
        assert state["authenticated"] is True
        assert state["display_seconds"] == 25

    def test_load_accepts_numeric_string_ids(self, client, api):
        response = client.post("/session/load", json={"quiz_id": " 7 "})

        assert response.status_code == 200
        body = response.json()
        assert body["loaded"] is True
        assert body["quiz_id"] == 7
        assert body["total_questions"] == 3
        assert api.calls[-1] == ("questions", 7)

    def test_load_rejects_blank_id(self, client):
        response = client.post("/session/load", json={"quiz_id": "  "})

        assert response.status_code == 422

    @pytest.mark.parametrize("quiz_id", ["\u00b2", "../../x", "7a", "-3", 0, -1])
    def test_load_rejects_invalid_ids(self, client, api, quiz_id):
        response = client.post("/session/load", json={"quiz_id": quiz_id})

        assert response.status_code == 422
        assert api.calls == []

    def test_question_hides_answer_until_feedback(self, client, clock):
        client.post("/session/load", json={"quiz_id": 7})
        started = client.post("/session/start").json()

        assert started["started"] is True
        assert started["phase"] == "playing"
        assert started["question"]["correct_option_index"] is None
        assert started["question"]["question_html"] == "<p>Question 1?</p>\n"
        assert started["question"]["options_html"][0] == "Option 0"
        assert started["question"]["option_ids"] == [10, 11, 12, 13]

        clock.advance(15)
        answered = client.post("/session/answer", json={"option_index": 0}).json()

        assert answered["accepted"] is True
        assert answered["phase"] == "feedback"
        assert answered["last_points"] == 400
        assert answered["question"]["correct_option_index"] == 0

    def test_duplicate_answer_is_not_accepted(self, client):
        client.post("/session/load", json={"quiz_id": 7})
        client.post("/session/start")
        client.post("/session/answer", json={"option_index": 1})

        second = client.post("/session/answer", json={"option_index": 0}).json()

        assert second["accepted"] is False
        assert second["answered_count"] == 1

    def test_out_of_range_answer_is_rejected(self, client):
        client.post("/session/load", json={"quiz_id": 7})
        client.post("/session/start")

        response = client.post("/session/answer", json={"option_index": 9})

        assert response.status_code == 422

    def test_finished_attempt_reports_submission(self, client, clock, api):
        client.post("/session/load", json={"quiz_id": 7})
        client.post("/session/start")
        for _ in range(3):
            clock.advance(25)
            clock.advance(2)

        state = client.get("/session").json()

        assert state["phase"] == "finished"
        assert state["submission_status"] == "succeeded"
        assert state["attempt_result"]["attempt_number"] == 1
        assert len(api.submissions) == 1

    def test_reset_returns_to_intro(self, client):
        client.post("/session/load", json={"quiz_id": 7})
        client.post("/session/start")

        state = client.post("/session/reset").json()

        assert state["phase"] == "intro"
        assert state["answered_count"] == 0

    def test_start_without_sign_in_is_refused(self, api, clock, notifier):
        manager = QuizManager(api=api, auth=TokenAuthGateway(None), clock=clock, notifier=notifier)
        client = TestClient(create_api_app(manager))
        client.post("/session/load", json={"quiz_id": 7})

        body = client.post("/session/start").json()

        assert body["started"] is False
        assert body["phase"] == "intro"
        assert body["authenticated"] is False
        assert body["sign_in_requested"] is True


class TestNotifications:
    def test_lists_notifications_after_id(self, client, notifier):
        first = notifier.info("one")
        notifier.error("two")

        items = client.get("/notifications", params={"after": first.id}).json()

        assert [item["message"] for item in items] == ["two"]
        assert items[0]["level"] == "error"


class TestAttempts:
    def test_conflict_without_loaded_quiz(self, client):
        assert client.get("/attempts").status_code == 409

    def test_upstream_failure_is_bad_gateway(self, client):
        client.post("/session/load", json={"quiz_id": 7})

        assert client.get("/attempts").status_code == 502

    def test_returns_history(self, client, api):
        api.history = AttemptHistory(
            attempts=(),
            eligibility=AttemptEligibility(can_attempt=False, attempt_count=3, max_attempts=3, remaining_attempts=0),
        )
        client.post("/session/load", json={"quiz_id": 7})

        body = client.get("/attempts").json()

        assert body == {
            "attempts": [],
            "attempt_count": 3,
            "remaining_attempts": 0,
            "max_attempts": 3,
            "can_attempt": False,
        }


class TestSignIn:
    def test_token_route_signs_in(self, api, clock, notifier):
        auth = TokenAuthGateway(None)
        manager = QuizManager(api=api, auth=auth, clock=clock, notifier=notifier, spawn=inline_spawn)
        client = TestClient(create_api_app(manager))
        client.post("/session/load", json={"quiz_id": 7})
        client.post("/session/start")

        body = client.post("/session/token", json={"token": "student-token"}).json()

        assert body["signed_in"] is True
        assert body["authenticated"] is True
        assert body["sign_in_requested"] is False
        assert auth.token == "student-token"
        assert client.post("/session/start").json()["started"] is True

    def test_empty_token_is_refused(self, api, clock, notifier):
        manager = QuizManager(api=api, auth=TokenAuthGateway(None), clock=clock, notifier=notifier)
        client = TestClient(create_api_app(manager))

        body = client.post("/session/token", json={"token": ""}).json()

        assert body["signed_in"] is False
        assert body["authenticated"] is False
