from __future__ import annotations

import pytest

from fakes import FakeClock, StubQuizApi, inline_spawn, make_question
from khodkquiz.core.services.auth_gateway import TokenAuthGateway
from khodkquiz.core.services.game_session import GameSession
from khodkquiz.core.services.notifier import NotificationCenter
from khodkquiz.core.services.result_submitter import ResultSubmitter


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def questions():
    return [make_question(1, correct_index=0), make_question(2, correct_index=1), make_question(3, correct_index=2)]


@pytest.fixture
def api(questions) -> StubQuizApi:
    return StubQuizApi(questions=questions)


@pytest.fixture
def auth() -> TokenAuthGateway:
    return TokenAuthGateway("student-token")


@pytest.fixture
def notifier() -> NotificationCenter:
    return NotificationCenter()


@pytest.fixture
def submitter(api, auth, notifier) -> ResultSubmitter:
    return ResultSubmitter(api, auth, notifier, spawn=inline_spawn)


@pytest.fixture
def session(clock, submitter, auth, notifier, questions) -> GameSession:
    game = GameSession(clock, submitter, auth, notifier)
    game.load_questions(7, questions)
    return game
