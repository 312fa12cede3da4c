"""Deterministic test doubles for the quiz engine."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import heapq
import itertools
from typing import Callable

from khodkquiz.client.quiz_api_client import QuizApiError
from khodkquiz.core.clock import ScheduledCall
from khodkquiz.core.models import (
    AnswerOption,
    AttemptEligibility,
    AttemptHistory,
    AttemptResult,
    QuizQuestion,
    QuizSubmission,
)

_MICROS = 1_000_000


class FakeClock:
    """Clock whose time only moves when a test calls ``advance``."""

    def __init__(self, start: datetime | None = None) -> None:
        self._start = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        self._now_us = 0
        self._queue: list[tuple[int, int, ScheduledCall]] = []
        self._sequence = itertools.count()

    def now(self) -> datetime:
        return self._start + timedelta(microseconds=self._now_us)

    def schedule_after(self, delay_seconds: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(callback)
        due = self._now_us + int(round(delay_seconds * _MICROS))
        heapq.heappush(self._queue, (due, next(self._sequence), call))
        return call

    def advance(self, seconds: float) -> None:
        """Move time forward, running every callback that falls due on the way."""
        target = self._now_us + int(round(seconds * _MICROS))
        while self._queue and self._queue[0][0] <= target:
            due, _, call = heapq.heappop(self._queue)
            self._now_us = due
            if not call.cancelled:
                call.callback()
        self._now_us = target

    @property
    def pending(self) -> int:
        return sum(1 for _, _, call in self._queue if not call.cancelled)


def inline_spawn(work: Callable[[], None]) -> None:
    work()


class DeferredSpawner:
    """Holds background work until the test decides to run it."""

    def __init__(self) -> None:
        self.jobs: list[Callable[[], None]] = []

    def __call__(self, work: Callable[[], None]) -> None:
        self.jobs.append(work)

    def run_all(self) -> None:
        jobs, self.jobs = self.jobs, []
        for job in jobs:
            job()


def make_question(question_id: int, correct_index: int = 0, option_count: int = 4) -> QuizQuestion:
    options = tuple(
        AnswerOption(
            id=question_id * 10 + index,
            text=f"Option {index}",
            is_correct=index == correct_index,
        )
        for index in range(option_count)
    )
    return QuizQuestion(id=question_id, text=f"Question {question_id}?", options=options)


def make_result(
    attempt_number: int = 1,
    remaining_attempts: int = 2,
    score: float = 400,
    accuracy: int = 100,
    correct_answers: int = 1,
    total_questions: int = 1,
) -> AttemptResult:
    return AttemptResult(
        attempt_number=attempt_number,
        score=score,
        accuracy=accuracy,
        correct_answers=correct_answers,
        total_questions=total_questions,
        remaining_attempts=remaining_attempts,
        result_id=99,
    )


class StubQuizApi:
    """In-memory stand-in for the quiz REST API."""

    def __init__(
        self,
        questions: list[QuizQuestion] | None = None,
        eligibility: AttemptEligibility | None = None,
        result: AttemptResult | None = None,
    ) -> None:
        self.questions = list(questions or [])
        self.eligibility = eligibility or AttemptEligibility(
            can_attempt=True, attempt_count=0, max_attempts=3, remaining_attempts=3
        )
        self.result = result or make_result()
        self.history: AttemptHistory | None = None
        self.questions_error: Exception | None = None
        self.eligibility_error: Exception | None = None
        self.submit_error: Exception | None = None
        self.calls: list[tuple[str, object]] = []
        self.submissions: list[QuizSubmission] = []

    def fetch_questions(self, quiz_id):
        self.calls.append(("questions", quiz_id))
        if self.questions_error is not None:
            raise self.questions_error
        return list(self.questions)

    def fetch_eligibility(self, quiz_id):
        self.calls.append(("eligibility", quiz_id))
        if self.eligibility_error is not None:
            raise self.eligibility_error
        return self.eligibility

    def submit_result(self, submission):
        self.calls.append(("submit", submission.quiz_id))
        self.submissions.append(submission)
        if self.submit_error is not None:
            raise self.submit_error
        return self.result

    def fetch_attempt_history(self, quiz_id):
        self.calls.append(("attempts", quiz_id))
        if self.history is None:
            raise QuizApiError("No history configured.", status_code=500)
        return self.history
