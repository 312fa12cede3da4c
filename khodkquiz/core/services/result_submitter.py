"""One-shot hand-off of finished attempts to the quiz API."""

from __future__ import annotations

from contextlib import nullcontext
import logging
from threading import RLock, Thread
from typing import Callable, ContextManager

from khodkquiz.client.quiz_api_client import QuizApi, QuizApiError, SessionExpiredError
from khodkquiz.constants.message_constants import (
    SESSION_EXPIRED_MESSAGE,
    SUBMIT_FAILED_MESSAGE,
    SUBMIT_SUCCESS_MESSAGE,
)
from khodkquiz.core.models import AttemptResult, QuizSubmission, SubmissionStatus
from khodkquiz.core.services.auth_gateway import AuthGateway
from khodkquiz.core.services.notifier import NotificationCenter

logger = logging.getLogger(__name__)

Spawner = Callable[[Callable[[], None]], None]


def spawn_daemon_thread(work: Callable[[], None]) -> None:
    Thread(target=work, name="QuizResultSubmitter", daemon=True).start()


class SubmissionTicket:
    """Tracks the submission of exactly one finished attempt."""

    __slots__ = ("submission", "status", "result", "error")

    def __init__(self, submission: QuizSubmission, status: SubmissionStatus) -> None:
        self.submission = submission
        self.status = status
        self.result: AttemptResult | None = None
        self.error: str | None = None


class ResultSubmitter:
    """Sends a finished attempt to the quiz API and reports the outcome."""

    def __init__(
        self,
        api: QuizApi,
        auth: AuthGateway,
        notifier: NotificationCenter,
        spawn: Spawner = spawn_daemon_thread,
        lock: RLock | None = None,
        on_result: Callable[[QuizSubmission, AttemptResult], None] | None = None,
    ) -> None:
        self._api = api
        self._auth = auth
        self._notifier = notifier
        self._spawn = spawn
        self._lock = lock
        self._on_result = on_result

    def submit(self, submission: QuizSubmission) -> SubmissionTicket:
        """Start submitting ``submission``; called once per finished attempt."""
        if not self._auth.is_authenticated:
            logger.info("Quiz %s finished without sign-in; result kept locally", submission.quiz_id)
            return SubmissionTicket(submission, SubmissionStatus.SKIPPED)

        ticket = SubmissionTicket(submission, SubmissionStatus.PENDING)
        logger.info(
            "Submitting quiz %s: score=%s correct=%s/%s",
            submission.quiz_id,
            submission.score,
            submission.correct_answers,
            submission.total_questions,
        )
        self._spawn(lambda: self._deliver(ticket))
        return ticket

    def _deliver(self, ticket: SubmissionTicket) -> None:
        try:
            result = self._api.submit_result(ticket.submission)
        except SessionExpiredError as exc:
            logger.warning("Quiz result rejected, session expired: %s", exc)
            with self._guard():
                ticket.status = SubmissionStatus.FAILED
                ticket.error = str(exc)
                self._auth.sign_out()
            self._notifier.error(SESSION_EXPIRED_MESSAGE)
            self._notifier.error(SUBMIT_FAILED_MESSAGE)
            return
        except QuizApiError as exc:
            logger.error("Error submitting quiz results: %s", exc)
            with self._guard():
                ticket.status = SubmissionStatus.FAILED
                ticket.error = str(exc)
            self._notifier.error(SUBMIT_FAILED_MESSAGE)
            return

        with self._guard():
            ticket.result = result
            ticket.status = SubmissionStatus.SUCCEEDED
            if self._on_result is not None:
                self._on_result(ticket.submission, result)
        logger.info("Quiz %s saved as attempt %s", ticket.submission.quiz_id, result.attempt_number)
        self._notifier.success(SUBMIT_SUCCESS_MESSAGE)

    def _guard(self) -> ContextManager:
        return self._lock if self._lock is not None else nullcontext()
