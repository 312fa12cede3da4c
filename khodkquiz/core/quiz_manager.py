"""Business logic shared by the player server and the application entry point."""

from __future__ import annotations

import logging
from threading import RLock

from khodkquiz.client.quiz_api_client import QuizApi, QuizApiError, SessionExpiredError
from khodkquiz.constants.message_constants import (
    LOAD_FAILED_MESSAGE,
    QUIZ_STILL_LOADING_MESSAGE,
    SESSION_EXPIRED_MESSAGE,
)
from khodkquiz.constants.quiz_constants import (
    FEEDBACK_DELAY_MS,
    QUESTION_TIME_LIMIT_SECONDS,
    TIMER_TICK_INTERVAL_MS,
)
from khodkquiz.core.clock import Clock, LockedClock, SystemClock
from khodkquiz.core.models import AttemptHistory, AttemptResult, QuizId, QuizSubmission
from khodkquiz.core.quiz_importer import QuizImportError
from khodkquiz.core.services.auth_gateway import AuthGateway
from khodkquiz.core.services.game_session import GameSession, SessionSnapshot
from khodkquiz.core.services.notifier import Notification, NotificationCenter
from khodkquiz.core.services.result_submitter import (
    ResultSubmitter,
    Spawner,
    spawn_daemon_thread,
)

logger = logging.getLogger(__name__)


class QuizManager:
    """Facade over the quiz API, the game session and notifications.

    Every public method runs under one re-entrant lock, and clock callbacks
    (timer ticks, feedback delays) are routed through the same lock, so the
    session only ever sees one event at a time.
    """

    def __init__(
        self,
        api: QuizApi,
        auth: AuthGateway,
        clock: Clock | None = None,
        notifier: NotificationCenter | None = None,
        spawn: Spawner = spawn_daemon_thread,
        time_limit_seconds: float = QUESTION_TIME_LIMIT_SECONDS,
        feedback_delay_ms: int = FEEDBACK_DELAY_MS,
        tick_interval_ms: int = TIMER_TICK_INTERVAL_MS,
    ) -> None:
        self._lock = RLock()
        self._api = api
        self._auth = auth
        self._owned_clock = SystemClock() if clock is None else None
        self._notifier = notifier or NotificationCenter()

        # Services
        self._submitter = ResultSubmitter(
            api,
            auth,
            self._notifier,
            spawn=spawn,
            lock=self._lock,
            on_result=self._apply_attempt_result,
        )
        self._session = GameSession(
            LockedClock(clock or self._owned_clock, self._lock),
            self._submitter,
            auth,
            self._notifier,
            time_limit_seconds=time_limit_seconds,
            feedback_delay_ms=feedback_delay_ms,
            tick_interval_ms=tick_interval_ms,
        )

        self._loading: bool = False
        self._load_error: str | None = None
        self._load_generation: int = 0

    # --- Quiz loading ---

    def load_quiz(self, quiz_id: QuizId) -> bool:
        """Fetch eligibility (when signed in) and questions for ``quiz_id``.

        The two requests go out one after the other, eligibility first. A load
        started while another is in flight supersedes it: the older result or
        failure is dropped. Every failure ends loading and raises the
        "Failed to load quiz" notification.
        """
        with self._lock:
            self._session.reset_quiz()
            self._load_generation += 1
            generation = self._load_generation
            self._loading = True
            self._load_error = None

        # Network calls happen outside the lock so the player keeps polling.
        try:
            eligibility = None
            if self._auth.is_authenticated:
                eligibility = self._api.fetch_eligibility(quiz_id)
            questions = self._api.fetch_questions(quiz_id)
        except SessionExpiredError as exc:
            logger.warning("Session expired while loading quiz %s: %s", quiz_id, exc)
            self._auth.sign_out()
            self._notifier.error(SESSION_EXPIRED_MESSAGE)
            self._fail_load(generation)
            return False
        except (QuizApiError, QuizImportError) as exc:
            logger.error("Error fetching quiz %s: %s", quiz_id, exc)
            self._fail_load(generation)
            return False
        except Exception:
            logger.exception("Unexpected error loading quiz %s", quiz_id)
            self._fail_load(generation)
            return False

        with self._lock:
            if generation != self._load_generation:
                logger.debug("Discarding superseded load of quiz %s", quiz_id)
                return False
            self._session.load_questions(quiz_id, questions, eligibility)
            self._loading = False
        return True

    def is_loading(self) -> bool:
        with self._lock:
            return self._loading

    def get_load_error(self) -> str | None:
        with self._lock:
            return self._load_error

    # --- Game session delegation ---

    def start_quiz(self) -> bool:
        with self._lock:
            if not self._ready_to_play():
                return False
            return self._session.start_quiz()

    def restart_quiz(self) -> bool:
        with self._lock:
            if not self._ready_to_play():
                return False
            return self._session.restart_quiz()

    def select_answer(self, option_index: int) -> bool:
        with self._lock:
            return self._session.select_answer(option_index)

    def reset_quiz(self) -> None:
        with self._lock:
            self._session.reset_quiz()

    def get_snapshot(self) -> SessionSnapshot:
        with self._lock:
            return self._session.snapshot()

    # --- Attempts ---

    def fetch_attempt_history(self) -> AttemptHistory:
        """Past attempts for the loaded quiz; also refreshes attempt limits."""
        with self._lock:
            quiz_id = self._session.quiz_id
        if quiz_id is None:
            raise RuntimeError("No quiz loaded.")
        if not self._auth.is_authenticated:
            raise PermissionError("Sign in to view attempts.")
        try:
            history = self._api.fetch_attempt_history(quiz_id)
        except SessionExpiredError:
            self._auth.sign_out()
            self._notifier.error(SESSION_EXPIRED_MESSAGE)
            raise
        with self._lock:
            if self._session.quiz_id == quiz_id:
                self._session.update_eligibility(history.eligibility)
        return history

    # --- Notifications & auth ---

    def get_notifications(self, after_id: int = 0) -> list[Notification]:
        return self._notifier.since(after_id)

    def is_authenticated(self) -> bool:
        return self._auth.is_authenticated

    def sign_in(self, token: str | None) -> bool:
        """Install a new bearer token and refresh attempt limits for the loaded quiz."""
        self._auth.set_token(token)
        if not self._auth.is_authenticated:
            return False
        with self._lock:
            quiz_id = self._session.quiz_id
        if quiz_id is None:
            return True
        try:
            eligibility = self._api.fetch_eligibility(quiz_id)
        except SessionExpiredError:
            self._auth.sign_out()
            self._notifier.error(SESSION_EXPIRED_MESSAGE)
            return False
        except QuizApiError as exc:
            logger.warning("Could not refresh eligibility for quiz %s: %s", quiz_id, exc)
            return True
        with self._lock:
            if self._session.quiz_id == quiz_id:
                self._session.update_eligibility(eligibility)
        return True

    def is_sign_in_requested(self) -> bool:
        # Only gateways that track a pending prompt expose this flag.
        return bool(getattr(self._auth, "sign_in_requested", False))

    def close(self) -> None:
        with self._lock:
            self._session.close()
        if self._owned_clock is not None:
            self._owned_clock.shutdown()

    # --- Internals ---

    def _ready_to_play(self) -> bool:
        if self._loading:
            self._notifier.info(QUIZ_STILL_LOADING_MESSAGE)
            return False
        if self._load_error is not None:
            self._notifier.error(self._load_error)
            return False
        return True

    def _fail_load(self, generation: int) -> None:
        with self._lock:
            if generation != self._load_generation:
                return
            self._loading = False
            self._load_error = LOAD_FAILED_MESSAGE
        self._notifier.error(LOAD_FAILED_MESSAGE)

    def _apply_attempt_result(self, submission: QuizSubmission, result: AttemptResult) -> None:
        if self._session.quiz_id == submission.quiz_id:
            self._session.apply_attempt_result(result)
