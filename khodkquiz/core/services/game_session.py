"""State machine for a single timed quiz attempt.

Phases::

    INTRO --start_quiz--> PLAYING --answer / timeout--> FEEDBACK
    FEEDBACK --delay, more questions--> PLAYING
    FEEDBACK --delay, last question--> FINISHED --restart_quiz--> PLAYING
    any --reset_quiz--> INTRO

The session owns the question timer and the feedback delay. Submitting the
result is an effect of the FEEDBACK -> FINISHED transition itself, so each
finished attempt is handed to the ``ResultSubmitter`` exactly once no matter
how often the finished state is observed afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
import math

from khodkquiz.constants.message_constants import (
    ATTEMPT_LIMIT_TEMPLATE,
    AUTH_REQUIRED_MESSAGE,
    NO_QUIZ_LOADED_MESSAGE,
)
from khodkquiz.constants.quiz_constants import (
    DEFAULT_MAX_ATTEMPTS,
    FEEDBACK_DELAY_MS,
    MAX_QUESTION_SCORE,
    MIN_CORRECT_ANSWER_SCORE,
    QUESTION_TIME_LIMIT_SECONDS,
    TIMER_TICK_INTERVAL_MS,
)
from khodkquiz.core.clock import CancelHandle, Clock
from khodkquiz.core.models import (
    AnswerRecord,
    AttemptEligibility,
    AttemptResult,
    QuizId,
    QuizQuestion,
    QuizSubmission,
    SessionPhase,
    SubmissionStatus,
)
from khodkquiz.core.services.auth_gateway import AuthGateway
from khodkquiz.core.services.notifier import NotificationCenter
from khodkquiz.core.services.quiz_timer import QuizTimer, seconds_to_centis
from khodkquiz.core.services.result_submitter import ResultSubmitter, SubmissionTicket

logger = logging.getLogger(__name__)


def question_score(remaining_seconds: float, time_limit_seconds: float) -> int:
    """Points for a correct answer: ``max(1, ceil(1000 * remaining / limit))``."""
    return score_for_centis(seconds_to_centis(remaining_seconds), seconds_to_centis(time_limit_seconds))


def score_for_centis(remaining_centis: int, limit_centis: int) -> int:
    if limit_centis <= 0:
        raise ValueError("Time limit must be positive.")
    remaining_centis = max(0, min(remaining_centis, limit_centis))
    # Exact integer ceiling division.
    raw = -(-MAX_QUESTION_SCORE * remaining_centis // limit_centis)
    return max(MIN_CORRECT_ANSWER_SCORE, raw)


def percentage(part: int, whole: int) -> int:
    """Whole-number percentage, halves rounded up."""
    if whole <= 0:
        return 0
    return math.floor(part / whole * 100 + 0.5)


@dataclass(slots=True, frozen=True)
class SessionSnapshot:
    """Read-only view of a session for display."""

    phase: SessionPhase
    quiz_id: QuizId | None
    question_index: int
    total_questions: int
    question: QuizQuestion | None
    time_limit_seconds: float
    remaining_seconds: float
    display_seconds: int
    score: int
    correct_count: int
    answered_count: int
    selected_option_index: int | None
    last_answer_correct: bool | None
    last_points: int | None
    eligibility: AttemptEligibility | None
    can_attempt: bool
    remaining_attempts: int
    max_attempts: int
    accuracy: int
    submission_status: SubmissionStatus | None
    attempt_result: AttemptResult | None
    started_at: datetime | None


class GameSession:
    """Runs one quiz attempt at a time for a single player."""

    def __init__(
        self,
        clock: Clock,
        submitter: ResultSubmitter,
        auth: AuthGateway,
        notifier: NotificationCenter,
        time_limit_seconds: float = QUESTION_TIME_LIMIT_SECONDS,
        feedback_delay_ms: int = FEEDBACK_DELAY_MS,
        tick_interval_ms: int = TIMER_TICK_INTERVAL_MS,
    ) -> None:
        if time_limit_seconds <= 0:
            raise ValueError("Time limit must be positive.")
        self._clock = clock
        self._submitter = submitter
        self._auth = auth
        self._notifier = notifier
        self._time_limit_seconds = time_limit_seconds
        self._feedback_delay_seconds = feedback_delay_ms / 1000
        self._timer = QuizTimer(clock, on_timeout=self.handle_timeout, tick_interval_ms=tick_interval_ms)
        self._feedback_handle: CancelHandle | None = None
        self._closed: bool = False

        self._quiz_id: QuizId | None = None
        self._questions: list[QuizQuestion] = []
        self._eligibility: AttemptEligibility | None = None

        self._phase: SessionPhase = SessionPhase.INTRO
        self._clear_progress()

    # --- Loading ---

    def load_questions(
        self,
        quiz_id: QuizId,
        questions: list[QuizQuestion],
        eligibility: AttemptEligibility | None = None,
    ) -> None:
        """Install a freshly fetched quiz and return to the intro screen."""
        self._cancel_timers()
        self._quiz_id = quiz_id
        self._questions = list(questions)
        self._eligibility = eligibility
        self._phase = SessionPhase.INTRO
        self._clear_progress()
        logger.info("Loaded quiz %s with %d question(s)", quiz_id, len(self._questions))

    def update_eligibility(self, eligibility: AttemptEligibility | None) -> None:
        self._eligibility = eligibility

    def apply_attempt_result(self, result: AttemptResult) -> None:
        """Refresh attempt limits from an authoritative submission result."""
        self._eligibility = AttemptEligibility(
            can_attempt=result.remaining_attempts > 0,
            attempt_count=result.attempt_number,
            max_attempts=self.max_attempts,
            remaining_attempts=result.remaining_attempts,
        )

    # --- Transitions ---

    def start_quiz(self) -> bool:
        """Begin an attempt. Returns False when a guard keeps the session where it is."""
        if self._closed:
            return False
        if self._phase in (SessionPhase.PLAYING, SessionPhase.FEEDBACK):
            logger.debug("start_quiz ignored during %s", self._phase.name)
            return False
        if self._quiz_id is None:
            self._notifier.warning(NO_QUIZ_LOADED_MESSAGE)
            return False
        if not self._auth.is_authenticated:
            self._auth.prompt_sign_in()
            self._notifier.warning(AUTH_REQUIRED_MESSAGE)
            return False
        if not self.can_attempt:
            self._notifier.error(ATTEMPT_LIMIT_TEMPLATE.format(max_attempts=self.max_attempts))
            return False

        self._cancel_timers()
        self._clear_progress()
        now = self._clock.now()
        self._session_started_at = now
        self._question_started_at = now

        if not self._questions:
            logger.warning("Quiz %s has no questions; finishing with zero score", self._quiz_id)
            self._phase = SessionPhase.FINISHED
            return True

        self._phase = SessionPhase.PLAYING
        self._timer.start(self._time_limit_seconds)
        logger.info("Started quiz %s", self._quiz_id)
        return True

    def restart_quiz(self) -> bool:
        return self.start_quiz()

    def select_answer(self, option_index: int) -> bool:
        """Record the player's choice. Ignored unless a question is being played."""
        if self._closed or self._phase is not SessionPhase.PLAYING:
            logger.debug("Answer ignored during %s", self._phase.name)
            return False
        question = self._questions[self._question_index]
        if not 0 <= option_index < len(question.options):
            raise IndexError(f"Option index {option_index} out of range")

        self._timer.stop()
        option = question.options[option_index]
        self._answers.append(
            AnswerRecord(
                question_id=question.id,
                selected_option_id=option.id,
                is_correct=option.is_correct,
                time_taken_seconds=self._elapsed_question_seconds(),
            )
        )
        self._selected_option_index = option_index
        self._last_answer_correct = option.is_correct
        if option.is_correct:
            points = score_for_centis(self._timer.remaining_centis, self._timer.limit_centis)
            self._score += points
            self._correct_count += 1
            self._last_points = points
        else:
            self._last_points = 0
        self._enter_feedback()
        return True

    def handle_timeout(self) -> None:
        if self._closed or self._phase is not SessionPhase.PLAYING:
            return
        question = self._questions[self._question_index]
        self._answers.append(
            AnswerRecord(
                question_id=question.id,
                selected_option_id=None,
                is_correct=False,
                time_taken_seconds=self._time_limit_whole_seconds(),
            )
        )
        self._selected_option_index = None
        self._last_answer_correct = False
        self._last_points = 0
        logger.debug("Question %s timed out", question.id)
        self._enter_feedback()

    def reset_quiz(self) -> None:
        self._cancel_timers()
        self._phase = SessionPhase.INTRO
        self._clear_progress()

    def close(self) -> None:
        """Cancel pending callbacks; the session ignores every later event."""
        self._cancel_timers()
        self._closed = True

    # --- Queries ---

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def quiz_id(self) -> QuizId | None:
        return self._quiz_id

    @property
    def questions(self) -> list[QuizQuestion]:
        return list(self._questions)

    @property
    def current_question_index(self) -> int:
        return self._question_index

    @property
    def current_question(self) -> QuizQuestion | None:
        if self._phase is SessionPhase.INTRO or not self._questions:
            return None
        return self._questions[self._question_index]

    @property
    def score(self) -> int:
        return self._score

    @property
    def correct_count(self) -> int:
        return self._correct_count

    @property
    def answers(self) -> list[AnswerRecord]:
        return list(self._answers)

    @property
    def timer(self) -> QuizTimer:
        return self._timer

    @property
    def eligibility(self) -> AttemptEligibility | None:
        return self._eligibility

    @property
    def submission(self) -> SubmissionTicket | None:
        return self._submission

    @property
    def can_attempt(self) -> bool:
        if not self._auth.is_authenticated:
            return False
        if self._eligibility is None:
            return True
        return self._eligibility.can_attempt

    @property
    def remaining_attempts(self) -> int:
        if self._eligibility is None:
            return DEFAULT_MAX_ATTEMPTS
        return self._eligibility.remaining_attempts

    @property
    def max_attempts(self) -> int:
        if self._eligibility is None:
            return DEFAULT_MAX_ATTEMPTS
        return self._eligibility.max_attempts or DEFAULT_MAX_ATTEMPTS

    @property
    def accuracy(self) -> int:
        ticket = self._submission
        if ticket is not None and ticket.result is not None:
            return ticket.result.accuracy
        return percentage(self._correct_count, len(self._questions))

    def snapshot(self) -> SessionSnapshot:
        ticket = self._submission
        if self._phase is SessionPhase.INTRO:
            remaining_seconds = self._time_limit_seconds
            display_seconds = math.ceil(self._time_limit_seconds)
        else:
            remaining_seconds = self._timer.remaining_seconds
            display_seconds = self._timer.display_seconds
        return SessionSnapshot(
            phase=self._phase,
            quiz_id=self._quiz_id,
            question_index=self._question_index,
            total_questions=len(self._questions),
            question=self.current_question,
            time_limit_seconds=self._time_limit_seconds,
            remaining_seconds=remaining_seconds,
            display_seconds=display_seconds,
            score=self._score,
            correct_count=self._correct_count,
            answered_count=len(self._answers),
            selected_option_index=self._selected_option_index,
            last_answer_correct=self._last_answer_correct,
            last_points=self._last_points,
            eligibility=self._eligibility,
            can_attempt=self.can_attempt,
            remaining_attempts=self.remaining_attempts,
            max_attempts=self.max_attempts,
            accuracy=self.accuracy,
            submission_status=ticket.status if ticket is not None else None,
            attempt_result=ticket.result if ticket is not None else None,
            started_at=self._session_started_at,
        )

    # --- Internals ---

    def _enter_feedback(self) -> None:
        self._phase = SessionPhase.FEEDBACK
        self._feedback_handle = self._clock.schedule_after(self._feedback_delay_seconds, self._advance)

    def _advance(self) -> None:
        self._feedback_handle = None
        if self._closed or self._phase is not SessionPhase.FEEDBACK:
            return
        next_index = self._question_index + 1
        if next_index < len(self._questions):
            self._question_index = next_index
            self._selected_option_index = None
            self._last_answer_correct = None
            self._last_points = None
            self._question_started_at = self._clock.now()
            self._phase = SessionPhase.PLAYING
            self._timer.start(self._time_limit_seconds)
            return
        self._finish()

    def _finish(self) -> None:
        self._phase = SessionPhase.FINISHED
        started_at = self._session_started_at or self._clock.now()
        total_seconds = (self._clock.now() - started_at).total_seconds()
        submission = QuizSubmission(
            quiz_id=self._quiz_id,
            score=self._score,
            correct_answers=self._correct_count,
            total_questions=len(self._questions),
            time_taken_seconds=max(0, math.floor(total_seconds + 0.5)),
            answers=tuple(self._answers),
            started_at=started_at,
        )
        logger.info(
            "Finished quiz %s: score=%d correct=%d/%d",
            self._quiz_id,
            self._score,
            self._correct_count,
            len(self._questions),
        )
        self._submission = self._submitter.submit(submission)

    def _elapsed_question_seconds(self) -> int:
        if self._question_started_at is None:
            return 0
        elapsed = (self._clock.now() - self._question_started_at).total_seconds()
        return min(max(0, math.ceil(elapsed)), self._time_limit_whole_seconds())

    def _time_limit_whole_seconds(self) -> int:
        return math.ceil(self._time_limit_seconds)

    def _cancel_timers(self) -> None:
        self._timer.stop()
        if self._feedback_handle is not None:
            self._feedback_handle.cancel()
            self._feedback_handle = None

    def _clear_progress(self) -> None:
        self._question_index: int = 0
        self._score: int = 0
        self._correct_count: int = 0
        self._answers: list[AnswerRecord] = []
        self._selected_option_index: int | None = None
        self._last_answer_correct: bool | None = None
        self._last_points: int | None = None
        self._session_started_at: datetime | None = None
        self._question_started_at: datetime | None = None
        self._submission: SubmissionTicket | None = None
