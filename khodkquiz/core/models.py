"""Domain models for the quiz session engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Any, Union

# Identifiers are opaque: the quiz API hands out integers, but nothing here
# relies on that.
QuizId = Union[int, str]
QuestionId = Union[int, str]
OptionId = Union[int, str]


class SessionPhase(Enum):
    """Phases of one quiz attempt."""

    INTRO = auto()
    PLAYING = auto()
    FEEDBACK = auto()
    FINISHED = auto()


class SubmissionStatus(Enum):
    """Outcome of handing a finished attempt to the quiz API."""

    PENDING = auto()
    SUCCEEDED = auto()
    FAILED = auto()
    SKIPPED = auto()


@dataclass(slots=True, frozen=True)
class AnswerOption:
    """One selectable answer of a question."""

    id: OptionId
    text: str
    is_correct: bool


@dataclass(slots=True, frozen=True)
class QuizQuestion:
    """Question with its options in display order."""

    id: QuestionId
    text: str
    options: tuple[AnswerOption, ...]

    def correct_option_index(self) -> int | None:
        return next((i for i, option in enumerate(self.options) if option.is_correct), None)


@dataclass(slots=True, frozen=True)
class AnswerRecord:
    """Answer (or timeout) recorded for a single question."""

    question_id: QuestionId
    selected_option_id: OptionId | None
    is_correct: bool
    time_taken_seconds: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "questionId": self.question_id,
            "selectedOptionId": self.selected_option_id,
            "isCorrect": self.is_correct,
            "timeTaken": self.time_taken_seconds,
        }


@dataclass(slots=True, frozen=True)
class AttemptEligibility:
    """Attempt limits reported by the quiz API for the signed-in student."""

    can_attempt: bool
    attempt_count: int
    max_attempts: int
    remaining_attempts: int


@dataclass(slots=True, frozen=True)
class AttemptResult:
    """Authoritative record returned after a successful submission."""

    attempt_number: int
    score: float
    accuracy: int
    correct_answers: int
    total_questions: int
    remaining_attempts: int
    result_id: int | None = None
    time_taken_seconds: int | None = None


@dataclass(slots=True, frozen=True)
class QuizSubmission:
    """Everything the quiz API needs to store a finished attempt."""

    quiz_id: QuizId
    score: int
    correct_answers: int
    total_questions: int
    time_taken_seconds: int
    answers: tuple[AnswerRecord, ...]
    started_at: datetime

    def to_payload(self) -> dict[str, Any]:
        started_at = self.started_at
        if started_at.tzinfo is None:
            started_at = started_at.replace(tzinfo=timezone.utc)
        return {
            "quizId": self.quiz_id,
            "score": self.score,
            "correctAnswers": self.correct_answers,
            "totalQuestions": self.total_questions,
            "timeTaken": self.time_taken_seconds,
            "answers": [answer.to_payload() for answer in self.answers],
            "startedAt": started_at.astimezone(timezone.utc).isoformat(),
        }


@dataclass(slots=True, frozen=True)
class AttemptSummary:
    """One past attempt as listed by the attempt history endpoint."""

    attempt_number: int
    score: float
    correct_answers: int
    total_questions: int
    accuracy: int
    time_taken_seconds: int | None
    completed_at: str | None


@dataclass(slots=True, frozen=True)
class AttemptHistory:
    """All attempts of the signed-in student for one quiz."""

    attempts: tuple[AttemptSummary, ...]
    eligibility: AttemptEligibility
