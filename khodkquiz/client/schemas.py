"""Pydantic schemas for the JSON exchanged with the quiz REST API."""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

from khodkquiz.constants.quiz_constants import DEFAULT_MAX_ATTEMPTS

Identifier = Union[int, str]


class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ApiEnvelope(_ApiModel):
    """Every response is wrapped as ``{success, message?, data?}``."""

    success: bool
    message: str | None = None
    data: Any = None


class OptionPayload(_ApiModel):
    id: Identifier
    text: str
    is_correct: bool = Field(alias="isCorrect")


class QuestionPayload(_ApiModel):
    id: Identifier
    question: str
    options: list[OptionPayload]


class EligibilityPayload(_ApiModel):
    can_attempt: bool = Field(alias="canAttempt")
    attempt_count: int = Field(default=0, alias="attemptCount")
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, alias="maxAttempts")
    remaining_attempts: int = Field(default=0, alias="remainingAttempts")


class AttemptResultPayload(_ApiModel):
    result_id: int | None = Field(default=None, alias="resultId")
    attempt_number: int = Field(alias="attemptNumber")
    score: float
    accuracy: int
    correct_answers: int = Field(alias="correctAnswers")
    total_questions: int = Field(alias="totalQuestions")
    remaining_attempts: int = Field(alias="remainingAttempts")
    time_taken: int | None = Field(default=None, alias="timeTaken")


class AttemptSummaryPayload(_ApiModel):
    attempt_number: int = Field(alias="attemptNumber")
    score: float
    correct_answers: int = Field(alias="correctAnswers")
    total_questions: int = Field(alias="totalQuestions")
    accuracy: int = 0
    time_taken: int | None = Field(default=None, alias="timeTaken")
    completed_at: str | None = Field(default=None, alias="completedAt")


class AttemptHistoryPayload(_ApiModel):
    attempts: list[AttemptSummaryPayload] = Field(default_factory=list)
    attempt_count: int = Field(default=0, alias="attemptCount")
    remaining_attempts: int = Field(default=0, alias="remainingAttempts")
    can_attempt: bool = Field(default=True, alias="canAttempt")
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, alias="maxAttempts")
