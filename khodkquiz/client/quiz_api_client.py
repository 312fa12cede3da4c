"""HTTP client for the KhodKquiz student quiz API."""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol

import httpx
from pydantic import ValidationError

from khodkquiz.client.schemas import (
    ApiEnvelope,
    AttemptHistoryPayload,
    AttemptResultPayload,
    EligibilityPayload,
)
from khodkquiz.constants.network_constants import (
    ATTEMPTS_PATH,
    DEFAULT_API_BASE_URL,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    ELIGIBILITY_PATH,
    QUESTIONS_PATH,
    SUBMIT_PATH,
)
from khodkquiz.core.models import (
    AttemptEligibility,
    AttemptHistory,
    AttemptResult,
    AttemptSummary,
    QuizId,
    QuizQuestion,
    QuizSubmission,
)
from khodkquiz.core.quiz_importer import parse_questions

logger = logging.getLogger(__name__)


class QuizApiError(Exception):
    """Raised when the quiz API cannot be reached or rejects a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SessionExpiredError(QuizApiError):
    """The API answered 401: the stored token is missing, invalid or expired."""


class QuizApi(Protocol):
    """Operations the quiz engine consumes from the quiz API."""

    def fetch_questions(self, quiz_id: QuizId) -> list[QuizQuestion]: ...

    def fetch_eligibility(self, quiz_id: QuizId) -> AttemptEligibility: ...

    def submit_result(self, submission: QuizSubmission) -> AttemptResult: ...

    def fetch_attempt_history(self, quiz_id: QuizId) -> AttemptHistory: ...


class QuizApiClient:
    """Thin synchronous wrapper over ``httpx.Client``."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        token_provider: Callable[[], str | None] | None = None,
        timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._token_provider = token_provider or (lambda: None)
        self._client = httpx.Client(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def fetch_questions(self, quiz_id: QuizId) -> list[QuizQuestion]:
        data = self._request("GET", QUESTIONS_PATH.format(quiz_id=quiz_id))
        return parse_questions(data or [])

    def fetch_eligibility(self, quiz_id: QuizId) -> AttemptEligibility:
        data = self._request("GET", ELIGIBILITY_PATH.format(quiz_id=quiz_id))
        payload = self._validate(EligibilityPayload, data)
        return AttemptEligibility(
            can_attempt=payload.can_attempt,
            attempt_count=payload.attempt_count,
            max_attempts=payload.max_attempts,
            remaining_attempts=payload.remaining_attempts,
        )

    def submit_result(self, submission: QuizSubmission) -> AttemptResult:
        data = self._request("POST", SUBMIT_PATH, json=submission.to_payload())
        payload = self._validate(AttemptResultPayload, data)
        return AttemptResult(
            attempt_number=payload.attempt_number,
            score=payload.score,
            accuracy=payload.accuracy,
            correct_answers=payload.correct_answers,
            total_questions=payload.total_questions,
            remaining_attempts=payload.remaining_attempts,
            result_id=payload.result_id,
            time_taken_seconds=payload.time_taken,
        )

    def fetch_attempt_history(self, quiz_id: QuizId) -> AttemptHistory:
        data = self._request("GET", ATTEMPTS_PATH.format(quiz_id=quiz_id))
        payload = self._validate(AttemptHistoryPayload, data)
        attempts = tuple(
            AttemptSummary(
                attempt_number=item.attempt_number,
                score=item.score,
                correct_answers=item.correct_answers,
                total_questions=item.total_questions,
                accuracy=item.accuracy,
                time_taken_seconds=item.time_taken,
                completed_at=item.completed_at,
            )
            for item in payload.attempts
        )
        eligibility = AttemptEligibility(
            can_attempt=payload.can_attempt,
            attempt_count=payload.attempt_count,
            max_attempts=payload.max_attempts,
            remaining_attempts=payload.remaining_attempts,
        )
        return AttemptHistory(attempts=attempts, eligibility=eligibility)

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> Any:
        headers = {}
        token = self._token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = self._client.request(method, path, json=json, headers=headers)
        except httpx.TimeoutException as exc:
            raise QuizApiError(f"{method} {path} timed out.") from exc
        except httpx.HTTPError as exc:
            raise QuizApiError(f"{method} {path} failed: {exc}") from exc
        except httpx.InvalidURL as exc:
            raise QuizApiError(f"{method} {path} is not a valid URL.") from exc

        if response.status_code == 401:
            raise SessionExpiredError("Authentication required or expired.", status_code=401)

        try:
            body = response.json()
        except ValueError as exc:
            raise QuizApiError(
                f"{method} {path} returned a non-JSON body.", status_code=response.status_code
            ) from exc

        if response.is_error:
            message = body.get("message") if isinstance(body, dict) else None
            raise QuizApiError(
                message or f"{method} {path} returned HTTP {response.status_code}.",
                status_code=response.status_code,
            )

        envelope = self._validate(ApiEnvelope, body)
        if not envelope.success:
            raise QuizApiError(
                envelope.message or f"{method} {path} was not successful.",
                status_code=response.status_code,
            )
        logger.debug("%s %s -> %s", method, path, response.status_code)
        return envelope.data

    @staticmethod
    def _validate(model, data: Any):
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise QuizApiError(f"Unexpected response shape for {model.__name__}.") from exc
