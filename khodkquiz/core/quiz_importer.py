"""Conversion of quiz API question payloads into domain questions.

Payload format (one entry per question, order preserved)::

    {
      "id": 1,
      "question": "What does `len([1, 2])` return?",
      "options": [
        {"id": 10, "text": "1", "isCorrect": false},
        {"id": 11, "text": "2", "isCorrect": true}
      ]
    }

Only ``question`` and ``options`` are accepted for the prompt and the choices.
A question set is rejected as a whole when any question is malformed, so the
engine never starts an attempt it cannot grade.
"""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter, ValidationError

from khodkquiz.client.schemas import QuestionPayload
from khodkquiz.core.models import AnswerOption, QuizQuestion


class QuizImportError(Exception):
    """Raised when a question set cannot be turned into a playable quiz."""


_QUESTION_LIST = TypeAdapter(list[QuestionPayload])


def parse_questions(raw_questions: Any) -> list[QuizQuestion]:
    if raw_questions is None:
        return []
    try:
        payloads = _QUESTION_LIST.validate_python(raw_questions)
    except ValidationError as exc:
        raise QuizImportError(f"Malformed question data: {exc.error_count()} error(s).") from exc

    questions: list[QuizQuestion] = []
    seen_ids: set[Any] = set()
    for position, payload in enumerate(payloads, start=1):
        if payload.id in seen_ids:
            raise QuizImportError(f"Question {position} reuses id {payload.id!r}.")
        seen_ids.add(payload.id)
        questions.append(_build_question(position, payload))
    return questions


def _build_question(position: int, payload: QuestionPayload) -> QuizQuestion:
    text = payload.question.strip()
    if not text:
        raise QuizImportError(f"Question {position} has no text.")
    if len(payload.options) < 2:
        raise QuizImportError(f"Question {position} needs at least two options.")

    option_ids = [option.id for option in payload.options]
    if len(set(option_ids)) != len(option_ids):
        raise QuizImportError(f"Question {position} has duplicate option ids.")

    options = tuple(
        AnswerOption(id=option.id, text=_sanitize_option(option.text), is_correct=option.is_correct)
        for option in payload.options
    )
    if any(not option.text for option in options):
        raise QuizImportError(f"Question {position} has an empty option.")

    correct_count = sum(1 for option in options if option.is_correct)
    if correct_count != 1:
        raise QuizImportError(
            f"Question {position} must have exactly one correct option (found {correct_count})."
        )

    return QuizQuestion(id=payload.id, text=text, options=options)


def _sanitize_option(option_text: str) -> str:
    return option_text.strip()
