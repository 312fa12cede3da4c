"""FastAPI server that exposes the quiz session to the browser player."""

from __future__ import annotations

from datetime import timezone
from typing import Optional, Union

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel
import uvicorn

from khodkquiz.client.quiz_api_client import QuizApiError, SessionExpiredError
from khodkquiz.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from khodkquiz.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from khodkquiz.core.models import SessionPhase
from khodkquiz.core.question_renderer import renderer
from khodkquiz.core.quiz_manager import QuizManager
from khodkquiz.core.services.game_session import SessionSnapshot

_PLAYER_PAGE_HTML = """<!doctype html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <title>KhodKquiz</title>
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <style>
      body { font-family: 'Segoe UI', system-ui, sans-serif; margin: 0; padding: 1.5rem; background: #1e1b4b; color: #f5f7ff; }
      .card { max-width: 720px; margin: 0 auto; background: rgba(17, 24, 39, 0.6); border-radius: 16px; padding: 1.5rem; }
      .hidden { display: none; }
      .timer { font-size: 2rem; font-weight: bold; text-align: right; }
      .option-button { display: block; width: 100%; margin: 0.5rem 0; padding: 0.9rem; border-radius: 10px; border: none; font-size: 1.05rem; cursor: pointer; background: #312e81; color: #f5f7ff; text-align: left; }
      .option-button.correct { background: #15803d; }
      .option-button.wrong { background: #b91c1c; }
      .toast { margin-top: 1rem; min-height: 1.5rem; }
      pre { background: #0f172a; padding: 0.75rem; border-radius: 8px; overflow-x: auto; }
    </style>
  </head>
  <body>
    <div class=\"card\">
      <div id=\"intro\">
        <h1>KhodKquiz</h1>
        <form id=\"load-form\">
          <input id=\"quiz-id\" placeholder=\"Quiz id\" required />
          <button type=\"submit\">Load quiz</button>
        </form>
        <form id=\"token-form\" class=\"hidden\">
          <input id=\"token\" type=\"password\" placeholder=\"KhodKquiz token\" required />
          <button type=\"submit\">Sign in</button>
        </form>
        <p id=\"intro-info\"></p>
        <button id=\"start-button\" class=\"hidden\">Start Quiz</button>
      </div>
      <div id=\"play\" class=\"hidden\">
        <div class=\"timer\" id=\"timer\"></div>
        <p id=\"progress\"></p>
        <div id=\"question\"></div>
        <div id=\"options\"></div>
        <p id=\"feedback\"></p>
      </div>
      <div id=\"finished\" class=\"hidden\">
        <h2>Quiz Completed!</h2>
        <p id=\"summary\"></p>
        <button id=\"restart-button\">Try Again</button>
        <button id=\"reset-button\">Back</button>
      </div>
      <div class=\"toast\" id=\"toast\"></div>
    </div>
    <script>
      let lastNotificationId = 0;
      const el = (id) => document.getElementById(id);
      const show = (id, visible) => el(id).classList.toggle('hidden', !visible);

      async function post(path, body) {
        const response = await fetch(path, {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: body ? JSON.stringify(body) : null,
        });
        if (!response.ok) {
          const payload = await response.json().catch(() => ({}));
          el('toast').textContent = payload.detail ?? 'Request failed.';
        }
        await refresh();
      }

      function renderOptions(state) {
        const container = el('options');
        container.innerHTML = '';
        const question = state.question;
        if (!question) return;
        question.options_html.forEach((html, index) => {
          const button = document.createElement('button');
          button.className = 'option-button';
          button.innerHTML = String.fromCharCode(65 + index) + '. ' + html;
          if (state.phase !== 'playing') {
            button.disabled = true;
            if (index === question.correct_option_index) button.classList.add('correct');
            else if (index === state.selected_option_index) button.classList.add('wrong');
          }
          button.addEventListener('click', () => post('/session/answer', { option_index: index }));
          container.appendChild(button);
        });
      }

      function render(state) {
        show('intro', state.phase === 'intro');
        show('play', state.phase === 'playing' || state.phase === 'feedback');
        show('finished', state.phase === 'finished');
        if (state.phase === 'intro') {
          if (state.loading) el('intro-info').textContent = 'Loading quiz…';
          else if (state.load_error) el('intro-info').textContent = state.load_error;
          else if (state.quiz_id !== null) {
            el('intro-info').textContent = state.total_questions + ' questions, ' + state.time_limit_seconds +
              ' seconds per question. Attempts left: ' + state.remaining_attempts + '/' + state.max_attempts;
          }
          show('start-button', state.quiz_id !== null && !state.loading && !state.load_error);
          el('start-button').disabled = !state.can_attempt && state.authenticated;
          if (state.sign_in_requested) el('intro-info').textContent = 'Please sign in on KhodKquiz to start this quiz.';
          show('token-form', !state.authenticated);
        }
        if (state.question) {
          el('question').innerHTML = state.question.question_html;
          el('progress').textContent = 'Question ' + (state.question_index + 1) + ' of ' + state.total_questions;
        }
        el('timer').textContent = state.display_seconds + 's';
        renderOptions(state);
        if (state.phase === 'feedback') {
          el('feedback').textContent = state.last_answer_correct ? 'Correct! +' + state.last_points + ' points' :
            (state.selected_option_index === null ? "Time's up! +0 points" : 'Wrong answer. +0 points');
        } else {
          el('feedback').textContent = '';
        }
        if (state.phase === 'finished') {
          const result = state.attempt_result;
          el('summary').textContent = state.score + ' points, ' + state.correct_count + ' of ' +
            state.total_questions + ' correct, accuracy ' + state.accuracy + '%' +
            (result ? ' (attempt ' + result.attempt_number + ', ' + result.remaining_attempts + ' left)' : '');
        }
      }

      async function pollNotifications() {
        const response = await fetch('/notifications?after=' + lastNotificationId);
        if (!response.ok) return;
        const items = await response.json();
        items.forEach((item) => {
          lastNotificationId = Math.max(lastNotificationId, item.id);
          el('toast').textContent = item.message;
        });
      }

      async function refresh() {
        try {
          const response = await fetch('/session');
          render(await response.json());
          await pollNotifications();
        } catch (error) {
          el('toast').textContent = 'Unable to reach the quiz player.';
        }
      }

      el('load-form').addEventListener('submit', (event) => {
        event.preventDefault();
        post('/session/load', { quiz_id: el('quiz-id').value.trim() });
      });
      el('token-form').addEventListener('submit', (event) => {
        event.preventDefault();
        post('/session/token', { token: el('token').value.trim() });
        el('token').value = '';
      });
      el('start-button').addEventListener('click', () => post('/session/start'));
      el('restart-button').addEventListener('click', () => post('/session/restart'));
      el('reset-button').addEventListener('click', () => post('/session/reset'));
      refresh();
      setInterval(refresh, 250);
    </script>
  </body>
</html>
"""


class LoadPayload(BaseModel):
    """Payload schema for selecting a quiz."""

    quiz_id: Union[int, str]


class AnswerPayload(BaseModel):
    """Payload schema for submitted answers."""

    option_index: int


class TokenPayload(BaseModel):
    """Payload schema for signing in with a bearer token."""

    token: Optional[str] = None


def _get_quiz_manager_dependency(quiz_manager: QuizManager):
    def dependency() -> QuizManager:
        return quiz_manager

    return dependency


def _normalize_quiz_id(raw: Union[int, str]) -> int:
    """Quiz ids are positive integers; digit strings from the form are converted."""
    if isinstance(raw, str):
        stripped = raw.strip()
        if not stripped:
            raise HTTPException(status_code=422, detail="Quiz id must not be empty.")
        if not stripped.isdecimal():
            raise HTTPException(status_code=422, detail="Quiz id must be a whole number.")
        raw = int(stripped)
    if raw < 1:
        raise HTTPException(status_code=422, detail="Quiz id must be a positive integer.")
    return raw


def serialize_snapshot(snapshot: SessionSnapshot, manager: QuizManager) -> dict[str, object]:
    """Turn a session snapshot into the JSON document the player page polls."""
    question_payload = None
    if snapshot.question is not None:
        question_payload = {
            "id": snapshot.question.id,
            **renderer.render_question(snapshot.question),
            "option_ids": [option.id for option in snapshot.question.options],
            # Correctness is only revealed once the question has been answered.
            "correct_option_index": (
                None
                if snapshot.phase is SessionPhase.PLAYING
                else snapshot.question.correct_option_index()
            ),
        }

    started_iso = None
    if snapshot.started_at is not None:
        started_iso = snapshot.started_at.astimezone(timezone.utc).isoformat()

    result = snapshot.attempt_result
    return {
        "phase": snapshot.phase.name.lower(),
        "quiz_id": snapshot.quiz_id,
        "loading": manager.is_loading(),
        "load_error": manager.get_load_error(),
        "authenticated": manager.is_authenticated(),
        "sign_in_requested": manager.is_sign_in_requested(),
        "question_index": snapshot.question_index,
        "total_questions": snapshot.total_questions,
        "question": question_payload,
        "time_limit_seconds": snapshot.time_limit_seconds,
        "remaining_seconds": snapshot.remaining_seconds,
        "display_seconds": snapshot.display_seconds,
        "score": snapshot.score,
        "correct_count": snapshot.correct_count,
        "answered_count": snapshot.answered_count,
        "selected_option_index": snapshot.selected_option_index,
        "last_answer_correct": snapshot.last_answer_correct,
        "last_points": snapshot.last_points,
        "can_attempt": snapshot.can_attempt,
        "remaining_attempts": snapshot.remaining_attempts,
        "max_attempts": snapshot.max_attempts,
        "accuracy": snapshot.accuracy,
        "started_at": started_iso,
        "submission_status": (
            snapshot.submission_status.name.lower() if snapshot.submission_status is not None else None
        ),
        "attempt_result": (
            None
            if result is None
            else {
                "attempt_number": result.attempt_number,
                "score": result.score,
                "accuracy": result.accuracy,
                "correct_answers": result.correct_answers,
                "total_questions": result.total_questions,
                "remaining_attempts": result.remaining_attempts,
            }
        ),
    }


def create_api_app(quiz_manager: QuizManager) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz manager."""
    app = FastAPI(
        title=f"{APP_NAME} Player",
        version=APP_VERSION,
        description=APP_ABOUT_TEXT,
        license_info={"name": APP_LICENSE},
    )
    quiz_manager_dep = _get_quiz_manager_dependency(quiz_manager)

    @app.get("/", response_class=HTMLResponse)
    def serve_player_page() -> str:
        return _PLAYER_PAGE_HTML

    @app.get("/session")
    def get_session(manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        return serialize_snapshot(manager.get_snapshot(), manager)

    @app.post("/session/load")
    def load_quiz(
        payload: LoadPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        loaded = manager.load_quiz(_normalize_quiz_id(payload.quiz_id))
        return {"loaded": loaded, **serialize_snapshot(manager.get_snapshot(), manager)}

    @app.post("/session/start")
    def start_quiz(manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        started = manager.start_quiz()
        return {"started": started, **serialize_snapshot(manager.get_snapshot(), manager)}

    @app.post("/session/restart")
    def restart_quiz(manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        started = manager.restart_quiz()
        return {"started": started, **serialize_snapshot(manager.get_snapshot(), manager)}

    @app.post("/session/answer")
    def submit_answer(
        payload: AnswerPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            accepted = manager.select_answer(payload.option_index)
        except IndexError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return {"accepted": accepted, **serialize_snapshot(manager.get_snapshot(), manager)}

    @app.post("/session/token")
    def sign_in(
        payload: TokenPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        signed_in = manager.sign_in(payload.token)
        return {"signed_in": signed_in, **serialize_snapshot(manager.get_snapshot(), manager)}

    @app.post("/session/reset")
    def reset_quiz(manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        manager.reset_quiz()
        return serialize_snapshot(manager.get_snapshot(), manager)

    @app.get("/notifications")
    def get_notifications(
        after: int = 0,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> list[dict[str, object]]:
        return [
            {
                "id": item.id,
                "level": item.level,
                "message": item.message,
                "created_at": item.created_at.isoformat(),
            }
            for item in manager.get_notifications(after)
        ]

    @app.get("/attempts")
    def get_attempts(manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        try:
            history = manager.fetch_attempt_history()
        except RuntimeError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except (PermissionError, SessionExpiredError) as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc
        except QuizApiError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return {
            "attempts": [
                {
                    "attempt_number": attempt.attempt_number,
                    "score": attempt.score,
                    "correct_answers": attempt.correct_answers,
                    "total_questions": attempt.total_questions,
                    "accuracy": attempt.accuracy,
                    "time_taken_seconds": attempt.time_taken_seconds,
                    "completed_at": attempt.completed_at,
                }
                for attempt in history.attempts
            ],
            "attempt_count": history.eligibility.attempt_count,
            "remaining_attempts": history.eligibility.remaining_attempts,
            "max_attempts": history.eligibility.max_attempts,
            "can_attempt": history.eligibility.can_attempt,
        }

    return app


def run_api_server(
    quiz_manager: QuizManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> None:
    """Serve the player in the foreground until interrupted."""
    _build_server(quiz_manager, host, port).run()


def _build_server(quiz_manager: QuizManager, host: str, port: int) -> uvicorn.Server:
    app = create_api_app(quiz_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    return uvicorn.Server(config)
