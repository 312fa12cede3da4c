"""Network configuration constants for the quiz application."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
DEFAULT_API_BASE_URL: str = "http://localhost:3000"
DEFAULT_REQUEST_TIMEOUT_SECONDS: float = 10.0

QUESTIONS_PATH: str = "/api/student/quiz/{quiz_id}"
ELIGIBILITY_PATH: str = "/api/student/quiz/{quiz_id}/eligibility"
ATTEMPTS_PATH: str = "/api/student/quiz/{quiz_id}/attempts"
SUBMIT_PATH: str = "/api/student/quiz/submit"
