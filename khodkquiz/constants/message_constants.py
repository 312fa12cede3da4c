"""User-facing notification texts."""

LOAD_FAILED_MESSAGE: str = "Failed to load quiz. Please try again."
AUTH_REQUIRED_MESSAGE: str = "Please sign in to start this quiz."
ATTEMPT_LIMIT_TEMPLATE: str = "Maximum attempts ({max_attempts}) reached for this quiz"
NO_QUIZ_LOADED_MESSAGE: str = "Please select a quiz first."
QUIZ_STILL_LOADING_MESSAGE: str = "The quiz is still loading."
SUBMIT_SUCCESS_MESSAGE: str = "Quiz results saved successfully!"
SUBMIT_FAILED_MESSAGE: str = "Failed to save quiz results"
SESSION_EXPIRED_MESSAGE: str = "Session expired. Please log in again."
