"""Quiz-related constants shared across the engine and the player server."""

QUESTION_TIME_LIMIT_SECONDS: float = 25.0
TIMER_TICK_INTERVAL_MS: int = 10
FEEDBACK_DELAY_MS: int = 2000
MAX_QUESTION_SCORE: int = 1000
MIN_CORRECT_ANSWER_SCORE: int = 1
DEFAULT_MAX_ATTEMPTS: int = 3
NOTIFICATION_HISTORY_SIZE: int = 50
