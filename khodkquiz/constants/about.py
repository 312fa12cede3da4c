"""Static metadata describing KhodKquiz."""

APP_NAME = "KhodKquiz"
APP_VERSION = "0.1.0"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "KhodKquiz player: take timed multiple-choice and true/false quizzes, "
    "earn points for fast correct answers and track your attempts."
)
