"""User-visible notifications raised by the quiz engine."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
import itertools
import logging
from threading import Lock

from khodkquiz.constants.quiz_constants import NOTIFICATION_HISTORY_SIZE

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(slots=True, frozen=True)
class Notification:
    """A short message meant to be shown to the player."""

    id: int
    level: str
    message: str
    created_at: datetime


class NotificationCenter:
    """Keeps a bounded history of notifications for polling clients."""

    def __init__(self, history_size: int = NOTIFICATION_HISTORY_SIZE) -> None:
        self._history: deque[Notification] = deque(maxlen=history_size)
        self._ids = itertools.count(1)
        self._lock = Lock()

    def info(self, message: str) -> Notification:
        return self._push("info", message)

    def success(self, message: str) -> Notification:
        return self._push("success", message)

    def warning(self, message: str) -> Notification:
        return self._push("warning", message)

    def error(self, message: str) -> Notification:
        return self._push("error", message)

    def since(self, last_id: int = 0) -> list[Notification]:
        """Return notifications newer than ``last_id``, oldest first."""
        with self._lock:
            return [item for item in self._history if item.id > last_id]

    def latest(self) -> Notification | None:
        with self._lock:
            return self._history[-1] if self._history else None

    def _push(self, level: str, message: str) -> Notification:
        with self._lock:
            notification = Notification(
                id=next(self._ids),
                level=level,
                message=message,
                created_at=datetime.now(timezone.utc),
            )
            self._history.append(notification)
        logger.log(_LOG_LEVELS[level], "Notification (%s): %s", level, message)
        return notification
