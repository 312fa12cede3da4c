"""Authentication capability handed to the quiz engine."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Protocol

logger = logging.getLogger(__name__)


class AuthGateway(Protocol):
    """What the engine needs to know about the signed-in user."""

    @property
    def is_authenticated(self) -> bool: ...

    def set_token(self, token: str | None) -> None: ...

    def prompt_sign_in(self) -> None: ...

    def sign_out(self) -> None: ...


class TokenAuthGateway:
    """Auth gateway backed by a bearer token obtained outside this app.

    Signing in happens elsewhere (the main KhodKquiz site); ``prompt_sign_in``
    only raises a flag the player page turns into a sign-in prompt. The token
    the student copies from there arrives through ``set_token``, which also
    clears the prompt.
    """

    def __init__(self, token: str | None = None) -> None:
        self._token = token.strip() if token and token.strip() else None
        self._sign_in_requested = False
        self._lock = Lock()

    @property
    def token(self) -> str | None:
        with self._lock:
            return self._token

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    @property
    def sign_in_requested(self) -> bool:
        with self._lock:
            return self._sign_in_requested

    def set_token(self, token: str | None) -> None:
        with self._lock:
            self._token = token.strip() if token and token.strip() else None
            if self._token is not None:
                self._sign_in_requested = False

    def prompt_sign_in(self) -> None:
        with self._lock:
            self._sign_in_requested = True
        logger.info("Sign-in requested")

    def sign_out(self) -> None:
        with self._lock:
            self._token = None
        logger.info("Signed out; stored token discarded")
