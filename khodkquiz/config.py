"""Runtime settings with environment variable overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from khodkquiz.constants.network_constants import (
    DEFAULT_API_BASE_URL,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
)


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    value = _env_str(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}.") from exc


def _env_float(name: str, default: float) -> float:
    value = _env_str(name)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}.") from exc
    if parsed <= 0:
        raise ValueError(f"{name} must be positive.")
    return parsed


@dataclass
class Settings:
    """Where the quiz API lives, how to reach it, and where to serve the player."""

    api_base_url: str = field(
        default_factory=lambda: _env_str("KHODKQUIZ_API_URL", DEFAULT_API_BASE_URL).rstrip("/")
    )
    api_token: Optional[str] = field(default_factory=lambda: _env_str("KHODKQUIZ_API_TOKEN"))
    host: str = field(default_factory=lambda: _env_str("KHODKQUIZ_HOST", DEFAULT_HOST))
    port: int = field(default_factory=lambda: _env_int("KHODKQUIZ_PORT", DEFAULT_PORT))
    request_timeout_seconds: float = field(
        default_factory=lambda: _env_float("KHODKQUIZ_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT_SECONDS)
    )
    log_level: str = field(default_factory=lambda: _env_str("KHODKQUIZ_LOG_LEVEL", "INFO").upper())


def get_settings() -> Settings:
    return Settings()
