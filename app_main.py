"""Application entry point for the KhodKquiz player."""

from __future__ import annotations

import socket

from khodkquiz.client.quiz_api_client import QuizApiClient
from khodkquiz.config import get_settings
from khodkquiz.core.quiz_manager import QuizManager
from khodkquiz.core.services.auth_gateway import TokenAuthGateway
from khodkquiz.server.api_server import run_api_server
from khodkquiz.utils.logging_config import configure_logging


def _determine_player_url(port: int) -> str:
    """Best-effort determination of the local IP for the player URL."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            ip_address = sock.getsockname()[0]
    except OSError:
        ip_address = "127.0.0.1"
    return f"http://{ip_address}:{port}/"


def main() -> None:
    """Initialize logging, wire the quiz engine and serve the player page."""
    settings = get_settings()
    logger = configure_logging(settings.log_level)
    logger.info("Starting KhodKquiz player against %s", settings.api_base_url)

    auth = TokenAuthGateway(settings.api_token)
    if not auth.is_authenticated:
        logger.warning("No KHODKQUIZ_API_TOKEN set; results will not be saved")
    api = QuizApiClient(
        base_url=settings.api_base_url,
        token_provider=lambda: auth.token,
        timeout_seconds=settings.request_timeout_seconds,
    )
    quiz_manager = QuizManager(api=api, auth=auth)
    logger.info("Player page available at %s", _determine_player_url(settings.port))

    try:
        run_api_server(quiz_manager, host=settings.host, port=settings.port)
    finally:
        quiz_manager.close()
        api.close()


if __name__ == "__main__":
    main()
