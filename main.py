"""
Main entrypoint: FastAPI decision server in the main thread.

Settings come from the environment (and .env): SHADOWINTEL_* toggles and
knobs, API_HOST, API_PORT, LOG_LEVEL, LOG_FORMAT.

Equivalent: uvicorn backend_shadowintel.api_server.app:app --host 0.0.0.0 --port 8000
"""

import os

# Configure structured JSON logging before other imports that may log
from backend_shadowintel.intel_logging import get_logger

logger = get_logger("main")


def main() -> None:
    """Load settings and serve the decision API."""
    from backend_shadowintel.api_server.app import create_app
    from backend_shadowintel.config import get_settings
    import uvicorn

    settings = get_settings()
    app = create_app(settings)

    logger.info(
        "main_server_starting",
        host=settings.api_host,
        port=settings.api_port,
        sensitivity=settings.sensitivity,
        preserve_privacy=settings.preserve_privacy,
    )
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=os.getenv("LOG_LEVEL", "info").lower())


if __name__ == "__main__":
    main()
