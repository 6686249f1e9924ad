#!/usr/bin/env python3
"""HTTP entry point for the estimate agent API.

Usage:
    python main.py

Starts the Flask development server on PORT (default 3001). WSGI servers
can import ``app`` from this module instead.
"""

import structlog

from config.settings import settings
from config.logging_config import configure_logging
from api import create_app

configure_logging(settings.log_level, settings.environment)
settings.validate()

logger = structlog.get_logger()

app = create_app(settings)


if __name__ == "__main__":
    logger.info("dev_server_starting", port=settings.port, environment=settings.environment)
    print(f"Estimate agent API listening on http://localhost:{settings.port}/api/{settings.api_version}")
    app.run(host="0.0.0.0", port=settings.port, debug=settings.is_development)
