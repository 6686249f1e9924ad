"""Flask application for the estimate agent API."""

from typing import Optional

import structlog
from flask import Flask
from flask_cors import CORS

from config.settings import Settings, settings as default_settings
from models.db import utcnow
from api.container import EXTENSION_KEY, ServiceContainer
from api.middleware import (
    RateLimiter,
    init_auth,
    init_rate_limit,
    init_versioning,
    register_error_handlers,
)
from api.responses import json_response
from api.routes.v1 import v1

logger = structlog.get_logger()

API_PREFIX = "/api"


def create_app(
    app_settings: Optional[Settings] = None,
    services: Optional[ServiceContainer] = None,
) -> Flask:
    """Application factory.

    Args:
        app_settings: Settings to use (default: module settings).
        services: Prebuilt services, mainly for tests.
    """
    app_settings = app_settings or default_settings
    services = services or ServiceContainer.build(app_settings)

    app = Flask(__name__)
    CORS(app)
    app.extensions[EXTENSION_KEY] = services
    app.config["ESTIMATE_AGENT_SETTINGS"] = app_settings

    # before_request hooks run in registration order
    register_error_handlers(app, is_production=app_settings.is_production)
    init_versioning(app, app_settings.api_version, app_settings.supported_api_versions)
    init_rate_limit(
        app,
        RateLimiter(app_settings.api_rate_limit, app_settings.rate_limit_window_seconds),
    )
    if app_settings.require_api_key:
        init_auth(app, services.session_factory)

    @app.route(f"{API_PREFIX}/health", methods=["GET"])
    def health():
        return json_response({
            "status": "ok",
            "time": utcnow().isoformat(),
            "version": app_settings.api_version,
        })

    app.register_blueprint(v1, url_prefix=f"{API_PREFIX}/v1")

    logger.info(
        "app_created",
        environment=app_settings.environment,
        api_version=app_settings.api_version,
        require_api_key=app_settings.require_api_key,
    )
    return app


__all__ = ["create_app", "ServiceContainer"]
