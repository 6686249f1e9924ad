"""Optional API key authentication for the versioned API."""

from typing import Optional

import structlog
from flask import Flask, g, request
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from config.errors import DatabaseError, UnauthorizedError
from models.db import ApiKey
from services.database import session_scope

logger = structlog.get_logger()

API_KEY_HEADER = "X-API-Key"
PROTECTED_PREFIX = "/api/v"


def find_active_api_key(session_factory: sessionmaker, key_value: str) -> Optional[ApiKey]:
    try:
        with session_scope(session_factory) as session:
            stmt = select(ApiKey).where(ApiKey.key_value == key_value, ApiKey.is_active.is_(True))
            return session.scalars(stmt).first()
    except SQLAlchemyError as e:
        logger.error("api_key_lookup_failed", error=str(e))
        raise DatabaseError(f"Failed to verify API key: {str(e)}")


def init_auth(app: Flask, session_factory: sessionmaker) -> None:
    """Require a valid ``X-API-Key`` header on ``/api/v*`` routes."""

    @app.before_request
    def require_api_key():
        if not request.path.startswith(PROTECTED_PREFIX) or request.method == "OPTIONS":
            return None

        key_value = request.headers.get(API_KEY_HEADER)
        if not key_value:
            raise UnauthorizedError("API key is required")

        api_key = find_active_api_key(session_factory, key_value)
        if api_key is None:
            logger.warning("api_key_rejected", path=request.path)
            raise UnauthorizedError("Invalid API key")

        g.api_key = api_key
        return None
