"""Request middleware: versioning, rate limiting, auth and error handling."""

from api.middleware.versioning import init_versioning
from api.middleware.rate_limit import RateLimiter, init_rate_limit
from api.middleware.auth import init_auth
from api.middleware.errors import register_error_handlers

__all__ = [
    "init_versioning",
    "RateLimiter",
    "init_rate_limit",
    "init_auth",
    "register_error_handlers",
]
