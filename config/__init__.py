"""Estimate agent configuration.

This package contains:
- settings: Environment variables and configuration
- secrets: Secret access (OPENAI_API_KEY)
- errors: Custom exceptions and error codes
- logging_config: structlog setup
"""

from config.settings import settings, Settings
from config.errors import EstimateAgentError, ErrorCode
from config.secrets import get_secret, get_openai_api_key
from config.logging_config import configure_logging

__all__ = [
    "settings",
    "Settings",
    "EstimateAgentError",
    "ErrorCode",
    "get_secret",
    "get_openai_api_key",
    "configure_logging",
]
