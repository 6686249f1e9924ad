"""API version detection.

The version is read from the first path segment that looks like ``v<N>``,
then from the ``X-API-Version`` header, then from the configured default.
"""

import re
from typing import List, Optional

import structlog
from flask import Flask, g, request

from config.errors import BadRequestError, ErrorCode

logger = structlog.get_logger()

VERSION_SEGMENT = re.compile(r"^v\d+$")
VERSION_HEADER = "X-API-Version"


def detect_api_version(path: str, header_value: Optional[str], default_version: str) -> str:
    for segment in path.split("/"):
        if VERSION_SEGMENT.match(segment):
            return segment
    if header_value:
        return header_value.strip()
    return default_version


def init_versioning(app: Flask, default_version: str, supported_versions: List[str]) -> None:
    """Register the version check on ``app``.

    Raises (per request):
        BadRequestError: For a version outside ``supported_versions``.
    """

    @app.before_request
    def check_api_version():
        version = detect_api_version(request.path, request.headers.get(VERSION_HEADER), default_version)
        if version not in supported_versions:
            logger.warning("unsupported_api_version", version=version, path=request.path)
            raise BadRequestError(
                f"Unsupported API version: {version}",
                code=ErrorCode.UNSUPPORTED_API_VERSION,
                details={"supported_versions": list(supported_versions)},
            )
        g.api_version = version
