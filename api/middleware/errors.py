"""JSON error handlers."""

import structlog
from flask import Flask, request
from werkzeug.exceptions import HTTPException

from config.errors import EstimateAgentError, ErrorCode
from api.responses import error_response, json_response

logger = structlog.get_logger()


def register_error_handlers(app: Flask, is_production: bool = False) -> None:
    """Render every error as a JSON envelope."""

    @app.errorhandler(EstimateAgentError)
    def handle_estimate_agent_error(e: EstimateAgentError):
        log = logger.warning if e.status_code < 500 else logger.error
        log(
            "request_failed",
            error_type=type(e).__name__,
            code=e.code,
            message=e.message,
            status_code=e.status_code,
            is_operational=e.is_operational,
            path=request.path,
            exc_info=not is_production and not e.is_operational,
        )
        return json_response(error_response(e.code, e.message, e.details), status=e.status_code)

    @app.errorhandler(404)
    def handle_not_found(e):
        return json_response(
            error_response(ErrorCode.NOT_FOUND, f"Requested URL {request.path} does not exist"),
            status=404,
        )

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        code = ErrorCode.BAD_REQUEST if e.code and e.code < 500 else ErrorCode.INTERNAL_ERROR
        return json_response(error_response(code, e.description or e.name), status=e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        logger.error(
            "unhandled_exception",
            error_type=type(e).__name__,
            message=str(e),
            path=request.path,
            is_operational=False,
            exc_info=not is_production,
        )
        message = "An unexpected error occurred" if is_production else str(e)
        return json_response(error_response(ErrorCode.INTERNAL_ERROR, message), status=500)
