"""Estimate agent error handling.

Custom exceptions and error codes shared by the services, the workflow
and the HTTP layer.
"""

from typing import Optional, Dict, Any


# Error Codes
class ErrorCode:
    """Error code constants."""

    # Request Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_FIELD = "MISSING_FIELD"
    BAD_REQUEST = "BAD_REQUEST"
    UNSUPPORTED_API_VERSION = "UNSUPPORTED_API_VERSION"

    # Access Errors
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    RATE_LIMITED = "RATE_LIMITED"

    # Lookup Errors
    NOT_FOUND = "NOT_FOUND"
    ESTIMATE_NOT_FOUND = "ESTIMATE_NOT_FOUND"
    QUESTION_NOT_FOUND = "QUESTION_NOT_FOUND"
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"
    CATEGORY_NOT_FOUND = "CATEGORY_NOT_FOUND"

    # Persistence Errors
    DATABASE_ERROR = "DATABASE_ERROR"
    VECTOR_STORE_ERROR = "VECTOR_STORE_ERROR"

    # LLM Errors
    LLM_ERROR = "LLM_ERROR"
    LLM_RATE_LIMIT = "LLM_RATE_LIMIT"
    LLM_CONTEXT_TOO_LONG = "LLM_CONTEXT_TOO_LONG"
    EMBEDDING_ERROR = "EMBEDDING_ERROR"

    # Workflow Errors
    CATEGORIZATION_FAILED = "CATEGORIZATION_FAILED"
    QUESTION_GENERATION_FAILED = "QUESTION_GENERATION_FAILED"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class EstimateAgentError(Exception):
    """Base exception for estimate agent errors.

    Provides structured error information for API responses.

    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        status_code: HTTP status the error maps to
        is_operational: True for expected failures (bad input, missing rows),
            False for programming or infrastructure faults
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        is_operational: bool = True,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.is_operational = is_operational
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API response.

        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, message={self.message!r}, "
            f"status_code={self.status_code})"
        )


class BadRequestError(EstimateAgentError):
    """400: Bad Request."""

    def __init__(
        self,
        message: str = "Bad request",
        code: str = ErrorCode.BAD_REQUEST,
        details: Optional[Dict] = None
    ):
        super().__init__(code=code, message=message, status_code=400, details=details)


class ValidationError(BadRequestError):
    """Validation-specific error."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict] = None,
        code: str = ErrorCode.VALIDATION_ERROR
    ):
        super().__init__(
            message=message,
            code=code,
            details={**(details or {}), "field": field} if field else details
        )
        self.field = field


class UnauthorizedError(EstimateAgentError):
    """401: Unauthorized."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(code=ErrorCode.UNAUTHORIZED, message=message, status_code=401)


class ForbiddenError(EstimateAgentError):
    """403: Forbidden."""

    def __init__(self, message: str = "You do not have permission to access this resource"):
        super().__init__(code=ErrorCode.FORBIDDEN, message=message, status_code=403)


class NotFoundError(EstimateAgentError):
    """404: Not Found."""

    def __init__(
        self,
        message: str = "Resource not found",
        code: str = ErrorCode.NOT_FOUND,
        details: Optional[Dict] = None
    ):
        super().__init__(code=code, message=message, status_code=404, details=details)


class TooManyRequestsError(EstimateAgentError):
    """429: Too Many Requests."""

    def __init__(
        self,
        message: str = "Request limit reached. Please try again later.",
        details: Optional[Dict] = None
    ):
        super().__init__(code=ErrorCode.RATE_LIMITED, message=message, status_code=429, details=details)


class InternalServerError(EstimateAgentError):
    """500: unexpected failure."""

    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.INTERNAL_ERROR,
            message=message,
            status_code=500,
            is_operational=False,
            details=details
        )


class DatabaseError(EstimateAgentError):
    """Database operation failed."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(code=ErrorCode.DATABASE_ERROR, message=message, status_code=500, details=details)


class LLMError(EstimateAgentError):
    """LLM call failed."""

    def __init__(self, message: str, code: str = ErrorCode.LLM_ERROR, details: Optional[Dict] = None):
        super().__init__(code=code, message=message, status_code=500, details=details)


class EmbeddingError(EstimateAgentError):
    """Embedding generation failed."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(code=ErrorCode.EMBEDDING_ERROR, message=message, status_code=500, details=details)


class VectorStoreError(EstimateAgentError):
    """Document store read or write failed."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(code=ErrorCode.VECTOR_STORE_ERROR, message=message, status_code=500, details=details)


class CategorizationError(EstimateAgentError):
    """Category estimation could not produce a result."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.CATEGORIZATION_FAILED,
            message=message,
            status_code=500,
            details=details
        )


class QuestionGenerationError(EstimateAgentError):
    """Question generation could not produce a question list."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.QUESTION_GENERATION_FAILED,
            message=message,
            status_code=500,
            details=details
        )
