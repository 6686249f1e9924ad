"""Request parsing helpers for route handlers."""

from typing import Any, Dict, Type, TypeVar

import pydantic
from flask import request

from config.errors import ValidationError, ErrorCode

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def get_request_json() -> Dict[str, Any]:
    """Parsed JSON body, ``{}`` when the body is empty.

    Raises:
        ValidationError: If the body is not a JSON object.
    """
    data = request.get_json(silent=True)
    if data is None:
        if request.get_data(cache=True):
            raise ValidationError("Invalid JSON in request body")
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def require_fields(data: Dict[str, Any], *fields: str) -> None:
    for field in fields:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(
                f"Missing required field: {field}",
                field=field,
                code=ErrorCode.MISSING_FIELD,
            )


def require_query_param(name: str) -> str:
    value = request.args.get(name, "").strip()
    if not value:
        raise ValidationError(
            f"Missing required query parameter: {name}",
            field=name,
            code=ErrorCode.MISSING_FIELD,
        )
    return value


def parse_body(model: Type[ModelT], data: Dict[str, Any] = None) -> ModelT:
    """Validate the request body against ``model``.

    Raises:
        ValidationError: With the pydantic error list under ``details.errors``.
    """
    if data is None:
        data = get_request_json()
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(
            "Invalid request",
            details={"errors": e.errors(include_url=False)},
        )
