"""JSON envelope helpers shared by all endpoints."""

import json
from datetime import datetime, date
from typing import Dict, Any, Optional

from flask import Response


def success_response(data: Any, message: Optional[str] = None) -> Dict[str, Any]:
    """Build success envelope."""
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def error_response(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Build error envelope."""
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
        },
    }


def _json_default(o: Any):
    if isinstance(o, (datetime, date)):
        return o.isoformat()
    return str(o)


def json_response(data: Dict[str, Any], status: int = 200, headers: Optional[Dict[str, str]] = None) -> Response:
    """Serialize ``data`` into a JSON response; datetimes become ISO strings."""
    return Response(
        json.dumps(data, default=_json_default, ensure_ascii=False),
        status=status,
        mimetype="application/json",
        headers=headers,
    )
