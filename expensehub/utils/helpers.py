"""General helper utilities."""
from __future__ import annotations

import re
from typing import Any, Dict, Optional

from flask import jsonify, request

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def json_response(payload: Any, status: int = 200):
    """Return a JSON response with status code."""
    return jsonify(payload), status


def success_response(data: Any = None, message: Optional[str] = None, status: int = 200):
    payload: Dict[str, Any] = {"success": True, "data": data}
    if message:
        payload["message"] = message
    return json_response(payload, status=status)


def error_response(error: str, status: int = 400, details: Any = None):
    payload: Dict[str, Any] = {"success": False, "error": error}
    if details is not None:
        payload["details"] = details
    return json_response(payload, status=status)


def to_snake_case(key: str) -> str:
    """``amountMinor`` -> ``amount_minor``; snake_case keys pass through."""
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def normalize_payload(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        return {}
    return {to_snake_case(str(key)): value for key, value in payload.items()}


def request_payload() -> Dict[str, Any]:
    """JSON body of the current request with snake_case keys."""
    return normalize_payload(request.get_json(silent=True))


def query_params() -> Dict[str, Any]:
    return normalize_payload(request.args.to_dict())
