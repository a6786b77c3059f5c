"""
Common API utilities for consistent response formatting across all controllers.
"""

from typing import Any, Optional

from flask import jsonify, request

from marketplace.core.exceptions import ValidationError


def api_response(
    success: bool, message: str, data: Optional[Any] = None, status_code: int = 200
) -> tuple:
    """
    Standardized API response format for all endpoints.

    Args:
        success: Whether the operation was successful
        message: Human-readable message about the operation
        data: Optional data payload
        status_code: HTTP status code

    Returns:
        Tuple of (json_response, status_code)
    """
    response = {"success": success, "message": message}

    if data is not None:
        response["data"] = data

    return jsonify(response), status_code


def json_body() -> Any:
    """Parsed JSON body of the current request, or ``ValidationError``."""
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationError("Request body must be valid JSON")
    return data


def query_int(name: str, required: bool = False) -> Optional[int]:
    """Read an integer query-string argument."""
    raw = request.args.get(name)
    if raw is None or raw == "":
        if required:
            raise ValidationError(f"{name} is required", field=name)
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", field=name)
