"""API response helpers and request parsing utilities."""

from __future__ import annotations

from typing import Any

from flask import jsonify, request
from pydantic import BaseModel, ValidationError


def api_error(error: str, status: int = 400, **extra) -> tuple[Any, int]:
    """Return a standardized JSON error response."""
    resp = {"success": False, "error": error}
    resp.update(extra)
    return jsonify(resp), status


def api_success(**data) -> Any:
    """Return a standardized JSON success response."""
    resp = {"success": True}
    resp.update(data)
    return jsonify(resp)


def parse_api_request(schema: type[BaseModel]) -> tuple[BaseModel | None, tuple[Any, int] | None]:
    """
    Parse the JSON body into ``schema``.

    Returns (model, error_response) tuple. If error_response is not None, return it immediately.
    An empty JSON object is valid (every search request field has a default).
    """
    data = request.get_json(silent=True)
    if data is None:
        return None, api_error("No JSON data provided", 400)
    if not isinstance(data, dict):
        return None, api_error("JSON body must be an object", 400)

    try:
        return schema.model_validate(data), None
    except ValidationError as exc:
        # Convert Pydantic errors to JSON-serializable format
        errors = []
        for err in exc.errors():
            errors.append(
                {
                    "loc": list(err.get("loc", [])),
                    "msg": err.get("msg", ""),
                    "type": err.get("type", ""),
                }
            )
        return None, api_error("Invalid request data", 400, details=errors)
