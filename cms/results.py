"""
Result dict builders shared by the services.

Services answer with the same tagged dicts as ``DataRepository``::

    {"success": True, "message": "...", <payload keys>}
    {"success": False, "error": "...", "kind": "not_found", "errors": [...]}

``kind`` tells a route handler which HTTP status to use (see
:func:`http_status`):

    invalid_input -> 400, not_found -> 404, conflict -> 409,
    storage -> 500
"""

from __future__ import annotations

from typing import Any

KIND_STATUS = {
    "invalid_input": 400,
    "not_found": 404,
    "conflict": 409,
    "storage": 500,
}


def ok(message: str, **payload) -> dict[str, Any]:
    result = {"success": True, "message": message}
    result.update(payload)
    return result


def fail(message: str, kind: str, errors: list[str] | None = None) -> dict[str, Any]:
    return {
        "success": False,
        "error": message,
        "kind": kind,
        "errors": list(errors) if errors else [message],
    }


def storage_failure(result: dict[str, Any]) -> dict[str, Any]:
    """Wrap a failed repository result, keeping its suggestions and details."""
    wrapped = fail(result.get("error", ""), "storage")
    for key in ("error_type", "code", "suggestions", "details"):
        if key in result:
            wrapped[key] = result[key]
    return wrapped


def http_status(result: dict[str, Any]) -> int:
    """Status code a route handler should answer *result* with."""
    if result.get("success"):
        return 200
    return KIND_STATUS.get(result.get("kind"), 500)
