"""Shared route utilities."""
from __future__ import annotations

import hmac
from typing import Any, Dict, Optional, Tuple

from flask import current_app, jsonify, request

from rollcall.services.errors import RegistrationError, ValidationError

STATUS_BY_REASON = {
    "validation": 422,
    "not_found": 404,
    "permission_denied": 403,
    "conflict": 409,
    "duplicate_registration": 409,
    "capacity_exceeded": 409,
    "internal": 503,
}

ADMIN_SECRET_HEADER = "X-Admin-Secret"


def error_response(
    status: int,
    message: str,
    details: Optional[Any] = None,
    *,
    reason: Optional[str] = None,
):
    payload: Dict[str, Any] = {"error": {"code": status, "message": message}}
    if reason is not None:
        payload["error"]["reason"] = reason
    if details is not None:
        payload["error"]["details"] = details
    return jsonify(payload), status


def service_error_response(exc: RegistrationError):
    status = STATUS_BY_REASON.get(exc.reason, 400)
    details = exc.errors if isinstance(exc, ValidationError) else None
    return error_response(status, exc.message, details, reason=exc.reason)


def read_json_object() -> Tuple[Optional[Dict[str, Any]], Optional[Any]]:
    """Return ``(payload, None)`` or ``(None, error_response)``."""
    if not request.is_json:
        return None, error_response(415, "Content-Type 'application/json' requis.")
    data = request.get_json(silent=True)
    if data is None:
        return None, error_response(400, "JSON invalide ou non parsable.")
    if not isinstance(data, dict):
        return None, error_response(
            400,
            "Payload JSON invalide: un objet JSON (type dict) est requis.",
        )
    return data, None


def is_admin_request() -> bool:
    expected = current_app.config.get("ADMIN_SECRET")
    provided = request.headers.get(ADMIN_SECRET_HEADER, "")
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), str(expected).encode("utf-8"))


def require_admin():
    """``before_request`` hook body for blueprints restricted to staff."""
    if not is_admin_request():
        return error_response(401, "Non autorisé.", reason="unauthorized")
    return None


def parse_flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}
