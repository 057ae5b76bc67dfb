"""Staff check-in endpoint."""
from __future__ import annotations

from flask import Blueprint, jsonify

from rollcall.routes.dependencies import get_checkin_ledger
from rollcall.routes.utils import read_json_object, require_admin

checkin_bp = Blueprint("checkin", __name__)
checkin_bp.before_request(require_admin)


@checkin_bp.post("/checkin")
def check_in():
    data, error = read_json_object()
    if error is not None:
        return error

    result = get_checkin_ledger().check_in(data.get("code"))
    message = "Déjà enregistré." if result["already_checked_in"] else "Présence enregistrée."
    return jsonify({"message": message, **result})
