"""Administrative routes guarded by the shared admin secret."""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from rollcall.routes.dependencies import (
    get_checkin_ledger,
    get_event_service,
    get_insights_service,
    get_promotion_engine,
    get_question_service,
    get_registration_service,
)
from rollcall.routes.utils import error_response, parse_flag, read_json_object, require_admin

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")
admin_bp.before_request(require_admin)


# ----------------------------------------------------------------------
# Events
# ----------------------------------------------------------------------
@admin_bp.get("/events")
def list_events():
    return jsonify({"events": get_event_service().list_events()})


@admin_bp.post("/events")
def create_event():
    data, error = read_json_object()
    if error is not None:
        return error
    event = get_event_service().create_event(data)
    return jsonify({"message": "Event created", "event_id": event["id"], "event": event}), 201


@admin_bp.get("/events/<int:event_id>")
def get_event(event_id: int):
    return jsonify({"event": get_event_service().get_event(event_id)})


@admin_bp.patch("/events/<int:event_id>")
def update_event(event_id: int):
    data, error = read_json_object()
    if error is not None:
        return error
    event = get_event_service().update_event(event_id, data)
    return jsonify({"message": "Event updated", "event": event})


@admin_bp.post("/events/<int:event_id>/copy")
def copy_event(event_id: int):
    data, error = read_json_object()
    if error is not None:
        return error
    event = get_event_service().copy_event(event_id, data)
    return jsonify({"ok": True, "new_event_id": event["id"], "event": event}), 201


# ----------------------------------------------------------------------
# Registrations
# ----------------------------------------------------------------------
@admin_bp.get("/events/<int:event_id>/registrations")
def list_registrations(event_id: int):
    service = get_registration_service()
    registrations = service.list_registrations(event_id)
    return jsonify({"registrations": registrations, "summary": service.summary(event_id)})


@admin_bp.post("/events/<int:event_id>/registrations")
def add_registration(event_id: int):
    data, error = read_json_object()
    if error is not None:
        return error
    result = get_registration_service().register(
        event_id,
        name=data.get("name"),
        email=data.get("email"),
        dept=data.get("dept"),
        answers=data.get("answers"),
        allow_unpublished=True,
    )
    return jsonify(result), 201


@admin_bp.post("/events/<int:event_id>/registrations/import")
def import_registrations(event_id: int):
    data, error = read_json_object()
    if error is not None:
        return error
    rows = data.get("rows")
    if not isinstance(rows, list) or not rows:
        return error_response(
            422, "Validation échouée.", {"rows": ["Liste de lignes requise."]}, reason="validation"
        )
    return jsonify(get_registration_service().import_registrations(event_id, rows))


@admin_bp.patch("/registrations/<int:registration_id>")
def update_registration(registration_id: int):
    data, error = read_json_object()
    if error is not None:
        return error
    registration = get_registration_service().update(registration_id, data)
    return jsonify({"ok": True, "registration": registration})


@admin_bp.delete("/registrations/<int:registration_id>")
def cancel_registration(registration_id: int):
    auto_promote = parse_flag(request.args.get("autopromote"))
    result = get_registration_service().cancel(registration_id, auto_promote=auto_promote)
    return jsonify(result)


@admin_bp.post("/registrations/promote")
def promote_registration():
    data, error = read_json_object()
    if error is not None:
        return error
    registration_id = data.get("registration_id", data.get("registrationId"))
    if isinstance(registration_id, bool) or not isinstance(registration_id, int):
        return error_response(
            422,
            "Validation échouée.",
            {"registration_id": ["Identifiant d'inscription requis."]},
            reason="validation",
        )
    result = get_promotion_engine().promote_specific(registration_id)
    if result["already_confirmed"]:
        result["message"] = "Déjà confirmée."
    else:
        result["message"] = "Inscription confirmée."
    return jsonify(result)


@admin_bp.post("/events/<int:event_id>/promote")
def promote_fifo(event_id: int):
    promoted_id = get_promotion_engine().promote_fifo(event_id)
    return jsonify({"promoted_registration_id": promoted_id})


@admin_bp.get("/events/<int:event_id>/attendance")
def attendance(event_id: int):
    return jsonify({"attendance": get_checkin_ledger().attendance(event_id)})


# ----------------------------------------------------------------------
# Registration questions
# ----------------------------------------------------------------------
@admin_bp.get("/events/<int:event_id>/questions")
def list_questions(event_id: int):
    return jsonify({"questions": get_question_service().list_questions(event_id)})


@admin_bp.post("/events/<int:event_id>/questions")
def create_question(event_id: int):
    data, error = read_json_object()
    if error is not None:
        return error
    question = get_question_service().create_question(event_id, data)
    return jsonify({"ok": True, "question": question}), 201


@admin_bp.patch("/questions/<int:question_id>")
def update_question(question_id: int):
    data, error = read_json_object()
    if error is not None:
        return error
    question = get_question_service().update_question(question_id, data)
    return jsonify({"ok": True, "question": question})


@admin_bp.delete("/questions/<int:question_id>")
def delete_question(question_id: int):
    return jsonify(get_question_service().delete_question(question_id))


# ----------------------------------------------------------------------
# Expected registrants
# ----------------------------------------------------------------------
@admin_bp.post("/events/<int:event_id>/expected")
def import_expected(event_id: int):
    data, error = read_json_object()
    if error is not None:
        return error
    rows = data.get("rows")
    if not isinstance(rows, list):
        return error_response(
            422, "Validation échouée.", {"rows": ["Liste de lignes requise."]}, reason="validation"
        )
    return jsonify(get_insights_service().import_expected(event_id, rows))


@admin_bp.get("/events/<int:event_id>/insights")
def insights(event_id: int):
    return jsonify(get_insights_service().report(event_id))
