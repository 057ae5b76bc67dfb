"""Public routes: event catalogue, registration form and tickets."""
from __future__ import annotations

from flask import Blueprint, Response, jsonify

from rollcall.models import CANCELLED, CONFIRMED
from rollcall.routes.dependencies import (
    get_event_service,
    get_question_service,
    get_registration_service,
)
from rollcall.routes.utils import error_response, read_json_object
from rollcall.services.tickets import build_qr_png, checkin_url

public_bp = Blueprint("public", __name__)

REGISTER_MESSAGES = {
    CONFIRMED: "Inscription confirmée !",
    CANCELLED: "Votre réponse a bien été enregistrée.",
}
WAITLIST_MESSAGE = "Vous êtes sur la liste d'attente."


@public_bp.get("/events")
def list_events():
    service = get_event_service()
    return jsonify({"events": service.list_events(published_only=True)})


@public_bp.get("/events/<int:event_id>")
def get_event(event_id: int):
    event = get_event_service().get_event(event_id, published_only=True)
    questions = get_question_service().list_questions(event_id)
    return jsonify({"event": event, "questions": questions})


@public_bp.get("/events/<int:event_id>/seats")
def seats_left(event_id: int):
    service = get_event_service()
    event = service.get_event(event_id, published_only=True)
    return jsonify({"event_id": event_id, "seats_left": event["seats_left"]})


@public_bp.post("/register")
def register():
    data, error = read_json_object()
    if error is not None:
        return error

    event_id = data.get("event_id", data.get("eventId"))
    if isinstance(event_id, bool) or not isinstance(event_id, int):
        return error_response(
            422,
            "Validation échouée.",
            {"event_id": ["Identifiant d'événement requis."]},
            reason="validation",
        )

    decline = data.get("decline", False)
    if not isinstance(decline, bool):
        return error_response(
            422,
            "Validation échouée.",
            {"decline": ["Doit être un booléen."]},
            reason="validation",
        )

    service = get_registration_service()
    result = service.register(
        event_id,
        name=data.get("name"),
        email=data.get("email"),
        dept=data.get("dept"),
        answers=data.get("answers"),
        decline=decline,
    )
    status = result["status"]
    payload = {
        "message": REGISTER_MESSAGES.get(status, WAITLIST_MESSAGE),
        "status": status,
        "registration_id": result["registration_id"],
    }
    if "ticket_code" in result:
        payload["ticket_code"] = result["ticket_code"]
        payload["ticket_url"] = checkin_url(result["ticket_code"])
    status_code = {CONFIRMED: 201, CANCELLED: 200}.get(status, 202)
    return jsonify(payload), status_code


@public_bp.get("/tickets/<code>")
def ticket(code: str):
    service = get_registration_service()
    registration = service.get_by_code(code)
    return jsonify(
        {
            "ticket": {
                "registration_id": registration.id,
                "event_id": registration.event_id,
                "event_title": registration.event.title,
                "name": registration.name,
                "status": registration.status,
                "attended": registration.attended,
                "checkin_url": checkin_url(registration.checkin_code),
            }
        }
    )


@public_bp.get("/tickets/<code>/qr.png")
def ticket_qr(code: str):
    service = get_registration_service()
    registration = service.get_by_code(code)
    png = build_qr_png(checkin_url(registration.checkin_code))
    response = Response(png, mimetype="image/png")
    response.headers["Cache-Control"] = "private, max-age=3600"
    return response
