"""JSON-ready representations of domain objects."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from rollcall.models import Event, EventQuestion, ExpectedRegistrant, Registration


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_event(event: Event, *, seats_left: Optional[int] = None) -> Dict[str, Any]:
    payload = {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "location": event.location,
        "start_at": _isoformat(event.start_at),
        "capacity": event.capacity,
        "is_published": event.is_published,
        "registration_blurb": event.registration_blurb,
    }
    if seats_left is not None:
        payload["seats_left"] = seats_left
    return payload


def serialize_registration(
    registration: Registration, *, include_code: bool = True
) -> Dict[str, Any]:
    payload = {
        "id": registration.id,
        "event_id": registration.event_id,
        "email": registration.email,
        "name": registration.name,
        "dept": registration.dept,
        "status": registration.status,
        "attended": registration.attended,
        "checkin_at": _isoformat(registration.checkin_at),
        "answers": registration.answers or {},
        "created_at": _isoformat(registration.created_at),
    }
    if include_code:
        payload["checkin_code"] = registration.checkin_code
    return payload


def serialize_expected(entry: ExpectedRegistrant) -> Dict[str, Any]:
    return {"name": entry.name, "email": entry.email, "dept": entry.dept}


def serialize_question(question: EventQuestion) -> Dict[str, Any]:
    return {
        "id": question.id,
        "event_id": question.event_id,
        "label": question.label,
        "type": question.type,
        "required": question.required,
        "options": question.options,
        "position": question.position,
    }
