"""Live seat accounting for events.

Counts are always read from the database at decision time. Nothing here is
cached between calls; callers that act on a count must hold the event lock
(see :meth:`CapacityLedger.lock_event`) for the decision to stay valid
until commit.
"""
from __future__ import annotations

from typing import Any, Dict

from sqlalchemy.orm import Session

from rollcall.models import CANCELLED, CONFIRMED, WAITLISTED, Event
from rollcall.repositories.events import EventRepository
from rollcall.repositories.registrations import RegistrationRepository
from rollcall.services.errors import NotFoundError

__all__ = ["CapacityLedger"]


class CapacityLedger:
    """Answer how many seats are taken and how many remain for an event."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.events = EventRepository(session)
        self.registrations = RegistrationRepository(session)

    def get_event(self, event_id: int) -> Event:
        try:
            return self.events.get_event(event_id)
        except LookupError as exc:
            raise NotFoundError("Événement introuvable.") from exc

    def lock_event(self, event_id: int) -> Event:
        try:
            return self.events.lock_event(event_id)
        except LookupError as exc:
            raise NotFoundError("Événement introuvable.") from exc

    def confirmed_count(self, event_id: int) -> int:
        return self.registrations.count_confirmed(event_id)

    def seats_left(self, event_id: int) -> int:
        event = self.get_event(event_id)
        return self.seats_left_for(event)

    def seats_left_for(self, event: Event) -> int:
        return max(event.capacity - self.confirmed_count(event.id), 0)

    def is_full(self, event_id: int) -> bool:
        return self.seats_left(event_id) == 0

    def snapshot(self, event_id: int) -> Dict[str, Any]:
        event = self.get_event(event_id)
        counts = self.registrations.count_by_status(event.id)
        confirmed = counts.get(CONFIRMED, 0)
        return {
            "event_id": event.id,
            "capacity": event.capacity,
            "confirmed": confirmed,
            "waitlisted": counts.get(WAITLISTED, 0),
            "cancelled": counts.get(CANCELLED, 0),
            "attended": self.registrations.count_attended(event.id),
            "seats_left": max(event.capacity - confirmed, 0),
        }
