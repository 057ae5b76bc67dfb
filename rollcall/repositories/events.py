"""Repository objects for managing event persistence."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import NoResultFound
from sqlalchemy.orm import Session

from rollcall.models import Event

EDITABLE_FIELDS = (
    "title",
    "description",
    "location",
    "start_at",
    "capacity",
    "is_published",
    "registration_blurb",
)


class EventRepository:
    """Persistence operations for events."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_events(self, *, published_only: bool = False) -> Sequence[Event]:
        query = select(Event).order_by(Event.start_at.asc(), Event.id.asc())
        if published_only:
            query = query.where(Event.is_published.is_(True))
        return self.session.scalars(query).all()

    def get_event(self, event_id: int) -> Event:
        query = select(Event).where(Event.id == event_id)
        try:
            return self.session.execute(query).scalar_one()
        except NoResultFound as exc:
            raise LookupError(f"Event {event_id} not found") from exc

    def lock_event(self, event_id: int) -> Event:
        """Load the event row with a write lock held until commit.

        Every capacity decision for the event is taken while this lock is
        held, so concurrent registrations and promotions are serialized.
        """
        query = (
            select(Event)
            .where(Event.id == event_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        try:
            return self.session.execute(query).scalar_one()
        except NoResultFound as exc:
            raise LookupError(f"Event {event_id} not found") from exc

    def create_event(
        self,
        *,
        title: str,
        capacity: int,
        description: Optional[str] = None,
        location: Optional[str] = None,
        start_at: Optional[datetime] = None,
        is_published: bool = True,
        registration_blurb: Optional[str] = None,
    ) -> Event:
        event = Event(
            title=title,
            capacity=capacity,
            description=description,
            location=location,
            start_at=start_at,
            is_published=is_published,
            registration_blurb=registration_blurb,
        )
        self.session.add(event)
        self.session.flush()
        self.session.refresh(event)
        return event

    def update_event(self, event: Event, changes: Dict[str, Any]) -> Event:
        for key, value in changes.items():
            if key in EDITABLE_FIELDS:
                setattr(event, key, value)
        self.session.flush()
        self.session.refresh(event)
        return event
