"""Waitlist promotion.

A seat freed by a cancellation (or by a capacity increase) goes to the
waitlisted registration with the earliest ``created_at``; registrations
created in the same instant are ordered by id, i.e. insertion order.
Promotion always runs under the event lock so two promotions, or a
promotion and a registration, can never both take the last seat.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from rollcall.models import CANCELLED, CONFIRMED, Event, Registration
from rollcall.repositories.registrations import RegistrationRepository
from rollcall.services.capacity import CapacityLedger
from rollcall.services.errors import CapacityExceededError, ConflictError, NotFoundError
from rollcall.services.notifications import RegistrationNotifier
from rollcall.services.transactions import atomic

__all__ = ["PromotionEngine"]

logger = logging.getLogger(__name__)


class PromotionEngine:
    """Move waitlisted registrations into confirmed seats."""

    def __init__(
        self,
        session: Session,
        *,
        notifier: Optional[RegistrationNotifier] = None,
    ) -> None:
        self.session = session
        self.ledger = CapacityLedger(session)
        self.registrations = RegistrationRepository(session)
        self.notifier = notifier

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def promote_fifo(self, event_id: int) -> Optional[int]:
        """Confirm the head of the waitlist if a seat is free.

        Returns the promoted registration id, or ``None`` when the event is
        full or nobody is waiting.
        """
        with atomic(self.session):
            event = self.ledger.lock_event(event_id)
            promoted = self.promote_next(event)
        if promoted is not None:
            self._notify(event, promoted)
            return promoted.id
        return None

    def fill_open_seats(self, event_id: int) -> List[int]:
        """Promote from the waitlist until seats or waiting registrants run out."""
        with atomic(self.session):
            event = self.ledger.lock_event(event_id)
            promoted: List[Registration] = []
            while True:
                registration = self.promote_next(event)
                if registration is None:
                    break
                promoted.append(registration)
        for registration in promoted:
            self._notify(event, registration)
        return [registration.id for registration in promoted]

    def promote_specific(self, registration_id: int) -> Dict[str, Any]:
        """Force-confirm one registration chosen by an administrator."""
        with atomic(self.session):
            registration = self._get_registration(registration_id)
            event = self.ledger.lock_event(registration.event_id)
            registration = self._get_registration(registration_id, for_update=True)

            if registration.status == CONFIRMED:
                return {"ok": True, "already_confirmed": True, "registration_id": registration.id}
            if registration.status == CANCELLED:
                raise ConflictError("Une inscription annulée ne peut pas être confirmée.")
            if self.ledger.seats_left_for(event) <= 0:
                raise CapacityExceededError("L'événement est complet.")

            self.registrations.set_status(registration, CONFIRMED)
            logger.info(
                "Registration %s manually promoted for event %s", registration.id, event.id
            )

        self._notify(event, registration)
        return {"ok": True, "already_confirmed": False, "registration_id": registration.id}

    # ------------------------------------------------------------------
    # Building blocks for callers that already hold the event lock
    # ------------------------------------------------------------------
    def promote_next(self, event: Event) -> Optional[Registration]:
        """Promote the oldest waitlisted registration; caller commits."""
        if self.ledger.seats_left_for(event) <= 0:
            return None
        candidate = self.registrations.oldest_waitlisted(event.id)
        if candidate is None:
            return None
        self.registrations.set_status(candidate, CONFIRMED)
        logger.info("Registration %s promoted from waitlist for event %s", candidate.id, event.id)
        return candidate

    def notify_promoted(self, event: Event, registration: Registration) -> None:
        self._notify(event, registration)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _get_registration(self, registration_id: int, *, for_update: bool = False) -> Registration:
        try:
            return self.registrations.get(registration_id, for_update=for_update)
        except LookupError as exc:
            raise NotFoundError("Inscription introuvable.") from exc

    def _notify(self, event: Event, registration: Registration) -> None:
        if self.notifier is not None:
            self.notifier.promoted(event, registration)
