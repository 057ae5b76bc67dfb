"""Check-in ledger: turn a presented code into a single attendance record."""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from rollcall.repositories.registrations import RegistrationRepository
from rollcall.services.capacity import CapacityLedger
from rollcall.services.errors import NotFoundError, ValidationError
from rollcall.services.serializers import serialize_registration
from rollcall.services.transactions import atomic

__all__ = ["CheckInLedger"]

logger = logging.getLogger(__name__)


class CheckInLedger:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.registrations = RegistrationRepository(session)
        self.ledger = CapacityLedger(session)

    def check_in(self, code: Any) -> Dict[str, Any]:
        """Mark the registration behind ``code`` as attended, exactly once.

        A repeated scan is not an error: it returns ``already_checked_in``
        and leaves the first check-in timestamp untouched.
        """
        if not isinstance(code, str) or not code.strip():
            raise ValidationError({"code": ["Code manquant."]})
        code = code.strip()

        with atomic(self.session):
            try:
                registration = self.registrations.get_by_code(code)
            except LookupError as exc:
                raise NotFoundError("Inscription introuvable pour ce code.") from exc

            # The conditional update is the arbiter: when two scans race, only
            # one of them changes the row.
            first_scan = not registration.attended and self.registrations.mark_attended(
                registration.id
            )
            self.session.refresh(registration)

        if first_scan:
            logger.info(
                "Registration %s checked in for event %s",
                registration.id,
                registration.event_id,
            )
        return {
            "already_checked_in": not first_scan,
            "registration": serialize_registration(registration, include_code=False),
        }

    def attendance(self, event_id: int) -> List[Dict[str, Any]]:
        self.ledger.get_event(event_id)
        return [
            serialize_registration(item, include_code=False)
            for item in self.registrations.list_attended(event_id)
        ]
