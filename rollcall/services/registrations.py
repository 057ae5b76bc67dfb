"""Service layer dedicated to event registrations.

Every entry point that creates a registration (public form, admin manual
add, admin bulk import) goes through :meth:`RegistrationService.register`,
so the duplicate check and the capacity decision live in one place.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rollcall.models import CANCELLED, CONFIRMED, WAITLISTED, Event, Registration
from rollcall.repositories.registrations import RegistrationRepository
from rollcall.services.capacity import CapacityLedger
from rollcall.services.errors import (
    DuplicateRegistrationError,
    NotFoundError,
    PermissionDeniedError,
    RegistrationError,
    ValidationError,
)
from rollcall.services.notifications import RegistrationNotifier
from rollcall.services.promotions import PromotionEngine
from rollcall.services.questions import QuestionService, validate_answers
from rollcall.services.serializers import serialize_registration
from rollcall.services.tickets import generate_checkin_code
from rollcall.services.transactions import atomic

__all__ = ["RegistrationService", "normalize_email"]

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
EDITABLE_FIELDS = ("name", "email", "dept", "answers")


def normalize_email(email: str) -> str:
    """Canonical form of an email; the uniqueness key for registrations."""
    return email.strip().lower()


class RegistrationService:
    """Registration state machine: confirmed, waitlisted, cancelled."""

    def __init__(
        self,
        session: Session,
        *,
        notifier: Optional[RegistrationNotifier] = None,
    ) -> None:
        self.session = session
        self.notifier = notifier
        self.ledger = CapacityLedger(session)
        self.registrations = RegistrationRepository(session)
        self.promotions = PromotionEngine(session, notifier=notifier)
        self.questions = QuestionService(session)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def register(
        self,
        event_id: int,
        *,
        name: Any,
        email: Any,
        dept: Any = None,
        answers: Any = None,
        decline: bool = False,
        allow_unpublished: bool = False,
    ) -> Dict[str, Any]:
        clean = self._validate_registrant(name=name, email=email, dept=dept, answers=answers)

        with atomic(self.session):
            event = self.ledger.lock_event(event_id)
            if not event.is_published and not allow_unpublished:
                raise PermissionDeniedError("Les inscriptions ne sont pas encore ouvertes.")

            self._ensure_not_already_registered(event.id, clean["email"])
            if not decline:
                clean["answers"] = validate_answers(
                    self.questions.questions_for(event.id), clean["answers"]
                )

            if decline:
                status = CANCELLED
            elif self.ledger.seats_left_for(event) > 0:
                status = CONFIRMED
            else:
                status = WAITLISTED

            registration = self._insert(event, status=status, **clean)

        logger.info(
            "Registration %s recorded for event %s with status %s",
            registration.id,
            event.id,
            registration.status,
        )
        if self.notifier is not None and status != CANCELLED:
            self.notifier.registration_recorded(event, registration)

        result: Dict[str, Any] = {
            "status": registration.status,
            "registration_id": registration.id,
            "registration": serialize_registration(registration),
        }
        if registration.status == CONFIRMED:
            result["ticket_code"] = registration.checkin_code
        return result

    def import_registrations(
        self, event_id: int, rows: Iterable[Mapping[str, Any]]
    ) -> Dict[str, Any]:
        """Register each row independently and report per-row outcomes."""
        self.ledger.get_event(event_id)
        results: List[Dict[str, Any]] = []
        for index, row in enumerate(rows):
            if not isinstance(row, Mapping):
                results.append(
                    {"row": index, "error": "validation", "message": "Ligne invalide."}
                )
                continue
            try:
                outcome = self.register(
                    event_id,
                    name=row.get("name"),
                    email=row.get("email"),
                    dept=row.get("dept"),
                    answers=row.get("answers"),
                    allow_unpublished=True,
                )
            except RegistrationError as exc:
                results.append({"row": index, "error": exc.reason, "message": exc.message})
                continue
            results.append(
                {
                    "row": index,
                    "status": outcome["status"],
                    "registration_id": outcome["registration_id"],
                }
            )
        summary = {
            CONFIRMED: sum(1 for item in results if item.get("status") == CONFIRMED),
            WAITLISTED: sum(1 for item in results if item.get("status") == WAITLISTED),
            "failed": sum(1 for item in results if "error" in item),
        }
        return {"results": results, "summary": summary}

    def cancel(self, registration_id: int, *, auto_promote: bool = False) -> Dict[str, Any]:
        promoted: Optional[Registration] = None
        with atomic(self.session):
            registration = self._get_registration(registration_id)
            event = self.ledger.lock_event(registration.event_id)
            registration = self._get_registration(registration_id, for_update=True)

            if registration.status == CANCELLED:
                return {"ok": True, "promoted_id": None}

            was_confirmed = registration.status == CONFIRMED
            self.registrations.set_status(registration, CANCELLED)
            logger.info("Registration %s cancelled for event %s", registration.id, event.id)

            if was_confirmed and auto_promote:
                promoted = self.promotions.promote_next(event)

        if promoted is not None:
            self.promotions.notify_promoted(event, promoted)
        return {"ok": True, "promoted_id": promoted.id if promoted else None}

    def update(self, registration_id: int, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Administrative edit of registrant details.

        Status and attendance are not editable here; they move
        only through cancel, promotion and check-in.
        """
        changes = {key: payload[key] for key in EDITABLE_FIELDS if key in payload}
        if not changes:
            raise ValidationError({"_schema": ["Aucune modification fournie."]})

        with atomic(self.session):
            registration = self._get_registration(registration_id)
            self.ledger.lock_event(registration.event_id)
            registration = self._get_registration(registration_id, for_update=True)

            clean = self._validate_registrant(
                name=changes.get("name", registration.name),
                email=changes.get("email", registration.email),
                dept=changes.get("dept", registration.dept),
                answers=changes.get("answers", registration.answers),
            )
            if "answers" in changes:
                clean["answers"] = validate_answers(
                    self.questions.questions_for(registration.event_id), clean["answers"]
                )
            if clean["email"] != registration.email and registration.status != CANCELLED:
                self._ensure_not_already_registered(registration.event_id, clean["email"])

            for key, value in clean.items():
                setattr(registration, key, value)
            self._flush_unique()

        return serialize_registration(registration)

    def get(self, registration_id: int) -> Dict[str, Any]:
        return serialize_registration(self._get_registration(registration_id))

    def get_by_code(self, code: str) -> Registration:
        try:
            return self.registrations.get_by_code(code)
        except LookupError as exc:
            raise NotFoundError("Billet introuvable.") from exc

    def list_registrations(self, event_id: int) -> List[Dict[str, Any]]:
        self.ledger.get_event(event_id)
        return [
            serialize_registration(item)
            for item in self.registrations.list_for_event(event_id)
        ]

    def summary(self, event_id: int) -> Dict[str, Any]:
        """Seat and status counts shown next to the registration list."""
        return self.ledger.snapshot(event_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _insert(
        self,
        event: Event,
        *,
        status: str,
        name: str,
        email: str,
        dept: Optional[str],
        answers: Dict[str, Any],
    ) -> Registration:
        try:
            return self.registrations.create(
                event_id=event.id,
                email=email,
                name=name,
                dept=dept,
                status=status,
                checkin_code=generate_checkin_code(),
                answers=answers,
            )
        except IntegrityError as exc:
            # The partial unique index on (event_id, email) caught a race the
            # lookup above could not see.
            raise DuplicateRegistrationError(
                "Vous êtes déjà inscrit à cet événement."
            ) from exc

    def _flush_unique(self) -> None:
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateRegistrationError(
                "Cette adresse est déjà inscrite à l'événement."
            ) from exc

    def _ensure_not_already_registered(self, event_id: int, email: str) -> None:
        if self.registrations.find_active(event_id, email) is not None:
            raise DuplicateRegistrationError("Vous êtes déjà inscrit à cet événement.")

    def _get_registration(self, registration_id: int, *, for_update: bool = False) -> Registration:
        try:
            return self.registrations.get(registration_id, for_update=for_update)
        except LookupError as exc:
            raise NotFoundError("Inscription introuvable.") from exc

    @staticmethod
    def _validate_registrant(
        *, name: Any, email: Any, dept: Any, answers: Any
    ) -> Dict[str, Any]:
        errors: Dict[str, List[str]] = {}
        clean: Dict[str, Any] = {}

        if not isinstance(name, str) or not name.strip():
            errors.setdefault("name", []).append("Nom requis.")
        else:
            clean["name"] = name.strip()

        if not isinstance(email, str) or not email.strip():
            errors.setdefault("email", []).append("Adresse e-mail requise.")
        else:
            normalized = normalize_email(email)
            if not EMAIL_PATTERN.match(normalized):
                errors.setdefault("email", []).append("Adresse e-mail invalide.")
            clean["email"] = normalized

        if dept is None:
            clean["dept"] = None
        elif not isinstance(dept, str):
            errors.setdefault("dept", []).append("Département invalide.")
        else:
            clean["dept"] = dept.strip() or None

        if answers is None:
            clean["answers"] = {}
        elif not isinstance(answers, Mapping):
            errors.setdefault("answers", []).append("Les réponses doivent être un objet.")
        else:
            clean["answers"] = {str(key): value for key, value in answers.items()}

        if errors:
            raise ValidationError(errors)
        return clean
