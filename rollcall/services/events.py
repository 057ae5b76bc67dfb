"""Service layer for event administration and the public catalogue."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from rollcall.config import get_config
from rollcall.repositories.events import EventRepository
from rollcall.services.capacity import CapacityLedger
from rollcall.services.errors import ConflictError, NotFoundError, ValidationError
from rollcall.services.notifications import RegistrationNotifier
from rollcall.services.promotions import PromotionEngine
from rollcall.services.questions import QuestionService
from rollcall.services.serializers import serialize_event
from rollcall.services.transactions import atomic

__all__ = ["EventService"]

logger = logging.getLogger(__name__)

COPY_OVERRIDES = ("title", "start_at", "location", "capacity")
COPY_FLAGS = ("copy_questions", "copy_blurb")


class EventService:
    """High level operations for managing events."""

    def __init__(
        self,
        session: Session,
        *,
        notifier: Optional[RegistrationNotifier] = None,
    ) -> None:
        self.session = session
        self.repository = EventRepository(session)
        self.ledger = CapacityLedger(session)
        self.promotions = PromotionEngine(session, notifier=notifier)
        self.questions = QuestionService(session)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def list_events(self, *, published_only: bool = False) -> List[Dict[str, Any]]:
        return [
            serialize_event(event, seats_left=self.ledger.seats_left_for(event))
            for event in self.repository.list_events(published_only=published_only)
        ]

    def get_event(self, event_id: int, *, published_only: bool = False) -> Dict[str, Any]:
        event = self.ledger.get_event(event_id)
        if published_only and not event.is_published:
            raise NotFoundError("Événement introuvable.")
        return serialize_event(event, seats_left=self.ledger.seats_left_for(event))

    def create_event(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        clean = self._validate_event_payload(payload, require_title=True)
        clean.setdefault("capacity", get_config().default_event_capacity)
        with atomic(self.session):
            event = self.repository.create_event(**clean)
        logger.info("Event %s created with capacity %s", event.id, event.capacity)
        return serialize_event(event, seats_left=event.capacity)

    def update_event(self, event_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Apply partial changes; a capacity raise pulls from the waitlist."""
        clean = self._validate_event_payload(payload, require_title=False)
        with atomic(self.session):
            event = self.ledger.lock_event(event_id)
            if "capacity" in clean:
                confirmed = self.ledger.confirmed_count(event.id)
                if clean["capacity"] < confirmed:
                    raise ConflictError(
                        f"La capacité ne peut pas descendre sous les {confirmed} "
                        "places déjà confirmées."
                    )
            event = self.repository.update_event(event, clean)

        promoted: List[int] = []
        if "capacity" in clean:
            promoted = self.promotions.fill_open_seats(event.id)
        result = serialize_event(event, seats_left=self.ledger.seats_left_for(event))
        result["promoted"] = promoted
        return result

    def copy_event(self, event_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Duplicate an event's settings; registrations are never copied.

        Questions and the registration blurb are copied only when asked for
        with ``copy_questions`` / ``copy_blurb``.
        """
        flags = {key: payload.get(key, False) for key in COPY_FLAGS}
        bad_flags = {
            key: ["Doit être un booléen."]
            for key, value in flags.items()
            if not isinstance(value, bool)
        }
        if bad_flags:
            raise ValidationError(bad_flags)
        source = self.ledger.get_event(event_id)
        overrides = self._validate_event_payload(
            {key: payload[key] for key in COPY_OVERRIDES if key in payload},
            require_title=False,
        )
        copied_questions = 0
        with atomic(self.session):
            event = self.repository.create_event(
                title=overrides.get("title") or f"{source.title} (Copie)",
                description=source.description,
                location=overrides.get("location", source.location),
                start_at=overrides.get("start_at", source.start_at),
                capacity=overrides.get("capacity", source.capacity),
                is_published=False,
                registration_blurb=(
                    source.registration_blurb if flags["copy_blurb"] else None
                ),
            )
            if flags["copy_questions"]:
                copied_questions = self.questions.copy_questions(source.id, event.id)
        logger.info("Event %s copied into %s", source.id, event.id)
        result = serialize_event(event, seats_left=event.capacity)
        result["questions_copied"] = copied_questions
        return result

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def _validate_event_payload(
        self, payload: Dict[str, Any], *, require_title: bool
    ) -> Dict[str, Any]:
        errors: Dict[str, List[str]] = {}
        clean: Dict[str, Any] = {}

        if "title" in payload or require_title:
            title = payload.get("title")
            if not isinstance(title, str) or not title.strip():
                errors.setdefault("title", []).append("Titre requis.")
            else:
                clean["title"] = title.strip()

        for key in ("description", "location", "registration_blurb"):
            if key in payload:
                value = payload.get(key)
                if value is not None and not isinstance(value, str):
                    errors.setdefault(key, []).append("Texte attendu.")
                else:
                    clean[key] = value

        if "capacity" in payload:
            capacity = payload.get("capacity")
            if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
                errors.setdefault("capacity", []).append(
                    "La capacité doit être un entier positif."
                )
            else:
                clean["capacity"] = capacity

        if "is_published" in payload:
            published = payload.get("is_published")
            if not isinstance(published, bool):
                errors.setdefault("is_published", []).append("Doit être un booléen.")
            else:
                clean["is_published"] = published

        if "start_at" in payload:
            start_at = payload.get("start_at")
            if start_at is None:
                clean["start_at"] = None
            else:
                parsed = self._parse_datetime(start_at)
                if parsed is None:
                    errors.setdefault("start_at", []).append(
                        "Date invalide (ISO 8601 attendu)."
                    )
                else:
                    clean["start_at"] = parsed

        if errors:
            raise ValidationError(errors)
        return clean

    @staticmethod
    def _parse_datetime(value: Any) -> Optional[datetime]:
        if not isinstance(value, str):
            return None
        candidate = value.strip()
        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(candidate)
        except ValueError:
            return None
