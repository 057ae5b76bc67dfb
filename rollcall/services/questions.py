"""Custom registration questions and the answers given to them."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from rollcall.models import (
    CHECKBOX,
    CHOICE_TYPES,
    MULTISELECT,
    QUESTION_TYPES,
    SELECT,
    SHORT_TEXT,
    EventQuestion,
)
from rollcall.repositories.questions import QuestionRepository
from rollcall.services.capacity import CapacityLedger
from rollcall.services.errors import NotFoundError, ValidationError
from rollcall.services.serializers import serialize_question
from rollcall.services.transactions import atomic

__all__ = ["QuestionService", "validate_answers"]

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = "Réponse requise."


def validate_answers(
    questions: Sequence[EventQuestion], answers: Mapping[str, Any]
) -> Dict[str, Any]:
    """Check ``answers`` against the event's questions and return them cleaned.

    Answers are keyed by question id (as a string). Keys that match no
    question are kept unchanged.
    """
    errors: Dict[str, List[str]] = {}
    clean: Dict[str, Any] = dict(answers)

    for question in questions:
        key = str(question.id)
        field = f"answers.{key}"
        value = clean.pop(key, None)

        if question.type == CHECKBOX:
            if value is None:
                value = False
            if not isinstance(value, bool):
                errors.setdefault(field, []).append("Doit être un booléen.")
            elif question.required and not value:
                errors.setdefault(field, []).append(REQUIRED_MESSAGE)
            else:
                clean[key] = value
            continue

        if question.type == MULTISELECT:
            if value is None:
                value = []
            if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
                errors.setdefault(field, []).append("Liste de choix attendue.")
                continue
            unknown = [item for item in value if item not in (question.options or [])]
            if unknown:
                errors.setdefault(field, []).append("Choix inconnu.")
            elif question.required and not value:
                errors.setdefault(field, []).append(REQUIRED_MESSAGE)
            elif value:
                clean[key] = value
            continue

        # short_text, long_text and select all take a single string.
        if value is None:
            value = ""
        if not isinstance(value, str):
            errors.setdefault(field, []).append("Texte attendu.")
            continue
        value = value.strip()
        if not value:
            if question.required:
                errors.setdefault(field, []).append(REQUIRED_MESSAGE)
            continue
        if question.type == SELECT and value not in (question.options or []):
            errors.setdefault(field, []).append("Choix inconnu.")
            continue
        clean[key] = value

    if errors:
        raise ValidationError(errors)
    return clean


class QuestionService:
    """Admin management of an event's registration questions."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.ledger = CapacityLedger(session)
        self.repository = QuestionRepository(session)

    def list_questions(self, event_id: int) -> List[Dict[str, Any]]:
        self.ledger.get_event(event_id)
        return [serialize_question(item) for item in self.repository.list_for_event(event_id)]

    def questions_for(self, event_id: int) -> Sequence[EventQuestion]:
        return self.repository.list_for_event(event_id)

    def create_question(self, event_id: int, payload: Mapping[str, Any]) -> Dict[str, Any]:
        clean = self._validate(payload, current=None)
        with atomic(self.session):
            self.ledger.lock_event(event_id)
            clean.setdefault("position", self.repository.next_position(event_id))
            question = self.repository.create(event_id, clean)
        logger.info("Question %s added to event %s", question.id, event_id)
        return serialize_question(question)

    def update_question(self, question_id: int, payload: Mapping[str, Any]) -> Dict[str, Any]:
        with atomic(self.session):
            question = self._get(question_id)
            clean = self._validate(payload, current=question)
            if not clean:
                raise ValidationError({"_schema": ["Aucune modification fournie."]})
            question = self.repository.update(question, clean)
        return serialize_question(question)

    def delete_question(self, question_id: int) -> Dict[str, Any]:
        with atomic(self.session):
            question = self._get(question_id)
            self.repository.delete(question)
        logger.info("Question %s deleted", question_id)
        return {"ok": True}

    def copy_questions(self, source_event_id: int, target_event_id: int) -> int:
        """Duplicate questions onto another event; caller commits."""
        return self.repository.copy_to(source_event_id, target_event_id)

    def _get(self, question_id: int) -> EventQuestion:
        try:
            return self.repository.get(question_id)
        except LookupError as exc:
            raise NotFoundError("Question introuvable.") from exc

    @staticmethod
    def _validate(
        payload: Mapping[str, Any], *, current: Optional[EventQuestion]
    ) -> Dict[str, Any]:
        errors: Dict[str, List[str]] = {}
        clean: Dict[str, Any] = {}

        if "label" in payload or current is None:
            label = payload.get("label")
            if not isinstance(label, str) or not label.strip():
                errors.setdefault("label", []).append("Libellé requis.")
            else:
                clean["label"] = label.strip()

        if "type" in payload or current is None:
            question_type = payload.get("type") or SHORT_TEXT
            if question_type not in QUESTION_TYPES:
                errors.setdefault("type", []).append(
                    "Type inconnu (" + ", ".join(QUESTION_TYPES) + ")."
                )
            else:
                clean["type"] = question_type

        if "required" in payload or current is None:
            required = payload.get("required", False)
            if not isinstance(required, bool):
                errors.setdefault("required", []).append("Doit être un booléen.")
            else:
                clean["required"] = required

        if "position" in payload:
            position = payload.get("position")
            if isinstance(position, bool) or not isinstance(position, int) or position < 0:
                errors.setdefault("position", []).append("Position invalide.")
            else:
                clean["position"] = position

        final_type = clean.get("type", current.type if current is not None else SHORT_TEXT)
        options_touched = "options" in payload or "type" in clean
        if final_type in CHOICE_TYPES and options_touched:
            options = payload.get("options", current.options if current is not None else None)
            if (
                not isinstance(options, list)
                or not options
                or not all(isinstance(item, str) and item.strip() for item in options)
            ):
                errors.setdefault("options", []).append(
                    "Une liste de choix non vide est requise."
                )
            else:
                clean["options"] = [item.strip() for item in options]
        elif options_touched:
            clean["options"] = None

        if errors:
            raise ValidationError(errors)
        return clean
