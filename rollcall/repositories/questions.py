"""Repository for per-event registration questions."""
from __future__ import annotations

from typing import Any, Dict, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rollcall.models import EventQuestion

EDITABLE_FIELDS = ("label", "type", "required", "options", "position")


class QuestionRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_for_event(self, event_id: int) -> Sequence[EventQuestion]:
        query = (
            select(EventQuestion)
            .where(EventQuestion.event_id == event_id)
            .order_by(EventQuestion.position.asc(), EventQuestion.id.asc())
        )
        return self.session.scalars(query).all()

    def get(self, question_id: int) -> EventQuestion:
        question = self.session.get(EventQuestion, question_id)
        if question is None:
            raise LookupError(f"Question {question_id} not found")
        return question

    def next_position(self, event_id: int) -> int:
        query = select(func.max(EventQuestion.position)).where(
            EventQuestion.event_id == event_id
        )
        return (self.session.scalar(query) or 0) + 1

    def create(self, event_id: int, values: Dict[str, Any]) -> EventQuestion:
        question = EventQuestion(event_id=event_id, **values)
        self.session.add(question)
        self.session.flush()
        return question

    def update(self, question: EventQuestion, changes: Dict[str, Any]) -> EventQuestion:
        for key, value in changes.items():
            if key in EDITABLE_FIELDS:
                setattr(question, key, value)
        self.session.flush()
        return question

    def delete(self, question: EventQuestion) -> None:
        self.session.delete(question)
        self.session.flush()

    def copy_to(self, source_event_id: int, target_event_id: int) -> int:
        copied = 0
        for question in self.list_for_event(source_event_id):
            self.session.add(
                EventQuestion(
                    event_id=target_event_id,
                    label=question.label,
                    type=question.type,
                    required=question.required,
                    options=list(question.options) if question.options else None,
                    position=question.position,
                )
            )
            copied += 1
        self.session.flush()
        return copied
