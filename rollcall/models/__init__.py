"""SQLAlchemy models for the registration service domain."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rollcall.database import Base

CONFIRMED = "confirmed"
WAITLISTED = "waitlisted"
CANCELLED = "cancelled"

REGISTRATION_STATUSES = (CONFIRMED, WAITLISTED, CANCELLED)
# Statuses that hold a place for an attendee (seat or waitlist slot).
ACTIVE_STATUSES = (CONFIRMED, WAITLISTED)

SHORT_TEXT = "short_text"
LONG_TEXT = "long_text"
SELECT = "select"
MULTISELECT = "multiselect"
CHECKBOX = "checkbox"

QUESTION_TYPES = (SHORT_TEXT, LONG_TEXT, SELECT, MULTISELECT, CHECKBOX)
CHOICE_TYPES = (SELECT, MULTISELECT)

_ACTIVE_ROW = text("status <> 'cancelled'")


class TimestampMixin:
    """Mixin providing automatic created/updated timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class Event(TimestampMixin, Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_events_capacity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    location: Mapped[Optional[str]] = mapped_column(String(255))
    start_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    registration_blurb: Mapped[Optional[str]] = mapped_column(Text)

    registrations: Mapped[List["Registration"]] = relationship(
        "Registration", back_populates="event"
    )
    expected_registrants: Mapped[List["ExpectedRegistrant"]] = relationship(
        "ExpectedRegistrant", back_populates="event", cascade="all, delete-orphan"
    )
    questions: Mapped[List["EventQuestion"]] = relationship(
        "EventQuestion", back_populates="event", cascade="all, delete-orphan"
    )


class Registration(TimestampMixin, Base):
    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("checkin_code", name="uq_registrations_checkin_code"),
        Index(
            "uq_registrations_active_email",
            "event_id",
            "email",
            unique=True,
            postgresql_where=_ACTIVE_ROW,
            sqlite_where=_ACTIVE_ROW,
        ),
        Index("ix_registrations_event_status", "event_id", "status"),
        CheckConstraint(
            "attended = false OR checkin_at IS NOT NULL",
            name="ck_registrations_attended_has_timestamp",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    dept: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(
        Enum(*REGISTRATION_STATUSES, name="registration_status", create_constraint=True),
        nullable=False,
    )
    attended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    checkin_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    checkin_code: Mapped[str] = mapped_column(String(64), nullable=False)
    answers: Mapped[Optional[dict]] = mapped_column(JSON)

    event: Mapped[Event] = relationship("Event", back_populates="registrations")


class EventQuestion(TimestampMixin, Base):
    """A custom question asked on an event's registration form.

    Answers are stored on the registration keyed by the question id as a
    string.
    """

    __tablename__ = "event_questions"
    __table_args__ = (
        Index("ix_event_questions_event_position", "event_id", "position"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(
        Enum(*QUESTION_TYPES, name="question_type", create_constraint=True),
        nullable=False,
        default=SHORT_TEXT,
    )
    required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    options: Mapped[Optional[list]] = mapped_column(JSON)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    event: Mapped[Event] = relationship("Event", back_populates="questions")


class ExpectedRegistrant(TimestampMixin, Base):
    __tablename__ = "expected_registrants"
    __table_args__ = (
        UniqueConstraint("event_id", "email", name="uq_expected_registrants_event_email"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    dept: Mapped[Optional[str]] = mapped_column(String(255))

    event: Mapped[Event] = relationship("Event", back_populates="expected_registrants")


__all__ = [
    "ACTIVE_STATUSES",
    "CANCELLED",
    "CONFIRMED",
    "CHECKBOX",
    "CHOICE_TYPES",
    "Event",
    "EventQuestion",
    "ExpectedRegistrant",
    "LONG_TEXT",
    "MULTISELECT",
    "QUESTION_TYPES",
    "REGISTRATION_STATUSES",
    "Registration",
    "SELECT",
    "SHORT_TEXT",
    "WAITLISTED",
]
