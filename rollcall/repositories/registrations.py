"""Repository helpers for registrations and expected registrants."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from rollcall.models import (
    ACTIVE_STATUSES,
    CONFIRMED,
    WAITLISTED,
    ExpectedRegistrant,
    Registration,
)


class RegistrationRepository:
    """Persistence operations for registrations."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, registration_id: int, *, for_update: bool = False) -> Registration:
        query = select(Registration).where(Registration.id == registration_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        registration = self.session.scalars(query).first()
        if registration is None:
            raise LookupError(f"Registration {registration_id} not found")
        return registration

    def get_by_code(self, code: str) -> Registration:
        query = (
            select(Registration)
            .where(Registration.checkin_code == code)
            .execution_options(populate_existing=True)
        )
        registration = self.session.scalars(query).first()
        if registration is None:
            raise LookupError("Unknown check-in code")
        return registration

    def find_active(self, event_id: int, email: str) -> Optional[Registration]:
        query = (
            select(Registration)
            .where(Registration.event_id == event_id)
            .where(Registration.email == email)
            .where(Registration.status.in_(ACTIVE_STATUSES))
        )
        return self.session.scalars(query).first()

    def list_for_event(self, event_id: int) -> Sequence[Registration]:
        query = (
            select(Registration)
            .where(Registration.event_id == event_id)
            .order_by(Registration.created_at.asc(), Registration.id.asc())
        )
        return self.session.scalars(query).all()

    def list_attended(self, event_id: int) -> Sequence[Registration]:
        query = (
            select(Registration)
            .where(Registration.event_id == event_id)
            .where(Registration.attended.is_(True))
            .order_by(Registration.checkin_at.asc(), Registration.id.asc())
        )
        return self.session.scalars(query).all()

    def count_confirmed(self, event_id: int) -> int:
        query = (
            select(func.count())
            .select_from(Registration)
            .where(Registration.event_id == event_id)
            .where(Registration.status == CONFIRMED)
        )
        return int(self.session.execute(query).scalar_one())

    def count_by_status(self, event_id: int) -> Dict[str, int]:
        query = (
            select(Registration.status, func.count(Registration.id))
            .where(Registration.event_id == event_id)
            .group_by(Registration.status)
        )
        return {status: int(total) for status, total in self.session.execute(query).all()}

    def count_attended(self, event_id: int) -> int:
        query = (
            select(func.count())
            .select_from(Registration)
            .where(Registration.event_id == event_id)
            .where(Registration.attended.is_(True))
        )
        return int(self.session.execute(query).scalar_one())

    def oldest_waitlisted(self, event_id: int) -> Optional[Registration]:
        query = (
            select(Registration)
            .where(Registration.event_id == event_id)
            .where(Registration.status == WAITLISTED)
            .order_by(Registration.created_at.asc(), Registration.id.asc())
            .limit(1)
        )
        return self.session.scalars(query).first()

    def active_emails(self, event_id: int) -> Sequence[str]:
        query = (
            select(Registration.email)
            .where(Registration.event_id == event_id)
            .where(Registration.status.in_(ACTIVE_STATUSES))
        )
        return self.session.scalars(query).all()

    def create(
        self,
        *,
        event_id: int,
        email: str,
        name: str,
        dept: Optional[str],
        status: str,
        checkin_code: str,
        answers: Optional[dict],
    ) -> Registration:
        registration = Registration(
            event_id=event_id,
            email=email,
            name=name,
            dept=dept,
            status=status,
            attended=False,
            checkin_code=checkin_code,
            answers=answers,
        )
        self.session.add(registration)
        self.session.flush()
        self.session.refresh(registration)
        return registration

    def set_status(self, registration: Registration, status: str) -> Registration:
        registration.status = status
        self.session.flush()
        return registration

    def mark_attended(self, registration_id: int, *, at: Optional[datetime] = None) -> bool:
        """Flip ``attended`` to true unless another scan already did.

        Returns ``False`` when no row changed, i.e. the registration was
        already checked in by the time the update ran.
        """
        statement = (
            update(Registration)
            .where(Registration.id == registration_id)
            .where(Registration.attended.is_(False))
            .values(attended=True, checkin_at=at or datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(statement)
        return result.rowcount == 1


class ExpectedRegistrantRepository:
    """Persistence operations for the expected registrant side ledger."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_for_event(self, event_id: int) -> Sequence[ExpectedRegistrant]:
        query = (
            select(ExpectedRegistrant)
            .where(ExpectedRegistrant.event_id == event_id)
            .order_by(ExpectedRegistrant.name.asc(), ExpectedRegistrant.id.asc())
        )
        return self.session.scalars(query).all()

    def upsert_many(self, event_id: int, rows: Iterable[Dict[str, Optional[str]]]) -> int:
        existing = {
            item.email: item
            for item in self.session.scalars(
                select(ExpectedRegistrant).where(ExpectedRegistrant.event_id == event_id)
            )
        }
        total = 0
        for row in rows:
            current = existing.get(row["email"])
            if current is None:
                current = ExpectedRegistrant(event_id=event_id, email=row["email"])
                self.session.add(current)
                existing[row["email"]] = current
            current.name = row["name"]
            current.dept = row.get("dept")
            total += 1
        self.session.flush()
        return total
