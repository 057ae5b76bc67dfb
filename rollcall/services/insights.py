"""Expected-registrant reconciliation.

Reports which people on an imported "expected" list actually registered.
Here *registered* means holding any non-cancelled registration, waitlisted
included; it is intentionally a different predicate from the confirmed
count used for capacity.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy.orm import Session

from rollcall.repositories.registrations import (
    ExpectedRegistrantRepository,
    RegistrationRepository,
)
from rollcall.services.capacity import CapacityLedger
from rollcall.services.errors import ValidationError
from rollcall.services.registrations import normalize_email
from rollcall.services.serializers import serialize_expected
from rollcall.services.transactions import atomic

__all__ = ["InsightsService"]


class InsightsService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.ledger = CapacityLedger(session)
        self.expected = ExpectedRegistrantRepository(session)
        self.registrations = RegistrationRepository(session)

    def import_expected(self, event_id: int, rows: Iterable[Any]) -> Dict[str, Any]:
        """Upsert expected registrants keyed by normalized email.

        Rows without a name or an email are skipped.
        """
        clean: Dict[str, Dict[str, Optional[str]]] = {}
        skipped = 0
        for row in rows:
            entry = self._clean_row(row)
            if entry is None:
                skipped += 1
                continue
            clean[entry["email"]] = entry
        if not clean:
            raise ValidationError({"rows": ["Aucune ligne exploitable."]})

        with atomic(self.session):
            self.ledger.lock_event(event_id)
            total = self.expected.upsert_many(event_id, clean.values())
        return {"ok": True, "inserted_or_updated": total, "skipped": skipped}

    def report(self, event_id: int) -> Dict[str, Any]:
        self.ledger.get_event(event_id)
        registered_emails = set(self.registrations.active_emails(event_id))

        matched: List[Dict[str, Any]] = []
        missing: List[Dict[str, Any]] = []
        for entry in self.expected.list_for_event(event_id):
            bucket = matched if normalize_email(entry.email) in registered_emails else missing
            bucket.append(serialize_expected(entry))

        return {
            "event_id": event_id,
            "expected_total": len(matched) + len(missing),
            "registered_total": len(matched),
            "missing_total": len(missing),
            "expected_registered": matched,
            "expected_missing": missing,
        }

    @staticmethod
    def _clean_row(row: Any) -> Optional[Dict[str, Optional[str]]]:
        if not isinstance(row, Mapping):
            return None
        name = row.get("name")
        email = row.get("email")
        dept = row.get("dept")
        if not isinstance(name, str) or not isinstance(email, str):
            return None
        if not name.strip() or not email.strip():
            return None
        if isinstance(dept, str):
            dept = dept.strip() or None
        else:
            dept = None
        return {"name": name.strip(), "email": normalize_email(email), "dept": dept}
