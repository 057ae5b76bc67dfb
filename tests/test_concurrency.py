"""Registrations racing on one event must never overbook it."""
from __future__ import annotations

import threading

from rollcall.database import get_session
from rollcall.services.capacity import CapacityLedger
from rollcall.services.checkin import CheckInLedger
from rollcall.services.errors import DuplicateRegistrationError
from rollcall.services.registrations import RegistrationService


def _run_concurrently(count, target):
    barrier = threading.Barrier(count)
    outcomes = [None] * count

    def worker(index):
        session = get_session()
        try:
            barrier.wait()
            outcomes[index] = target(session, index)
        except Exception as exc:  # collected for assertions
            outcomes[index] = exc
        finally:
            session.close()

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return outcomes


def test_parallel_registrations_never_exceed_capacity(db_session, make_event):
    event_id = make_event(capacity=3)

    def register(session, index):
        return RegistrationService(session).register(
            event_id, name=f"Personne {index}", email=f"p{index}@example.com"
        )["status"]

    outcomes = _run_concurrently(10, register)

    assert sorted(outcomes) == ["confirmed"] * 3 + ["waitlisted"] * 7
    snapshot = CapacityLedger(db_session).snapshot(event_id)
    assert snapshot["confirmed"] == 3
    assert snapshot["waitlisted"] == 7


def test_parallel_duplicates_leave_one_active_registration(db_session, make_event):
    event_id = make_event(capacity=5)

    def register(session, index):
        return RegistrationService(session).register(
            event_id, name="Doublon", email="same@example.com"
        )["status"]

    outcomes = _run_concurrently(6, register)

    assert outcomes.count("confirmed") == 1
    assert all(
        isinstance(item, DuplicateRegistrationError) for item in outcomes if item != "confirmed"
    )
    assert len(RegistrationService(db_session).list_registrations(event_id)) == 1


def test_parallel_scans_record_one_check_in(db_session, make_event):
    event_id = make_event()
    code = RegistrationService(db_session).register(
        event_id, name="Scan", email="scan@example.com"
    )["ticket_code"]
    db_session.commit()

    outcomes = _run_concurrently(
        5, lambda session, index: CheckInLedger(session).check_in(code)["already_checked_in"]
    )

    assert sorted(outcomes) == [False, True, True, True, True]
