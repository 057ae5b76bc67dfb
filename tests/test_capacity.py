import pytest

from rollcall.services.capacity import CapacityLedger
from rollcall.services.checkin import CheckInLedger
from rollcall.services.errors import NotFoundError
from rollcall.services.registrations import RegistrationService


def test_seats_left_tracks_confirmed_only(db_session, make_event):
    event_id = make_event(capacity=2)
    service = RegistrationService(db_session)
    ledger = CapacityLedger(db_session)
    assert ledger.seats_left(event_id) == 2
    assert not ledger.is_full(event_id)

    service.register(event_id, name="A", email="a@example.com")
    service.register(event_id, name="Declined", email="d@example.com", decline=True)
    assert ledger.seats_left(event_id) == 1

    service.register(event_id, name="B", email="b@example.com")
    service.register(event_id, name="C", email="c@example.com")
    assert ledger.seats_left(event_id) == 0
    assert ledger.is_full(event_id)
    assert ledger.confirmed_count(event_id) == 2


def test_snapshot_counts_each_status(db_session, make_event):
    event_id = make_event(capacity=1)
    service = RegistrationService(db_session)
    seat = service.register(event_id, name="A", email="a@example.com")
    service.register(event_id, name="B", email="b@example.com")
    service.register(event_id, name="C", email="c@example.com", decline=True)
    CheckInLedger(db_session).check_in(seat["ticket_code"])

    assert CapacityLedger(db_session).snapshot(event_id) == {
        "event_id": event_id,
        "capacity": 1,
        "confirmed": 1,
        "waitlisted": 1,
        "cancelled": 1,
        "attended": 1,
        "seats_left": 0,
    }


def test_unknown_event_has_no_default_capacity(db_session):
    ledger = CapacityLedger(db_session)
    with pytest.raises(NotFoundError):
        ledger.seats_left(31337)
    with pytest.raises(NotFoundError):
        ledger.is_full(31337)
