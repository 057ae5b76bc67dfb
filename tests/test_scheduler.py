from rollcall.database import get_session
from rollcall.models import Event
from rollcall.services.capacity import CapacityLedger
from rollcall.services.registrations import RegistrationService
from rollcall.services.scheduler import WaitlistScheduler, sweep_waitlists


def _raise_capacity_directly(session, event_id, capacity):
    event = session.get(Event, event_id)
    event.capacity = capacity
    session.commit()


def test_sweep_fills_seats_opened_outside_the_service(db_session, make_event):
    event_id = make_event(capacity=1)
    service = RegistrationService(db_session)
    service.register(event_id, name="Seat", email="seat@example.com")
    first = service.register(event_id, name="W1", email="w1@example.com")
    second = service.register(event_id, name="W2", email="w2@example.com")
    _raise_capacity_directly(db_session, event_id, 2)

    promoted = sweep_waitlists(db_session)

    assert promoted == {event_id: [first["registration_id"]]}
    assert service.get(second["registration_id"])["status"] == "waitlisted"
    assert CapacityLedger(db_session).seats_left(event_id) == 0


def test_sweep_ignores_unpublished_events(db_session, make_event):
    event_id = make_event(capacity=1, is_published=False)
    service = RegistrationService(db_session)
    service.register(event_id, name="Seat", email="seat@example.com", allow_unpublished=True)
    service.register(event_id, name="W1", email="w1@example.com", allow_unpublished=True)
    _raise_capacity_directly(db_session, event_id, 3)

    assert sweep_waitlists(db_session) == {}


def test_run_once_uses_its_own_session(db_session, make_event):
    event_id = make_event(capacity=1)
    service = RegistrationService(db_session)
    service.register(event_id, name="Seat", email="seat@example.com")
    waiting = service.register(event_id, name="W1", email="w1@example.com")
    _raise_capacity_directly(db_session, event_id, 2)

    scheduler = WaitlistScheduler(interval_minutes=5, session_factory=get_session)
    assert scheduler.run_once() == {event_id: [waiting["registration_id"]]}
    assert scheduler.run_once() == {}
    assert not scheduler.running


class PromotionRecorder:
    def __init__(self):
        self.promoted_ids = []

    def promoted(self, event, registration):
        self.promoted_ids.append(registration.id)
        return True


def test_run_once_notifies_with_the_shared_notifier(db_session, make_event):
    event_id = make_event(capacity=1)
    service = RegistrationService(db_session)
    service.register(event_id, name="Seat", email="seat@example.com")
    waiting = service.register(event_id, name="W1", email="w1@example.com")
    _raise_capacity_directly(db_session, event_id, 2)
    recorder = PromotionRecorder()

    scheduler = WaitlistScheduler(session_factory=get_session, notifier=recorder)
    scheduler.run_once()

    assert recorder.promoted_ids == [waiting["registration_id"]]
