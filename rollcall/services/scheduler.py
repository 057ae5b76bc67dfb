"""Background job that fills free seats from the waitlist."""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy import select
from sqlalchemy.orm import Session

from rollcall.database import get_session
from rollcall.models import Event
from rollcall.services.errors import RegistrationError
from rollcall.services.notifications import RegistrationNotifier
from rollcall.services.promotions import PromotionEngine

logger = logging.getLogger(__name__)


def sweep_waitlists(
    session: Session, *, notifier: Optional[RegistrationNotifier] = None
) -> Dict[int, List[int]]:
    """Promote waitlisted registrants on every published event with free seats."""
    engine = PromotionEngine(session, notifier=notifier)
    event_ids = session.scalars(
        select(Event.id).where(Event.is_published.is_(True)).order_by(Event.id)
    ).all()
    session.commit()

    promoted: Dict[int, List[int]] = {}
    for event_id in event_ids:
        try:
            ids = engine.fill_open_seats(event_id)
        except RegistrationError as exc:
            logger.warning("Waitlist sweep skipped event %s: %s", event_id, exc)
            continue
        if ids:
            promoted[event_id] = ids
    return promoted


class WaitlistScheduler:
    """Lightweight scheduler for the periodic waitlist sweep."""

    def __init__(
        self,
        *,
        interval_minutes: int = 30,
        session_factory: Callable[[], Session] = get_session,
        notifier: Optional[RegistrationNotifier] = None,
    ) -> None:
        self._scheduler = BackgroundScheduler(timezone="UTC")
        self._interval_minutes = interval_minutes
        self._session_factory = session_factory
        self._notifier = notifier
        self._started = False

    @property
    def running(self) -> bool:
        return self._started

    def start(self) -> None:
        if self._started:
            return
        self._scheduler.add_job(
            self.run_once,
            "interval",
            minutes=self._interval_minutes,
            id="waitlist-sweep",
            coalesce=True,
            max_instances=1,
        )
        self._scheduler.start()
        self._started = True

    def shutdown(self) -> None:
        if self._started:
            self._scheduler.shutdown()
            self._started = False

    def run_once(self) -> Dict[int, List[int]]:
        session = self._session_factory()
        try:
            promoted = sweep_waitlists(session, notifier=self._notifier)
        finally:
            session.close()
        if promoted:
            logger.info("Waitlist sweep promoted %s", promoted)
        return promoted
