"""Utilities for accessing services within Flask request context."""
from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from flask import current_app, g

from rollcall.database import get_session
from rollcall.services.checkin import CheckInLedger
from rollcall.services.events import EventService
from rollcall.services.insights import InsightsService
from rollcall.services.notifications import RegistrationNotifier
from rollcall.services.promotions import PromotionEngine
from rollcall.services.questions import QuestionService
from rollcall.services.registrations import RegistrationService

SERVICE_FACTORIES: Dict[str, Callable[..., Any]] = {
    "event_service": EventService,
    "registration_service": RegistrationService,
    "promotion_engine": PromotionEngine,
}

PLAIN_SERVICE_FACTORIES: Dict[str, Callable[..., Any]] = {
    "checkin_ledger": CheckInLedger,
    "insights_service": InsightsService,
    "question_service": QuestionService,
}


def get_db_session():
    if "db_session" not in g:
        g.db_session = get_session()
    return g.db_session


def get_notifier() -> Optional[RegistrationNotifier]:
    """The application-wide notifier built by ``create_app``."""
    return current_app.config.get("NOTIFIER")


def get_event_service() -> EventService:
    return _get_service("event_service")


def get_registration_service() -> RegistrationService:
    return _get_service("registration_service")


def get_promotion_engine() -> PromotionEngine:
    return _get_service("promotion_engine")


def get_checkin_ledger() -> CheckInLedger:
    return _get_plain_service("checkin_ledger")


def get_insights_service() -> InsightsService:
    return _get_plain_service("insights_service")


def get_question_service() -> QuestionService:
    return _get_plain_service("question_service")


def _get_service(key: str):
    if key not in g:
        setattr(g, key, SERVICE_FACTORIES[key](get_db_session(), notifier=get_notifier()))
    return getattr(g, key)


def _get_plain_service(key: str):
    if key not in g:
        setattr(g, key, PLAIN_SERVICE_FACTORIES[key](get_db_session()))
    return getattr(g, key)


def cleanup_services(exception):
    session = g.pop("db_session", None)
    for key in list(SERVICE_FACTORIES) + list(PLAIN_SERVICE_FACTORIES):
        g.pop(key, None)
    if session is not None:
        try:
            if exception is not None:
                session.rollback()
        finally:
            session.close()
