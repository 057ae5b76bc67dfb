"""Best-effort attendee notifications.

Notifications are sent after the registration change has been committed.
A delivery failure is logged and otherwise ignored: it never undoes the
registration it describes.
"""
from __future__ import annotations

import logging
from html import escape
from typing import Optional

from rollcall.integrations.base import IntegrationError
from rollcall.integrations.email_service import EmailServiceClient
from rollcall.models import CONFIRMED, WAITLISTED, Event, Registration
from rollcall.services.tickets import checkin_url

logger = logging.getLogger(__name__)


class RegistrationNotifier:
    def __init__(self, client: Optional[EmailServiceClient] = None) -> None:
        self.client = client if client is not None else EmailServiceClient()

    def registration_recorded(self, event: Event, registration: Registration) -> bool:
        if registration.status == CONFIRMED:
            subject = f"Inscription confirmée : {event.title}"
            body = (
                f"<p>Bonjour {escape(registration.name)},</p>"
                f"<p>Votre place pour <strong>{escape(event.title)}</strong> est confirmée.</p>"
                f'<p><a href="{escape(checkin_url(registration.checkin_code))}">'
                "Votre billet</a></p>"
            )
        elif registration.status == WAITLISTED:
            subject = f"Liste d'attente : {event.title}"
            body = (
                f"<p>Bonjour {escape(registration.name)},</p>"
                f"<p>L'événement <strong>{escape(event.title)}</strong> est complet. "
                "Vous êtes sur la liste d'attente et serez prévenu si une place se libère.</p>"
            )
        else:
            return False
        return self._send(registration, subject, body)

    def promoted(self, event: Event, registration: Registration) -> bool:
        subject = f"Une place s'est libérée : {event.title}"
        body = (
            f"<p>Bonjour {escape(registration.name)},</p>"
            f"<p>Bonne nouvelle, votre inscription à <strong>{escape(event.title)}</strong> "
            "est désormais confirmée.</p>"
            f'<p><a href="{escape(checkin_url(registration.checkin_code))}">'
            "Votre billet</a></p>"
        )
        return self._send(registration, subject, body)

    def _send(self, registration: Registration, subject: str, html: str) -> bool:
        if not self.client.enabled:
            logger.debug("Email disabled; skipping notification for %s", registration.id)
            return False
        try:
            self.client.send_mail(registration.email, subject, html)
        except IntegrationError as exc:
            logger.warning(
                "Notification for registration %s failed: %s", registration.id, exc
            )
            return False
        return True
