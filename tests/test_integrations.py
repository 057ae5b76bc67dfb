"""Email client and notifier tests relying on mocked HTTP backends."""
from __future__ import annotations

import json

import pytest
import responses

from rollcall.config import AppConfig, ResilienceConfig, ServiceConfig
from rollcall.integrations.base import CircuitOpenError, IntegrationError, RejectedRequestError
from rollcall.integrations.email_service import EmailServiceClient
from rollcall.main import build_notifier
from rollcall.routes.dependencies import get_notifier, get_registration_service
from rollcall.services.notifications import RegistrationNotifier
from rollcall.services.registrations import RegistrationService

EMAIL_URL = "http://email.test/notifications/send"


def _email_config(
    enabled: bool = True,
    failure_threshold: int = 5,
    max_attempts: int = 1,
    reset_timeout: float = 60.0,
) -> ServiceConfig:
    return ServiceConfig(
        name="email_service",
        base_url="http://email.test",
        timeout=1.0,
        secret="s3cret",
        enabled=enabled,
        resilience=ResilienceConfig(
            max_attempts=max_attempts,
            backoff_factor=0.01,
            max_backoff=0.01,
            circuit_breaker_failure_threshold=failure_threshold,
            circuit_breaker_reset_timeout=reset_timeout,
        ),
    )


@responses.activate
def test_email_client_posts_mail_payload() -> None:
    responses.add(responses.POST, EMAIL_URL, json={"status": "queued"}, status=202)
    client = EmailServiceClient(config=_email_config())

    result = client.send_mail("guest@example.com", "Bienvenue", "<p>Bonjour</p>")

    assert result == {"status": "queued"}
    sent = responses.calls[0].request
    assert sent.headers["Authorization"] == "Bearer s3cret"
    assert json.loads(sent.body) == {
        "channel": "email",
        "to": "guest@example.com",
        "subject": "Bienvenue",
        "html": "<p>Bonjour</p>",
    }


@responses.activate
def test_email_client_raises_on_server_error() -> None:
    responses.add(responses.POST, EMAIL_URL, json={"error": "boom"}, status=500)
    client = EmailServiceClient(config=_email_config())
    with pytest.raises(IntegrationError):
        client.send_mail("guest@example.com", "Sujet", "<p>x</p>")


@responses.activate
def test_circuit_opens_after_repeated_failures() -> None:
    responses.add(responses.POST, EMAIL_URL, status=503)
    client = EmailServiceClient(config=_email_config(failure_threshold=2))

    for _ in range(2):
        with pytest.raises(IntegrationError):
            client.send_mail("guest@example.com", "Sujet", "<p>x</p>")
    with pytest.raises(CircuitOpenError):
        client.send_mail("guest@example.com", "Sujet", "<p>x</p>")
    assert len(responses.calls) == 2


@responses.activate
def test_failed_notification_keeps_registration(db_session, make_event) -> None:
    responses.add(responses.POST, EMAIL_URL, json={"error": "down"}, status=500)
    notifier = RegistrationNotifier(EmailServiceClient(config=_email_config()))
    service = RegistrationService(db_session, notifier=notifier)
    event_id = make_event(capacity=1)

    result = service.register(event_id, name="Robuste", email="robust@example.com")

    assert result["status"] == "confirmed"
    assert service.get(result["registration_id"])["status"] == "confirmed"
    assert len(responses.calls) == 1


@responses.activate
def test_waitlist_notification_mentions_waitlist(db_session, make_event) -> None:
    responses.add(responses.POST, EMAIL_URL, json={}, status=200)
    notifier = RegistrationNotifier(EmailServiceClient(config=_email_config()))
    service = RegistrationService(db_session, notifier=notifier)
    event_id = make_event(capacity=1, title="Conférence")

    service.register(event_id, name="Premier", email="first@example.com")
    service.register(event_id, name="Second", email="second@example.com")

    subjects = [json.loads(call.request.body)["subject"] for call in responses.calls]
    assert subjects == [
        "Inscription confirmée : Conférence",
        "Liste d'attente : Conférence",
    ]


@responses.activate
def test_disabled_email_service_sends_nothing(db_session, make_event) -> None:
    notifier = RegistrationNotifier(EmailServiceClient(config=_email_config(enabled=False)))
    service = RegistrationService(db_session, notifier=notifier)
    event_id = make_event()

    service.register(event_id, name="Silencieux", email="quiet@example.com")
    assert len(responses.calls) == 0


@responses.activate
def test_rejected_payload_is_not_retried() -> None:
    responses.add(responses.POST, EMAIL_URL, json={"error": "bad address"}, status=422)
    client = EmailServiceClient(config=_email_config(max_attempts=3, failure_threshold=1))

    with pytest.raises(RejectedRequestError) as excinfo:
        client.send_mail("not-an-address", "Sujet", "<p>x</p>")

    assert excinfo.value.status_code == 422
    assert len(responses.calls) == 1
    assert not client.breaker.is_open


@responses.activate
def test_server_errors_are_retried_up_to_max_attempts() -> None:
    responses.add(responses.POST, EMAIL_URL, status=502)
    responses.add(responses.POST, EMAIL_URL, json={"status": "queued"}, status=202)
    client = EmailServiceClient(config=_email_config(max_attempts=2))

    assert client.send_mail("guest@example.com", "Sujet", "<p>x</p>") == {"status": "queued"}
    assert len(responses.calls) == 2


@responses.activate
def test_breaker_lets_a_trial_call_through_after_cooldown() -> None:
    responses.add(responses.POST, EMAIL_URL, status=503)
    responses.add(responses.POST, EMAIL_URL, json={}, status=200)
    client = EmailServiceClient(config=_email_config(failure_threshold=1, reset_timeout=0.0))

    with pytest.raises(IntegrationError):
        client.send_mail("guest@example.com", "Sujet", "<p>x</p>")
    assert client.send_mail("guest@example.com", "Sujet", "<p>x</p>") == {}
    assert not client.breaker.is_open


def test_build_notifier_follows_email_switch() -> None:
    enabled = build_notifier(AppConfig(services={"email_service": _email_config()}))
    disabled = build_notifier(
        AppConfig(services={"email_service": _email_config(enabled=False)})
    )

    assert isinstance(enabled, RegistrationNotifier)
    assert enabled.client.config.base_url == "http://email.test"
    assert disabled is None


def test_requests_share_one_notifier(app, monkeypatch) -> None:
    notifier = RegistrationNotifier(EmailServiceClient(config=_email_config()))
    monkeypatch.setitem(app.config, "NOTIFIER", notifier)

    with app.test_request_context():
        first = get_registration_service().notifier
    with app.test_request_context():
        second = get_notifier()

    assert first is notifier
    assert second is notifier
    assert first.client is second.client


@responses.activate
def test_email_outage_trips_breaker_across_requests(app, client, make_event, monkeypatch):
    responses.add(responses.POST, EMAIL_URL, status=503)
    notifier = RegistrationNotifier(EmailServiceClient(config=_email_config(failure_threshold=2)))
    monkeypatch.setitem(app.config, "NOTIFIER", notifier)
    event_id = make_event(capacity=5)

    for index in range(4):
        response = client.post(
            "/register",
            json={"event_id": event_id, "name": "Invité", "email": f"g{index}@example.com"},
        )
        assert response.status_code == 201

    assert len(responses.calls) == 2
    assert notifier.client.breaker.is_open
