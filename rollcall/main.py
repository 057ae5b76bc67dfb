"""Rollcall application entrypoint."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from flask import Flask
from sqlalchemy.exc import SQLAlchemyError

from rollcall.config import AppConfig, get_config
from rollcall.database import init_engine
from rollcall.integrations.email_service import EmailServiceClient
from rollcall.logging_config import setup_logging
from rollcall.routes import register_blueprints
from rollcall.routes.dependencies import cleanup_services
from rollcall.routes.utils import error_response, service_error_response
from rollcall.services.errors import RegistrationError, StorageError
from rollcall.services.notifications import RegistrationNotifier
from rollcall.services.scheduler import WaitlistScheduler

logger = logging.getLogger(__name__)


def create_app(overrides: Optional[Dict[str, Any]] = None) -> Flask:
    config = get_config()
    setup_logging(config.log_level, config.log_file)

    app = Flask(__name__)
    app.config.update(
        ADMIN_SECRET=config.admin_secret,
        DATABASE_URL=None,
        NOTIFIER=build_notifier(config),
        START_SCHEDULER=config.scheduler_enabled,
    )
    if overrides:
        app.config.update(overrides)

    init_engine(app.config["DATABASE_URL"])
    register_blueprints(app)
    app.teardown_appcontext(cleanup_services)
    register_error_handlers(app)

    @app.get("/health")
    def health():
        return {"status": "ok", "service": "rollcall"}

    if app.config["START_SCHEDULER"] and not app.config.get("TESTING"):
        scheduler = WaitlistScheduler(
            interval_minutes=config.waitlist_sweep_minutes,
            notifier=app.config["NOTIFIER"],
        )
        scheduler.start()
        app.extensions["waitlist_scheduler"] = scheduler

    if not app.config.get("ADMIN_SECRET"):
        logger.warning("ADMIN_SECRET is not set; admin and check-in endpoints are locked")
    return app


def build_notifier(config: AppConfig) -> Optional[RegistrationNotifier]:
    """Return the process-wide notifier, or ``None`` when email is disabled.

    A single instance keeps one HTTP client, so its circuit breaker counts
    failures across requests and scheduler runs.
    """
    email_config = config.service("email_service")
    if not email_config.enabled:
        return None
    return RegistrationNotifier(EmailServiceClient(config=email_config))


def register_error_handlers(flask_app: Flask) -> None:
    @flask_app.errorhandler(RegistrationError)
    def handle_service_error(exc: RegistrationError):
        if exc.reason == "internal":
            logger.error("Request failed on storage: %s", exc.message)
        return service_error_response(exc)

    @flask_app.errorhandler(SQLAlchemyError)
    def handle_storage_error(exc: SQLAlchemyError):
        logger.exception("Database failure outside a transaction block")
        return service_error_response(StorageError(cause=exc))

    @flask_app.errorhandler(404)
    def handle_404(e):
        return error_response(404, "Ressource introuvable.")

    @flask_app.errorhandler(405)
    def handle_405(e):
        return error_response(405, "Méthode non autorisée pour cette ressource.")

    @flask_app.errorhandler(500)
    def handle_500(e):
        return error_response(500, "Erreur interne. On respire, on relance.")


if __name__ == "__main__":
    create_app().run(debug=True, port=5003)
