"""Blueprint registration helpers."""
from __future__ import annotations

from flask import Flask

from .admin import admin_bp
from .checkin import checkin_bp
from .public import public_bp

__all__ = ["register_blueprints"]


def register_blueprints(app: Flask) -> None:
    app.register_blueprint(public_bp)
    app.register_blueprint(checkin_bp)
    app.register_blueprint(admin_bp)
