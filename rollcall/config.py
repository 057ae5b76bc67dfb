"""Centralised configuration management for the application and integrations."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Optional


@dataclass(frozen=True)
class ResilienceConfig:
    """Retry and circuit breaker settings for outbound integrations."""

    max_attempts: int = 3
    backoff_factor: float = 0.5
    max_backoff: float = 5.0
    circuit_breaker_failure_threshold: int = 5
    circuit_breaker_reset_timeout: float = 30.0


@dataclass(frozen=True)
class ServiceConfig:
    """Configuration for a downstream dependency."""

    name: str
    base_url: str
    timeout: float = 5.0
    secret: Optional[str] = None
    enabled: bool = True
    resilience: ResilienceConfig = field(default_factory=ResilienceConfig)


@dataclass(frozen=True)
class AppConfig:
    """Aggregate application configuration."""

    services: Dict[str, ServiceConfig]
    admin_secret: Optional[str] = None
    public_base_url: str = "http://localhost:5003"
    default_event_capacity: int = 50
    scheduler_enabled: bool = False
    waitlist_sweep_minutes: int = 30
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def service(self, name: str) -> ServiceConfig:
        try:
            return self.services[name]
        except KeyError as exc:
            raise KeyError(f"Unknown service configuration requested: {name}") from exc


def _get_env_name(service_name: str, key: str) -> str:
    return f"{service_name.upper()}_{key.upper()}"


def _get_int(var: str, default: int) -> int:
    value = os.getenv(var)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(var: str, default: float) -> float:
    value = os.getenv(var)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_bool(var: str, default: bool) -> bool:
    value = os.getenv(var)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _load_resilience(service_name: str) -> ResilienceConfig:
    return ResilienceConfig(
        max_attempts=_get_int(_get_env_name(service_name, "MAX_ATTEMPTS"), 3),
        backoff_factor=_get_float(_get_env_name(service_name, "BACKOFF_FACTOR"), 0.5),
        max_backoff=_get_float(_get_env_name(service_name, "MAX_BACKOFF"), 5.0),
        circuit_breaker_failure_threshold=_get_int(
            _get_env_name(service_name, "CB_FAILURE_THRESHOLD"), 5
        ),
        circuit_breaker_reset_timeout=_get_float(
            _get_env_name(service_name, "CB_RESET_TIMEOUT"), 30.0
        ),
    )


def _load_service_config(
    service_name: str,
    *,
    default_url: str,
    default_timeout: float = 5.0,
) -> ServiceConfig:
    return ServiceConfig(
        name=service_name,
        base_url=os.getenv(_get_env_name(service_name, "URL"), default_url),
        timeout=_get_float(_get_env_name(service_name, "TIMEOUT"), default_timeout),
        secret=os.getenv(_get_env_name(service_name, "SECRET")),
        enabled=_get_bool(
            _get_env_name(service_name, "ENABLED"),
            os.getenv(_get_env_name(service_name, "URL")) is not None,
        ),
        resilience=_load_resilience(service_name),
    )


@lru_cache()
def get_config() -> AppConfig:
    """Return the lazily initialised application configuration."""

    services = {
        "email_service": _load_service_config(
            "email_service", default_url="http://email-service.local/api"
        ),
    }
    return AppConfig(
        services=services,
        admin_secret=os.getenv("ADMIN_SECRET") or None,
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:5003"),
        default_event_capacity=_get_int("DEFAULT_EVENT_CAPACITY", 50),
        scheduler_enabled=_get_bool("SCHEDULER_ENABLED", False),
        waitlist_sweep_minutes=_get_int("WAITLIST_SWEEP_MINUTES", 30),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE") or None,
    )


def get_service_config(service_name: str) -> ServiceConfig:
    """Shortcut to retrieve an individual service configuration."""

    config = get_config()
    return config.service(service_name)
