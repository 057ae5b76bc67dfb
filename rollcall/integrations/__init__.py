"""Clients for communicating with external services."""

from .base import CircuitOpenError, HttpClient, IntegrationError, RejectedRequestError
from .email_service import EmailServiceClient

__all__ = [
    "CircuitOpenError",
    "EmailServiceClient",
    "HttpClient",
    "IntegrationError",
    "RejectedRequestError",
]
