"""Error taxonomy shared by the registration services.

Every error carries a ``reason`` code so the HTTP layer can pick a status
and message without inspecting the exception type chain. Idempotent
repeats (already checked in, already confirmed) are not errors and are
reported as flags on successful results instead.
"""
from __future__ import annotations

from typing import Dict, List, Optional

__all__ = [
    "CapacityExceededError",
    "ConflictError",
    "DuplicateRegistrationError",
    "NotFoundError",
    "PermissionDeniedError",
    "RegistrationError",
    "StorageError",
    "ValidationError",
]


class RegistrationError(Exception):
    """Base class for expected, recoverable service errors."""

    reason = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(RegistrationError, LookupError):
    """Raised when an event, registration or check-in code does not exist."""

    reason = "not_found"


class PermissionDeniedError(RegistrationError):
    """Raised when registering for an event that is not published."""

    reason = "permission_denied"


class ConflictError(RegistrationError):
    """Raised when the requested transition conflicts with current state."""

    reason = "conflict"


class DuplicateRegistrationError(ConflictError):
    """Raised when the attendee already holds an active registration."""

    reason = "duplicate_registration"


class CapacityExceededError(ConflictError):
    """Raised when a forced confirmation finds no free seat."""

    reason = "capacity_exceeded"


class ValidationError(RegistrationError):
    """Raised when incoming payload validation fails."""

    reason = "validation"

    def __init__(
        self,
        errors: Dict[str, List[str]],
        message: str = "Validation échouée.",
    ):
        super().__init__(message)
        self.errors = errors


class StorageError(RegistrationError):
    """Raised when the database fails; the operation left no partial state."""

    reason = "internal"

    def __init__(
        self,
        message: str = "Stockage indisponible, réessayez.",
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.cause = cause
