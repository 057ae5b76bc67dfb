"""All-or-nothing commit helper used by every mutating service call."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rollcall.services.errors import RegistrationError, StorageError

logger = logging.getLogger(__name__)


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """Commit the block's work, or roll all of it back.

    Domain errors propagate unchanged. Database failures are rolled back and
    surfaced as :class:`StorageError` so callers can retry them.
    """
    try:
        yield session
        session.commit()
    except RegistrationError:
        session.rollback()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Database failure, transaction rolled back")
        raise StorageError(cause=exc) from exc
