"""Database configuration and session management utilities."""
from __future__ import annotations

import os
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

__all__ = [
    "Base",
    "get_engine",
    "init_engine",
    "get_session",
]

Base = declarative_base()

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def _build_database_url() -> str:
    """Build a database URL from environment variables."""
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    user = os.getenv("DB_USER")
    password = os.getenv("DB_PASSWORD")
    host = os.getenv("DB_HOST")
    port = os.getenv("DB_PORT")
    name = os.getenv("DB_NAME")

    if all([user, password, host, port, name]):
        return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}"

    # Default to a local SQLite database when nothing else is configured.
    return "sqlite:///./rollcall.db"


def _serialize_sqlite_writers(engine: Engine) -> None:
    """Make every SQLite transaction take the write lock up front.

    SQLite ignores ``SELECT ... FOR UPDATE``; ``BEGIN IMMEDIATE`` gives the
    same per-transaction serialization for the capacity check-then-insert.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(connection):
        connection.exec_driver_sql("BEGIN IMMEDIATE")


def init_engine(database_url: Optional[str] = None, **engine_kwargs) -> Engine:
    """Initialise the SQLAlchemy engine and session factory."""
    global _engine, _SessionLocal

    if database_url is None:
        database_url = _build_database_url()

    if _engine is not None:
        _engine.dispose()

    kwargs = {"future": True, "pool_pre_ping": True}
    kwargs.update(engine_kwargs)

    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        kwargs.setdefault("connect_args", {"check_same_thread": False, "timeout": 30})
    else:
        pool_size = int(os.getenv("DB_POOL_SIZE", "5"))
        max_overflow = int(os.getenv("DB_MAX_OVERFLOW", "10"))
        kwargs.setdefault("pool_size", pool_size)
        kwargs.setdefault("max_overflow", max_overflow)

    _engine = create_engine(database_url, **kwargs)
    if is_sqlite:
        _serialize_sqlite_writers(_engine)

    _SessionLocal = sessionmaker(
        bind=_engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        future=True,
        class_=Session,
    )
    return _engine


def get_engine() -> Engine:
    """Return the configured SQLAlchemy engine, initialising if necessary."""
    global _engine
    if _engine is None:
        _engine = init_engine()
    return _engine


def get_session() -> Session:
    """Create a new SQLAlchemy session."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    assert _SessionLocal is not None  # For mypy
    return _SessionLocal()
