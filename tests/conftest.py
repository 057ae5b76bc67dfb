import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from rollcall.database import Base, get_engine, get_session
from rollcall.main import create_app
from rollcall.services.events import EventService

ADMIN_SECRET = "test-admin-secret"


@pytest.fixture(scope="session")
def database_url(tmp_path_factory):
    db_file = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite:///{db_file}"


@pytest.fixture(scope="session")
def app(database_url):
    flask_app = create_app(
        {
            "TESTING": True,
            "DATABASE_URL": database_url,
            "ADMIN_SECRET": ADMIN_SECRET,
            "NOTIFIER": None,
            "START_SCHEDULER": False,
        }
    )
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield flask_app
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(autouse=True)
def clean_database(app):
    engine = get_engine()
    with engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())
    yield


@pytest.fixture
def db_session():
    session = get_session()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def make_event(db_session):
    def _make_event(**overrides):
        payload = {"title": "Atelier capacité", "capacity": 3, "is_published": True}
        payload.update(overrides)
        return EventService(db_session).create_event(payload)["id"]

    return _make_event


@pytest.fixture
def client(app):
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def admin_headers():
    return {"X-Admin-Secret": ADMIN_SECRET}
