"""
Shared fixtures: every test gets its own SQLite file and storage root.
"""

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from histcrud.core.config import Settings
from histcrud.core.db import create_db_engine, init_schema
from histcrud.main import create_app


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throwaway database and storage root."""
    return Settings(
        database_url=f"sqlite:///{(tmp_path / 'app.db').as_posix()}",
        storage_root=str(tmp_path / "storage"),
        session_secret="test-secret",
        countries_api_url="",
    )


@pytest.fixture
def engine(settings):
    """Engine with the schema (and append-only triggers) created."""
    eng = create_db_engine(settings.database_url)
    init_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(client):
    """Create a user through the API and return its JSON."""

    def _make(name="Ann", email="ann@example.com", age=30):
        resp = client.post("/db/users", json={"name": name, "email": email, "age": age})
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make
