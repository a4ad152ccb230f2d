"""Shared fixtures: isolated settings, key-value store, SQLite session and API client."""

import os
import tempfile
from pathlib import Path

# Point settings at a throwaway directory before the package is imported.
_SESSION_DIR = Path(tempfile.mkdtemp(prefix="commitments-tests-"))
os.environ.setdefault("DATA_DIR", str(_SESSION_DIR / "store"))
os.environ.setdefault("EXPORTS_DIR", str(_SESSION_DIR / "exports"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_SESSION_DIR / 'commitments.db'}")
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("SMTP_HOST", "")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from commitments.database import Base  # noqa: E402
from commitments.schemas.records import Header  # noqa: E402
from commitments.services.auth_service import get_store, initialize_auth  # noqa: E402
from commitments.storage import KeyValueStore, LocalStorage  # noqa: E402
from tests.factories import make_header  # noqa: E402


@pytest.fixture
def header() -> Header:
    return make_header()


@pytest.fixture
def store(tmp_path: Path) -> KeyValueStore:
    kv = KeyValueStore(tmp_path / "store")
    initialize_auth(kv)
    return kv


@pytest.fixture
def local_storage(store: KeyValueStore) -> LocalStorage:
    return LocalStorage(store, "user-1")


@pytest.fixture
def db_session():
    """In-memory SQLite session with the relational schema created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(store: KeyValueStore):
    from commitments.main import app

    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(client: TestClient) -> dict[str, str]:
    response = client.post(
        "/api/auth/admin/login",
        data={"username": "admin", "password": "Admin123!"},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def user_headers(client: TestClient, admin_headers: dict[str, str]) -> dict[str, str]:
    created = client.post(
        "/api/admin/users",
        json={
            "username": "mmarkovic",
            "email": "m.markovic@example.com",
            "password": "Secret123",
            "budget_user_id": "01234",
            "treasury": "604",
            "pdf_display_name": "Marko Markovic",
        },
        headers=admin_headers,
    )
    assert created.status_code == 201, created.text
    response = client.post(
        "/api/auth/login",
        data={"username": "mmarkovic", "password": "Secret123"},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
