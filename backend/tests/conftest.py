"""Test fixtures for the backend."""
import os

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("SECRET_KEY", "test-secret-key-long-enough-for-hs256-signing")

from karriery.config import get_settings  # noqa: E402
from karriery.main import create_app  # noqa: E402
from karriery.storage import MemorySubstrate  # noqa: E402
from karriery.store import RecordStore  # noqa: E402


@pytest.fixture
def substrate() -> MemorySubstrate:
    return MemorySubstrate()


@pytest.fixture
def store(substrate: MemorySubstrate) -> RecordStore:
    """A freshly initialised store holding only the bootstrap admin."""

    record_store = RecordStore(substrate)
    record_store.initialize()
    return record_store


@pytest.fixture
def app(store: RecordStore, tmp_path, monkeypatch):
    """API wired to the test store, with uploads and backups under tmp_path."""

    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("BACKUP_DIR", str(tmp_path / "backups"))
    get_settings.cache_clear()
    yield create_app(store)
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncClient:
    """Provide an HTTP client for integration tests."""

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture
async def admin_headers(client: AsyncClient) -> dict:
    response = await client.post("/auth/login", json={"email": "admin", "password": "admin"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']['access_token']}"}


@pytest.fixture
def register(client: AsyncClient):
    """Register an account and return (user, auth headers)."""

    async def _register(email: str = "ada@example.com", name: str = "Ada Lovelace", password: str = "secret123"):
        response = await client.post(
            "/auth/register", json={"name": name, "email": email, "password": password}
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return body["user"], {"Authorization": f"Bearer {body['token']['access_token']}"}

    return _register
