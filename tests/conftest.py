"""
Shared pytest fixtures for the ShareHub test suite.

The application reads its settings at import time, so the environment is
pointed at a throwaway SQLite database and upload directory before any
sharehub module is imported.
"""

import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path

_TMP_DIR = Path(tempfile.mkdtemp(prefix="sharehub-tests-"))
UPLOAD_DIR = _TMP_DIR / "uploads"

os.environ["SQLALCHEMY_DATABASE_URI"] = f"sqlite+aiosqlite:///{(_TMP_DIR / 'sharehub.db').as_posix()}"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["UPLOAD_DIR"] = str(UPLOAD_DIR)
os.environ["MAX_FILE_SIZE_MB"] = "1"
os.environ["DEBUG"] = "false"
os.environ["ENVIRONMENT"] = "test"

import pytest
from httpx import ASGITransport, AsyncClient

from sharehub.core.database import AsyncSessionLocal, Base, engine, init_models
from sharehub.models.resource import Resource


# =============================================================================
# Helpers
# =============================================================================

def naive_utc(value) -> datetime:
    """Normalise datetimes and ISO strings to naive UTC for comparisons.

    SQLite hands back naive values while PostgreSQL returns aware ones.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


async def register(client: AsyncClient, name: str, email: str, password: str = "s3cret-pass") -> dict:
    response = await client.post(
        "/auth/register",
        json={"name": name, "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


async def fetch_resource(resource_id) -> Resource:
    """Load a row in a fresh session, bypassing every lifecycle filter"""
    import uuid

    async with AsyncSessionLocal() as session:
        return await session.get(Resource, uuid.UUID(str(resource_id)))


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
async def database():
    """Fresh schema and empty upload directory for every test"""
    await init_models()
    UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    shutil.rmtree(UPLOAD_DIR, ignore_errors=True)


@pytest.fixture
async def client():
    from sharehub.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
async def alice(client) -> dict:
    """Auth headers for a registered user"""
    return await register(client, "Alice", "alice@example.com")


@pytest.fixture
async def bob(client) -> dict:
    """Auth headers for a second, unrelated user"""
    return await register(client, "Bob", "bob@example.com")


def pytest_sessionfinish(session, exitstatus):
    shutil.rmtree(_TMP_DIR, ignore_errors=True)
