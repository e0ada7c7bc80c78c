"""
Notekeep Backend: Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (in-memory DB, app, API client, temp files).
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── settings:          Settings pointing at in-memory SQLite and a temp storage root
    ├── engine / db_session: Fresh in-memory database with all tables created
    ├── file_service:      FileService rooted in the temp storage directory
    ├── app / client:      Application built from `settings` + HTTPX AsyncClient
    ├── sample_image_bytes: Fake image content for upload tests
    └── register_user:     Helper that registers through the API and returns auth headers
"""

import os
import tempfile

# Override settings for testing BEFORE any notekeep imports
# Why: importing notekeep.main builds the module-level app from the environment
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="notekeep_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["BCRYPT_ROUNDS"] = "4"

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from notekeep.config import Settings  # noqa: E402
from notekeep.database import build_engine, build_session_factory, create_schema  # noqa: E402
from notekeep.services.file_service import FileService  # noqa: E402


@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def settings(temp_storage):
    """Settings for one test: private in-memory DB, private storage root, cheap bcrypt."""
    return Settings(
        database_url="sqlite+aiosqlite://",
        jwt_secret="test-secret-not-for-production",
        storage_root=temp_storage,
        bcrypt_rounds=4,
        log_level="WARNING",
        audit_body_limit=2048,
    )


@pytest_asyncio.fixture
async def engine(settings):
    engine = build_engine(settings)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    """A real AsyncSession on the in-memory database."""
    session_factory = build_session_factory(engine)
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    A mock async session for tests that only need to observe calls.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = note
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def file_service(temp_storage):
    return FileService(temp_storage, max_file_size=5_242_880)


@pytest.fixture
def sample_image_bytes():
    """
    Minimal JPEG bytes for upload tests: SOI marker + JFIF header + EOI marker.

    Not UTF-8 decodable, which the audit tests rely on.
    """
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest_asyncio.fixture
async def app(settings):
    """
    Application built from the per-test settings.

    The lifespan does not run under ASGITransport, so the request log sink
    is not started: audit entries accumulate in its queue until a test
    starts and drains it.
    """
    from notekeep.main import create_app

    application = create_app(settings)
    await create_schema(application.state.engine)
    yield application
    await application.state.request_log_sink.stop(timeout=1.0)
    await application.state.engine.dispose()


@pytest_asyncio.fixture
async def client(app):
    """
    HTTPX AsyncClient routed directly to the app (no server).

    Usage:
        async def test_health(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


@pytest.fixture
def register_user(client):
    """Register an account through the API and return its Authorization headers."""

    async def _register(email: str = "alice@example.com", password: str = "correct-horse"):
        response = await client.post("/register", json={"email": email, "password": password})
        assert response.status_code == 201, response.text
        token = response.json()["token"]
        return {"Authorization": f"Bearer {token}"}

    return _register
