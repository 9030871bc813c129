"""
Test infrastructure for the Notice Board API.

Strategy
--------
- SQLite in-memory via aiosqlite removes the need for running master and
  replica databases.  Both routing targets point at the same test engine,
  so reads routed to the replica see the rows written through the master.
- StaticPool forces all async tasks to share the same in-memory database
  connection; SQLite in-memory databases are connection-scoped.
- ``get_db`` and ``get_file_storage`` are overridden so every request
  uses the test session factory and a per-test temporary storage root.
- All tables are created fresh before each test and dropped after.
- The Redis cache is disabled by setting ``cache._redis = None``; the
  CacheManager treats that as a permanent miss.
"""
import io
import json

import pytest
import pytest_asyncio
from fastapi import UploadFile
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from notice_api.cache import cache
from notice_api.database import Base, build_session_factory, get_db
from notice_api.dependencies import get_file_storage
from notice_api.main import app
from notice_api.middleware import install_query_counter
from notice_api.services.file_storage_service import FileStorageService

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = build_session_factory(engine_test, engine_test)


# ---------------------------------------------------------------------------
# Dependency override — replace production get_db with the test session factory
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_upload(name: str, payload: bytes = b"hello") -> UploadFile:
    return UploadFile(file=io.BytesIO(payload), filename=name)


def notice_form(**fields) -> dict:
    """Build the multipart ``notice`` part from keyword fields."""
    return {"notice": json.dumps(fields, default=str)}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    cache._redis = None
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def storage(tmp_path) -> FileStorageService:
    return FileStorageService(tmp_path / "uploads")


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """Yield a live AsyncSession for direct service-layer tests."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client(storage: FileStorageService) -> AsyncClient:
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport,
    with attachments written under the test's temporary directory.
    """
    app.dependency_overrides[get_file_storage] = lambda: storage
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.pop(get_file_storage, None)
