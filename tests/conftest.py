"""
Test fixtures for the video library.

Each test gets a fresh SQLite database (via aiosqlite) built from the models,
an in-memory storage gateway and, for API tests, an httpx client bound to the
app with the session, caller and gateway dependencies overridden.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from video_library.auth.middleware import AuthUser, require_admin
from video_library.db import get_db, get_session_factory
from video_library.library.schemas import VideoData, VideoImportRequest
from video_library.main import app
from video_library.models import Base
from video_library.storage import BlobDescriptor, get_storage_gateway

ADMIN_ID = "admin-1"


class FakeGateway:
    """In-memory stand-in for the MinIO gateway."""

    def __init__(self, blobs: Optional[list[BlobDescriptor]] = None, error: Optional[Exception] = None):
        self.blobs = list(blobs or [])
        self.error = error
        self.prefixes: list[str] = []

    def list_objects(self, prefix: str) -> list[BlobDescriptor]:
        self.prefixes.append(prefix)
        if self.error:
            raise self.error
        return [b for b in self.blobs if b.key.startswith(prefix)]

    def object_url(self, object_key: str) -> str:
        return f"https://cdn.test/{object_key}"


def make_blob(key: str, size: int = 1024, minutes_ago: int = 0) -> BlobDescriptor:
    return BlobDescriptor(
        key=key,
        size=size,
        last_modified=datetime(2026, 1, 1, tzinfo=timezone.utc) - timedelta(minutes=minutes_ago),
    )


def make_request(key: str, title: str = "Video", size: int = 1048576, **kwargs) -> VideoImportRequest:
    video = kwargs.pop("video", None) or VideoData(
        key=key,
        url=f"https://cdn.test/{key}",
        size=size,
        duration=kwargs.pop("duration", None),
    )
    return VideoImportRequest(video=video, title=title, **kwargs)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'library.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def admin() -> AuthUser:
    return AuthUser(user_id=ADMIN_ID, email="admin@example.com", role="admin")


@pytest_asyncio.fixture
async def client(session_factory, gateway, admin):
    """API client authenticated as an admin."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_storage_gateway] = lambda: gateway
    app.dependency_overrides[require_admin] = lambda: admin

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()
