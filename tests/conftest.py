"""Shared test configuration and fixtures."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
import os

# Settings are read at import time of the API modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-jwt-secret-at-least-32-bytes-long"  # noqa: S105
os.environ.setdefault("LOG_LEVEL", "WARNING")
for _name in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET"):
    os.environ.pop(_name, None)

from httpx import ASGITransport, AsyncClient  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from tests.fixtures.assets import FakeAssetStore  # noqa: E402
from tests.fixtures.auth import bearer, make_token  # noqa: E402
from yarnlog.api.database import get_async_session  # noqa: E402
from yarnlog.api.dependencies import get_asset_store  # noqa: E402
from yarnlog.api.main import app  # noqa: E402
from yarnlog.models import Base, Pattern, Project, User  # noqa: E402


@pytest.fixture(scope="function")
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
def session_maker(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
def asset_store() -> FakeAssetStore:
    return FakeAssetStore()


@pytest.fixture
async def client(session_maker, asset_store) -> AsyncGenerator[AsyncClient, None]:
    """API client bound to the test database and fake asset storage."""

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_session
    app.dependency_overrides[get_asset_store] = lambda: asset_store

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def user(db_session) -> User:
    user = User(username="knitter", name="Test Knitter", password_hash="x", upload_bytes=5000)
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def other_user(db_session) -> User:
    user = User(username="crocheter", name="Other User", password_hash="x", upload_bytes=0)
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
def auth_headers(user) -> dict:
    return bearer(make_token(user.id, user.username))


@pytest.fixture
def other_auth_headers(other_user) -> dict:
    return bearer(make_token(other_user.id, other_user.username))


@pytest.fixture
def add_pattern(db_session):
    async def _add(owner: User, **fields) -> Pattern:
        fields.setdefault("name", "Basic Socks")
        fields.setdefault("text", "Cast on 64 stitches")
        fields.setdefault("tags", [])
        fields.setdefault("files", [])
        fields.setdefault("created_at", datetime.now(UTC))
        pattern = Pattern(user_id=owner.id, **fields)
        db_session.add(pattern)
        await db_session.commit()
        return pattern

    return _add


@pytest.fixture
def add_project(db_session):
    async def _add(owner: User, **fields) -> Project:
        fields.setdefault("name", "Project")
        fields.setdefault("started_at", datetime.now(UTC))
        fields.setdefault("finished_at", None)
        fields.setdefault("row_trackers", [{"section": "Main", "currentRow": 0, "totalRows": 0}])
        fields.setdefault("files", [])
        fields.setdefault("tags", [])
        project = Project(user_id=owner.id, **fields)
        db_session.add(project)
        await db_session.commit()
        return project

    return _add
