"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from taller.core.audit.models import AuditLog  # noqa: F401
from taller.core.cache import redis as redis_module
from taller.core.database import Base, get_db
from taller.core.permissions.defaults import PERMISSIONS_ASSIGN, ROLES_ADMIN
from taller.core.permissions.models import Permission
from taller.main import create_app
from taller.modules.users.models import User
from tests.helpers import (
    FakeRedis,
    add_permission,
    add_role,
    add_user,
    auth_headers,
    enable_sqlite_savepoints,
)


TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """A fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide the database session shared by fixtures and requests."""
    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch: pytest.MonkeyPatch) -> FakeRedis:
    """Serve every cache call from a fresh in-memory store instead of Redis."""
    store = FakeRedis()
    monkeypatch.setattr(redis_module, "redis_client", store.client_factory())
    return store


@pytest.fixture
async def app(db: AsyncSession):
    """Create test application instance."""
    application = create_app()

    # Override database dependency
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    application.dependency_overrides[get_db] = override_get_db

    yield application

    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


# ============================================================
# Catalog and user fixtures
# ============================================================


@pytest.fixture
async def catalog(db: AsyncSession) -> dict[str, Permission]:
    """A small catalog: two inventory codes, two sales codes, the admin codes."""
    codes = [
        "inventario.ver",
        "inventario.movimientos",
        "ventas.ver",
        "ventas.conciliar",
        ROLES_ADMIN,
        PERMISSIONS_ASSIGN,
    ]
    return {code: await add_permission(db, code) for code in codes}


@pytest.fixture
async def admin(db: AsyncSession, catalog: dict[str, Permission]) -> User:
    """An active user whose role administers roles and permissions."""
    role = await add_role(
        db,
        [catalog[ROLES_ADMIN], catalog[PERMISSIONS_ASSIGN]],
        name="Administrador",
    )
    return await add_user(db, role, email="admin@taller.test")


@pytest.fixture
def admin_headers(admin: User) -> dict[str, str]:
    return auth_headers(admin.id, [ROLES_ADMIN, PERMISSIONS_ASSIGN])
