"""Pytest configuration and shared fixtures for tests."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret-for-bearer-tokens-0123456789abcdef")

from collections.abc import AsyncGenerator, Callable  # noqa: E402

import jwt  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from celiac_ledger.api.deps import get_db  # noqa: E402
from celiac_ledger.core.config import settings  # noqa: E402
from celiac_ledger.core.database import create_session_factory  # noqa: E402
from celiac_ledger.main import app  # noqa: E402
from celiac_ledger.models import Base, User  # noqa: E402


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests.

    Returns:
        Backend name string.
    """
    return "asyncio"


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with all tables created.

    pysqlite's implicit transaction handling is switched off so SAVEPOINTs
    behave as they do on PostgreSQL.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine and installed on the app."""
    factory = create_session_factory(engine)
    app.state.async_session = factory
    return factory


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """A session for repository tests; uncommitted work is rolled back."""
    async with session_factory() as session:
        yield session


async def _add_user(
    session_factory: async_sessionmaker[AsyncSession], email: str, name: str
) -> User:
    async with session_factory() as session:
        user = User(email=email, name=name)
        session.add(user)
        await session.commit()
        return user


@pytest_asyncio.fixture
async def user(session_factory: async_sessionmaker[AsyncSession]) -> User:
    """The requesting user."""
    return await _add_user(session_factory, "casey@example.com", "Casey")


@pytest_asyncio.fixture
async def other_user(session_factory: async_sessionmaker[AsyncSession]) -> User:
    """A second user whose data must stay invisible to ``user``."""
    return await _add_user(session_factory, "robin@example.com", "Robin")


@pytest_asyncio.fixture
async def public_owner(session_factory: async_sessionmaker[AsyncSession]) -> User:
    """Owner of the shared product catalogue."""
    return await _add_user(
        session_factory, settings.public_owner_email, "Public Catalogue"
    )


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Mint bearer tokens signed with the configured secret."""

    def _make_token(user_id: str, claim: str = "userId", secret: str | None = None) -> str:
        return jwt.encode(
            {claim: user_id},
            secret or settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )

    return _make_token


@pytest.fixture
def auth_headers(user: User, make_token: Callable[..., str]) -> dict[str, str]:
    """Authorization header for ``user``."""
    return {"Authorization": f"Bearer {make_token(user.id)}"}


@pytest_asyncio.fixture
async def api_client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """Create API client with DB dependency override."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
