"""
Shared pytest fixtures.

Tests run against in-memory SQLite (aiosqlite) with the schema created from
the models. The caller's identity is injected by overriding the optional
identity dependency, so no tokens are involved outside tests/core/test_auth.py.
"""
import os

# Settings are read at import time by db.session; point them at test values first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_ENABLED", "false")

from collections.abc import AsyncGenerator, Callable  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event, update  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from api.dependencies import get_async_session, get_optional_identity  # noqa: E402
from api.main import app  # noqa: E402
from models import Base, User, UserRole  # noqa: E402
from schemas.identity import Identity  # noqa: E402


USER_A = Identity(
    subject="u_a",
    given_name="Alice",
    family_name="Anderson",
    email="alice@example.com",
)
USER_B = Identity(subject="u_b", username="bob", email="bob@example.com")
ADMIN_C = Identity(subject="u_c", username="carol", name="Carol Admin")


@pytest.fixture
def user_a() -> Identity:
    """First-time poster with given and family name claims."""
    return USER_A


@pytest.fixture
def user_b() -> Identity:
    """A second ordinary user."""
    return USER_B


@pytest.fixture
def admin_c() -> Identity:
    """Identity that tests promote to admin."""
    return ADMIN_C


def make_sqlite_engine(url: str = "sqlite+aiosqlite:///:memory:", **kwargs) -> AsyncEngine:  # noqa: ANN003
    """
    Async SQLite engine with working SAVEPOINT support.

    The sqlite driver's own transaction handling breaks nested transactions,
    so BEGIN is emitted explicitly instead.
    """
    engine = create_async_engine(url, echo=False, **kwargs)

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record) -> None:  # noqa: ANN001, ARG001
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn) -> None:  # noqa: ANN001
        conn.exec_driver_sql("BEGIN")

    return engine


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Fresh in-memory database per test."""
    engine = make_sqlite_engine(poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Session for service-level tests."""
    async with session_factory() as session:
        yield session


class IdentityState:
    """Mutable holder for the identity the test client presents."""

    def __init__(self) -> None:
        self.identity: Identity | None = None


@pytest.fixture
def identity_state() -> IdentityState:
    return IdentityState()


@pytest.fixture
def act_as(identity_state: IdentityState) -> Callable[[Identity | None], None]:
    """Switch the caller identity for subsequent client requests (None = anonymous)."""

    def _act_as(identity: Identity | None) -> None:
        identity_state.identity = identity

    return _act_as


@pytest.fixture
def promote(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable:
    """Grant the admin role to an already-provisioned subject."""

    async def _promote(subject: str) -> None:
        async with session_factory() as session:
            await session.execute(
                update(User)
                .where(User.external_subject_id == subject)
                .values(role=UserRole.ADMIN),
            )
            await session.commit()

    return _promote


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    identity_state: IdentityState,
) -> AsyncGenerator[AsyncClient]:
    """HTTP client against the app, one committed session per request."""

    async def _session_override() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_session] = _session_override
    app.dependency_overrides[get_optional_identity] = lambda: identity_state.identity

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
