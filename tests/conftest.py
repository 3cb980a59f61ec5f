"""
Shared fixtures: in-memory SQLite per test, seeded organization data, and an
httpx client wired to the app with the session dependency overridden.
"""

import os

os.environ.setdefault("CHAT_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CHAT_SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")

import uuid  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from unittest.mock import AsyncMock, patch  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

import internal_chat.models  # noqa: E402,F401
from internal_chat.core.auth import create_jwt  # noqa: E402
from internal_chat.core.database import get_session  # noqa: E402
from internal_chat.main import app  # noqa: E402
from internal_chat.models.organization import Department, Organization, OrganizationMember  # noqa: E402
from internal_chat.models.user import User  # noqa: E402


@pytest.fixture
async def session_factory() -> AsyncGenerator[sessionmaker, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        # SQLite leaves FK enforcement (and ON DELETE CASCADE) off by default
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as s:
        yield s


@pytest.fixture
async def seed(session_factory) -> SimpleNamespace:
    """Organization "Acme" with members alice and bob; carol has no organization."""
    org = Organization(name="Acme")
    other_org = Organization(name="Globex")
    alice = User(name="Alice", email="alice@acme.test")
    bob = User(name="Bob", email="bob@acme.test")
    carol = User(name="Carol", email="carol@nowhere.test")
    dave = User(name="Dave", email="dave@globex.test")
    sales = Department(organization_id=org.id, name="Sales")

    async with session_factory() as s:
        s.add_all([org, other_org, alice, bob, carol, dave])
        await s.flush()
        s.add_all([
            sales,
            OrganizationMember(organization_id=org.id, user_id=alice.id, role="admin"),
            OrganizationMember(organization_id=org.id, user_id=bob.id),
            OrganizationMember(organization_id=other_org.id, user_id=dave.id),
        ])
        await s.commit()

    return SimpleNamespace(
        org=org, other_org=other_org, alice=alice, bob=bob, carol=carol, dave=dave, sales=sales
    )


@pytest.fixture(autouse=True)
def no_revocations():
    """JWT revocation lives in Redis; treat every token as live."""
    with patch("internal_chat.core.auth.is_jwt_revoked", AsyncMock(return_value=False)) as mock:
        yield mock


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def _override_session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = _override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def bearer(user_id: uuid.UUID) -> dict[str, str]:
    token, _ = create_jwt(user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """Factory: Authorization headers carrying a fresh session token for a user id."""
    return bearer


@pytest.fixture
def as_alice(seed):
    return bearer(seed.alice.id)


@pytest.fixture
def as_bob(seed):
    return bearer(seed.bob.id)


@pytest.fixture
def as_carol(seed):
    return bearer(seed.carol.id)


@pytest.fixture
def as_dave(seed):
    return bearer(seed.dave.id)
