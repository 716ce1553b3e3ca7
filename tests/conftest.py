"""
Test fixtures for the ManaVault test suite.

This module provides shared fixtures used across all test files:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - cipher / clock: A field cipher with a fixed key and a settable "today"
  - repo: The entity repository, parametrized over the SQL and JSON backends
  - client: Async HTTP test client (unauthenticated)
  - user / second_user / admin: Registered users, each with its own
    Authorization headers
  - authenticated_client: client with the first user's token preset
  - owned_card: A catalog card bought by `user`

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation.
    Each test gets a completely fresh database — no state leaks between tests.
  - get_db, get_cipher and get_clock are overridden so the application code
    runs exactly as in production, against the test database, a known key
    and a controllable calendar date.
  - Users are created through the real register endpoint. The admin is then
    promoted directly in storage, the way an operator would with
    demo/promote_admin.py.
"""

import os
from datetime import date, timedelta

# Must be set before manavault.config builds its settings singleton
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENCRYPTION_KEY", "test-encryption-key")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from manavault.crypto import FieldCipher
from manavault.database import Base, get_db
from manavault.dependencies import get_cipher, get_clock
from manavault.exceptions import ManaVaultError
from manavault.main import app
from manavault.repository.json_file import JsonFileRepository
from manavault.repository.sql import SqlRepository
from manavault.services.identity_service import encrypt_is_admin


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"

TEST_KEY = "ab" * 32
OLD_KEY = "cd" * 32


class FakeClock:
    """A settable calendar date, usable anywhere a Clock is expected."""

    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today

    def advance(self, days: int = 1) -> None:
        self.today += timedelta(days=days)


@pytest.fixture
def cipher():
    return FieldCipher(TEST_KEY)


@pytest.fixture
def clock():
    return FakeClock(date(2026, 3, 14))


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Provide an async session bound to the test engine."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session() as session:
        yield session


@pytest_asyncio.fixture(params=["sql", "json"])
async def repo(request, tmp_path, db_session):
    """The repository under both backends; service tests run once per backend."""
    if request.param == "json":
        return JsonFileRepository(tmp_path / "data")
    return SqlRepository(db_session)


@pytest_asyncio.fixture
async def client(db_engine, cipher, clock):
    """
    Async HTTP test client with the test database, cipher and clock injected.
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except ManaVaultError:
                await session.commit()
                raise
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cipher] = lambda: cipher
    app.dependency_overrides[get_clock] = lambda: clock

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def register_user(client, email: str, password: str, username: str | None = None) -> dict:
    """
    Register via the real endpoint.

    Returns:
        {"id", "email", "password", "token", "headers"} for the new user.
    """
    body = {"email": email, "password": password}
    if username is not None:
        body["username"] = username
    response = await client.post("/auth/register", json=body)
    assert response.status_code == 201, f"Register failed: {response.text}"
    data = response.json()
    return {
        "id": data["user"]["id"],
        "email": email,
        "password": password,
        "token": data["token"],
        "headers": {"Authorization": f"Bearer {data['token']}"},
    }


@pytest_asyncio.fixture
async def user(client):
    return await register_user(client, "testuser@example.com", "SecurePass123", "tester")


@pytest_asyncio.fixture
async def second_user(client):
    """A second user for cross-user authorization tests."""
    return await register_user(client, "seconduser@example.com", "SecurePass456")


@pytest_asyncio.fixture
async def admin(client, db_engine, cipher):
    """
    A registered user promoted to admin directly in storage.

    The token carries no role, so the one issued at registration is already
    an admin token once the flag is stored.
    """
    registered = await register_user(client, "admin@example.com", "AdminPass123")

    async_session = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False,
    )
    async with async_session() as session:
        await SqlRepository(session).users.update(
            registered["id"], {"is_admin": encrypt_is_admin(cipher, True)}
        )
        await session.commit()
    return registered


@pytest_asyncio.fixture
async def authenticated_client(client, user):
    """Test client with the first user's bearer token on every request."""
    client.headers["Authorization"] = f"Bearer {user['token']}"
    return client


@pytest_asyncio.fixture
async def owned_card(client, user, admin):
    """
    A card with base mana 5 and character "Seraphine", bought by `user`.
    """
    response = await client.post(
        "/admin/cards",
        json={"title": "Ember Queen", "character": "Seraphine", "mana": 5},
        headers=admin["headers"],
    )
    assert response.status_code == 201, response.text
    card_id = response.json()["id"]

    response = await client.post(
        "/admin/payments/confirm",
        json={"user_id": user["id"], "kind": "card", "card_id": card_id},
        headers=admin["headers"],
    )
    assert response.status_code == 200, response.text
    return card_id
