"""Pytest configuration and fixtures.

Every test gets its own SQLite file so committed state never leaks between
tests. Argon2 costs are lowered through the environment before any app
module is imported.
"""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_ACCESS_SECRET"] = "test-access-secret"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret"
os.environ["HASH_TIME_COST"] = "1"
os.environ["HASH_MEMORY_COST"] = "8"
os.environ["HASH_PARALLELISM"] = "1"
os.environ["REVOKED_TOKEN_CLEANUP_INTERVAL_SECONDS"] = "0"

TEST_PHONE = "09120000000"
TEST_PASSWORD = "P@ssw0rd"


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A fresh database with every table created."""
    from storefront.core.database import Base
    from storefront.core import init_db  # noqa: F401  registers the models

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Client against the app with get_db bound to the test database."""
    from storefront.core.database import get_db
    from storefront.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    # https so the Secure refresh cookie is kept by the client
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="https://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def user_factory(db_session):
    """Insert a user directly, bypassing the OTP flow."""
    from storefront.core.security import hash_secret
    from storefront.models.user import Role, User

    async def _create_user(
        phone_number: str = TEST_PHONE,
        password: str = TEST_PASSWORD,
        role: Role = Role.USER,
    ) -> User:
        user = User(
            phone_number=phone_number,
            password_hash=hash_secret(password),
            role=role,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _create_user


@pytest.fixture
def signup(async_client):
    """Run request-otp + signup over HTTP and return the response body."""

    async def _signup(phone_number: str = TEST_PHONE, password: str = TEST_PASSWORD) -> dict:
        response = await async_client.post(
            "/auth/request-otp", json={"phoneNumber": phone_number, "purpose": "signup"}
        )
        assert response.status_code == 200, response.text
        otp = response.json()["otp"]
        response = await async_client.post(
            "/auth/signup",
            json={"phoneNumber": phone_number, "password": password, "otp": otp},
        )
        assert response.status_code == 200, response.text
        return response.json()

    return _signup


def auth_headers(access_token: str) -> dict:
    return {"Authorization": f"Bearer {access_token}"}
