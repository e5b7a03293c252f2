"""Tests for the role-gated /users back-office endpoints."""

import pytest
from sqlalchemy import func, select, update

from storefront.models.refresh_token import RefreshToken
from storefront.models.user import Role, User

from conftest import auth_headers


async def _set_role(session_factory, user_id: int, role: Role) -> None:
    async with session_factory() as db:
        await db.execute(update(User).where(User.id == user_id).values(role=role))
        await db.commit()


@pytest.fixture
def super_admin(signup, session_factory):
    async def _create(phone_number: str = "09121111111") -> dict:
        created = await signup(phone_number=phone_number)
        await _set_role(session_factory, created["user"]["id"], Role.SUPER_ADMIN)
        return created

    return _create


@pytest.mark.asyncio
async def test_regular_user_is_forbidden(async_client, signup):
    created = await signup()
    response = await async_client.get("/users", headers=auth_headers(created["accessToken"]))
    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden"}


@pytest.mark.asyncio
async def test_anonymous_is_unauthorized(async_client):
    response = await async_client.get("/users")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_sub_admin_can_read_but_not_change_roles(async_client, signup, session_factory):
    staff = await signup(phone_number="09122222222")
    await _set_role(session_factory, staff["user"]["id"], Role.SUB_ADMIN)
    customer = await signup()
    headers = auth_headers(staff["accessToken"])

    response = await async_client.get("/users", headers=headers)
    assert response.status_code == 200
    assert {u["phoneNumber"] for u in response.json()} == {"09122222222", "09120000000"}

    response = await async_client.get(f"/users/{customer['user']['id']}", headers=headers)
    assert response.status_code == 200
    assert response.json()["isActive"] is True

    response = await async_client.put(
        f"/users/{customer['user']['id']}/role", json={"role": "SUB_ADMIN"}, headers=headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_super_admin_changes_role(async_client, signup, super_admin):
    admin = await super_admin()
    customer = await signup()

    response = await async_client.put(
        f"/users/{customer['user']['id']}/role",
        json={"role": "SUB_ADMIN"},
        headers=auth_headers(admin["accessToken"]),
    )
    assert response.status_code == 200
    assert response.json()["role"] == "SUB_ADMIN"

    # Authorization reads the stored role, so the customer's old token now passes
    response = await async_client.get("/users", headers=auth_headers(customer["accessToken"]))
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_role_update_validation(async_client, signup, super_admin):
    admin = await super_admin()
    customer = await signup()
    response = await async_client.put(
        f"/users/{customer['user']['id']}/role",
        json={"role": "OWNER"},
        headers=auth_headers(admin["accessToken"]),
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_user_is_404(async_client, super_admin):
    admin = await super_admin()
    headers = auth_headers(admin["accessToken"])
    assert (await async_client.get("/users/9999", headers=headers)).status_code == 404
    assert (await async_client.delete("/users/9999", headers=headers)).status_code == 404


@pytest.mark.asyncio
async def test_super_admin_deletes_user(async_client, signup, super_admin, session_factory):
    admin = await super_admin()
    customer = await signup()

    response = await async_client.delete(
        f"/users/{customer['user']['id']}", headers=auth_headers(admin["accessToken"])
    )
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    async with session_factory() as db:
        remaining = await db.execute(
            select(func.count()).select_from(RefreshToken).where(RefreshToken.user_id == customer["user"]["id"])
        )
        assert remaining.scalar_one() == 0

    # The deleted user's tokens stop working
    response = await async_client.get("/auth/me", headers=auth_headers(customer["accessToken"]))
    assert response.status_code == 401
    response = await async_client.post("/auth/refresh", json={"refreshToken": customer["refreshToken"]})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_super_admin_cannot_delete_self(async_client, super_admin):
    admin = await super_admin()
    response = await async_client.delete(
        f"/users/{admin['user']['id']}", headers=auth_headers(admin["accessToken"])
    )
    assert response.status_code == 403
    assert response.json() == {"error": "You cannot delete your own account"}
