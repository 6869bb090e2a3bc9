"""
User registration and role management tests.
"""

import pytest
from sqlalchemy import select, func

from backend.app.models.audit_log import AuditLog
from backend.app.models.enums import UserRole
from backend.app.models.rider import RiderApplication
from backend.app.models.rider_enums import RiderStatus
from backend.app.models.user import User


@pytest.mark.asyncio
async def test_registration_is_idempotent(client, headers_for, session_factory):
    headers = headers_for("New.User@Test.com")

    first = await client.post("/v1/users", json={"display_name": "New User", "role": "admin"}, headers=headers)
    assert first.status_code == 201
    assert first.json()["inserted"] is True
    assert first.json()["user"]["email"] == "new.user@test.com"
    assert first.json()["user"]["role"] == "user"

    second = await client.post("/v1/users", json={"display_name": "New User"}, headers=headers)
    assert second.status_code == 200
    assert second.json()["inserted"] is False
    assert second.json()["user"]["id"] == first.json()["user"]["id"]
    assert second.json()["user"]["last_login_at"] is not None

    async with session_factory() as session:
        total = (await session.execute(select(func.count(User.id)))).scalar()
        assert total == 1


@pytest.mark.asyncio
async def test_registration_without_body(client, headers_for):
    response = await client.post("/v1/users", headers=headers_for("plain@test.com"))

    assert response.status_code == 201
    assert response.json()["user"]["display_name"] is None


@pytest.mark.asyncio
async def test_registration_requires_token(client):
    response = await client.post("/v1/users", json={"display_name": "Anon"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_get_me(client, create_user, headers_for):
    await create_user("me@test.com", UserRole.RIDER)

    response = await client.get("/v1/users/me", headers=headers_for("me@test.com"))

    assert response.status_code == 200
    assert response.json()["role"] == "rider"


@pytest.mark.asyncio
async def test_get_role_defaults_to_user(client, create_user, headers_for):
    await create_user("admin@test.com", UserRole.ADMIN)
    headers = headers_for("someone@test.com")

    known = await client.get("/v1/users/admin@test.com/role", headers=headers)
    unknown = await client.get("/v1/users/ghost@test.com/role", headers=headers)

    assert known.json()["role"] == "admin"
    assert unknown.json() == {"email": "ghost@test.com", "role": "user"}


@pytest.mark.asyncio
async def test_user_cannot_promote_themselves(client, create_user, headers_for, session_factory):
    """A USER asking for admin gets 403 and nothing is written."""
    user = await create_user("user@test.com")

    response = await client.patch(
        f"/v1/users/{user.id}/role", json={"role": "admin"}, headers=headers_for("user@test.com", role="admin")
    )

    assert response.status_code == 403
    async with session_factory() as session:
        stored = await session.get(User, user.id)
        assert stored.role == UserRole.USER
        logs = (await session.execute(select(func.count(AuditLog.id)))).scalar()
        assert logs == 0


@pytest.mark.asyncio
async def test_admin_changes_role(client, admin_headers, create_user, session_factory):
    user = await create_user("user@test.com")

    response = await client.patch(f"/v1/users/{user.id}/role", json={"role": "admin"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["role"] == "admin"
    async with session_factory() as session:
        stored = await session.get(User, user.id)
        assert stored.role == UserRole.ADMIN


@pytest.mark.asyncio
async def test_rider_role_requires_approved_application(client, admin_headers, create_user, db_session):
    user = await create_user("user@test.com")

    response = await client.patch(f"/v1/users/{user.id}/role", json={"role": "rider"}, headers=admin_headers)
    assert response.status_code == 400

    db_session.add(RiderApplication(name="User", email="user@test.com", status=RiderStatus.APPROVED))
    await db_session.commit()

    response = await client.patch(f"/v1/users/{user.id}/role", json={"role": "rider"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["role"] == "rider"


@pytest.mark.asyncio
async def test_role_change_for_unknown_user(client, admin_headers):
    response = await client.patch("/v1/users/999/role", json={"role": "admin"}, headers=admin_headers)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_users_admin_only(client, admin_headers, create_user, headers_for):
    await create_user("alice@test.com")
    await create_user("bob@test.com")

    response = await client.get("/v1/users?search=alice", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 1
    assert response.json()["users"][0]["email"] == "alice@test.com"

    response = await client.get("/v1/users", headers=headers_for("alice@test.com"))
    assert response.status_code == 403
