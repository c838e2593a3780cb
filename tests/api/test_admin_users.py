"""API tests for staff user management."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from src.medrecords.models.enums import StaffRole

if TYPE_CHECKING:
    from httpx import AsyncClient

BASE = "/api/v1/admin/users"


@pytest.mark.asyncio
async def test_list_users(
    client: AsyncClient,
    admin_headers: dict[str, str],
    staff_user,
) -> None:
    response = await client.get(BASE, headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["pagination"]["total"] == 2
    assert {u["email"] for u in body["data"]} == {"admin@clinic.example", "nurse@clinic.example"}
    assert all("password_hash" not in u for u in body["data"])


@pytest.mark.asyncio
async def test_list_users_filters(
    client: AsyncClient,
    admin_headers: dict[str, str],
    staff_user,
    make_user,
) -> None:
    await make_user("former@clinic.example", is_active=False)

    staff_only = await client.get(BASE, params={"role": "staff"}, headers=admin_headers)
    assert {u["email"] for u in staff_only.json()["data"]} == {"nurse@clinic.example", "former@clinic.example"}

    inactive = await client.get(BASE, params={"is_active": False}, headers=admin_headers)
    assert [u["email"] for u in inactive.json()["data"]] == ["former@clinic.example"]


@pytest.mark.asyncio
async def test_create_user_can_log_in(client: AsyncClient, admin_headers: dict[str, str]) -> None:
    payload = {
        "email": "reception@clinic.example",
        "full_name": "Front Desk",
        "password": "reception-secret",
    }

    response = await client.post(BASE, json=payload, headers=admin_headers)

    assert response.status_code == 201
    user = response.json()["data"]
    assert user["role"] == "staff"
    assert user["is_active"] is True

    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "reception@clinic.example", "password": "reception-secret"},
    )
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_create_duplicate_user(
    client: AsyncClient,
    admin_headers: dict[str, str],
    staff_user,
) -> None:
    response = await client.post(
        BASE,
        json={"email": staff_user.email, "password": "another-secret"},
        headers=admin_headers,
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "USER_ALREADY_EXISTS"


@pytest.mark.asyncio
async def test_create_user_weak_password(client: AsyncClient, admin_headers: dict[str, str]) -> None:
    response = await client.post(
        BASE,
        json={"email": "weak@clinic.example", "password": "short"},
        headers=admin_headers,
    )

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_get_user(client: AsyncClient, admin_headers: dict[str, str], staff_user) -> None:
    response = await client.get(f"{BASE}/{staff_user.id}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["data"]["email"] == staff_user.email


@pytest.mark.asyncio
async def test_get_unknown_user(client: AsyncClient, admin_headers: dict[str, str]) -> None:
    response = await client.get(f"{BASE}/9999", headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "USER_NOT_FOUND"


@pytest.mark.asyncio
async def test_promote_staff_to_admin(
    client: AsyncClient,
    admin_headers: dict[str, str],
    staff_user,
    staff_headers: dict[str, str],
) -> None:
    response = await client.patch(f"{BASE}/{staff_user.id}", json={"role": "admin"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["data"]["role"] == "admin"
    assert (await client.get("/api/v1/doctors", headers=staff_headers)).status_code == 200


@pytest.mark.asyncio
@pytest.mark.parametrize("change", [{"role": "staff"}, {"is_active": False}])
async def test_last_admin_cannot_be_removed(
    client: AsyncClient,
    admin_user,
    admin_headers: dict[str, str],
    change: dict,
) -> None:
    response = await client.patch(f"{BASE}/{admin_user.id}", json=change, headers=admin_headers)

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "LAST_ADMIN"


@pytest.mark.asyncio
async def test_admin_can_be_demoted_when_another_remains(
    client: AsyncClient,
    admin_headers: dict[str, str],
    make_user,
) -> None:
    other = await make_user("deputy@clinic.example", StaffRole.ADMIN)

    response = await client.patch(f"{BASE}/{other.id}", json={"role": "staff"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["data"]["role"] == "staff"


@pytest.mark.asyncio
async def test_seed_first_admin(client: AsyncClient) -> None:
    """Seeding works on an empty database and then disables itself."""
    payload = {"email": "first@clinic.example", "full_name": "First Admin", "password": "first-admin-secret"}

    response = await client.post(f"{BASE}/seed", json=payload)

    assert response.status_code == 201
    assert response.json()["data"]["role"] == "admin"

    again = await client.post(f"{BASE}/seed", json={**payload, "email": "second@clinic.example"})
    assert again.status_code == 403
    assert again.json()["error"]["code"] == "SEED_DISABLED"


@pytest.mark.asyncio
async def test_seed_disabled_when_admin_exists(client: AsyncClient, admin_user) -> None:
    response = await client.post(
        f"{BASE}/seed",
        json={"email": "intruder@example.com", "password": "intruder-secret"},
    )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "SEED_DISABLED"
