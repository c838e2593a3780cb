"""Role matrix: which console sections each role may open."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from src.medrecords.models.enums import StaffRole

if TYPE_CHECKING:
    from httpx import AsyncClient

ADMIN_ONLY = [
    ("GET", "/api/v1/doctors"),
    ("POST", "/api/v1/doctors"),
    ("GET", "/api/v1/doctors/any-id"),
    ("PUT", "/api/v1/doctors/any-id"),
    ("DELETE", "/api/v1/doctors/any-id"),
    ("GET", "/api/v1/audit-logs"),
    ("GET", "/api/v1/deleted-records"),
    ("GET", "/api/v1/deleted-records/patients"),
    ("POST", "/api/v1/deleted-records/patients/any-id/restore"),
    ("GET", "/api/v1/admin/users"),
    ("POST", "/api/v1/admin/users"),
    ("GET", "/api/v1/blobs/stats"),
    ("POST", "/api/v1/blobs/sweep"),
]

STAFF_ALLOWED = [
    ("GET", "/api/v1/dashboard"),
    ("GET", "/api/v1/patients"),
    ("GET", "/api/v1/patients/doctor-options"),
    ("GET", "/api/v1/auth/me"),
]


@pytest.mark.asyncio
@pytest.mark.parametrize(("method", "path"), ADMIN_ONLY)
async def test_staff_is_refused_admin_sections(
    client: AsyncClient,
    staff_headers: dict[str, str],
    make_doctor,
    method: str,
    path: str,
) -> None:
    """Refusal carries the dashboard redirect and no data."""
    await make_doctor("Dr. Hidden")

    response = await client.request(method, path, headers=staff_headers, json={"name": "x"})

    assert response.status_code == 403
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "ADMIN_REQUIRED"
    assert body["error"]["details"] == {"redirect_to": "/dashboard"}
    assert "data" not in body


@pytest.mark.asyncio
@pytest.mark.parametrize(("method", "path"), STAFF_ALLOWED)
async def test_staff_sections(
    client: AsyncClient,
    staff_headers: dict[str, str],
    method: str,
    path: str,
) -> None:
    response = await client.request(method, path, headers=staff_headers)

    assert response.status_code == 200


@pytest.mark.asyncio
@pytest.mark.parametrize(("method", "path"), ADMIN_ONLY[:1] + STAFF_ALLOWED)
async def test_anonymous_is_unauthorized(client: AsyncClient, method: str, path: str) -> None:
    response = await client.request(method, path)

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_tampered_token_is_rejected(client: AsyncClient, staff_headers: dict[str, str]) -> None:
    token = staff_headers["Authorization"].split(" ", 1)[1]
    tampered = token[:-2] + ("AA" if not token.endswith("AA") else "BB")

    response = await client.get("/api/v1/dashboard", headers={"Authorization": f"Bearer {tampered}"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_demoted_admin_loses_access_immediately(
    client: AsyncClient,
    make_user,
    headers_for,
    admin_headers: dict[str, str],
) -> None:
    """The role is read from the user row, not from the token."""
    second_admin = await make_user("second@clinic.example", StaffRole.ADMIN)
    second_headers = headers_for(second_admin)
    assert (await client.get("/api/v1/doctors", headers=second_headers)).status_code == 200

    await client.patch(f"/api/v1/admin/users/{second_admin.id}", json={"role": "staff"}, headers=admin_headers)

    assert (await client.get("/api/v1/doctors", headers=second_headers)).status_code == 403


@pytest.mark.asyncio
async def test_deactivated_user_is_refused(client: AsyncClient, make_user, headers_for) -> None:
    inactive = await make_user("gone@clinic.example", is_active=False)

    response = await client.get("/api/v1/dashboard", headers=headers_for(inactive))

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "USER_INACTIVE"
