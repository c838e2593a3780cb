"""Tests for login, session and password reset endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiosmtplib
import pytest

from src.medrecords.main import app
from src.medrecords.services.email_service import EmailService, get_email_service

if TYPE_CHECKING:
    from httpx import AsyncClient


class RecordingEmailService(EmailService):
    """Collects outgoing reset emails instead of talking SMTP."""

    def __init__(self, settings, fail: bool = False) -> None:
        super().__init__(settings)
        self.fail = fail
        self.sent: list[tuple[str, dict[str, str]]] = []

    @property
    def enabled(self) -> bool:
        return True

    async def send_password_reset(self, *, to_address: str, template_vars: dict[str, str]) -> None:
        if self.fail:
            raise aiosmtplib.SMTPServerDisconnected("connection lost")
        self.sent.append((to_address, template_vars))


@pytest.fixture
def outbox(settings) -> RecordingEmailService:
    service = RecordingEmailService(settings)
    app.dependency_overrides[get_email_service] = lambda: service
    return service


def _token_from(template_vars: dict[str, str]) -> str:
    return template_vars["reset_link"].split("token=", 1)[1]


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, admin_user, user_password: str) -> None:
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "ADMIN@clinic.example", "password": user_password},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["token_type"] == "bearer"
    assert data["expires_in"] > 0
    assert data["user"]["email"] == "admin@clinic.example"
    assert data["user"]["role"] == "admin"
    assert data["user"]["last_login_at"] is not None

    me = await client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {data['access_token']}"},
    )
    assert me.status_code == 200
    assert me.json()["data"]["is_admin"] is True


@pytest.mark.asyncio
async def test_login_wrong_password_and_unknown_email_look_the_same(
    client: AsyncClient,
    admin_user,
) -> None:
    wrong = await client.post(
        "/api/v1/auth/login",
        json={"email": "admin@clinic.example", "password": "wrong-password"},
    )
    unknown = await client.post(
        "/api/v1/auth/login",
        json={"email": "nobody@clinic.example", "password": "wrong-password"},
    )

    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json()["error"] == unknown.json()["error"]
    assert wrong.json()["error"]["code"] == "INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_login_inactive_user(client: AsyncClient, make_user, user_password: str) -> None:
    await make_user("inactive@clinic.example", is_active=False)

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "inactive@clinic.example", "password": user_password},
    )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "USER_INACTIVE"


@pytest.mark.asyncio
async def test_me_lists_staff_sections(client: AsyncClient, staff_headers: dict[str, str]) -> None:
    response = await client.get("/api/v1/auth/me", headers=staff_headers)

    data = response.json()["data"]
    assert data["role"] == "staff"
    assert data["is_admin"] is False
    assert data["sections"] == ["dashboard", "patients"]


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_forgot_password_sends_link(
    client: AsyncClient,
    staff_user,
    outbox: RecordingEmailService,
    settings,
) -> None:
    response = await client.post("/api/v1/auth/password/forgot", json={"email": staff_user.email})

    assert response.status_code == 202
    assert response.json()["data"] == {}
    [(to_address, template_vars)] = outbox.sent
    assert to_address == staff_user.email
    assert template_vars["reset_link"].startswith(f"{settings.PASSWORD_RESET_URL}?token=")
    assert template_vars["full_name"] == "Ward Nurse"


@pytest.mark.asyncio
async def test_forgot_password_unknown_email_is_indistinguishable(
    client: AsyncClient,
    outbox: RecordingEmailService,
) -> None:
    response = await client.post("/api/v1/auth/password/forgot", json={"email": "nobody@clinic.example"})

    assert response.status_code == 202
    assert outbox.sent == []


@pytest.mark.asyncio
async def test_forgot_password_smtp_failure_still_accepted(
    client: AsyncClient,
    staff_user,
    settings,
) -> None:
    app.dependency_overrides[get_email_service] = lambda: RecordingEmailService(settings, fail=True)

    response = await client.post("/api/v1/auth/password/forgot", json={"email": staff_user.email})

    assert response.status_code == 202


@pytest.mark.asyncio
async def test_forgot_password_with_email_disabled(client: AsyncClient, staff_user) -> None:
    response = await client.post("/api/v1/auth/password/forgot", json={"email": staff_user.email})

    assert response.status_code == 202


@pytest.mark.asyncio
async def test_reset_password_flow(
    client: AsyncClient,
    staff_user,
    outbox: RecordingEmailService,
    user_password: str,
) -> None:
    """A reset link works once; afterwards only the new password logs in."""
    await client.post("/api/v1/auth/password/forgot", json={"email": staff_user.email})
    token = _token_from(outbox.sent[0][1])

    response = await client.post(
        "/api/v1/auth/password/reset",
        json={"token": token, "new_password": "brand-new-secret"},
    )
    assert response.status_code == 200

    old = await client.post("/api/v1/auth/login", json={"email": staff_user.email, "password": user_password})
    assert old.status_code == 401
    new = await client.post("/api/v1/auth/login", json={"email": staff_user.email, "password": "brand-new-secret"})
    assert new.status_code == 200

    reused = await client.post(
        "/api/v1/auth/password/reset",
        json={"token": token, "new_password": "another-secret-1"},
    )
    assert reused.status_code == 401
    assert reused.json()["error"]["code"] == "INVALID_RESET_TOKEN"


@pytest.mark.asyncio
async def test_reset_password_rejects_short_password(
    client: AsyncClient,
    staff_user,
    outbox: RecordingEmailService,
) -> None:
    await client.post("/api/v1/auth/password/forgot", json={"email": staff_user.email})
    token = _token_from(outbox.sent[0][1])

    response = await client.post("/api/v1/auth/password/reset", json={"token": token, "new_password": "short"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_access_token_is_not_a_reset_token(
    client: AsyncClient,
    staff_headers: dict[str, str],
) -> None:
    access_token = staff_headers["Authorization"].split(" ", 1)[1]

    response = await client.post(
        "/api/v1/auth/password/reset",
        json={"token": access_token, "new_password": "brand-new-secret"},
    )

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_RESET_TOKEN"


@pytest.mark.asyncio
async def test_reset_token_is_not_an_access_token(
    client: AsyncClient,
    staff_user,
    outbox: RecordingEmailService,
) -> None:
    await client.post("/api/v1/auth/password/forgot", json={"email": staff_user.email})
    token = _token_from(outbox.sent[0][1])

    response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
