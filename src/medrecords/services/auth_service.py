"""
Authentication Service.

Email/password login and the forgot/reset password flow. Responses never
reveal whether an email address belongs to an account.
"""
from __future__ import annotations

import aiosmtplib
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings
from ..core.exceptions import ForbiddenError, UnauthorizedError
from ..core.security import (
    create_access_token,
    create_password_reset_token,
    decode_password_reset_token,
    hash_password,
    password_fingerprint,
    verify_password,
)
from ..models.user import StaffUser
from ..repositories.user_repository import StaffUserRepository
from .email_service import EmailService

log = structlog.get_logger(__name__)


def _inactive_error() -> ForbiddenError:
    return ForbiddenError(
        message="Your account has been deactivated. Please contact administrator.",
        error_code="USER_INACTIVE",
    )


class AuthService:
    def __init__(self, session: AsyncSession, settings: Settings) -> None:
        self.session = session
        self.settings = settings
        self.users = StaffUserRepository(session)

    async def login(self, email: str, password: str) -> tuple[str, int, StaffUser]:
        """Returns ``(access_token, expires_in, user)``."""
        user = await self.users.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            log.warning("login_failed", reason="invalid_credentials")
            raise UnauthorizedError(
                message="Invalid email or password",
                error_code="INVALID_CREDENTIALS",
            )
        if not user.is_active:
            log.warning("login_failed", reason="inactive", user_id=user.id)
            raise _inactive_error()

        await self.users.update_last_login(user.id)
        await self.session.commit()
        await self.session.refresh(user)

        token, expires_in = create_access_token(
            user_id=user.id,
            email=user.email,
            role=user.role,
            settings=self.settings,
        )
        log.info("login_succeeded", user_id=user.id, role=user.role)
        return token, expires_in, user

    def build_reset_link(self, token: str) -> str:
        separator = "&" if "?" in self.settings.PASSWORD_RESET_URL else "?"
        return f"{self.settings.PASSWORD_RESET_URL}{separator}token={token}"

    async def request_password_reset(self, email: str, email_service: EmailService) -> str | None:
        """Issue and mail a reset link when the account exists and is active.

        Returns the issued token (None when nothing was issued) so callers
        and tests can act on it; the HTTP layer never exposes it.
        """
        user = await self.users.get_by_email(email)
        if user is None or not user.is_active:
            log.info("password_reset_not_issued")
            return None

        token = create_password_reset_token(
            user_id=user.id,
            password_hash=user.password_hash,
            settings=self.settings,
        )

        if not email_service.enabled:
            log.warning("password_reset_email_disabled", user_id=user.id)
            return token

        template_vars = email_service.build_template_vars(
            full_name=user.full_name,
            reset_link=self.build_reset_link(token),
        )
        try:
            await email_service.send_password_reset(to_address=user.email, template_vars=template_vars)
        except aiosmtplib.SMTPException as exc:
            log.error("password_reset_email_failed", user_id=user.id, error=str(exc))
            return token

        log.info("password_reset_issued", user_id=user.id)
        return token

    async def reset_password(self, token: str, new_password: str) -> StaffUser:
        payload = decode_password_reset_token(token, settings=self.settings)

        invalid = UnauthorizedError(
            message="Reset link is invalid or has already been used",
            error_code="INVALID_RESET_TOKEN",
        )
        try:
            user_id = int(payload.get("sub"))
        except (TypeError, ValueError) as exc:
            raise invalid from exc

        user = await self.users.get_by_id(user_id)
        if user is None or payload.get("fp") != password_fingerprint(user.password_hash):
            log.warning("password_reset_rejected", user_id=user_id)
            raise invalid
        if not user.is_active:
            raise _inactive_error()

        await self.users.set_password_hash(user, hash_password(new_password))
        await self.session.commit()

        log.info("password_reset_completed", user_id=user.id)
        return user
