"""RBAC (Role-Based Access Control) FastAPI dependencies.

Every endpoint receives an explicit :class:`SessionContext` rather than
reaching for ambient user state. The role inside it always comes from the
database row, never from the token claim.

Usage:
    @router.get("/admin/endpoint")
    async def admin_endpoint(session: AdminSession):
        ...

    @router.get("/staff/endpoint")
    async def staff_endpoint(session: CurrentSession):
        ...
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.session import get_db
from ..models.enums import StaffRole
from ..repositories.user_repository import StaffUserRepository
from .config import Settings, get_settings
from .exceptions import ForbiddenError, UnauthorizedError
from .security import decode_access_token

logger = structlog.get_logger(__name__)

# Where the console sends a user who opened a view their role cannot see.
ADMIN_REDIRECT_PATH = "/dashboard"

ADMIN_SECTIONS = ("dashboard", "patients", "doctors", "audit-logs", "deleted-records", "users")
STAFF_SECTIONS = ("dashboard", "patients")


@dataclass(frozen=True)
class SessionContext:
    """Authenticated caller, resolved once per request."""

    user_id: int
    email: str
    role: StaffRole
    request_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is StaffRole.ADMIN

    @property
    def sections(self) -> tuple[str, ...]:
        return ADMIN_SECTIONS if self.is_admin else STAFF_SECTIONS


def _bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.lower().startswith("bearer "):
        raise UnauthorizedError(
            message="Missing or invalid Authorization header",
            error_code="UNAUTHORIZED",
        )

    token = auth_header.split(" ", 1)[1].strip()
    if not token:
        raise UnauthorizedError(message="Missing access token", error_code="UNAUTHORIZED")
    return token


async def get_session_context(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    db: AsyncSession = Depends(get_db),
) -> SessionContext:
    """Decode the JWT and build the caller's session from the active user row.

    Raises:
        UnauthorizedError: Missing/invalid/expired token, or user not found.
        ForbiddenError: User account is inactive.
    """
    payload = decode_access_token(_bearer_token(request), settings=settings)

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError) as exc:
        raise UnauthorizedError(message="Invalid token subject", error_code="INVALID_TOKEN") from exc

    user = await StaffUserRepository(db).get_by_id(user_id)
    if not user:
        logger.warning("session_user_not_found", user_id=user_id)
        raise UnauthorizedError(
            message="User not found. Please contact administrator.",
            error_code="USER_NOT_FOUND",
        )

    if not user.is_active:
        logger.warning("inactive_user_access_attempt", user_id=user.id)
        raise ForbiddenError(
            message="Your account has been deactivated. Please contact administrator.",
            error_code="USER_INACTIVE",
        )

    return SessionContext(
        user_id=user.id,
        email=user.email,
        role=StaffRole(user.role),
        request_id=getattr(request.state, "request_id", None),
    )


async def get_optional_session(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    db: AsyncSession = Depends(get_db),
) -> SessionContext | None:
    """Session for callers that sent credentials, None for anonymous ones.

    Credentials that are present are checked exactly like
    :func:`get_session_context` checks them.
    """
    if "Authorization" not in request.headers:
        return None
    return await get_session_context(request, settings, db)


async def require_admin(
    session: Annotated[SessionContext, Depends(get_session_context)],
) -> SessionContext:
    """Require Admin role. Raises ForbiddenError otherwise."""
    if not session.is_admin:
        logger.warning(
            "non_admin_access_attempt",
            user_id=session.user_id,
            role=session.role.value,
        )
        raise ForbiddenError(
            message="Admin access required",
            error_code="ADMIN_REQUIRED",
            details={"redirect_to": ADMIN_REDIRECT_PATH},
        )
    return session


# ---------------------------------------------------------------------------
# Convenient type aliases for endpoint signatures
# ---------------------------------------------------------------------------
CurrentSession = Annotated[SessionContext, Depends(get_session_context)]
AdminSession = Annotated[SessionContext, Depends(require_admin)]
OptionalSession = Annotated[SessionContext | None, Depends(get_optional_session)]
