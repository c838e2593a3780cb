"""Staff user management for admins, plus the first-admin bootstrap."""
from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    ConflictError,
    ForbiddenError,
    StaffUserAlreadyExistsError,
    StaffUserNotFoundError,
)
from ..core.rbac import SessionContext
from ..core.security import hash_password
from ..models.enums import StaffRole
from ..models.user import StaffUser
from ..repositories.user_repository import StaffUserRepository
from ..schemas.user import SeedAdminRequest, StaffUserCreate, StaffUserUpdate

log = structlog.get_logger(__name__)


class StaffUserService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.users = StaffUserRepository(session)

    async def list(
        self,
        skip: int = 0,
        limit: int = 100,
        role: StaffRole | None = None,
        is_active: bool | None = None,
    ) -> tuple[Sequence[StaffUser], int]:
        role_value = role.value if role else None
        users = await self.users.get_all(skip=skip, limit=limit, role=role_value, is_active=is_active)
        total = await self.users.count_all(role=role_value, is_active=is_active)
        return users, total

    async def get(self, user_id: int) -> StaffUser:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise StaffUserNotFoundError(user_id)
        return user

    async def create(self, data: StaffUserCreate, actor: SessionContext) -> StaffUser:
        if await self.users.get_by_email(data.email):
            raise StaffUserAlreadyExistsError(data.email)

        user = await self.users.create(
            email=data.email,
            full_name=data.full_name,
            password_hash=hash_password(data.password),
            role=data.role.value,
            is_active=data.is_active,
        )
        await self.session.commit()

        log.info("staff_user_created", user_id=user.id, role=user.role, created_by=actor.user_id)
        return user

    async def update(self, user_id: int, data: StaffUserUpdate, actor: SessionContext) -> StaffUser:
        user = await self.get(user_id)

        demoting = data.role is not None and data.role is not StaffRole.ADMIN
        deactivating = data.is_active is False
        if user.is_admin and (demoting or deactivating) and await self.users.count_admins() <= 1:
            raise ConflictError(
                message="The last active admin cannot be demoted or deactivated",
                error_code="LAST_ADMIN",
            )

        user = await self.users.update_fields(
            user,
            full_name=data.full_name,
            role=data.role.value if data.role else None,
            is_active=data.is_active,
        )
        await self.session.commit()

        log.info("staff_user_updated", user_id=user.id, updated_by=actor.user_id)
        return user

    async def seed_admin(self, data: SeedAdminRequest) -> StaffUser:
        """Create the first admin; refused once any admin exists."""
        if await self.users.count_admins(active_only=False) > 0:
            raise ForbiddenError(
                message="Admin users already exist. Use the authenticated POST /admin/users endpoint instead.",
                error_code="SEED_DISABLED",
            )
        if await self.users.get_by_email(data.email):
            raise ConflictError(message="User with this email already exists", error_code="USER_ALREADY_EXISTS")

        user = await self.users.create(
            email=data.email,
            full_name=data.full_name,
            password_hash=hash_password(data.password),
            role=StaffRole.ADMIN.value,
        )
        await self.session.commit()

        log.info("staff_admin_seeded", user_id=user.id)
        return user
