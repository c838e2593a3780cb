"""Staff User Repository - Data access layer for RBAC users.

Methods flush but never commit; the calling service owns the transaction.
"""
from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.enums import StaffRole
from ..models.mixins import utc_now
from ..models.user import StaffUser

log = structlog.get_logger(__name__)


class StaffUserRepository:
    """Repository for StaffUser CRUD operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize with database session."""
        self.session = session

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    async def get_by_id(self, user_id: int) -> StaffUser | None:
        """Get user by ID."""
        query = select(StaffUser).where(StaffUser.id == user_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> StaffUser | None:
        """Get user by email address (case-insensitive)."""
        query = select(StaffUser).where(StaffUser.email == email.strip().lower())
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        role: str | None = None,
        is_active: bool | None = None,
    ) -> Sequence[StaffUser]:
        """Get all users with optional filtering."""
        query = select(StaffUser)

        if role:
            query = query.where(StaffUser.role == role)
        if is_active is not None:
            query = query.where(StaffUser.is_active.is_(is_active))

        query = query.order_by(StaffUser.created_at.desc(), StaffUser.id.desc())
        query = query.offset(skip).limit(limit)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def count_all(
        self,
        role: str | None = None,
        is_active: bool | None = None,
    ) -> int:
        """Count total users matching the same filters as get_all."""
        query = select(func.count(StaffUser.id))

        if role:
            query = query.where(StaffUser.role == role)
        if is_active is not None:
            query = query.where(StaffUser.is_active.is_(is_active))

        result = await self.session.execute(query)
        return result.scalar_one()

    async def count_admins(self, active_only: bool = True) -> int:
        return await self.count_all(
            role=StaffRole.ADMIN.value,
            is_active=True if active_only else None,
        )

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    async def create(
        self,
        email: str,
        password_hash: str,
        full_name: str | None = None,
        role: str = StaffRole.STAFF.value,
        is_active: bool = True,
    ) -> StaffUser:
        """Stage a new user and flush to obtain its id."""
        user = StaffUser(
            email=email.strip().lower(),
            full_name=full_name,
            password_hash=password_hash,
            role=role,
            is_active=is_active,
        )
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)

        log.info("staff_user_staged", user_id=user.id, role=role)
        return user

    async def update_fields(
        self,
        user: StaffUser,
        *,
        full_name: str | None = None,
        role: str | None = None,
        is_active: bool | None = None,
    ) -> StaffUser:
        """Apply one or more field updates to a loaded user."""
        if full_name is not None:
            user.full_name = full_name
        if role is not None and role != user.role:
            log.info("staff_user_role_staged", user_id=user.id, old_role=user.role, new_role=role)
            user.role = role
        if is_active is not None:
            user.is_active = is_active
            log.info("staff_user_active_staged", user_id=user.id, is_active=is_active)

        await self.session.flush()
        await self.session.refresh(user)
        return user

    async def set_password_hash(self, user: StaffUser, password_hash: str) -> None:
        user.password_hash = password_hash
        await self.session.flush()

    async def update_last_login(self, user_id: int) -> None:
        """Update user's last login timestamp."""
        stmt = (
            update(StaffUser)
            .where(StaffUser.id == user_id)
            .values(last_login_at=utc_now())
        )
        await self.session.execute(stmt)
