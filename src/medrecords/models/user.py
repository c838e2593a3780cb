"""
Staff User Model for RBAC (Role-Based Access Control).

SQLAlchemy 2.0 ORM model for console users with role management.

Design:
    - Email + password login
    - Closed role set: ADMIN, STAFF
    - Deactivation via is_active flag (inactive users cannot authenticate)
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..db.session import Base
from .enums import StaffRole
from .mixins import TimestampMixin


class StaffUser(TimestampMixin, Base):
    """
    Staff user entity for authentication and authorization.

    Attributes:
        id: Primary key
        email: Unique, lowercase login identifier
        full_name: Display name shown in the console
        password_hash: passlib hash of the password
        role: admin or staff
        is_active: Inactive users cannot authenticate
        last_login_at: Last successful authentication

    Note:
        The JWT ``sub`` claim carries ``id``; the role is always re-read from
        this table, so demoting a user takes effect on their next request.
    """

    __tablename__ = "staff_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="Lowercase login email"
    )
    full_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=StaffRole.STAFF.value,
        index=True,
        comment="User role: admin, staff"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Active status - inactive users cannot authenticate"
    )
    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Last successful authentication timestamp"
    )

    __table_args__ = (
        Index("ix_staff_users_role_active", "role", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<StaffUser(id={self.id}, role='{self.role}', active={self.is_active})>"

    @property
    def is_admin(self) -> bool:
        """Check if user has admin role."""
        return self.role == StaffRole.ADMIN.value and self.is_active
