"""
Staff User Schemas for RBAC.

Pydantic models for user management requests and responses.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..models.enums import StaffRole
from .common import check_password_strength


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class StaffUserCreate(BaseModel):
    """Schema for creating a new staff user."""

    email: EmailStr = Field(..., examples=["nurse@clinic.example"])
    full_name: str | None = Field(None, max_length=200)
    password: str = Field(..., max_length=128)
    role: StaffRole = Field(
        default=StaffRole.STAFF,
        description="User role: admin, staff",
    )
    is_active: bool = True

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)


class StaffUserUpdate(BaseModel):
    """Schema for updating a staff user."""

    full_name: str | None = Field(None, max_length=200)
    role: StaffRole | None = None
    is_active: bool | None = None


class SeedAdminRequest(BaseModel):
    """Bootstrap the first admin account."""

    email: EmailStr
    full_name: str | None = Field(None, max_length=200)
    password: str = Field(..., max_length=128)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class StaffUserResponse(BaseModel):
    """Schema for user response."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="User ID")
    email: str
    full_name: str | None = None
    role: StaffRole
    is_active: bool
    created_at: datetime
    updated_at: datetime | None = None
    last_login_at: datetime | None = None
