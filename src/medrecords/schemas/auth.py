"""Authentication Schemas for email/password login and password reset."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..models.enums import StaffRole
from .common import check_password_strength
from .user import StaffUserResponse


class LoginRequest(BaseModel):
    """Request schema for email/password login."""

    email: EmailStr = Field(..., examples=["admin@clinic.example"])
    password: str = Field(..., min_length=1, max_length=128)


class TokenResponse(BaseModel):
    """Response schema after successful login."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer")
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: StaffUserResponse

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
            "token_type": "bearer",
            "expires_in": 3600,
            "user": {
                "id": 1,
                "email": "admin@clinic.example",
                "full_name": "Clinic Admin",
                "role": "admin",
                "is_active": True,
                "created_at": "2024-01-01T00:00:00Z",
            },
        }
    })


class SessionResponse(BaseModel):
    """The caller's session context as the console sees it."""

    user_id: int
    email: str
    role: StaffRole
    is_admin: bool
    sections: list[str] = Field(description="Console sections this role may open")


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., max_length=128)

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)
