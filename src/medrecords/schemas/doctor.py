"""
Doctor Schemas.

Pydantic models for doctor requests and responses.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .common import blank_to_none, require_text


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class DoctorCreate(BaseModel):
    """Schema for creating a doctor."""

    name: str = Field(..., max_length=200, examples=["Dr. Jane Smith"])
    specialization: str | None = Field(None, max_length=200, examples=["Cardiology"])
    email: EmailStr | None = Field(None, examples=["jane.smith@clinic.example"])
    phone: str | None = Field(None, max_length=50)
    experience: int = Field(default=0, ge=0, le=80, description="Years of experience")

    @field_validator("specialization", "email", "phone", mode="before")
    @classmethod
    def empty_as_none(cls, v):
        return blank_to_none(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return require_text(v)


class DoctorUpdate(BaseModel):
    """Partial update; omitted fields keep their current value."""

    name: str | None = Field(None, max_length=200)
    specialization: str | None = Field(None, max_length=200)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    experience: int | None = Field(None, ge=0, le=80)

    @field_validator("specialization", "email", "phone", mode="before")
    @classmethod
    def empty_as_none(cls, v):
        return blank_to_none(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str:
        return require_text(v)

    @field_validator("experience")
    @classmethod
    def validate_experience(cls, v: int | None) -> int:
        if v is None:
            raise ValueError("Experience cannot be null")
        return v


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class DoctorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    specialization: str | None = None
    email: str | None = None
    phone: str | None = None
    experience: int = 0
    image_url: str | None = None
    image_path: str | None = None
    deleted_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class DoctorOption(BaseModel):
    """Entry of the patient form's doctor picker."""

    id: str
    name: str
