"""
Patient Schemas.

Pydantic models for patient requests and responses.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.enums import Gender
from .common import blank_to_none, require_text


class PatientCreate(BaseModel):
    """Schema for creating a patient."""

    name: str = Field(..., max_length=200, examples=["John Doe"])
    age: int = Field(..., gt=0, le=150, examples=[42])
    gender: Gender | None = None
    contact: str | None = Field(None, max_length=100)
    diagnosis: str | None = None
    assigned_doctor_id: str | None = Field(
        None,
        description="Active doctor to assign; omit or null for unassigned",
    )

    @field_validator("contact", "diagnosis", "assigned_doctor_id", "gender", mode="before")
    @classmethod
    def empty_as_none(cls, v):
        return blank_to_none(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return require_text(v)


class PatientUpdate(BaseModel):
    """Partial update; an explicit null ``assigned_doctor_id`` unassigns."""

    name: str | None = Field(None, max_length=200)
    age: int | None = Field(None, gt=0, le=150)
    gender: Gender | None = None
    contact: str | None = Field(None, max_length=100)
    diagnosis: str | None = None
    assigned_doctor_id: str | None = None

    @field_validator("contact", "diagnosis", "assigned_doctor_id", "gender", mode="before")
    @classmethod
    def empty_as_none(cls, v):
        return blank_to_none(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str:
        return require_text(v)

    @field_validator("age")
    @classmethod
    def validate_age(cls, v: int | None) -> int:
        if v is None:
            raise ValueError("Age cannot be null")
        return v


class PatientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    age: int
    gender: Gender | None = None
    contact: str | None = None
    diagnosis: str | None = None
    assigned_doctor_id: str | None = None
    assigned_doctor_name: str | None = Field(
        None,
        description="Name of the assigned doctor while that doctor is active",
    )
    report_image_url: str | None = None
    report_image_path: str | None = None
    deleted_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
