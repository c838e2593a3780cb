"""Schemas for the deleted-records view and lifecycle transitions."""
from __future__ import annotations

from pydantic import BaseModel, Field

from ..models.enums import TrackedTable
from .doctor import DoctorResponse
from .patient import PatientResponse


class DeletedRecordsOverview(BaseModel):
    """Both tabs of the deleted-records page, most recently deleted first."""

    doctors: list[DoctorResponse]
    patients: list[PatientResponse]
    doctor_count: int
    patient_count: int


class LifecycleResult(BaseModel):
    """Outcome of a soft delete or restore."""

    table_name: TrackedTable
    record_id: str
    changed: bool = Field(
        description="False when the row was already in the requested state",
    )
    record: DoctorResponse | PatientResponse
