"""Dashboard schemas."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class RecentPatient(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    diagnosis: str | None = None
    created_at: datetime


class DashboardSummary(BaseModel):
    doctor_count: int
    patient_count: int
    recent_patients: list[RecentPatient]
