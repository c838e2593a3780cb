"""Audit trail schemas."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from ..models.enums import AuditAction, TrackedTable


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    action: AuditAction
    table_name: TrackedTable
    record_id: str
    user_id: int | None = None
    created_at: datetime
