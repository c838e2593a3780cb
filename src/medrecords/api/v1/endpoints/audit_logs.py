"""Audit trail endpoint (admin only, read only)."""
from __future__ import annotations

from fastapi import APIRouter, Query

from ....core.rbac import AdminSession
from ....core.responses import PaginatedResponse, PaginationMeta
from ....db.session import DbSession
from ....models.enums import AuditAction, TrackedTable
from ....schemas.audit import AuditLogResponse
from ....services.audit_service import AuditRecorder
from ..dependencies import SettingsDep

router = APIRouter(prefix="/audit-logs", tags=["Audit Logs"])


@router.get(
    "",
    response_model=PaginatedResponse[AuditLogResponse],
    summary="List audit entries",
    description="Newest first. Page size defaults to the configured audit limit (100).",
)
async def list_audit_logs(
    _: AdminSession,
    db: DbSession,
    settings: SettingsDep,
    table_name: TrackedTable | None = Query(default=None),
    action: AuditAction | None = Query(default=None),
    record_id: str | None = Query(default=None),
    user_id: int | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1, le=500),
) -> PaginatedResponse[AuditLogResponse]:
    page_size = page_size or settings.AUDIT_LOG_DEFAULT_LIMIT
    entries, total = await AuditRecorder(db).list_entries(
        table=table_name,
        action=action,
        record_id=record_id,
        user_id=user_id,
        skip=PaginationMeta.skip_for(page, page_size),
        limit=page_size,
    )
    return PaginatedResponse(
        message="Audit logs retrieved",
        data=[AuditLogResponse.model_validate(e) for e in entries],
        pagination=PaginationMeta.from_total(total, page, page_size),
    )
