"""
Audit Recorder.

Appends one entry per effective mutation of a tracked row. Entries are
staged in the caller's session, so they commit or roll back together with
the mutation they describe. Reads never record anything.
"""
from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.rbac import SessionContext
from ..models.audit_log import AuditLog
from ..models.enums import AuditAction, TrackedTable
from ..repositories.audit_log_repository import AuditLogRepository

log = structlog.get_logger(__name__)


class AuditRecorder:
    def __init__(self, session: AsyncSession) -> None:
        self.repository = AuditLogRepository(session)

    async def record(
        self,
        action: AuditAction,
        table: TrackedTable,
        record_id: str,
        actor: SessionContext | None,
    ) -> AuditLog:
        entry = await self.repository.add(
            action=action.value,
            table_name=table.value,
            record_id=record_id,
            user_id=actor.user_id if actor else None,
        )
        log.debug(
            "audit_entry_staged",
            action=action.value,
            table=table.value,
            record_id=record_id,
            user_id=entry.user_id,
        )
        return entry

    async def list_entries(
        self,
        *,
        table: TrackedTable | None = None,
        action: AuditAction | None = None,
        record_id: str | None = None,
        user_id: int | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[Sequence[AuditLog], int]:
        return await self.repository.list_entries(
            table_name=table.value if table else None,
            action=action.value if action else None,
            record_id=record_id,
            user_id=user_id,
            skip=skip,
            limit=limit,
        )
