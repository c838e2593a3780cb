"""
Record Lifecycle Service.

Soft delete and restore for doctors and patients. Each transition is a
single conditional UPDATE plus its audit entry, committed together. Asking
for a state the row is already in changes nothing, records nothing and
reports ``changed=False``.
"""
from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings
from ..core.rbac import SessionContext
from ..models.doctor import Doctor
from ..models.enums import AuditAction, TrackedTable
from ..models.patient import Patient
from ..repositories.record_repository import repository_for
from .attachment_service import AttachmentService, record_not_found
from .audit_service import AuditRecorder

log = structlog.get_logger(__name__)


class RecordLifecycleService:
    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        attachments: AttachmentService | None = None,
    ) -> None:
        self.session = session
        self.settings = settings
        self.attachments = attachments
        self.audit = AuditRecorder(session)

    async def soft_delete(
        self,
        table: TrackedTable,
        record_id: str,
        actor: SessionContext,
    ) -> tuple[Doctor | Patient, bool]:
        repository = repository_for(table, self.session)

        changed = await repository.mark_deleted(record_id)
        if changed:
            await self.audit.record(AuditAction.SOFT_DELETE, table, record_id, actor)
            await self.session.commit()

        record = await repository.reload(record_id)
        if record is None:
            raise record_not_found(table, record_id)

        if not changed:
            log.info("record_already_deleted", table=table.value, record_id=record_id)
            return record, False

        log.info("record_soft_deleted", table=table.value, record_id=record_id, user_id=actor.user_id)

        if self.attachments is not None and self.settings.PURGE_ATTACHMENTS_ON_SOFT_DELETE:
            await self.attachments.purge(table, record)
        return record, True

    async def restore(
        self,
        table: TrackedTable,
        record_id: str,
        actor: SessionContext,
    ) -> tuple[Doctor | Patient, bool]:
        repository = repository_for(table, self.session)

        changed = await repository.mark_restored(record_id)
        if changed:
            await self.audit.record(AuditAction.RESTORE, table, record_id, actor)
            await self.session.commit()

        record = await repository.reload(record_id)
        if record is None:
            raise record_not_found(table, record_id)

        if not changed:
            log.info("record_already_active", table=table.value, record_id=record_id)
            return record, False

        log.info("record_restored", table=table.value, record_id=record_id, user_id=actor.user_id)

        if self.attachments is not None and not await self.attachments.attachment_exists(table, record):
            log.warning("restored_record_attachment_missing", table=table.value, record_id=record_id)
        return record, True

    async def list_deleted(
        self,
        table: TrackedTable,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[Sequence[Doctor | Patient], int]:
        return await repository_for(table, self.session).list_deleted(skip=skip, limit=limit)
