"""Audit Log Repository - insert-only access to the audit trail."""
from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.audit_log import AuditLog


class AuditLogRepository:
    """Repository for AuditLog rows: insert and read only."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(
        self,
        *,
        action: str,
        table_name: str,
        record_id: str,
        user_id: int | None,
    ) -> AuditLog:
        """Stage an entry in the caller's transaction."""
        entry = AuditLog(
            action=action,
            table_name=table_name,
            record_id=record_id,
            user_id=user_id,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_entries(
        self,
        *,
        table_name: str | None = None,
        action: str | None = None,
        record_id: str | None = None,
        user_id: int | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[Sequence[AuditLog], int]:
        """Entries newest first, with the total for pagination."""
        conditions = []
        if table_name:
            conditions.append(AuditLog.table_name == table_name)
        if action:
            conditions.append(AuditLog.action == action)
        if record_id:
            conditions.append(AuditLog.record_id == record_id)
        if user_id is not None:
            conditions.append(AuditLog.user_id == user_id)

        count_stmt = select(func.count(AuditLog.id)).where(*conditions)
        total = (await self.session.execute(count_stmt)).scalar() or 0

        stmt = (
            select(AuditLog)
            .where(*conditions)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all(), total
