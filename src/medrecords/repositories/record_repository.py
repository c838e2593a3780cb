"""
Soft-delete aware record repositories.

Data access for the doctors and patients tables. Default reads only see
active rows (``deleted_at IS NULL``). Lifecycle transitions are conditional
single-statement UPDATEs, so two concurrent callers cannot both flip the
same row.

Methods flush but never commit; the calling service commits the row
mutation together with its audit entry.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from ..models.doctor import Doctor
from ..models.enums import TrackedTable
from ..models.mixins import utc_now
from ..models.patient import Patient

RecordT = TypeVar("RecordT", Doctor, Patient)


def like_pattern(term: str) -> str:
    """Build a contains-pattern for ILIKE, escaping the wildcard characters."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SoftDeleteRepository(Generic[RecordT]):
    """Shared queries for tables with a ``deleted_at`` lifecycle column."""

    model: ClassVar[type]
    search_columns: ClassVar[tuple[str, ...]] = ()
    attachment_path_column: ClassVar[str]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_by_id(self, record_id: str, include_deleted: bool = False) -> RecordT | None:
        stmt = select(self.model).where(self.model.id == record_id)
        if not include_deleted:
            stmt = stmt.where(self.model.deleted_at.is_(None))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def reload(self, record_id: str) -> RecordT | None:
        """Re-read a row, overwriting any stale copy in the identity map."""
        stmt = (
            select(self.model)
            .where(self.model.id == record_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    def _search_filter(self, stmt: Select, search: str | None) -> Select:
        term = (search or "").strip()
        if not term or not self.search_columns:
            return stmt
        pattern = like_pattern(term)
        return stmt.where(
            or_(
                *(
                    getattr(self.model, column).ilike(pattern, escape="\\")
                    for column in self.search_columns
                )
            )
        )

    async def list_active(
        self,
        search: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[Sequence[RecordT], int]:
        """Active rows, newest first, with the total for pagination."""
        base = self._search_filter(
            select(self.model).where(self.model.deleted_at.is_(None)),
            search,
        )

        count_stmt = select(func.count()).select_from(base.subquery())
        total = (await self.session.execute(count_stmt)).scalar() or 0

        stmt = (
            base.order_by(self.model.created_at.desc(), self.model.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all(), total

    async def list_deleted(
        self,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[Sequence[RecordT], int]:
        """Soft-deleted rows, most recently deleted first."""
        condition = self.model.deleted_at.is_not(None)

        count_stmt = select(func.count(self.model.id)).where(condition)
        total = (await self.session.execute(count_stmt)).scalar() or 0

        stmt = (
            select(self.model)
            .where(condition)
            .order_by(self.model.deleted_at.desc(), self.model.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all(), total

    async def count_active(self) -> int:
        stmt = select(func.count(self.model.id)).where(self.model.deleted_at.is_(None))
        return (await self.session.execute(stmt)).scalar() or 0

    async def count_deleted(self) -> int:
        stmt = select(func.count(self.model.id)).where(self.model.deleted_at.is_not(None))
        return (await self.session.execute(stmt)).scalar() or 0

    # ==========================================================================
    # Attachment references
    # ==========================================================================

    def _path_column(self) -> InstrumentedAttribute:
        return getattr(self.model, self.attachment_path_column)

    async def is_path_referenced(self, path: str, active_only: bool = True) -> bool:
        """Whether any row (active only, by default) points at ``path``."""
        column = self._path_column()
        stmt = select(func.count(self.model.id)).where(column == path)
        if active_only:
            stmt = stmt.where(self.model.deleted_at.is_(None))
        return ((await self.session.execute(stmt)).scalar() or 0) > 0

    async def referenced_paths(self) -> set[str]:
        """Every attachment path referenced by any row, deleted rows included."""
        column = self._path_column()
        result = await self.session.execute(select(column).where(column.is_not(None)))
        return {path for path in result.scalars().all() if path}

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def create(self, **fields: Any) -> RecordT:
        record = self.model(**fields)
        self.session.add(record)
        await self.session.flush()
        await self.session.refresh(record)
        return record

    async def update_fields(self, record: RecordT, fields: dict[str, Any]) -> RecordT:
        """Apply ``fields`` to a loaded row. Unknown keys are rejected."""
        for key, value in fields.items():
            if not hasattr(record, key):
                raise AttributeError(f"{self.model.__name__} has no field '{key}'")
            setattr(record, key, value)
        record.updated_at = utc_now()
        await self.session.flush()
        await self.session.refresh(record)
        return record

    async def mark_deleted(self, record_id: str) -> bool:
        """Conditionally set ``deleted_at``. Returns True if a row changed."""
        now = utc_now()
        stmt = (
            update(self.model)
            .where(self.model.id == record_id, self.model.deleted_at.is_(None))
            .values(deleted_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def mark_restored(self, record_id: str) -> bool:
        """Conditionally clear ``deleted_at``. Returns True if a row changed."""
        stmt = (
            update(self.model)
            .where(self.model.id == record_id, self.model.deleted_at.is_not(None))
            .values(deleted_at=None, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1


class DoctorRepository(SoftDeleteRepository[Doctor]):
    """Repository for Doctor entity database operations."""

    model = Doctor
    search_columns = ("name", "specialization", "email")
    attachment_path_column = "image_path"

    async def list_options(self) -> Sequence[tuple[str, str]]:
        """Active doctors as ``(id, name)`` pairs for the assignment picker."""
        stmt = (
            select(Doctor.id, Doctor.name)
            .where(Doctor.deleted_at.is_(None))
            .order_by(Doctor.name, Doctor.id)
        )
        result = await self.session.execute(stmt)
        return [(row.id, row.name) for row in result.all()]

    async def get_active_names(self, doctor_ids: Iterable[str | None]) -> dict[str, str]:
        """Map active doctor ids to names; deleted or unknown ids are absent."""
        ids = {doctor_id for doctor_id in doctor_ids if doctor_id}
        if not ids:
            return {}
        stmt = select(Doctor.id, Doctor.name).where(
            Doctor.id.in_(ids),
            Doctor.deleted_at.is_(None),
        )
        result = await self.session.execute(stmt)
        return {row.id: row.name for row in result.all()}


class PatientRepository(SoftDeleteRepository[Patient]):
    """Repository for Patient entity database operations."""

    model = Patient
    search_columns = ("name", "diagnosis", "contact")
    attachment_path_column = "report_image_path"

    async def list_recent(self, limit: int = 5) -> Sequence[Patient]:
        stmt = (
            select(Patient)
            .where(Patient.deleted_at.is_(None))
            .order_by(Patient.created_at.desc(), Patient.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()


def repository_for(table: TrackedTable, session: AsyncSession) -> DoctorRepository | PatientRepository:
    """Repository owning the rows of ``table``."""
    if table is TrackedTable.DOCTORS:
        return DoctorRepository(session)
    return PatientRepository(session)
