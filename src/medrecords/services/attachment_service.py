"""
Attachment Service.

Keeps record attachments (doctor profile images, patient report images) and
the blob store consistent:

1. validate the file before touching storage
2. upload it under a fresh path
3. point the row at it and audit the change in one commit; if that fails the
   new blob is removed again
4. only then delete the blob the row used to reference, best-effort, and
   never while an active row still points at it

Blob deletions after a commit never fail the request; a leftover file is
picked up later by :meth:`AttachmentService.sweep_orphans`.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings
from ..core.exceptions import (
    BlobStoreError,
    DoctorNotFoundError,
    FileValidationError,
    PatientNotFoundError,
    UnauthorizedError,
)
from ..core.rbac import SessionContext
from ..models.doctor import Doctor
from ..models.enums import AuditAction, TrackedTable
from ..models.patient import Patient
from ..repositories.record_repository import repository_for
from .audit_service import AuditRecorder
from .blob_storage_service import BlobNotFoundError, BlobStore

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AttachmentSlot:
    """Where a table keeps its attachment: bucket plus the row's url/path columns."""

    table: TrackedTable
    bucket: str
    url_field: str
    path_field: str


def attachment_slot(table: TrackedTable, settings: Settings) -> AttachmentSlot:
    if table is TrackedTable.DOCTORS:
        return AttachmentSlot(table, settings.DOCTOR_IMAGES_BUCKET, "image_url", "image_path")
    return AttachmentSlot(
        table,
        settings.PATIENT_REPORTS_BUCKET,
        "report_image_url",
        "report_image_path",
    )


def record_not_found(table: TrackedTable, record_id: str) -> DoctorNotFoundError | PatientNotFoundError:
    if table is TrackedTable.DOCTORS:
        return DoctorNotFoundError(record_id)
    return PatientNotFoundError(record_id)


def validate_upload(file_name: str | None, content: bytes, settings: Settings) -> None:
    """
    Validate uploaded file type and size.

    Raises:
        FileValidationError: If validation fails
    """
    if not file_name:
        raise FileValidationError(message="Filename is required")

    allowed = settings.allowed_image_extensions_list
    extension = Path(file_name).suffix.lower().lstrip(".")
    if extension not in allowed:
        raise FileValidationError(
            message=f"Invalid file type: {extension or 'none'}",
            filename=file_name,
            allowed_types=allowed,
        )

    if not content:
        raise FileValidationError(message="File is empty", filename=file_name)

    if len(content) > settings.max_file_size_bytes:
        raise FileValidationError(
            message=f"File exceeds the {settings.MAX_FILE_SIZE_MB} MB limit",
            filename=file_name,
        )


class AttachmentService:
    def __init__(self, session: AsyncSession, blob_store: BlobStore, settings: Settings) -> None:
        self.session = session
        self.blob_store = blob_store
        self.settings = settings
        self.audit = AuditRecorder(session)

    async def _get_active(self, table: TrackedTable, record_id: str) -> Doctor | Patient:
        record = await repository_for(table, self.session).get_by_id(record_id)
        if record is None:
            raise record_not_found(table, record_id)
        return record

    async def replace(
        self,
        table: TrackedTable,
        record_id: str,
        file_name: str | None,
        content: bytes,
        actor: SessionContext,
    ) -> Doctor | Patient:
        """Attach a new file to an active row, replacing any previous one."""
        validate_upload(file_name, content, self.settings)

        slot = attachment_slot(table, self.settings)
        repository = repository_for(table, self.session)
        record = await self._get_active(table, record_id)
        previous_path = getattr(record, slot.path_field)

        upload = await self.blob_store.upload(slot.bucket, content, file_name)

        try:
            record = await repository.update_fields(
                record,
                {slot.url_field: upload.url, slot.path_field: upload.path},
            )
            await self.audit.record(AuditAction.UPDATE, table, record.id, actor)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            log.warning(
                "attachment_row_update_failed",
                table=table.value,
                record_id=record_id,
                orphan_path=upload.path,
            )
            await self._remove_quietly(slot.bucket, upload.path)
            raise

        log.info(
            "attachment_replaced",
            table=table.value,
            record_id=record.id,
            path=upload.path,
            previous_path=previous_path,
            user_id=actor.user_id,
        )

        if previous_path and previous_path != upload.path:
            await self.discard(table, previous_path)
        return record

    async def remove(self, table: TrackedTable, record_id: str, actor: SessionContext) -> Doctor | Patient:
        """Detach the current file from an active row, then delete the blob."""
        slot = attachment_slot(table, self.settings)
        record = await self._get_active(table, record_id)
        previous_path = getattr(record, slot.path_field)
        if not previous_path and not getattr(record, slot.url_field):
            return record

        record = await repository_for(table, self.session).update_fields(
            record,
            {slot.url_field: None, slot.path_field: None},
        )
        await self.audit.record(AuditAction.UPDATE, table, record.id, actor)
        await self.session.commit()

        log.info("attachment_removed", table=table.value, record_id=record.id, user_id=actor.user_id)

        if previous_path:
            await self.discard(table, previous_path)
        return record

    async def purge(self, table: TrackedTable, record: Doctor | Patient) -> bool:
        """Best-effort blob removal for a row that has just been soft-deleted.

        The row keeps its url/path columns.
        """
        path = getattr(record, attachment_slot(table, self.settings).path_field)
        if not path:
            return False
        return await self.discard(table, path)

    async def discard(self, table: TrackedTable, path: str) -> bool:
        """Delete a blob unless an active row of ``table`` still references it."""
        slot = attachment_slot(table, self.settings)
        if await repository_for(table, self.session).is_path_referenced(path, active_only=True):
            log.info("blob_delete_skipped_referenced", bucket=slot.bucket, path=path)
            return False
        return await self._remove_quietly(slot.bucket, path)

    async def _remove_quietly(self, bucket: str, path: str) -> bool:
        try:
            return await self.blob_store.remove(bucket, path)
        except BlobStoreError as exc:
            log.warning("blob_delete_failed", bucket=bucket, path=path, error=exc.message)
            return False

    async def ensure_readable(self, bucket: str, path: str, session: SessionContext | None) -> None:
        """
        Gate reads of private attachments.

        Doctor images are public. A patient report needs a signed-in user and
        a patient row pointing at it: an active row for staff, any row for
        admins. Unreferenced reports look missing.

        Raises:
            UnauthorizedError: Anonymous read of a patient report
            BlobNotFoundError: No row visible to the caller references the path
        """
        if bucket != self.settings.PATIENT_REPORTS_BUCKET:
            return
        if session is None:
            raise UnauthorizedError(message="Sign in to view patient reports", error_code="UNAUTHORIZED")

        repository = repository_for(TrackedTable.PATIENTS, self.session)
        if not await repository.is_path_referenced(path, active_only=not session.is_admin):
            log.warning("report_read_refused", path=path, user_id=session.user_id)
            raise BlobNotFoundError(bucket, path)

    async def attachment_exists(self, table: TrackedTable, record: Doctor | Patient) -> bool:
        slot = attachment_slot(table, self.settings)
        path = getattr(record, slot.path_field)
        if not path:
            return True
        try:
            return await self.blob_store.exists(slot.bucket, path)
        except BlobStoreError as exc:
            log.warning("blob_lookup_failed", bucket=slot.bucket, path=path, error=exc.message)
            return True

    async def sweep_orphans(self, grace_seconds: int | None = None) -> dict:
        """Remove blobs no row references (active or deleted) past the grace period."""
        grace = self.settings.BLOB_ORPHAN_GRACE_SECONDS if grace_seconds is None else grace_seconds
        cutoff = datetime.now(UTC) - timedelta(seconds=grace)

        report = {"scanned": 0, "removed": 0, "referenced": 0, "too_recent": 0, "failed": 0}
        for table in TrackedTable:
            slot = attachment_slot(table, self.settings)
            referenced = await repository_for(table, self.session).referenced_paths()

            for blob in await self.blob_store.list_blobs(slot.bucket):
                report["scanned"] += 1
                if blob.path in referenced:
                    report["referenced"] += 1
                elif blob.modified_at > cutoff:
                    report["too_recent"] += 1
                elif await self._remove_quietly(slot.bucket, blob.path):
                    report["removed"] += 1
                else:
                    report["failed"] += 1

        log.info("blob_orphan_sweep_completed", **report)
        return report
