"""Shared FastAPI dependencies for the v1 endpoints."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, UploadFile

from ...core.config import Settings, get_settings
from ...db.session import DbSession
from ...services.attachment_service import AttachmentService
from ...services.blob_storage_service import (
    LocalBlobStorageService,
    S3BlobStorageService,
    get_blob_storage_service,
)
from ...services.record_lifecycle_service import RecordLifecycleService

SettingsDep = Annotated[Settings, Depends(get_settings)]
BlobStoreDep = Annotated[
    LocalBlobStorageService | S3BlobStorageService,
    Depends(get_blob_storage_service),
]


def get_attachment_service(
    db: DbSession,
    blob_store: BlobStoreDep,
    settings: SettingsDep,
) -> AttachmentService:
    return AttachmentService(db, blob_store, settings)


AttachmentServiceDep = Annotated[AttachmentService, Depends(get_attachment_service)]


def get_lifecycle_service(
    db: DbSession,
    attachments: AttachmentServiceDep,
    settings: SettingsDep,
) -> RecordLifecycleService:
    return RecordLifecycleService(db, settings, attachments=attachments)


LifecycleServiceDep = Annotated[RecordLifecycleService, Depends(get_lifecycle_service)]


async def read_upload(file: UploadFile, settings: Settings) -> bytes:
    """Read at most one byte past the size limit so oversized files are caught cheaply."""
    return await file.read(settings.max_file_size_bytes + 1)
