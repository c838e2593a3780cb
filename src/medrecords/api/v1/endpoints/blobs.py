"""
Blob Storage Endpoints.

- Serve attachment files from local storage (S3 requests are redirected)
- Doctor images are public; patient reports need a session and a patient row
  that references them
- Storage statistics and the orphan sweep (admin)
"""
from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Query, status
from fastapi import Path as PathParam
from fastapi.responses import FileResponse, RedirectResponse, Response

from ....core.rbac import AdminSession, OptionalSession
from ....core.responses import GenericResponse
from ....services.blob_storage_service import BlobNotFoundError, LocalBlobStorageService, detect_mime_type
from ..dependencies import AttachmentServiceDep, BlobStoreDep

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/blobs", tags=["Blob Storage"])


@router.get(
    "/stats",
    response_model=GenericResponse[dict],
    summary="Get blob storage statistics",
)
async def get_storage_stats(_: AdminSession, blob_store: BlobStoreDep) -> GenericResponse[dict]:
    return GenericResponse(
        message="Storage statistics retrieved",
        data=await blob_store.get_storage_stats(),
    )


@router.post(
    "/sweep",
    response_model=GenericResponse[dict],
    summary="Remove orphaned blobs",
    description=(
        "Deletes blobs that no doctor or patient row (active or deleted) references "
        "and that are older than the grace period."
    ),
)
async def sweep_orphan_blobs(
    session: AdminSession,
    attachments: AttachmentServiceDep,
    grace_seconds: int | None = Query(default=None, ge=0, description="Override BLOB_ORPHAN_GRACE_SECONDS"),
) -> GenericResponse[dict]:
    report = await attachments.sweep_orphans(grace_seconds=grace_seconds)
    logger.info("blob_sweep_requested", user_id=session.user_id)
    return GenericResponse(message="Orphan sweep completed", data=report)


@router.get(
    "/{bucket}/{blob_path}",
    summary="Retrieve a blob file",
    responses={
        200: {"description": "File content"},
        307: {"description": "Redirect to the object store"},
        401: {"description": "Anonymous read of a patient report"},
        404: {"description": "Blob not found"},
    },
)
async def get_blob(
    bucket: Annotated[str, PathParam(description="Bucket, e.g. doctor-images")],
    blob_path: Annotated[str, PathParam(description="Blob path with extension")],
    session: OptionalSession,
    blob_store: BlobStoreDep,
    attachments: AttachmentServiceDep,
) -> Response:
    await attachments.ensure_readable(bucket, blob_path, session)

    if not isinstance(blob_store, LocalBlobStorageService):
        if not await blob_store.exists(bucket, blob_path):
            raise BlobNotFoundError(bucket, blob_path)
        return RedirectResponse(await blob_store.get_public_url(bucket, blob_path))

    file_path = blob_store.resolve_path(bucket, blob_path)
    if not file_path.is_file():
        logger.warning("blob_not_found", bucket=bucket, path=blob_path)
        raise BlobNotFoundError(bucket, blob_path)

    return FileResponse(path=file_path, media_type=detect_mime_type(blob_path), filename=blob_path)


@router.head(
    "/{bucket}/{blob_path}",
    summary="Check if blob exists",
)
async def check_blob_exists(
    bucket: Annotated[str, PathParam(description="Bucket")],
    blob_path: Annotated[str, PathParam(description="Blob path")],
    session: OptionalSession,
    blob_store: BlobStoreDep,
    attachments: AttachmentServiceDep,
) -> Response:
    await attachments.ensure_readable(bucket, blob_path, session)
    if not await blob_store.exists(bucket, blob_path):
        raise BlobNotFoundError(bucket, blob_path)

    headers = {}
    if isinstance(blob_store, LocalBlobStorageService):
        headers["Content-Length"] = str(blob_store.resolve_path(bucket, blob_path).stat().st_size)
    return Response(status_code=status.HTTP_200_OK, headers=headers)
