"""
Doctor Endpoints.

Admin-only management of doctor records:
- paginated, searchable list of active doctors
- create / read / partial update
- soft delete (restore lives under /deleted-records)
- profile image upload and removal
"""
from __future__ import annotations

from fastapi import APIRouter, File, Query, UploadFile, status

from ....core.rbac import AdminSession
from ....core.responses import GenericResponse, PaginatedResponse, PaginationMeta
from ....db.session import DbSession
from ....models.enums import TrackedTable
from ....schemas.deleted_records import LifecycleResult
from ....schemas.doctor import DoctorCreate, DoctorResponse, DoctorUpdate
from ....services.record_service import DoctorService
from ..dependencies import AttachmentServiceDep, LifecycleServiceDep, SettingsDep, read_upload

router = APIRouter(prefix="/doctors", tags=["Doctors"])


@router.get(
    "",
    response_model=PaginatedResponse[DoctorResponse],
    summary="List active doctors",
    description="Newest first. `search` matches name, specialization or email (case-insensitive).",
)
async def list_doctors(
    _: AdminSession,
    db: DbSession,
    page: int = Query(default=1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(default=20, ge=1, le=100, description="Items per page"),
    search: str | None = Query(default=None, max_length=200),
) -> PaginatedResponse[DoctorResponse]:
    skip = PaginationMeta.skip_for(page, page_size)
    doctors, total = await DoctorService(db).list(search=search, skip=skip, limit=page_size)
    return PaginatedResponse(
        message="Doctors retrieved successfully",
        data=[DoctorResponse.model_validate(d) for d in doctors],
        pagination=PaginationMeta.from_total(total, page, page_size),
    )


@router.post(
    "",
    response_model=GenericResponse[DoctorResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a doctor",
)
async def create_doctor(
    payload: DoctorCreate,
    session: AdminSession,
    db: DbSession,
) -> GenericResponse[DoctorResponse]:
    doctor = await DoctorService(db).create(payload, session)
    return GenericResponse(message="Doctor created", data=DoctorResponse.model_validate(doctor))


@router.get(
    "/{doctor_id}",
    response_model=GenericResponse[DoctorResponse],
    summary="Get a doctor",
)
async def get_doctor(
    doctor_id: str,
    _: AdminSession,
    db: DbSession,
    include_deleted: bool = Query(default=False, description="Also return a soft-deleted doctor"),
) -> GenericResponse[DoctorResponse]:
    doctor = await DoctorService(db).get(doctor_id, include_deleted=include_deleted)
    return GenericResponse(message="Doctor retrieved", data=DoctorResponse.model_validate(doctor))


@router.put(
    "/{doctor_id}",
    response_model=GenericResponse[DoctorResponse],
    summary="Update a doctor",
    description="Partial update. Soft-deleted doctors must be restored first (404).",
)
async def update_doctor(
    doctor_id: str,
    payload: DoctorUpdate,
    session: AdminSession,
    db: DbSession,
) -> GenericResponse[DoctorResponse]:
    doctor = await DoctorService(db).update(doctor_id, payload, session)
    return GenericResponse(message="Doctor updated", data=DoctorResponse.model_validate(doctor))


@router.delete(
    "/{doctor_id}",
    response_model=GenericResponse[LifecycleResult],
    summary="Soft-delete a doctor",
    description="Idempotent: deleting an already deleted doctor returns `changed=false`.",
)
async def delete_doctor(
    doctor_id: str,
    session: AdminSession,
    lifecycle: LifecycleServiceDep,
) -> GenericResponse[LifecycleResult]:
    doctor, changed = await lifecycle.soft_delete(TrackedTable.DOCTORS, doctor_id, session)
    return GenericResponse(
        message="Doctor deleted" if changed else "Doctor was already deleted",
        data=LifecycleResult(
            table_name=TrackedTable.DOCTORS,
            record_id=doctor.id,
            changed=changed,
            record=DoctorResponse.model_validate(doctor),
        ),
    )


@router.put(
    "/{doctor_id}/image",
    response_model=GenericResponse[DoctorResponse],
    summary="Upload or replace the profile image",
    responses={400: {"description": "Unsupported file type or file too large"}},
)
async def upload_doctor_image(
    doctor_id: str,
    session: AdminSession,
    settings: SettingsDep,
    attachments: AttachmentServiceDep,
    file: UploadFile = File(..., description="Image file (png, jpg, jpeg, gif, webp)"),
) -> GenericResponse[DoctorResponse]:
    content = await read_upload(file, settings)
    doctor = await attachments.replace(TrackedTable.DOCTORS, doctor_id, file.filename, content, session)
    return GenericResponse(message="Doctor image updated", data=DoctorResponse.model_validate(doctor))


@router.delete(
    "/{doctor_id}/image",
    response_model=GenericResponse[DoctorResponse],
    summary="Remove the profile image",
)
async def remove_doctor_image(
    doctor_id: str,
    session: AdminSession,
    attachments: AttachmentServiceDep,
) -> GenericResponse[DoctorResponse]:
    doctor = await attachments.remove(TrackedTable.DOCTORS, doctor_id, session)
    return GenericResponse(message="Doctor image removed", data=DoctorResponse.model_validate(doctor))
