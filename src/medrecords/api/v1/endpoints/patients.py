"""
Patient Endpoints.

Available to every staff user, except soft delete which is admin-only.
Each patient carries the name of its assigned doctor while that doctor is
active.
"""
from __future__ import annotations

from fastapi import APIRouter, File, Query, UploadFile, status

from ....core.exceptions import ForbiddenError
from ....core.rbac import ADMIN_REDIRECT_PATH, AdminSession, CurrentSession
from ....core.responses import GenericResponse, PaginatedResponse, PaginationMeta
from ....db.session import DbSession
from ....models.enums import TrackedTable
from ....schemas.deleted_records import LifecycleResult
from ....schemas.doctor import DoctorOption
from ....schemas.patient import PatientCreate, PatientResponse, PatientUpdate
from ....services.record_service import DoctorService, PatientService
from ..dependencies import AttachmentServiceDep, LifecycleServiceDep, SettingsDep, read_upload

router = APIRouter(prefix="/patients", tags=["Patients"])


@router.get(
    "",
    response_model=PaginatedResponse[PatientResponse],
    summary="List active patients",
    description="Newest first. `search` matches name, diagnosis or contact (case-insensitive).",
)
async def list_patients(
    _: CurrentSession,
    db: DbSession,
    page: int = Query(default=1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(default=20, ge=1, le=100, description="Items per page"),
    search: str | None = Query(default=None, max_length=200),
) -> PaginatedResponse[PatientResponse]:
    skip = PaginationMeta.skip_for(page, page_size)
    patients, total = await PatientService(db).list(search=search, skip=skip, limit=page_size)
    return PaginatedResponse(
        message="Patients retrieved successfully",
        data=patients,
        pagination=PaginationMeta.from_total(total, page, page_size),
    )


@router.get(
    "/doctor-options",
    response_model=GenericResponse[list[DoctorOption]],
    summary="Doctors available for assignment",
    description="Active doctors only, ordered by name.",
)
async def list_doctor_options(_: CurrentSession, db: DbSession) -> GenericResponse[list[DoctorOption]]:
    return GenericResponse(message="Doctor options retrieved", data=await DoctorService(db).options())


@router.post(
    "",
    response_model=GenericResponse[PatientResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a patient",
    responses={422: {"description": "Invalid fields or unassignable doctor"}},
)
async def create_patient(
    payload: PatientCreate,
    session: CurrentSession,
    db: DbSession,
) -> GenericResponse[PatientResponse]:
    service = PatientService(db)
    patient = await service.create(payload, session)
    return GenericResponse(message="Patient created", data=(await service.describe([patient]))[0])


@router.get(
    "/{patient_id}",
    response_model=GenericResponse[PatientResponse],
    summary="Get a patient",
)
async def get_patient(
    patient_id: str,
    session: CurrentSession,
    db: DbSession,
    include_deleted: bool = Query(default=False, description="Admins only: also return a soft-deleted patient"),
) -> GenericResponse[PatientResponse]:
    if include_deleted and not session.is_admin:
        raise ForbiddenError(
            message="Admin access required",
            error_code="ADMIN_REQUIRED",
            details={"redirect_to": ADMIN_REDIRECT_PATH},
        )
    service = PatientService(db)
    patient = await service.get(patient_id, include_deleted=include_deleted)
    return GenericResponse(message="Patient retrieved", data=(await service.describe([patient]))[0])


@router.put(
    "/{patient_id}",
    response_model=GenericResponse[PatientResponse],
    summary="Update a patient",
    description="Partial update. Soft-deleted patients must be restored first (404).",
)
async def update_patient(
    patient_id: str,
    payload: PatientUpdate,
    session: CurrentSession,
    db: DbSession,
) -> GenericResponse[PatientResponse]:
    service = PatientService(db)
    patient = await service.update(patient_id, payload, session)
    return GenericResponse(message="Patient updated", data=(await service.describe([patient]))[0])


@router.delete(
    "/{patient_id}",
    response_model=GenericResponse[LifecycleResult],
    summary="Soft-delete a patient (admin)",
)
async def delete_patient(
    patient_id: str,
    session: AdminSession,
    db: DbSession,
    lifecycle: LifecycleServiceDep,
) -> GenericResponse[LifecycleResult]:
    patient, changed = await lifecycle.soft_delete(TrackedTable.PATIENTS, patient_id, session)
    return GenericResponse(
        message="Patient deleted" if changed else "Patient was already deleted",
        data=LifecycleResult(
            table_name=TrackedTable.PATIENTS,
            record_id=patient.id,
            changed=changed,
            record=(await PatientService(db).describe([patient]))[0],
        ),
    )


@router.put(
    "/{patient_id}/report",
    response_model=GenericResponse[PatientResponse],
    summary="Upload or replace the report image",
    responses={400: {"description": "Unsupported file type or file too large"}},
)
async def upload_patient_report(
    patient_id: str,
    session: CurrentSession,
    db: DbSession,
    settings: SettingsDep,
    attachments: AttachmentServiceDep,
    file: UploadFile = File(..., description="Report image (png, jpg, jpeg, gif, webp)"),
) -> GenericResponse[PatientResponse]:
    content = await read_upload(file, settings)
    patient = await attachments.replace(TrackedTable.PATIENTS, patient_id, file.filename, content, session)
    return GenericResponse(
        message="Patient report updated",
        data=(await PatientService(db).describe([patient]))[0],
    )


@router.delete(
    "/{patient_id}/report",
    response_model=GenericResponse[PatientResponse],
    summary="Remove the report image",
)
async def remove_patient_report(
    patient_id: str,
    session: CurrentSession,
    db: DbSession,
    attachments: AttachmentServiceDep,
) -> GenericResponse[PatientResponse]:
    patient = await attachments.remove(TrackedTable.PATIENTS, patient_id, session)
    return GenericResponse(
        message="Patient report removed",
        data=(await PatientService(db).describe([patient]))[0],
    )
