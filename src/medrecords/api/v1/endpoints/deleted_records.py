"""
Deleted Records Endpoints.

Admin view of soft-deleted doctors and patients, most recently deleted
first, and the restore action.
"""
from __future__ import annotations

from fastapi import APIRouter, Query

from ....core.rbac import AdminSession
from ....core.responses import GenericResponse, PaginatedResponse, PaginationMeta
from ....db.session import DbSession
from ....models.enums import TrackedTable
from ....schemas.deleted_records import DeletedRecordsOverview, LifecycleResult
from ....schemas.doctor import DoctorResponse
from ....schemas.patient import PatientResponse
from ....services.record_service import PatientService, describe_record
from ..dependencies import LifecycleServiceDep

router = APIRouter(prefix="/deleted-records", tags=["Deleted Records"])


@router.get(
    "",
    response_model=GenericResponse[DeletedRecordsOverview],
    summary="Deleted doctors and patients",
)
async def get_deleted_overview(
    _: AdminSession,
    db: DbSession,
    lifecycle: LifecycleServiceDep,
    limit: int = Query(default=100, ge=1, le=500, description="Rows per table"),
) -> GenericResponse[DeletedRecordsOverview]:
    doctors, doctor_count = await lifecycle.list_deleted(TrackedTable.DOCTORS, limit=limit)
    patients, patient_count = await lifecycle.list_deleted(TrackedTable.PATIENTS, limit=limit)
    return GenericResponse(
        message="Deleted records retrieved",
        data=DeletedRecordsOverview(
            doctors=[DoctorResponse.model_validate(d) for d in doctors],
            patients=await PatientService(db).describe(patients),
            doctor_count=doctor_count,
            patient_count=patient_count,
        ),
    )


@router.get(
    "/{table}",
    response_model=PaginatedResponse[DoctorResponse | PatientResponse],
    summary="Deleted rows of one table",
)
async def list_deleted_records(
    table: TrackedTable,
    _: AdminSession,
    db: DbSession,
    lifecycle: LifecycleServiceDep,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> PaginatedResponse[DoctorResponse | PatientResponse]:
    skip = PaginationMeta.skip_for(page, page_size)
    records, total = await lifecycle.list_deleted(table, skip=skip, limit=page_size)
    if table is TrackedTable.DOCTORS:
        data = [DoctorResponse.model_validate(r) for r in records]
    else:
        data = await PatientService(db).describe(records)
    return PaginatedResponse(
        message=f"Deleted {table.value} retrieved",
        data=data,
        pagination=PaginationMeta.from_total(total, page, page_size),
    )


@router.post(
    "/{table}/{record_id}/restore",
    response_model=GenericResponse[LifecycleResult],
    summary="Restore a soft-deleted row",
    description="Idempotent: restoring an active row returns `changed=false`.",
)
async def restore_record(
    table: TrackedTable,
    record_id: str,
    session: AdminSession,
    db: DbSession,
    lifecycle: LifecycleServiceDep,
) -> GenericResponse[LifecycleResult]:
    record, changed = await lifecycle.restore(table, record_id, session)
    return GenericResponse(
        message="Record restored" if changed else "Record was not deleted",
        data=LifecycleResult(
            table_name=table,
            record_id=record.id,
            changed=changed,
            record=await describe_record(db, table, record),
        ),
    )
