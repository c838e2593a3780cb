"""
Record Services.

Business logic for doctor and patient records. Each mutation commits the
row change and its audit entry in one transaction.
"""
from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import DoctorNotAssignableError, DoctorNotFoundError, PatientNotFoundError
from ..core.rbac import SessionContext
from ..models.doctor import Doctor
from ..models.enums import AuditAction, TrackedTable
from ..models.patient import Patient
from ..repositories.record_repository import DoctorRepository, PatientRepository
from ..schemas.dashboard import DashboardSummary, RecentPatient
from ..schemas.doctor import DoctorCreate, DoctorOption, DoctorResponse, DoctorUpdate
from ..schemas.patient import PatientCreate, PatientResponse, PatientUpdate
from .audit_service import AuditRecorder

log = structlog.get_logger(__name__)

RECENT_PATIENTS_LIMIT = 5


class DoctorService:
    """Doctor CRUD for the admin Doctors page."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repository = DoctorRepository(session)
        self.audit = AuditRecorder(session)

    async def list(
        self,
        search: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[Sequence[Doctor], int]:
        return await self.repository.list_active(search=search, skip=skip, limit=limit)

    async def get(self, doctor_id: str, include_deleted: bool = False) -> Doctor:
        doctor = await self.repository.get_by_id(doctor_id, include_deleted=include_deleted)
        if doctor is None:
            raise DoctorNotFoundError(doctor_id)
        return doctor

    async def create(self, data: DoctorCreate, actor: SessionContext) -> Doctor:
        doctor = await self.repository.create(**data.model_dump(mode="json"))
        await self.audit.record(AuditAction.INSERT, TrackedTable.DOCTORS, doctor.id, actor)
        await self.session.commit()

        log.info("doctor_created", doctor_id=doctor.id, user_id=actor.user_id)
        return doctor

    async def update(self, doctor_id: str, data: DoctorUpdate, actor: SessionContext) -> Doctor:
        """Partial update of an active doctor. Soft-deleted rows are 404."""
        doctor = await self.get(doctor_id)
        fields = data.model_dump(mode="json", exclude_unset=True)
        if not fields:
            return doctor

        doctor = await self.repository.update_fields(doctor, fields)
        await self.audit.record(AuditAction.UPDATE, TrackedTable.DOCTORS, doctor.id, actor)
        await self.session.commit()

        log.info("doctor_updated", doctor_id=doctor.id, fields=sorted(fields), user_id=actor.user_id)
        return doctor

    async def options(self) -> list[DoctorOption]:
        return [DoctorOption(id=doctor_id, name=name) for doctor_id, name in await self.repository.list_options()]


class PatientService:
    """Patient CRUD for the Patients page."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repository = PatientRepository(session)
        self.doctors = DoctorRepository(session)
        self.audit = AuditRecorder(session)

    async def describe(self, patients: Sequence[Patient]) -> list[PatientResponse]:
        """Attach the assigned doctor's name; deleted doctors show as unassigned."""
        names = await self.doctors.get_active_names(p.assigned_doctor_id for p in patients)
        responses = []
        for patient in patients:
            response = PatientResponse.model_validate(patient)
            response.assigned_doctor_name = names.get(patient.assigned_doctor_id or "")
            responses.append(response)
        return responses

    async def list(
        self,
        search: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[list[PatientResponse], int]:
        patients, total = await self.repository.list_active(search=search, skip=skip, limit=limit)
        return await self.describe(patients), total

    async def get(self, patient_id: str, include_deleted: bool = False) -> Patient:
        patient = await self.repository.get_by_id(patient_id, include_deleted=include_deleted)
        if patient is None:
            raise PatientNotFoundError(patient_id)
        return patient

    async def _check_assignable(self, doctor_id: str | None) -> None:
        if doctor_id is None:
            return
        if await self.doctors.get_by_id(doctor_id) is None:
            raise DoctorNotAssignableError(doctor_id)

    async def create(self, data: PatientCreate, actor: SessionContext) -> Patient:
        await self._check_assignable(data.assigned_doctor_id)

        patient = await self.repository.create(**data.model_dump(mode="json"))
        await self.audit.record(AuditAction.INSERT, TrackedTable.PATIENTS, patient.id, actor)
        await self.session.commit()

        log.info("patient_created", patient_id=patient.id, user_id=actor.user_id)
        return patient

    async def update(self, patient_id: str, data: PatientUpdate, actor: SessionContext) -> Patient:
        patient = await self.get(patient_id)
        fields = data.model_dump(mode="json", exclude_unset=True)
        if not fields:
            return patient

        new_doctor_id = fields.get("assigned_doctor_id")
        if "assigned_doctor_id" in fields and new_doctor_id != patient.assigned_doctor_id:
            await self._check_assignable(new_doctor_id)

        patient = await self.repository.update_fields(patient, fields)
        await self.audit.record(AuditAction.UPDATE, TrackedTable.PATIENTS, patient.id, actor)
        await self.session.commit()

        log.info("patient_updated", patient_id=patient.id, fields=sorted(fields), user_id=actor.user_id)
        return patient


class DashboardService:
    def __init__(self, session: AsyncSession) -> None:
        self.doctors = DoctorRepository(session)
        self.patients = PatientRepository(session)

    async def summary(self) -> DashboardSummary:
        recent = await self.patients.list_recent(limit=RECENT_PATIENTS_LIMIT)
        return DashboardSummary(
            doctor_count=await self.doctors.count_active(),
            patient_count=await self.patients.count_active(),
            recent_patients=[RecentPatient.model_validate(p) for p in recent],
        )


async def describe_record(
    session: AsyncSession,
    table: TrackedTable,
    record: Doctor | Patient,
) -> DoctorResponse | PatientResponse:
    """Response model for a row of either tracked table."""
    if table is TrackedTable.DOCTORS:
        return DoctorResponse.model_validate(record)
    return (await PatientService(session).describe([record]))[0]
