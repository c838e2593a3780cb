"""Repositories package - Data access layer."""
from .audit_log_repository import AuditLogRepository
from .record_repository import DoctorRepository, PatientRepository, repository_for
from .user_repository import StaffUserRepository

__all__ = [
    "AuditLogRepository",
    "DoctorRepository",
    "PatientRepository",
    "StaffUserRepository",
    "repository_for",
]
