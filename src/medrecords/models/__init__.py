"""Models package - SQLAlchemy ORM models."""
from .audit_log import AuditLog
from .doctor import Doctor
from .patient import Patient
from .user import StaffUser

__all__ = [
    "AuditLog",
    "Doctor",
    "Patient",
    "StaffUser",
]
