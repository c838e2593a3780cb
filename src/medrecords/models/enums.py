"""Shared Enums for the application.

Defines enum types used across models and schemas.
"""
from enum import Enum


class StaffRole(str, Enum):
    """Staff role enum for authorization.

    Attributes:
        ADMIN: Full console access, including doctors, audit trail and restore
        STAFF: Patient management and the dashboard
    """
    ADMIN = "admin"
    STAFF = "staff"

    @classmethod
    def default(cls) -> "StaffRole":
        """Return the default role for new users."""
        return cls.STAFF


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class AuditAction(str, Enum):
    """Mutation kinds recorded in the audit trail."""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    SOFT_DELETE = "SOFT_DELETE"
    RESTORE = "RESTORE"
    DELETE = "DELETE"


class TrackedTable(str, Enum):
    """Tables whose rows carry a soft-delete lifecycle and an audit trail."""
    DOCTORS = "doctors"
    PATIENTS = "patients"
