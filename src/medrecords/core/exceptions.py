"""
Custom Exception Classes.

Provides a hierarchy of domain-specific exceptions that are automatically
converted to appropriate HTTP responses by the global exception handler.
"""

from typing import Any


class AppException(Exception):
    """
    Base exception for all application-specific errors.

    All custom exceptions should inherit from this class.
    The global exception handler converts these to HTTP responses.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "APP_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }

# ============================================
# 4xx Client Errors
# ============================================

class BadRequestError(AppException):
    """Invalid request data or parameters (400)."""

    def __init__(
        self,
        message: str = "Invalid request",
        error_code: str = "BAD_REQUEST",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=400,
            details=details,
        )

class UnauthorizedError(AppException):
    """Authentication required or failed (401)."""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: str = "UNAUTHORIZED",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=401,
            details=details,
        )

class ForbiddenError(AppException):
    """Permission denied (403)."""

    def __init__(
        self,
        message: str = "Permission denied",
        error_code: str = "FORBIDDEN",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=403,
            details=details,
        )

class NotFoundError(AppException):
    """Resource not found (404)."""

    def __init__(
        self,
        message: str = "Resource not found",
        error_code: str = "NOT_FOUND",
        resource_type: str | None = None,
        resource_id: str | int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=404,
            details=details,
        )

class ConflictError(AppException):
    """Resource conflict, e.g., duplicate entry (409)."""

    def __init__(
        self,
        message: str = "Resource conflict",
        error_code: str = "CONFLICT",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=409,
            details=details,
        )

class ValidationError(AppException):
    """Data validation failed (422)."""

    def __init__(
        self,
        message: str = "Validation failed",
        error_code: str = "VALIDATION_ERROR",
        errors: list[dict[str, Any]] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if errors:
            details["validation_errors"] = errors
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=422,
            details=details,
        )

# ============================================
# 5xx Server Errors
# ============================================

class InternalServerError(AppException):
    """Internal server error (500)."""

    def __init__(
        self,
        message: str = "Internal server error",
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=500,
            details=details,
        )

class ExternalServiceError(AppException):
    """External service call failed (502)."""

    def __init__(
        self,
        service_name: str,
        message: str | None = None,
        error_code: str = "EXTERNAL_SERVICE_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["service"] = service_name
        super().__init__(
            message=message or f"External service '{service_name}' is unavailable or returned an error",
            error_code=error_code,
            status_code=502,
            details=details,
        )

# ============================================
# Domain-Specific Exceptions
# ============================================

class DoctorNotFoundError(NotFoundError):
    """Doctor record not found (or soft-deleted when only active rows qualify)."""

    def __init__(self, doctor_id: str | None = None, message: str | None = None) -> None:
        super().__init__(
            message=message or f"Doctor not found: {doctor_id}",
            error_code="DOCTOR_NOT_FOUND",
            resource_type="doctor",
            resource_id=doctor_id,
        )

class PatientNotFoundError(NotFoundError):
    """Patient record not found."""

    def __init__(self, patient_id: str | None = None, message: str | None = None) -> None:
        super().__init__(
            message=message or f"Patient not found: {patient_id}",
            error_code="PATIENT_NOT_FOUND",
            resource_type="patient",
            resource_id=patient_id,
        )

class StaffUserNotFoundError(NotFoundError):
    """Staff user not found."""

    def __init__(self, user_id: int | None = None) -> None:
        super().__init__(
            message=f"User not found: {user_id}",
            error_code="USER_NOT_FOUND",
            resource_type="staff_user",
            resource_id=user_id,
        )

class StaffUserAlreadyExistsError(ConflictError):
    """Staff user with the same email already exists."""

    def __init__(self, email: str) -> None:
        super().__init__(
            message=f"User with email '{email}' already exists",
            error_code="USER_ALREADY_EXISTS",
            details={"email": email},
        )

class DoctorNotAssignableError(ValidationError):
    """Patient assignment points at an unknown or soft-deleted doctor."""

    def __init__(self, doctor_id: str) -> None:
        super().__init__(
            message=f"Doctor '{doctor_id}' does not exist or has been deleted",
            error_code="DOCTOR_NOT_ASSIGNABLE",
            errors=[{"field": "assigned_doctor_id", "message": "Doctor is not assignable"}],
            details={"assigned_doctor_id": doctor_id},
        )

class FileValidationError(BadRequestError):
    """File upload validation failed."""

    def __init__(
        self,
        message: str,
        filename: str | None = None,
        allowed_types: list[str] | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if filename:
            details["filename"] = filename
        if allowed_types:
            details["allowed_types"] = allowed_types
        super().__init__(
            message=message,
            error_code="FILE_VALIDATION_ERROR",
            details=details,
        )

class BlobStoreError(ExternalServiceError):
    """Blob storage upload/delete failed."""

    def __init__(self, message: str, bucket: str | None = None) -> None:
        details: dict[str, Any] = {}
        if bucket:
            details["bucket"] = bucket
        super().__init__(
            service_name="blob_storage",
            message=message,
            error_code="BLOB_STORAGE_ERROR",
            details=details,
        )
