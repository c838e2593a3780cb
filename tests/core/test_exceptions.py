"""Tests for custom exceptions in core.exceptions."""

from src.medrecords.core.exceptions import (
    AppException,
    BlobStoreError,
    ConflictError,
    DoctorNotAssignableError,
    DoctorNotFoundError,
    FileValidationError,
    ForbiddenError,
    NotFoundError,
    PatientNotFoundError,
    StaffUserAlreadyExistsError,
    UnauthorizedError,
    ValidationError,
)


def test_app_exception_to_dict():
    """Test the to_dict method serialization."""
    exc = AppException("Test message", "TEST_CODE", 400, {"key": "value"})

    assert exc.to_dict() == {
        "error": {"code": "TEST_CODE", "message": "Test message", "details": {"key": "value"}}
    }
    assert str(exc) == "Test message"


def test_status_codes():
    assert UnauthorizedError().status_code == 401
    assert ForbiddenError().status_code == 403
    assert NotFoundError().status_code == 404
    assert ConflictError().status_code == 409
    assert ValidationError().status_code == 422


def test_record_not_found_errors():
    doctor = DoctorNotFoundError("d-1")
    patient = PatientNotFoundError("p-1")

    assert doctor.error_code == "DOCTOR_NOT_FOUND"
    assert doctor.details == {"resource_type": "doctor", "resource_id": "d-1"}
    assert patient.error_code == "PATIENT_NOT_FOUND"
    assert patient.status_code == 404


def test_doctor_not_assignable():
    exc = DoctorNotAssignableError("d-9")

    assert exc.status_code == 422
    assert exc.error_code == "DOCTOR_NOT_ASSIGNABLE"
    assert exc.details["assigned_doctor_id"] == "d-9"
    assert exc.details["validation_errors"][0]["field"] == "assigned_doctor_id"


def test_file_validation_error_details():
    exc = FileValidationError("Bad type", filename="notes.txt", allowed_types=["png"])

    assert exc.status_code == 400
    assert exc.details == {"filename": "notes.txt", "allowed_types": ["png"]}


def test_blob_store_error():
    exc = BlobStoreError("disk full", bucket="doctor-images")

    assert exc.status_code == 502
    assert exc.error_code == "BLOB_STORAGE_ERROR"
    assert exc.details == {"bucket": "doctor-images", "service": "blob_storage"}


def test_user_already_exists():
    exc = StaffUserAlreadyExistsError("nurse@clinic.example")

    assert exc.status_code == 409
    assert exc.details == {"email": "nurse@clinic.example"}
