"""
Response envelopes shared by every endpoint.

Successful calls answer ``{success, message, data, meta}``; list endpoints
add ``pagination``; failures answer ``{success: false, error, meta}``.
``meta.request_id`` echoes the ``X-Request-ID`` of the call.
"""
from datetime import UTC, datetime
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field

from .config import get_settings

T = TypeVar("T")


class ResponseMeta(BaseModel):
    request_id: str | None = Field(
        default=None,
        description="Request identifier, also sent as X-Request-ID"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Response timestamp (UTC)"
    )
    version: str = Field(
        default_factory=lambda: get_settings().APP_VERSION,
        description="Version of the records API that answered"
    )


class GenericResponse(BaseModel, Generic[T]):
    """Envelope for a single record or a small payload."""

    success: bool = Field(default=True)
    message: str = Field(description="Human-readable outcome, e.g. 'Patient updated'")
    data: T = Field(description="Response payload")
    meta: ResponseMeta = Field(default_factory=ResponseMeta)


class PaginationMeta(BaseModel):
    """Page position of a list response. Pages are 1-indexed."""

    total: int = Field(description="Matching records across all pages")
    page: int = Field(ge=1)
    page_size: int = Field(ge=1, le=500)
    total_pages: int = Field(description="At least 1, even for an empty result")
    has_next: bool
    has_previous: bool

    @staticmethod
    def skip_for(page: int, page_size: int) -> int:
        """Rows to skip before ``page``."""
        return (page - 1) * page_size

    @classmethod
    def from_total(cls, total: int, page: int, page_size: int) -> "PaginationMeta":
        total_pages = max(1, (total + page_size - 1) // page_size)
        return cls(
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1,
        )


class PaginatedResponse(BaseModel, Generic[T]):
    """Envelope for record listings (doctors, patients, audit log, deleted view, users)."""

    success: bool = Field(default=True)
    message: str
    data: list[T] = Field(description="Records on this page")
    pagination: PaginationMeta
    meta: ResponseMeta = Field(default_factory=ResponseMeta)


class ErrorDetail(BaseModel):
    code: str = Field(description="Machine-readable error code, e.g. PATIENT_NOT_FOUND")
    message: str = Field(description="Human-readable error message")
    details: dict | None = Field(
        default=None,
        description="Extra context such as the dashboard redirect on ADMIN_REQUIRED"
    )


class ErrorResponse(BaseModel):
    """Body written by the global exception handlers. Never carries ``data``."""

    success: bool = Field(default=False)
    error: ErrorDetail
    meta: ResponseMeta = Field(default_factory=ResponseMeta)


class HealthCheck(BaseModel):
    status: Literal["healthy", "unhealthy", "degraded"]
    latency_ms: float | None = Field(default=None, description="Probe time in milliseconds")
    message: str | None = None


class HealthResponse(BaseModel):
    """Aggregate of the database and blob storage probes."""

    status: Literal["healthy", "unhealthy", "degraded"]
    service: str
    version: str
    environment: str
    checks: dict[str, HealthCheck] = Field(default_factory=dict)
