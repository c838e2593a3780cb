"""
Admin User Management API Endpoints.

- List / get staff users
- Create users and change role, name or active flag
- Public, self-disabling bootstrap of the first admin

Every endpoint except ``/seed`` declares ``AdminSession``.
"""
from __future__ import annotations

from fastapi import APIRouter, Query, status

from ....core.rbac import AdminSession
from ....core.responses import GenericResponse, PaginatedResponse, PaginationMeta
from ....db.session import DbSession
from ....models.enums import StaffRole
from ....schemas.user import SeedAdminRequest, StaffUserCreate, StaffUserResponse, StaffUserUpdate
from ....services.user_service import StaffUserService

router = APIRouter(prefix="/admin/users", tags=["Admin - User Management"])


@router.get(
    "",
    response_model=PaginatedResponse[StaffUserResponse],
    summary="List staff users",
)
async def list_users(
    _: AdminSession,
    db: DbSession,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    role: StaffRole | None = Query(None, description="Filter by role (admin, staff)"),
    is_active: bool | None = Query(None, description="Filter by active status"),
) -> PaginatedResponse[StaffUserResponse]:
    users, total = await StaffUserService(db).list(
        skip=PaginationMeta.skip_for(page, page_size),
        limit=page_size,
        role=role,
        is_active=is_active,
    )
    return PaginatedResponse(
        message="Users retrieved",
        data=[StaffUserResponse.model_validate(u) for u in users],
        pagination=PaginationMeta.from_total(total, page, page_size),
    )


@router.post(
    "/seed",
    response_model=GenericResponse[StaffUserResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Seed initial admin user (no auth required)",
    description=(
        "Create the first admin when no admin exists. Publicly accessible but "
        "self-disabling: once any admin exists it returns 403."
    ),
)
async def seed_admin_user(payload: SeedAdminRequest, db: DbSession) -> GenericResponse[StaffUserResponse]:
    user = await StaffUserService(db).seed_admin(payload)
    return GenericResponse(
        message="Initial admin user seeded successfully",
        data=StaffUserResponse.model_validate(user),
    )


@router.post(
    "",
    response_model=GenericResponse[StaffUserResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a staff user",
)
async def create_user(
    payload: StaffUserCreate,
    session: AdminSession,
    db: DbSession,
) -> GenericResponse[StaffUserResponse]:
    user = await StaffUserService(db).create(payload, session)
    return GenericResponse(message="User created", data=StaffUserResponse.model_validate(user))


@router.get(
    "/{user_id}",
    response_model=GenericResponse[StaffUserResponse],
    summary="Get user by ID",
)
async def get_user(user_id: int, _: AdminSession, db: DbSession) -> GenericResponse[StaffUserResponse]:
    user = await StaffUserService(db).get(user_id)
    return GenericResponse(message="User retrieved", data=StaffUserResponse.model_validate(user))


@router.patch(
    "/{user_id}",
    response_model=GenericResponse[StaffUserResponse],
    summary="Update role, name or active flag",
    responses={409: {"description": "Would leave no active admin"}},
)
async def update_user(
    user_id: int,
    payload: StaffUserUpdate,
    session: AdminSession,
    db: DbSession,
) -> GenericResponse[StaffUserResponse]:
    user = await StaffUserService(db).update(user_id, payload, session)
    return GenericResponse(message="User updated", data=StaffUserResponse.model_validate(user))
