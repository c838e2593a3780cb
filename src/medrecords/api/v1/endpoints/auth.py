"""
Authentication Endpoints.

Email/password login, the caller's session context, and the forgot/reset
password flow used by the console's /reset-password page.
"""
from fastapi import APIRouter, Depends, status

from ....core.rbac import CurrentSession
from ....core.responses import GenericResponse
from ....db.session import DbSession
from ....schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SessionResponse,
    TokenResponse,
)
from ....schemas.user import StaffUserResponse
from ....services.auth_service import AuthService
from ....services.email_service import EmailService, get_email_service
from ..dependencies import SettingsDep

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/login",
    response_model=GenericResponse[TokenResponse],
    summary="Log in with email and password",
    responses={
        401: {"description": "Invalid email or password"},
        403: {"description": "Account deactivated"},
    },
)
async def login(
    payload: LoginRequest,
    db: DbSession,
    settings: SettingsDep,
) -> GenericResponse[TokenResponse]:
    token, expires_in, user = await AuthService(db, settings).login(payload.email, payload.password)
    return GenericResponse(
        message="Login successful",
        data=TokenResponse(
            access_token=token,
            expires_in=expires_in,
            user=StaffUserResponse.model_validate(user),
        ),
    )


@router.get(
    "/me",
    response_model=GenericResponse[SessionResponse],
    summary="Current session",
    description="Who the caller is, their role, and which console sections it opens.",
)
async def get_me(session: CurrentSession) -> GenericResponse[SessionResponse]:
    return GenericResponse(
        message="Session retrieved",
        data=SessionResponse(
            user_id=session.user_id,
            email=session.email,
            role=session.role,
            is_admin=session.is_admin,
            sections=list(session.sections),
        ),
    )


@router.post(
    "/password/forgot",
    response_model=GenericResponse[dict],
    status_code=status.HTTP_202_ACCEPTED,
    summary="Request a password reset link",
    description="Always answers 202 so the response does not reveal whether the email is registered.",
)
async def forgot_password(
    payload: ForgotPasswordRequest,
    db: DbSession,
    settings: SettingsDep,
    email_service: EmailService = Depends(get_email_service),
) -> GenericResponse[dict]:
    await AuthService(db, settings).request_password_reset(payload.email, email_service)
    return GenericResponse(
        message="If the account exists, a reset link has been sent",
        data={},
    )


@router.post(
    "/password/reset",
    response_model=GenericResponse[dict],
    summary="Set a new password with a reset token",
    responses={401: {"description": "Token invalid, expired or already used"}},
)
async def reset_password(
    payload: ResetPasswordRequest,
    db: DbSession,
    settings: SettingsDep,
) -> GenericResponse[dict]:
    await AuthService(db, settings).reset_password(payload.token, payload.new_password)
    return GenericResponse(message="Password updated", data={})
