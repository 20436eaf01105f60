from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from src.booking.api.schemas import (
    AdminRegisterRequest, AdminLoginRequest, EmailRequest, ResetPasswordRequest,
    AuthTokenResponse, MessageResponse, UserResponse,
)
from src.booking.api.deps import (
    UserContext, get_auth_service, get_mail_publisher, get_optional_user_ctx,
)
from src.booking.domain.enums import OtpPurpose
from src.booking.services.auth_service import AuthService
from src.booking.services.mail_dispatch import MailPublisher
from src.booking.api.routers.auth import deliver_otp


router = APIRouter(prefix="/api/admin", tags=["admin-auth"])


@router.post("/register", response_model=AuthTokenResponse, status_code=status.HTTP_201_CREATED)
def register_admin(
    req: AdminRegisterRequest,
    ctx: Optional[UserContext] = Depends(get_optional_user_ctx),
    svc: AuthService = Depends(get_auth_service),
):
    """
    Первый админ регистрируется свободно, последующих добавляет только админ.
    """
    try:
        token, user = svc.register_admin(
            email=req.email,
            password=req.password,
            caller_is_admin=bool(ctx and ctx.is_admin),
            first_name=req.first_name,
            last_name=req.last_name,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return AuthTokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/login", response_model=AuthTokenResponse)
def login_admin(
    req: AdminLoginRequest,
    svc: AuthService = Depends(get_auth_service),
):
    try:
        token, user = svc.admin_login(email=req.email, password=req.password)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))

    return AuthTokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    req: EmailRequest,
    svc: AuthService = Depends(get_auth_service),
    publish: MailPublisher = Depends(get_mail_publisher),
):
    msg = svc.admin_forgot_password(req.email)
    await deliver_otp(svc, publish, OtpPurpose.PASSWORD_RESET, msg)
    return MessageResponse(message="Password reset code sent to your email.")


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    req: ResetPasswordRequest,
    svc: AuthService = Depends(get_auth_service),
):
    try:
        svc.admin_reset_password(email=req.email, otp=req.otp, password=req.password)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return MessageResponse(message="Password has been reset.")
