import logging

from fastapi import APIRouter, Depends, HTTPException, status

from src.booking.api.schemas import (
    EmailRequest, VerifyOtpRequest, CompleteRegistrationRequest,
    AuthTokenResponse, VerifyOtpResponse, MessageResponse, UserResponse,
)
from src.booking.api.deps import get_auth_service, get_mail_publisher, get_verified_email
from src.booking.domain.enums import OtpPurpose
from src.booking.services.auth_service import AuthService
from src.booking.services.mail_dispatch import MailPublisher, publish_mail

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


async def deliver_otp(svc: AuthService, publish: MailPublisher, purpose: OtpPurpose, msg) -> None:
    # без письма код бесполезен: удаляем его и просим повторить
    try:
        await publish_mail(publish, msg)
    except Exception:
        logger.exception("otp mail enqueue failed purpose=%s email=%s", purpose, msg.to)
        svc.discard_otp(purpose, msg.to)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to send the verification email. Please retry.",
        )


@router.post("/send-otp", response_model=MessageResponse)
async def send_otp(
    req: EmailRequest,
    svc: AuthService = Depends(get_auth_service),
    publish: MailPublisher = Depends(get_mail_publisher),
):
    """
    Первый шаг регистрации: код на email (действует 10 минут).
    """
    msg = svc.send_registration_otp(req.email)
    await deliver_otp(svc, publish, OtpPurpose.REGISTRATION, msg)
    return MessageResponse(message="OTP sent to your email.")


@router.post("/login/send-otp", response_model=MessageResponse)
async def send_login_otp(
    req: EmailRequest,
    svc: AuthService = Depends(get_auth_service),
    publish: MailPublisher = Depends(get_mail_publisher),
):
    msg = svc.send_login_otp(req.email)
    await deliver_otp(svc, publish, OtpPurpose.LOGIN, msg)
    return MessageResponse(message="Login OTP sent to your email.")


@router.post("/verify-otp", response_model=VerifyOtpResponse)
def verify_otp(
    req: VerifyOtpRequest,
    svc: AuthService = Depends(get_auth_service),
):
    """
    Проверка кода. Для входа отдаёт обычный токен,
    для регистрации – временный токен на /complete-registration.
    """
    try:
        res = svc.verify_otp(req.email, req.otp)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    user = res["user"]
    return VerifyOtpResponse(
        access_token=res["access_token"],
        kind=res["kind"],
        requires_registration=res["kind"] == "registration",
        user=UserResponse.model_validate(user) if user else None,
    )


@router.post("/complete-registration", response_model=AuthTokenResponse, status_code=status.HTTP_201_CREATED)
def complete_registration(
    req: CompleteRegistrationRequest,
    email: str = Depends(get_verified_email),
    svc: AuthService = Depends(get_auth_service),
):
    try:
        token, user = svc.complete_registration(
            email=email,
            first_name=req.first_name.strip(),
            last_name=req.last_name.strip(),
            phone=req.phone,
            gender=req.gender,
            country=req.country.strip(),
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return AuthTokenResponse(access_token=token, user=UserResponse.model_validate(user))
