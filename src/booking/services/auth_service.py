import logging
from datetime import datetime, timezone
from typing import Any, Optional

from src.booking.core.security import (
    hash_password, verify_password, create_access_token, create_temp_token,
    generate_otp, hash_otp, verify_otp,
)
from src.booking.core.settings import settings
from src.booking.domain.contracts.uow import UoW
from src.booking.domain.entities.user import User
from src.booking.domain.enums import OtpPurpose, UserRole
from src.booking.domain.errors import NotFound, Conflict
from src.booking.domain.services.timezones import timezone_for_country
from src.booking.domain.value_objects import MailMessage
from src.booking.infra.otp_store import OtpStore
from src.booking.notifications.emails import otp_email

logger = logging.getLogger(__name__)


def _token_for(user: User) -> str:
    return create_access_token(
        subject=str(user.id),
        extra={"role": str(user.role), "email": user.email},
    )


class AuthService:
    def __init__(self, uow: UoW, otp_store: OtpStore):
        self.uow = uow
        self.otp_store = otp_store

    # --- OTP ---
    def _issue_otp(self, purpose: OtpPurpose, email: str, name: Optional[str] = None) -> MailMessage:
        otp = generate_otp()
        self.otp_store.save_otp(purpose, email, hash_otp(otp), settings.OTP_TTL_SECONDS)
        logger.info("otp issued purpose=%s email=%s", purpose, email)
        return otp_email(email, otp, purpose, name=name)

    def _check_otp(self, purpose: OtpPurpose, email: str, otp: str) -> bool:
        stored = self.otp_store.get_otp(purpose, email)
        if not stored or not verify_otp(otp, stored):
            return False
        # код одноразовый
        self.otp_store.delete_otp(purpose, email)
        return True

    def discard_otp(self, purpose: OtpPurpose, email: str) -> None:
        self.otp_store.delete_otp(purpose, email)

    # --- Пользователи (без пароля) ---
    def send_registration_otp(self, email: str) -> MailMessage:
        if self.uow.users.get_by_email(email):
            raise Conflict("User with this email already exists. Please log in instead.")
        return self._issue_otp(OtpPurpose.REGISTRATION, email)

    def send_login_otp(self, email: str) -> MailMessage:
        user = self.uow.users.get_by_email(email)
        if not user:
            raise NotFound("User not found. Please register first.")
        if not user.is_active:
            raise PermissionError("Account is deactivated.")
        return self._issue_otp(OtpPurpose.LOGIN, email, name=user.display_name)

    def verify_otp(self, email: str, otp: str) -> dict[str, Any]:
        """
        Сначала пробуем код входа (для зарегистрированных), потом код регистрации.
        Вход -> постоянный токен; регистрация -> временный токен на завершение профиля.
        """
        user = self.uow.users.get_by_email(email)
        if user and self._check_otp(OtpPurpose.LOGIN, email, otp):
            if not user.is_active:
                raise PermissionError("Account is deactivated.")
            return {"kind": "login", "access_token": _token_for(user), "user": user}

        if self._check_otp(OtpPurpose.REGISTRATION, email, otp):
            verified_at = datetime.now(timezone.utc).isoformat()
            self.otp_store.mark_verified(email, settings.VERIFIED_EMAIL_TTL_SECONDS, verified_at=verified_at)
            return {"kind": "registration", "access_token": create_temp_token(email), "user": None}

        raise ValueError("Invalid or expired OTP.")

    def complete_registration(
        self,
        email: str,
        first_name: str,
        last_name: str,
        phone: str,
        gender: str,
        country: str,
    ) -> tuple[str, User]:
        try:
            if not self.otp_store.get_verified(email):
                raise ValueError("Email is not verified or verification has expired.")

            if self.uow.users.get_by_email(email):
                raise Conflict("User with this email already exists.")
            if self.uow.users.get_by_phone(phone):
                raise Conflict("Phone number is already in use.")

            user = self.uow.users.create(
                email=email,
                role=UserRole.USER,
                first_name=first_name,
                last_name=last_name,
                phone=phone,
                gender=str(gender),
                country=country,
                timezone=timezone_for_country(country),
                email_verified=True,
            )
            self.uow.commit()

        except Exception:
            self.uow.rollback()
            raise

        self.otp_store.clear_verified(email)
        logger.info("user registered id=%s email=%s", user.id, email)
        return _token_for(user), user

    # --- Администраторы ---
    def register_admin(
        self,
        email: str,
        password: str,
        caller_is_admin: bool = False,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> tuple[str, User]:
        try:
            # первого админа может создать кто угодно, дальше только админ
            if self.uow.users.admin_exists() and not caller_is_admin:
                raise PermissionError("Only an admin can register another admin.")

            if len(password) < 6:
                raise ValueError("Password must be at least 6 characters.")
            if len(password.encode("utf-8")) > 72:
                raise ValueError("Password must not exceed 72 bytes.")

            if self.uow.users.get_by_email(email):
                raise Conflict("User with this email already exists.")

            user = self.uow.users.create(
                email=email,
                role=UserRole.ADMIN,
                first_name=first_name,
                last_name=last_name,
                password_hash=hash_password(password),
                email_verified=True,
            )
            self.uow.commit()

        except Exception:
            self.uow.rollback()
            raise

        logger.info("admin registered id=%s email=%s", user.id, email)
        return _token_for(user), user

    def admin_login(self, email: str, password: str) -> tuple[str, User]:
        creds = self.uow.users.get_auth_credentials(email)
        if not creds or not verify_password(password, creds.password_hash):
            raise ValueError("Invalid credentials.")

        user = self.uow.users.get_by_id(creds.user_id)
        if not user or not user.is_admin:
            raise ValueError("Invalid credentials.")
        if not user.is_active:
            raise PermissionError("Account is deactivated.")

        return _token_for(user), user

    def admin_forgot_password(self, email: str) -> MailMessage:
        user = self.uow.users.get_by_email(email)
        if not user or not user.is_admin:
            raise NotFound("Admin not found.")
        return self._issue_otp(OtpPurpose.PASSWORD_RESET, email, name=user.display_name)

    def admin_reset_password(self, email: str, otp: str, password: str) -> None:
        try:
            user = self.uow.users.get_by_email(email)
            if not user or not user.is_admin:
                raise NotFound("Admin not found.")

            if len(password) < 6:
                raise ValueError("Password must be at least 6 characters.")
            if len(password.encode("utf-8")) > 72:
                raise ValueError("Password must not exceed 72 bytes.")

            if not self._check_otp(OtpPurpose.PASSWORD_RESET, email, otp):
                raise ValueError("Invalid or expired OTP.")

            self.uow.users.set_password_hash(user.id, hash_password(password))
            self.uow.commit()

        except Exception:
            self.uow.rollback()
            raise

        logger.info("admin password reset id=%s", user.id)
