from dataclasses import dataclass
from typing import Generator, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from src.booking.infra.db import SessionLocal
from src.booking.infra.models import UserORM
from src.booking.infra.mq import enqueue_email
from src.booking.infra.otp_store import OtpStore, RedisOtpStore, get_redis_client
from src.booking.core.security import decode_token

from src.booking.infra.uow import SqlAlchemyUoW
from src.booking.domain.contracts.uow import UoW
from src.booking.domain.enums import UserRole

from src.booking.services.auth_service import AuthService
from src.booking.services.plans_service import PlansService
from src.booking.services.subscriptions_service import SubscriptionsService
from src.booking.services.users_service import UsersService
from src.booking.services.admin_subscriptions_service import AdminSubscriptionsService
from src.booking.services.mail_dispatch import MailPublisher


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/admin/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/admin/login", auto_error=False)


@dataclass(frozen=True)
class UserContext:
    """Контекст аутентифицированного пользователя."""
    user_id: int
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def get_db() -> Generator[Session, None, None]:
    """
    Dependency для SQLAlchemy-сессии.
    Сессия создаётся на запрос и гарантированно закрывается.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _unauthorized(detail: str = "Invalid or expired token.") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _resolve_user(db: Session, token: str) -> UserContext:
    try:
        payload = decode_token(token)
        if payload.get("temporary"):
            raise ValueError("temporary token")
        user_id = int(payload["sub"])
    except Exception:
        raise _unauthorized()

    user = (
        db.query(UserORM)
        .filter(UserORM.id == user_id, UserORM.is_active.is_(True))
        .first()
    )
    if not user:
        raise _unauthorized("User not found or inactive.")

    return UserContext(user_id=int(user.id), email=str(user.email), role=str(user.role))


def get_current_user_ctx(
    db: Session = Depends(get_db),
    token: str = Depends(oauth2_scheme),
) -> UserContext:
    """
    Возвращает контекст текущего пользователя:
    - декодирует JWT (временные токены регистрации не принимаются),
    - проверяет, что пользователь существует и активен.
    """
    return _resolve_user(db, token)


def get_optional_user_ctx(
    db: Session = Depends(get_db),
    token: Optional[str] = Depends(optional_oauth2_scheme),
) -> Optional[UserContext]:
    if not token:
        return None
    try:
        return _resolve_user(db, token)
    except HTTPException:
        return None


def require_admin(ctx: UserContext = Depends(get_current_user_ctx)) -> UserContext:
    if not ctx.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required.")
    return ctx


def get_verified_email(token: str = Depends(oauth2_scheme)) -> str:
    """Email из временного токена, выданного после проверки OTP регистрации."""
    try:
        payload = decode_token(token)
    except ValueError:
        raise _unauthorized()
    if not payload.get("temporary") or not payload.get("email"):
        raise _unauthorized("Registration token required.")
    return str(payload["email"])


def get_uow(db: Session = Depends(get_db)) -> UoW:
    """
    Dependency для Unit of Work.
    """
    return SqlAlchemyUoW(db)


def get_otp_store() -> OtpStore:
    return RedisOtpStore(get_redis_client())


def get_mail_publisher() -> MailPublisher:
    return enqueue_email


# Service factories (composition root)
def get_auth_service(
    uow: UoW = Depends(get_uow),
    otp_store: OtpStore = Depends(get_otp_store),
) -> AuthService:
    return AuthService(uow, otp_store)

def get_plans_service(uow: UoW = Depends(get_uow)) -> PlansService:
    return PlansService(uow)

def get_subscriptions_service(uow: UoW = Depends(get_uow)) -> SubscriptionsService:
    return SubscriptionsService(uow)

def get_users_service(uow: UoW = Depends(get_uow)) -> UsersService:
    return UsersService(uow)

def get_admin_subscriptions_service(uow: UoW = Depends(get_uow)) -> AdminSubscriptionsService:
    return AdminSubscriptionsService(uow)
