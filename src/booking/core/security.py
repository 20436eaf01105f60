import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from jose import jwt, JWTError
from passlib.context import CryptContext

from src.booking.core.settings import settings


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

OTP_LENGTH = 6


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def generate_otp(length: int = OTP_LENGTH) -> str:
    return "".join(secrets.choice(string.digits) for _ in range(length))


# OTP храним так же, как пароли: только хэш
hash_otp = hash_password
verify_otp = verify_password


def create_access_token(
    subject: str,
    extra: Dict[str, Any] | None = None,
    expires_minutes: int | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=expires_minutes or settings.JWT_EXPIRE_MINUTES)

    payload: Dict[str, Any] = {"sub": subject, "iat": int(now.timestamp()), "exp": int(exp.timestamp())}
    if extra:
        payload.update(extra)

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def create_temp_token(email: str) -> str:
    """Короткоживущий токен для завершения регистрации после проверки OTP."""
    return create_access_token(
        subject=email,
        extra={"email": email, "temporary": True},
        expires_minutes=settings.TEMP_TOKEN_EXPIRE_MINUTES,
    )


def decode_token(token: str) -> Dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
        return payload
    except JWTError as e:
        raise ValueError("Invalid token") from e
