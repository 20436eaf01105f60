"""
Хранилище одноразовых кодов и отметок «email подтверждён».

Всё живёт в Redis с TTL, ключ = назначение + email.
В памяти процесса ничего не держим: несколько воркеров API видят одно состояние.
"""
import json
import logging
from typing import Any, Optional, Protocol

import redis

from src.booking.core.settings import settings

logger = logging.getLogger(__name__)


class OtpStore(Protocol):
    def save_otp(self, purpose: str, email: str, otp_hash: str, ttl_seconds: int) -> None: ...
    def get_otp(self, purpose: str, email: str) -> Optional[str]: ...
    def delete_otp(self, purpose: str, email: str) -> None: ...
    def mark_verified(self, email: str, ttl_seconds: int, **data: Any) -> None: ...
    def get_verified(self, email: str) -> Optional[dict[str, Any]]: ...
    def clear_verified(self, email: str) -> None: ...


def _otp_key(purpose: str, email: str) -> str:
    return f"otp:{purpose}:{email.strip().lower()}"


def _verified_key(email: str) -> str:
    return f"verified:{email.strip().lower()}"


class RedisOtpStore:
    def __init__(self, client: "redis.Redis"):
        self.client = client

    def save_otp(self, purpose: str, email: str, otp_hash: str, ttl_seconds: int) -> None:
        self.client.setex(_otp_key(purpose, email), ttl_seconds, otp_hash)
        logger.debug("otp stored purpose=%s email=%s ttl=%s", purpose, email, ttl_seconds)

    def get_otp(self, purpose: str, email: str) -> Optional[str]:
        return self.client.get(_otp_key(purpose, email))

    def delete_otp(self, purpose: str, email: str) -> None:
        self.client.delete(_otp_key(purpose, email))

    def mark_verified(self, email: str, ttl_seconds: int, **data: Any) -> None:
        self.client.setex(_verified_key(email), ttl_seconds, json.dumps(data))

    def get_verified(self, email: str) -> Optional[dict[str, Any]]:
        value = self.client.get(_verified_key(email))
        if value is None:
            return None
        return json.loads(value)

    def clear_verified(self, email: str) -> None:
        self.client.delete(_verified_key(email))


_client: Optional["redis.Redis"] = None


def get_redis_client() -> "redis.Redis":
    global _client
    if _client is None:
        _client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _client
