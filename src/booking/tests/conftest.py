import os
import re
import tempfile
import uuid
from datetime import date, timedelta

# БД и окружение выставляем до импорта приложения: engine создаётся при импорте
_DB_DIR = tempfile.mkdtemp(prefix="booking-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/test.db"
os.environ["SUPER_ADMIN_EMAIL"] = "root@test.local"

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

from src.booking.main import app as fastapi_app
from src.booking.infra.db import Base, SessionLocal, engine
from src.booking.api.deps import get_otp_store, get_mail_publisher

import src.booking.infra.models  # noqa: F401  (регистрирует таблицы в Base.metadata)


OTP_RE = re.compile(r"Your code: (\d{6})")


class InMemoryOtpStore:
    """Тестовая замена Redis: TTL не моделируется."""

    def __init__(self):
        self.otps: dict[tuple[str, str], str] = {}
        self.verified: dict[str, dict] = {}

    def save_otp(self, purpose, email, otp_hash, ttl_seconds):
        self.otps[(str(purpose), email)] = otp_hash

    def get_otp(self, purpose, email):
        return self.otps.get((str(purpose), email))

    def delete_otp(self, purpose, email):
        self.otps.pop((str(purpose), email), None)

    def mark_verified(self, email, ttl_seconds, **data):
        self.verified[email] = data

    def get_verified(self, email):
        return self.verified.get(email)

    def clear_verified(self, email):
        self.verified.pop(email, None)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _fresh_schema():
    """
    Каждый тест на чистой схеме: проверка конфликтов слотов общесистемная,
    и брони соседних тестов иначе мешали бы друг другу.
    """
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield


@pytest.fixture(scope="session")
def app():
    return fastapi_app


@pytest.fixture
def otp_store():
    return InMemoryOtpStore()


@pytest.fixture
def mailbox():
    """Всё, что ушло бы в очередь писем."""
    return []


@pytest.fixture
async def client(app, otp_store, mailbox):
    """
    HTTP client поверх ASGI приложения (без реального поднятия сервера).
    Redis и RabbitMQ подменены через dependency_overrides.
    """
    async def _publish(payload: dict) -> None:
        mailbox.append(payload)

    app.dependency_overrides[get_otp_store] = lambda: otp_store
    app.dependency_overrides[get_mail_publisher] = lambda: _publish

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def db_session() -> Session:
    """
    Отдельная DB-сессия для прямых проверок состояния.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def random_email():
    def _make(prefix: str = "user") -> str:
        return f"{prefix}_{uuid.uuid4().hex[:8]}@test.local"

    return _make


@pytest.fixture
def auth_headers():
    def _make(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def last_otp(mailbox):
    """Код из последнего письма на адрес."""
    def _get(email: str) -> str:
        for payload in reversed(mailbox):
            if payload["to"] == email:
                m = OTP_RE.search(payload["text"])
                assert m, payload["text"]
                return m.group(1)
        raise AssertionError(f"no mail sent to {email}")

    return _get


@pytest.fixture
def future_monday():
    """Понедельник не ближе чем через две недели."""
    def _make(weeks_ahead: int = 0) -> date:
        today = date.today()
        monday = today + timedelta(days=(7 - today.weekday()) + 14 + 7 * weeks_ahead)
        return monday

    return _make


@pytest.fixture
async def register_user(client, random_email, last_otp):
    """
    Регистрирует пользователя через реальный API (send-otp -> verify-otp -> complete-registration)
    и возвращает (token, email).
    """
    async def _call(email: str | None = None, country: str = "Japan"):
        if email is None:
            email = random_email("u")

        r = await client.post("/api/auth/send-otp", json={"email": email})
        assert r.status_code == 200, r.text

        r = await client.post("/api/auth/verify-otp", json={"email": email, "otp": last_otp(email)})
        assert r.status_code == 200, r.text
        temp_token = r.json()["access_token"]

        r = await client.post(
            "/api/auth/complete-registration",
            headers={"Authorization": f"Bearer {temp_token}"},
            json={
                "first_name": "Test",
                "last_name": "User",
                "phone": "+1" + str(uuid.uuid4().int)[:10],
                "gender": "Female",
                "country": country,
            },
        )
        assert r.status_code == 201, r.text
        return r.json()["access_token"], email

    return _call


@pytest.fixture
async def admin_token(client):
    """Первый админ (он же супер-админ из SUPER_ADMIN_EMAIL)."""
    r = await client.post(
        "/api/admin/register",
        json={"email": "root@test.local", "password": "secret123"},
    )
    assert r.status_code == 201, r.text
    return r.json()["access_token"]


@pytest.fixture
async def create_plan(client, admin_token, auth_headers):
    async def _call(**overrides):
        body = {
            "name": f"Plan {uuid.uuid4().hex[:6]}",
            "sessions_per_month": 4,
            "sessions_per_week": 2,
            "price": 400,
            "currency": "EGP",
            "duration": 30,
            "features": ["1:1 sessions"],
        }
        body.update(overrides)
        r = await client.post("/api/admin/plans", headers=auth_headers(admin_token), json=body)
        assert r.status_code == 201, r.text
        return r.json()

    return _call
