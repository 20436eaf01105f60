import re

import pytest

from src.booking.api.deps import get_mail_publisher
from src.booking.infra.uow import SqlAlchemyUoW
from src.booking.services.auth_service import AuthService

pytestmark = pytest.mark.anyio

CODE_RE = re.compile(r"Your code: (\d{6})")


async def test_registration_flow(client, register_user, auth_headers):
    token, email = await register_user(country="Egypt")

    r = await client.get("/api/user/profile", headers=auth_headers(token))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["email"] == email
    assert body["country"] == "Egypt"
    assert body["timezone"] == "Africa/Cairo"
    assert body["role"] == "User"
    assert body["email_verified"] is True


async def test_send_otp_for_existing_user_conflicts(client, register_user):
    _, email = await register_user()
    r = await client.post("/api/auth/send-otp", json={"email": email})
    assert r.status_code == 409, r.text


async def test_invalid_email_is_rejected(client):
    r = await client.post("/api/auth/send-otp", json={"email": "not-an-email"})
    assert r.status_code == 422, r.text


async def test_wrong_otp(client, random_email, last_otp):
    email = random_email()
    r = await client.post("/api/auth/send-otp", json={"email": email})
    assert r.status_code == 200, r.text
    good = last_otp(email)
    bad = "000000" if good != "000000" else "111111"

    r = await client.post("/api/auth/verify-otp", json={"email": email, "otp": bad})
    assert r.status_code == 400, r.text

    r = await client.post("/api/auth/verify-otp", json={"email": email, "otp": good})
    assert r.status_code == 200, r.text
    assert r.json()["kind"] == "registration"
    assert r.json()["requires_registration"] is True

    # код одноразовый
    r = await client.post("/api/auth/verify-otp", json={"email": email, "otp": good})
    assert r.status_code == 400, r.text


async def test_temporary_token_is_not_an_access_token(client, random_email, last_otp, auth_headers):
    email = random_email()
    await client.post("/api/auth/send-otp", json={"email": email})
    r = await client.post("/api/auth/verify-otp", json={"email": email, "otp": last_otp(email)})
    temp_token = r.json()["access_token"]

    r = await client.get("/api/user/profile", headers=auth_headers(temp_token))
    assert r.status_code == 401, r.text


async def test_complete_registration_requires_verification(client, register_user, auth_headers):
    r = await client.post(
        "/api/auth/complete-registration",
        json={"first_name": "No", "last_name": "Token", "phone": "+1234567890", "gender": "Male", "country": "Egypt"},
    )
    assert r.status_code == 401, r.text

    # обычный токен вместо временного тоже не подходит
    token, _ = await register_user()
    r = await client.post(
        "/api/auth/complete-registration",
        headers=auth_headers(token),
        json={"first_name": "Wrong", "last_name": "Token", "phone": "+1234567891", "gender": "Male", "country": "Egypt"},
    )
    assert r.status_code == 401, r.text


async def test_login_via_otp(client, register_user, last_otp, auth_headers):
    _, email = await register_user()

    r = await client.post("/api/auth/login/send-otp", json={"email": email})
    assert r.status_code == 200, r.text

    r = await client.post("/api/auth/verify-otp", json={"email": email, "otp": last_otp(email)})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["kind"] == "login"
    assert body["user"]["email"] == email

    r = await client.get("/api/user/profile", headers=auth_headers(body["access_token"]))
    assert r.status_code == 200, r.text


async def test_login_otp_for_unknown_user(client, random_email):
    r = await client.post("/api/auth/login/send-otp", json={"email": random_email()})
    assert r.status_code == 404, r.text


async def test_otp_dropped_when_mail_cannot_be_queued(app, client, random_email, otp_store):
    async def _broken(payload):
        raise ConnectionError("broker down")

    app.dependency_overrides[get_mail_publisher] = lambda: _broken

    r = await client.post("/api/auth/send-otp", json={"email": random_email()})
    assert r.status_code == 503, r.text
    assert otp_store.otps == {}


async def test_first_admin_then_only_admins(client, admin_token, auth_headers):
    r = await client.post("/api/admin/register", json={"email": "intruder@test.local", "password": "secret123"})
    assert r.status_code == 403, r.text

    r = await client.post(
        "/api/admin/register",
        headers=auth_headers(admin_token),
        json={"email": "second@test.local", "password": "secret123"},
    )
    assert r.status_code == 201, r.text
    assert r.json()["user"]["role"] == "Admin"


async def test_admin_login(client, admin_token):
    r = await client.post("/api/admin/login", json={"email": "root@test.local", "password": "secret123"})
    assert r.status_code == 200, r.text
    assert r.json()["access_token"]

    r = await client.post("/api/admin/login", json={"email": "root@test.local", "password": "wrong-pass"})
    assert r.status_code == 401, r.text


async def test_admin_password_reset(client, admin_token, last_otp):
    r = await client.post("/api/admin/forgot-password", json={"email": "root@test.local"})
    assert r.status_code == 200, r.text

    r = await client.post(
        "/api/admin/reset-password",
        json={"email": "root@test.local", "otp": last_otp("root@test.local"), "password": "brand-new"},
    )
    assert r.status_code == 200, r.text

    r = await client.post("/api/admin/login", json={"email": "root@test.local", "password": "brand-new"})
    assert r.status_code == 200, r.text


async def test_forgot_password_for_non_admin(client, register_user):
    _, email = await register_user()
    r = await client.post("/api/admin/forgot-password", json={"email": email})
    assert r.status_code == 404, r.text


async def test_countries(client):
    r = await client.get("/api/countries", params={"search": "jap"})
    assert r.status_code == 200
    assert r.json() == [{"country": "Japan", "timezone": "Asia/Tokyo"}]

    r = await client.get("/api/countries/Japan/timezone")
    assert r.status_code == 200
    assert r.json()["timezone"] == "Asia/Tokyo"

    r = await client.get("/api/countries/Atlantis/timezone")
    assert r.status_code == 404


async def test_health(client):
    r = await client.get("/health")
    assert r.json() == {"status": "ok"}


async def test_verify_registration_otp_marks_email_verified(db_session, otp_store, random_email):
    svc = AuthService(SqlAlchemyUoW(db_session), otp_store)
    email = random_email()

    msg = svc.send_registration_otp(email)
    code = CODE_RE.search(msg.text).group(1)

    res = svc.verify_otp(email, code)
    assert res["kind"] == "registration"
    assert res["user"] is None
    assert otp_store.get_verified(email)

    token, user = svc.complete_registration(
        email=email, first_name="Omar", last_name="Adel",
        phone="+201001234567", gender="Male", country="Egypt",
    )
    assert token
    assert user.email_verified is True
    assert user.timezone == "Africa/Cairo"
    assert otp_store.get_verified(email) is None
