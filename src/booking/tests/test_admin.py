from datetime import timedelta

import pytest

from src.booking.infra.models import SessionSlotORM, SubscriptionORM

pytestmark = pytest.mark.anyio


@pytest.fixture
async def subscribed(client, register_user, create_plan, future_monday, auth_headers):
    """Пользователь с подтверждённой подпиской на 2 сессии."""
    token, email = await register_user(country="Japan")
    plan = await create_plan(name="Duo", sessions_per_month=2, sessions_per_week=2, price=300)
    monday = future_monday()
    r = await client.post(
        "/api/user/subscriptions",
        headers=auth_headers(token),
        json={
            "subscription_plan_id": plan["id"],
            "start_date": monday.isoformat(),
            "sessions": [
                {"date": monday.isoformat(), "time": "10:00"},
                {"date": (monday + timedelta(days=2)).isoformat(), "time": "10:00"},
            ],
        },
    )
    assert r.status_code == 201, r.text
    return {"token": token, "email": email, "plan": plan, "monday": monday, "subscription": r.json()}


async def test_list_and_filter_subscriptions(client, admin_token, auth_headers, subscribed):
    h = auth_headers(admin_token)

    r = await client.get("/api/admin/subscriptions", headers=h)
    assert r.status_code == 200, r.text
    assert r.json()["total"] == 1

    r = await client.get("/api/admin/subscriptions", headers=h, params={"user_email": subscribed["email"][:6].upper()})
    assert r.json()["total"] == 1

    r = await client.get("/api/admin/subscriptions", headers=h, params={"status": "cancelled"})
    assert r.json()["total"] == 0

    r = await client.get("/api/admin/subscriptions", headers=h, params={"plan_name": "duo"})
    assert r.json()["items"][0]["plan_name"] == "Duo"


async def test_subscription_stats(client, admin_token, auth_headers, subscribed):
    r = await client.get("/api/admin/subscriptions/stats", headers=auth_headers(admin_token))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["total_subscriptions"] == 1
    assert body["status_breakdown"] == [{"status": "confirmed", "count": 1}]
    assert body["popular_plans"][0]["plan_name"] == "Duo"
    assert body["popular_plans"][0]["total_revenue"] == 300


async def test_update_subscription_status(client, admin_token, auth_headers, subscribed):
    sub_id = subscribed["subscription"]["id"]
    r = await client.patch(
        f"/api/admin/subscriptions/{sub_id}/status",
        headers=auth_headers(admin_token),
        json={"payment_status": "paid", "notes": "cash"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["payment_status"] == "paid"
    assert r.json()["notes"] == "cash"

    r = await client.patch(
        f"/api/admin/subscriptions/{sub_id}/status",
        headers=auth_headers(admin_token),
        json={"status": "bogus"},
    )
    assert r.status_code == 422, r.text


async def test_cancelled_subscription_frees_its_slots(client, admin_token, auth_headers, subscribed):
    sub_id = subscribed["subscription"]["id"]
    day = subscribed["monday"].isoformat()

    r = await client.get("/api/sessions/available", params={"start_date": day, "end_date": day, "display_country": "Japan"})
    assert "10:00" not in [s["time"] for s in r.json()]

    r = await client.patch(
        f"/api/admin/subscriptions/{sub_id}/status",
        headers=auth_headers(admin_token),
        json={"status": "cancelled"},
    )
    assert r.status_code == 200, r.text

    r = await client.get("/api/sessions/available", params={"start_date": day, "end_date": day, "display_country": "Japan"})
    assert "10:00" in [s["time"] for s in r.json()]


async def test_session_status_transitions(client, admin_token, auth_headers, subscribed):
    sub = subscribed["subscription"]
    slot_id = sub["sessions"][0]["id"]
    url = f"/api/admin/subscriptions/{sub['id']}/sessions/{slot_id}"
    h = auth_headers(admin_token)

    r = await client.patch(url, headers=h, json={"status": "completed", "notes": "good"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["sessions_completed"] == 1
    assert body["sessions_remaining"] == 1
    assert body["sessions"][0]["notes"] == "good"

    # завершённую сессию нельзя отменить
    r = await client.patch(url, headers=h, json={"status": "cancelled"})
    assert r.status_code == 400, r.text

    r = await client.patch(f"/api/admin/subscriptions/{sub['id']}/sessions/999999", headers=h, json={"status": "missed"})
    assert r.status_code == 404, r.text


async def test_delete_subscription(client, admin_token, auth_headers, subscribed, db_session):
    sub_id = subscribed["subscription"]["id"]
    h = auth_headers(admin_token)

    r = await client.delete(f"/api/admin/subscriptions/{sub_id}", headers=h)
    assert r.status_code == 200, r.text

    r = await client.get(f"/api/admin/subscriptions/{sub_id}", headers=h)
    assert r.status_code == 404, r.text
    assert db_session.query(SessionSlotORM).count() == 0


async def test_subscription_routes_require_admin(client, subscribed, auth_headers):
    r = await client.get("/api/admin/subscriptions", headers=auth_headers(subscribed["token"]))
    assert r.status_code == 403, r.text


async def test_users_management(client, admin_token, auth_headers, register_user):
    token, email = await register_user()
    h = auth_headers(admin_token)

    r = await client.get("/api/admin/users", headers=h, params={"role": "User"})
    assert r.status_code == 200, r.text
    [user] = r.json()["items"]
    assert user["email"] == email

    r = await client.patch(f"/api/admin/users/{user['id']}/active", headers=h, json={"is_active": False})
    assert r.status_code == 200, r.text
    assert r.json()["is_active"] is False

    # деактивированный пользователь больше не проходит аутентификацию
    r = await client.get("/api/user/profile", headers=auth_headers(token))
    assert r.status_code == 401, r.text

    r = await client.delete(f"/api/admin/users/{user['id']}", headers=h)
    assert r.status_code == 200, r.text

    r = await client.get(f"/api/admin/users/{user['id']}", headers=h)
    assert r.status_code == 404, r.text


async def test_deleting_user_removes_their_subscriptions(client, admin_token, auth_headers, subscribed, db_session):
    h = auth_headers(admin_token)
    user_id = subscribed["subscription"]["user_id"]

    r = await client.delete(f"/api/admin/users/{user_id}", headers=h)
    assert r.status_code == 200, r.text
    assert db_session.query(SubscriptionORM).count() == 0
    assert db_session.query(SessionSlotORM).count() == 0


async def test_super_admin_is_protected(client, admin_token, auth_headers):
    r = await client.post(
        "/api/admin/register",
        headers=auth_headers(admin_token),
        json={"email": "second@test.local", "password": "secret123"},
    )
    assert r.status_code == 201, r.text
    second = auth_headers(r.json()["access_token"])

    r = await client.get("/api/admin/users", headers=second, params={"role": "Admin"})
    root = next(u for u in r.json()["items"] if u["email"] == "root@test.local")

    r = await client.patch(f"/api/admin/users/{root['id']}/active", headers=second, json={"is_active": False})
    assert r.status_code == 403, r.text

    r = await client.delete(f"/api/admin/users/{root['id']}", headers=second)
    assert r.status_code == 403, r.text


async def test_admin_cannot_delete_self(client, admin_token, auth_headers):
    r = await client.post(
        "/api/admin/register",
        headers=auth_headers(admin_token),
        json={"email": "second@test.local", "password": "secret123"},
    )
    body = r.json()
    r = await client.delete(f"/api/admin/users/{body['user']['id']}", headers=auth_headers(body["access_token"]))
    assert r.status_code == 400, r.text


async def test_rebooking_same_times_after_cancellation(client, admin_token, auth_headers, subscribed):
    sub = subscribed["subscription"]
    r = await client.patch(
        f"/api/admin/subscriptions/{sub['id']}/status",
        headers=auth_headers(admin_token),
        json={"status": "cancelled"},
    )
    assert r.status_code == 200, r.text
    assert {s["status"] for s in r.json()["sessions"]} == {"cancelled"}

    # те же моменты снова свободны, в том числе для уникального индекса
    monday = subscribed["monday"]
    r = await client.post(
        "/api/user/subscriptions",
        headers=auth_headers(subscribed["token"]),
        json={
            "subscription_plan_id": subscribed["plan"]["id"],
            "start_date": monday.isoformat(),
            "sessions": [
                {"date": monday.isoformat(), "time": "10:00"},
                {"date": (monday + timedelta(days=2)).isoformat(), "time": "10:00"},
            ],
        },
    )
    assert r.status_code == 201, r.text
    assert r.json()["id"] != sub["id"]


async def test_completed_session_is_kept_when_subscription_is_cancelled(client, admin_token, auth_headers, subscribed):
    sub = subscribed["subscription"]
    h = auth_headers(admin_token)
    first, second = sub["sessions"]

    r = await client.patch(f"/api/admin/subscriptions/{sub['id']}/sessions/{first['id']}", headers=h, json={"status": "completed"})
    assert r.status_code == 200, r.text

    r = await client.patch(f"/api/admin/subscriptions/{sub['id']}/status", headers=h, json={"status": "cancelled"})
    assert r.status_code == 200, r.text
    statuses = {s["id"]: s["status"] for s in r.json()["sessions"]}
    assert statuses == {first["id"]: "completed", second["id"]: "cancelled"}
