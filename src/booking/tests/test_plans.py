import pytest

pytestmark = pytest.mark.anyio


async def test_admin_plan_crud(client, admin_token, auth_headers, create_plan):
    plan = await create_plan(name="Basic", sessions_per_month=8, sessions_per_week=2, price=800)
    assert plan["price_per_session"] == 100
    assert plan["currency"] == "EGP"
    assert plan["is_active"] is True

    h = auth_headers(admin_token)

    r = await client.get(f"/api/admin/plans/{plan['id']}", headers=h)
    assert r.status_code == 200, r.text
    assert r.json()["name"] == "Basic"

    r = await client.put(f"/api/admin/plans/{plan['id']}", headers=h, json={"price": 1000, "features": ["a", "b"]})
    assert r.status_code == 200, r.text
    assert r.json()["price"] == 1000
    assert r.json()["features"] == ["a", "b"]

    r = await client.patch(f"/api/admin/plans/{plan['id']}/toggle", headers=h)
    assert r.status_code == 200, r.text
    assert r.json()["is_active"] is False

    r = await client.get("/api/admin/plans", headers=h, params={"is_active": False})
    assert r.status_code == 200, r.text
    assert r.json()["total"] == 1

    r = await client.delete(f"/api/admin/plans/{plan['id']}", headers=h)
    assert r.status_code == 200, r.text

    r = await client.get(f"/api/admin/plans/{plan['id']}", headers=h)
    assert r.status_code == 404, r.text


async def test_public_plans_only_active_sorted_by_price(client, admin_token, auth_headers, create_plan):
    await create_plan(name="Premium", price=900)
    await create_plan(name="Starter", price=100)
    hidden = await create_plan(name="Hidden", price=50)
    await client.patch(f"/api/admin/plans/{hidden['id']}/toggle", headers=auth_headers(admin_token))

    r = await client.get("/api/plans")
    assert r.status_code == 200, r.text
    assert [p["name"] for p in r.json()] == ["Starter", "Premium"]


async def test_plan_name_is_unique(client, admin_token, auth_headers, create_plan):
    await create_plan(name="Basic")
    r = await client.post(
        "/api/admin/plans",
        headers=auth_headers(admin_token),
        json={"name": "Basic", "sessions_per_month": 4, "sessions_per_week": 1, "price": 10},
    )
    assert r.status_code == 409, r.text

    other = await create_plan(name="Other")
    r = await client.put(f"/api/admin/plans/{other['id']}", headers=auth_headers(admin_token), json={"name": "Basic"})
    assert r.status_code == 409, r.text


@pytest.mark.parametrize("patch", [
    {"sessions_per_month": 0},
    {"sessions_per_month": 101},
    {"sessions_per_week": 8},
    {"price": -1},
    {"currency": "GBP"},
    {"duration": 366},
    {"sessions_per_month": 2, "sessions_per_week": 3},
])
async def test_plan_validation(client, admin_token, auth_headers, patch):
    body = {"name": "Bad plan", "sessions_per_month": 4, "sessions_per_week": 2, "price": 100}
    body.update(patch)
    r = await client.post("/api/admin/plans", headers=auth_headers(admin_token), json=body)
    assert r.status_code == 422, r.text


async def test_plan_admin_routes_require_admin(client, register_user, auth_headers):
    token, _ = await register_user()
    r = await client.post(
        "/api/admin/plans",
        headers=auth_headers(token),
        json={"name": "Sneaky", "sessions_per_month": 4, "sessions_per_week": 2, "price": 1},
    )
    assert r.status_code == 403, r.text

    r = await client.get("/api/admin/plans")
    assert r.status_code == 401, r.text
