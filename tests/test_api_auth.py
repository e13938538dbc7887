import pytest

pytestmark = pytest.mark.anyio


async def test_root_and_health(client):
    root = await client.get("/")
    assert root.status_code == 200
    assert root.json()["health"] == "/health"

    health = await client.get("/health")
    assert health.status_code == 200
    body = health.json()
    assert body["status"] == "operational"
    assert body["database"] == "healthy"
    assert body["change_feed"] == "memory: healthy"
    assert body["auth_service"] == "mock: healthy"


async def test_sign_up_creates_customer_session(client, sign_up):
    user = await sign_up()

    response = await client.get("/auth/session", headers=user.headers)
    assert response.status_code == 200
    body = response.json()
    assert body["user_id"] == str(user.user_id)
    assert body["name"] == "Jane Doe"
    assert body["user_type"] == "customer"
    assert body["is_staff"] is False


async def test_duplicate_sign_up_rejected(client, sign_up):
    await sign_up()
    response = await client.post(
        "/auth/sign-up",
        json={"email": "JANE@example.com", "password": "secret123", "name": "Jane Again"},
    )
    assert response.status_code == 422
    assert response.json()["fields"] == {"email": "User already registered"}


async def test_sign_up_field_validation(client):
    response = await client.post(
        "/auth/sign-up",
        json={"email": "not-an-email", "password": "123", "name": "   "},
    )
    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["fields"]["email"] == "Please enter a valid email address"
    assert body["fields"]["password"] == "Password must be at least 6 characters"
    assert body["fields"]["name"] == "Name is required"


async def test_sign_in_wrong_password(client, sign_up):
    await sign_up()
    response = await client.post(
        "/auth/sign-in", json={"email": "jane@example.com", "password": "wrong-password"},
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid login credentials"


async def test_sign_in_reports_staff_role(client, sign_up, promote, catalog):
    user = await sign_up("cook@example.com", "Carla Cook")
    await promote(user.user_id, branch_id=catalog.branches["Downtown Branch"].id)

    response = await client.post(
        "/auth/sign-in", json={"email": "cook@example.com", "password": "secret123"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["is_staff"] is True
    assert body["user_type"] == "staff"
    assert body["access_token"]


async def test_session_requires_bearer_token(client):
    assert (await client.get("/auth/session")).status_code == 401
    response = await client.get("/auth/session", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401
    assert response.json()["error"] == "Authentication required"


async def test_sign_out_invalidates_session(client, sign_up):
    user = await sign_up()

    response = await client.post("/auth/sign-out", headers=user.headers)
    assert response.status_code == 200
    assert (await client.get("/auth/session", headers=user.headers)).status_code == 401


async def test_admin_assigns_staff(client, sign_up, promote, catalog):
    boss = await sign_up("boss@example.com", "Bea Boss")
    await promote(boss.user_id, admin=True)
    cook = await sign_up("cook@example.com", "Carla Cook")
    branch = catalog.branches["Eastside Branch"]

    response = await client.post(
        "/api/admin/staff",
        json={"user_id": str(cook.user_id), "branch_id": str(branch.id), "working_hours": 40},
        headers=boss.headers,
    )
    assert response.status_code == 200, response.text
    assert response.json()["branch_id"] == str(branch.id)

    session = (await client.get("/auth/session", headers=cook.headers)).json()
    assert session["is_staff"] is True

    branches = {b["name"]: b for b in (await client.get("/api/branches")).json()}
    assert branches["Eastside Branch"]["total_staff"] == 1


async def test_non_admin_cannot_assign_staff(client, sign_up, catalog):
    user = await sign_up()
    response = await client.post(
        "/api/admin/staff",
        json={"user_id": str(user.user_id), "branch_id": str(catalog.branches["North Branch"].id)},
        headers=user.headers,
    )
    assert response.status_code == 403


async def test_catalog_endpoints(client, catalog):
    branches = (await client.get("/api/branches")).json()
    assert len(branches) == 5

    categories = (await client.get("/api/menu/categories")).json()
    appetizers = next(c for c in categories if c["name"] == "Appetizers")

    menu = (await client.get("/api/menu", params={"category_id": appetizers["id"]})).json()
    assert sorted(item["name"] for item in menu) == ["Chicken Wings", "Spring Rolls"]
    assert {item["price"] for item in menu} == {"8.99", "12.99"}
