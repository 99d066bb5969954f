"""
Integration tests for the REST API endpoints.

Runs the FastAPI app against the SQLite test database; the lifecycle
manager and DB session dependencies are overridden with test-bound ones.
"""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from mytaxi.api.app import create_app
from mytaxi.api.dependencies import get_db, get_manager
from mytaxi.api.middleware import limiter


@pytest_asyncio.fixture
async def client(session_factory, manager):
    """AsyncClient backed by SQLite + in-process locks."""

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    limiter.reset()
    app = create_app()
    app.dependency_overrides[get_db] = _test_db
    app.dependency_overrides[get_manager] = lambda: manager

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _register_client(client: AsyncClient, bonus_amount: float = 20.0) -> dict:
    resp = await client.post(
        "/api/v1/admin/clients",
        json={
            "name": "Olena",
            "email": f"olena{bonus_amount}@example.com",
            "bonus_amount": bonus_amount,
        },
    )
    assert resp.status_code == 201
    return {"X-Client-Id": str(resp.json()["id"])}


async def _place_order(client: AsyncClient, headers: dict, **overrides):
    body = {
        "price": 150.0,
        "origin": "Khreshchatyk St, 22",
        "destination": "Boryspil Airport",
        "pay_with_bonuses": False,
    }
    body.update(overrides)
    return await client.post("/api/v1/orders", json=body, headers=headers)


# ── Tests ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_create_order_returns_201(client: AsyncClient):
    headers = await _register_client(client)
    resp = await _place_order(client, headers)
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "CREATED"
    assert data["id"] is not None
    assert data["hash"]


@pytest.mark.asyncio
async def test_create_order_requires_identity(client: AsyncClient):
    resp = await _place_order(client, {})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_invalid_order_reports_every_field(client: AsyncClient):
    headers = await _register_client(client)
    resp = await _place_order(client, headers, price=-1, origin="", destination="")
    assert resp.status_code == 422
    fields = {e["field"] for e in resp.json()["errors"]}
    assert fields == {"price", "origin", "destination"}


@pytest.mark.asyncio
async def test_second_active_order_conflicts(client: AsyncClient):
    headers = await _register_client(client)
    await _place_order(client, headers)
    resp = await _place_order(client, headers)
    assert resp.status_code == 409
    assert resp.json()["error"] == "DuplicateActiveOrder"


@pytest.mark.asyncio
async def test_paying_with_missing_bonuses_conflicts(client: AsyncClient):
    headers = await _register_client(client, bonus_amount=20.0)
    resp = await _place_order(client, headers, pay_with_bonuses=True)
    assert resp.status_code == 409
    assert resp.json()["error"] == "InsufficientBalance"

    orders = await client.get("/api/v1/orders", headers=headers)
    assert orders.json() == []


@pytest.mark.asyncio
async def test_order_status_by_hash(client: AsyncClient):
    headers = await _register_client(client, bonus_amount=20.0)
    order = (await _place_order(client, headers)).json()

    resp = await client.get(f"/api/v1/orders/status/{order['hash']}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["order"]["id"] == order["id"]
    assert data["bonus_amount"] == 20.0
    assert data["driver"] is None


@pytest.mark.asyncio
async def test_order_status_not_found(client: AsyncClient):
    resp = await client.get("/api/v1/orders/status/unknown")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_cancel_then_cancel_again(client: AsyncClient):
    headers = await _register_client(client)
    order = (await _place_order(client, headers)).json()

    resp = await client.post(f"/api/v1/orders/cancel/{order['hash']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "CANCELLED"

    resp = await client.post(f"/api/v1/orders/cancel/{order['hash']}", headers=headers)
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_full_trip_flow(client: AsyncClient):
    headers = await _register_client(client, bonus_amount=20.0)
    driver = await client.post(
        "/api/v1/admin/drivers",
        json={"name": "Petro", "email": "petro@example.com", "car": "Skoda"},
    )
    driver_id = driver.json()["id"]
    order = (await _place_order(client, headers)).json()

    resp = await client.post(f"/api/v1/drivers/{driver_id}/orders/{order['id']}/accept")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ACTIVE"

    resp = await client.post(f"/api/v1/drivers/orders/{order['id']}/finish")
    assert resp.status_code == 200
    assert resp.json()["status"] == "FINISHED"

    balance = await client.get("/api/v1/clients/me/bonuses", headers=headers)
    assert balance.json()["bonus_amount"] == 27.5

    resp = await client.post(
        f"/api/v1/orders/{order['id']}/rating", json={"rating": 5}, headers=headers
    )
    assert resp.status_code == 200
    assert resp.json()["rating"] == 5

    view = await client.get(f"/api/v1/orders/{order['id']}", headers=headers)
    assert view.json()["driver"]["id"] == driver_id

    history = await client.get("/api/v1/clients/me/bonuses/history", headers=headers)
    assert [t["kind"] for t in history.json()] == ["EARN"]


@pytest.mark.asyncio
async def test_rating_errors(client: AsyncClient):
    headers = await _register_client(client)
    order = (await _place_order(client, headers)).json()

    resp = await client.post(
        f"/api/v1/orders/{order['id']}/rating", json={"rating": 6}, headers=headers
    )
    assert resp.status_code == 422

    resp = await client.post(
        f"/api/v1/orders/{order['id']}/rating", json={"rating": 4}, headers=headers
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_other_clients_order_is_hidden(client: AsyncClient):
    owner = await _register_client(client, bonus_amount=1.0)
    stranger = await _register_client(client, bonus_amount=2.0)
    order = (await _place_order(client, owner)).json()

    resp = await client.get(f"/api/v1/orders/{order['id']}", headers=stranger)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_top_up(client: AsyncClient):
    headers = await _register_client(client, bonus_amount=1.0)
    client_id = headers["X-Client-Id"]

    resp = await client.post(
        f"/api/v1/admin/clients/{client_id}/bonuses", json={"amount": 4.0}
    )
    assert resp.status_code == 200
    assert resp.json()["bonus_amount"] == 5.0

    resp = await client.post(
        f"/api/v1/admin/clients/{client_id}/bonuses", json={"amount": -4.0}
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_my_profile(client: AsyncClient):
    headers = await _register_client(client, bonus_amount=7.0)
    resp = await client.get("/api/v1/clients/me", headers=headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["user"]["name"] == "Olena"
    assert data["bonus_amount"] == 7.0
    assert data["has_active_order"] is False


@pytest.mark.asyncio
async def test_missing_price_reported_with_other_fields(client: AsyncClient):
    headers = await _register_client(client)
    resp = await client.post(
        "/api/v1/orders", json={"origin": "", "destination": ""}, headers=headers
    )
    assert resp.status_code == 422
    fields = {e["field"] for e in resp.json()["errors"]}
    assert fields == {"price", "origin", "destination"}


@pytest.mark.asyncio
async def test_invalid_order_with_active_order_reports_both(client: AsyncClient):
    headers = await _register_client(client)
    await _place_order(client, headers)
    resp = await _place_order(client, headers, origin="")
    assert resp.status_code == 422
    errors = {e["field"]: e["message"] for e in resp.json()["errors"]}
    assert set(errors) == {"origin", "order"}
    assert errors["order"] == "You already have an active order."


@pytest.mark.asyncio
async def test_duplicate_email_conflicts(client: AsyncClient):
    body = {"name": "Olena", "email": "same@example.com"}
    assert (await client.post("/api/v1/admin/clients", json=body)).status_code == 201

    resp = await client.post("/api/v1/admin/clients", json=body)
    assert resp.status_code == 409
    assert resp.json()["error"] == "AlreadyRegistered"

    resp = await client.post("/api/v1/admin/drivers", json=body)
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_client_phone_is_normalized_or_rejected(client: AsyncClient):
    resp = await client.post(
        "/api/v1/admin/clients",
        json={"name": "Taras", "email": "taras@example.com", "phone_number": "+abc"},
    )
    assert resp.status_code == 422
    assert resp.json()["error"] == "InvalidPhoneNumber"

    resp = await client.post(
        "/api/v1/admin/clients",
        json={
            "name": "Taras",
            "email": "taras@example.com",
            "phone_number": "+380 67 123",
        },
    )
    assert resp.status_code == 201
    assert resp.json()["phone_number"] == "+38067123"
