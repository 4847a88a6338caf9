"""HTTP shell tests using FastAPI's TestClient over the in-memory store."""
import asyncio

import pytest
from fastapi.testclient import TestClient

from inventory_sync.main import create_app
from inventory_sync.models.enums import FailureReason
from inventory_sync.services.memory import MemoryStore


@pytest.fixture
def store(make_record):
    return MemoryStore({
        "products": {
            "p-a": make_record("p-a", name="Hammer", price=10, stock=2),
            "p-b": make_record("p-b", name="Saw", price=5, stock=3),
            "p-c": make_record("p-c", name="Nails", price=1, stock=40),
        }
    }, record_calls=True)


@pytest.fixture
def client(store):
    with TestClient(create_app(store)) as client:
        yield client


def test_list_products_with_totals(client):
    response = client.get("/products/")
    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "READY"
    assert [p["nombre"] for p in body["products"]] == ["Hammer", "Saw", "Nails"]
    assert body["stats"] == {"totalInventoryValue": "75.00", "productCount": 3, "lowStockCount": 2}


def test_list_low_stock_only(client):
    body = client.get("/products/", params={"low_stock": "true"}).json()
    assert body["lowStockOnly"] is True
    assert [p["id"] for p in body["products"]] == ["p-a", "p-b"]
    assert body["stats"]["productCount"] == 3


def test_create_and_fetch_product(client):
    response = client.post(
        "/products/",
        json={"name": "Widget", "category": "Tools", "originalPrice": "20", "stock": "4"},
    )
    assert response.status_code == 201
    created = response.json()
    assert created["precioConDescuento"] == 18.0
    assert created["nombre"] == "Widget"

    fetched = client.get(f"/products/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json() == created


def test_create_rejects_invalid_price(client, store):
    response = client.post(
        "/products/",
        json={"name": "Widget", "category": "Tools", "originalPrice": "free", "stock": "4"},
    )
    assert response.status_code == 422
    assert response.json()["detail"]["kind"] == "INVALID_PRICE"
    assert store.writes == []


def test_update_product(client, store):
    response = client.put("/products/p-a", json={"originalPrice": "50", "stock": "7"})
    assert response.status_code == 200
    assert response.json()["precioConDescuento"] == 45.0
    assert store.records("products")["p-a"]["stock"] == 7


def test_update_missing_product(client):
    response = client.put("/products/ghost", json={"originalPrice": "50", "stock": "7"})
    assert response.status_code == 404


def test_delete_is_idempotent(client, store):
    assert client.delete("/products/p-b").json() == {"status": "success"}
    assert client.delete("/products/p-b").status_code == 200
    assert "p-b" not in store.records("products")


def test_store_failure_maps_to_http_status(client, store):
    store.fail_next("get_by_key", FailureReason.PERMISSION_DENIED, "Permission denied")
    response = client.get("/products/p-a")
    assert response.status_code == 403
    assert response.json()["detail"] == {"reason": "PERMISSION_DENIED", "message": "Permission denied"}

    store.fail_next("delete_by_key", FailureReason.NETWORK, "offline")
    assert client.delete("/products/p-a").status_code == 502


def test_discount_preview(client):
    response = client.get("/products/discount-preview", params={"original_price": "19.99"})
    assert response.json() == {"originalPrice": "19.99", "discountedPrice": "17.99"}
    assert client.get("/products/discount-preview").json()["discountedPrice"] == "0.00"


def test_status_and_restart_after_subscription_error(client, store):
    assert client.get("/products/status").json()["state"] == "READY"

    client.portal.call(store.emit_error, "products", FailureReason.NETWORK, "connection reset")
    client.portal.call(_settle)
    status = client.get("/products/status").json()
    assert status["state"] == "ERROR"
    assert status["error"] == "NETWORK: connection reset"

    assert client.post("/products/sync/restart").json() == {"state": "READY"}


async def _settle():
    await asyncio.sleep(0.05)
