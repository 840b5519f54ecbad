"""
Route tests for the sync API.

The engine dependency is replaced by one wired to the fake Sellus gateway and
in-memory stores; the session dependency by a mock whose commit is recorded.
TestClient is used without a context manager so the scheduler never starts.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import PendingRollbackError

from wms.dependencies import get_db, get_engine
from wms.main import app


@pytest.fixture
def db_session():
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def client(engine, db_session):
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_db] = lambda: db_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def linked_product(gateway, products):
    products.add(1, name="Strat", article_ref="1201", numeric_id="55", stock=[2, 3])
    gateway.add_item("55", "1201")


def test_register_delivery_note(client, db_session):
    response = client.post("/api/delivery-notes", json={
        "deliveryNoteNumber": "FS-1001",
        "cargoMarking": "GODS-42",
        "items": [{"articleNumber": "1201", "quantity": 2}, {"articleNumber": "", "quantity": 1}],
    })

    assert response.status_code == 200
    data = response.json()
    assert data["delivery_note_id"] == 1
    assert data["items_stored"] == 1
    assert data["rejected"][0]["index"] == 1
    db_session.commit.assert_awaited_once()


def test_delivery_note_without_valid_rows_is_rejected(client, db_session):
    response = client.post("/api/delivery-notes", json={"items": []})

    assert response.status_code == 422
    db_session.commit.assert_not_awaited()


def test_check_delivery_item_defaults_to_checked(client, gateway, linked_product, deliveries):
    gateway.item_orders["55"] = [{"id": "700", "status": "open"}]
    gateway.orders["700"] = {"id": "700"}
    client.post("/api/delivery-notes", json={"items": [{"articleNumber": "1201", "quantity": 1}]})

    response = client.post("/api/delivery-items/1/check")

    assert response.status_code == 200
    data = response.json()
    assert data["is_checked"] is True
    assert data["status"] == "warning"
    assert data["accrual"]["step"] == "no_cargo_marking"
    assert deliveries.items[1].is_checked is True


def test_sync_stock_passes_the_request_fields(client, gateway, linked_product, db_session):
    response = client.post("/api/products/1/sync-stock", json={"quantity_changed": -1, "order_number": "A-700"})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    assert data["target_stock"] == 5
    assert gateway.items["55"]["stock"] == 5
    db_session.commit.assert_awaited_once()


def test_resolve_product_id(client, gateway, products):
    products.add(1, article_ref="1201")
    gateway.add_item("55", "1201")

    response = client.post("/api/products/1/resolve-id")

    assert response.status_code == 200
    assert products.products[1].external_numeric_id == "55"


def test_retry_failed_validates_the_limit(client):
    assert client.post("/api/sync/retry-failed?limit=0").status_code == 422
    assert client.post("/api/sync/retry-failed?limit=10").json()["processed"] == 0


def test_failures_can_be_listed_and_resolved(client, gateway, linked_product, failures):
    gateway.fail("POST", "/items/55", status_code=503)
    client.post("/api/products/1/sync-stock", json={"quantity_changed": 2})

    listed = client.get("/api/sync/failures").json()
    assert len(listed) == 1
    assert listed[0]["product_name"] == "Strat"
    assert listed[0]["quantity_changed"] == 2

    response = client.post(f"/api/sync/failures/{listed[0]['id']}/resolve", json={"resolved_by": "anna"})

    assert response.status_code == 200
    assert response.json()["resolved_by"] == "anna"
    assert client.get("/api/sync/failures").json() == []
    assert len(client.get("/api/sync/failures", params={"include_resolved": True}).json()) == 1


def test_resolve_unknown_failure_is_404(client, db_session):
    response = client.post("/api/sync/failures/99/resolve", json={"resolved_by": "anna"})

    assert response.status_code == 404
    db_session.commit.assert_not_awaited()


def test_ledger_listing_filters(client, gateway, linked_product):
    gateway.fail("POST", "/items/55", status_code=500)
    client.post("/api/products/1/sync-stock")

    response = client.get("/api/sync/ledger", params={"status": "error"})

    assert response.status_code == 200
    entries = response.json()
    assert len(entries) == 1
    assert entries[0]["sync_type"] == "inventory_item"
    assert entries[0]["related_product_id"] == 1


def test_failed_commit_rolls_back_and_reports_an_error(client, gateway, linked_product, db_session):
    db_session.commit.side_effect = PendingRollbackError("flush failed on a duplicate order")

    response = client.post("/api/products/1/sync-stock")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "error"
    assert data["step"] == "commit"
    assert "rolled back" in data["message"]
    db_session.rollback.assert_awaited_once()


def test_failed_commit_of_a_summary_is_a_server_error(client, db_session):
    db_session.commit.side_effect = PendingRollbackError("flush failed")

    response = client.post("/api/sync/inventory")

    assert response.status_code == 500
    assert response.json()["detail"] == "Sync results could not be saved"
    db_session.rollback.assert_awaited_once()
