import asyncio

import pytest

from wms.core.enums import LedgerStatus, OutcomeStatus, SyncType
from wms.services.purchase_order_accrual import is_existing_stock


@pytest.fixture
def remote_order(gateway, products):
    """Article 1201 (Sellus item 55) on the open Sellus order 700"""
    products.add(1, article_ref="1201", numeric_id="55")
    gateway.add_item("55", "1201")
    gateway.item_orders["55"] = [{"id": "700", "orderNumber": "A-700", "status": "open"}]
    gateway.orders["700"] = {"id": "700", "orderNumber": "A-700", "customerName": "Musikhuset AB"}


@pytest.mark.asyncio
async def test_accrues_received_quantity_onto_all_three_counters(engine, gateway, remote_order, ledger_store):
    gateway.add_purchase_order("900", "GODS-42", shipped=10, stock=10, total=10, supplierId=17)

    result = await engine.accrual.accrue_purchase_order("1201", 3, cargo_marking="GODS-42")

    assert result.status == OutcomeStatus.SUCCESS
    assert result.step == "complete"
    assert result.purchase_order_id == "900"
    assert result.old_quantities.shipped_quantity == 10
    assert result.new_quantities.total_stock_quantity == 13

    _, path, _, body = gateway.calls_to("POST", "/purchase-orders/900")[0]
    assert body["shippedQuantity"] == 13
    assert body["stockQuantity"] == 13
    assert body["totalStockQuantity"] == 13
    assert body["supplierId"] == 17

    entries = ledger_store.of_type(SyncType.DELIVERY_ITEM_WORKFLOW.value)
    assert len(entries) == 1
    assert entries[0].status == LedgerStatus.SUCCESS.value


@pytest.mark.asyncio
async def test_missing_purchase_order_still_records_the_receipt(engine, gateway, remote_order, orders, ledger_store):
    """accrue("1201", 5, "GODS-42") with no purchase order carrying that cargo marking"""
    gateway.add_purchase_order("901", "GODS-99", shipped=10, stock=10, total=10)

    result = await engine.accrual.accrue_purchase_order("1201", 5, cargo_marking="GODS-42")

    assert result.status == OutcomeStatus.WARNING
    assert result.step == "purchase_order_not_found"
    assert gateway.calls_to("POST", "/purchase-orders/901") == []
    assert gateway.purchase_orders["901"]["shippedQuantity"] == 10

    order = await orders.get_by_external_id("700")
    line = await orders.get_line(order.id, "1201")
    assert line.quantity_picked == 5
    assert ledger_store.entries[-1].status == LedgerStatus.PARTIAL_SUCCESS.value


@pytest.mark.asyncio
async def test_existing_line_accumulates_picked_quantity(engine, gateway, remote_order, orders):
    order = await orders.create("700", order_number="A-700", status="pending")
    line = await orders.add_line(order.id, "1201", quantity_ordered=8, quantity_picked=3, is_picked=False)

    result = await engine.accrual.accrue_purchase_order("1201", 5, cargo_marking="GODS-42")

    assert result.local_order_id == order.id
    assert line.quantity_picked == 8
    assert line.is_picked is True
    assert len(orders.orders) == 1


@pytest.mark.asyncio
async def test_new_local_order_mirrors_remote_details(engine, gateway, remote_order, orders):
    await engine.accrual.accrue_purchase_order("1201", 2, order_reference="A-700")

    order = await orders.get_by_external_id("700")
    assert order.order_number == "A-700"
    assert order.customer_name == "Musikhuset AB"
    assert order.customer_notes == "Godsmärkning: A-700"
    assert order.last_seen_remote_at is not None
    line = orders.lines_for(order.id)[0]
    assert (line.quantity_ordered, line.quantity_picked, line.is_picked) == (2, 2, True)


@pytest.mark.asyncio
async def test_order_reference_is_the_purchase_order_fallback(engine, gateway, remote_order):
    gateway.add_purchase_order("902", "A-700", shipped=1, stock=1, total=1)

    result = await engine.accrual.accrue_purchase_order("1201", 1, order_reference="A-700")

    assert result.status == OutcomeStatus.SUCCESS
    assert gateway.purchase_orders["902"]["shippedQuantity"] == 2


@pytest.mark.asyncio
async def test_without_cargo_marking_the_purchase_order_is_skipped(engine, gateway, remote_order, ledger_store):
    result = await engine.accrual.accrue_purchase_order("1201", 1)

    assert result.status == OutcomeStatus.WARNING
    assert result.step == "no_cargo_marking"
    assert result.skipped_purchase_order_sync is True
    assert gateway.calls_to("GET", "/purchase-orders") == []
    assert len(ledger_store.entries) == 1


@pytest.mark.asyncio
async def test_no_order_found_is_a_warning(engine, gateway, orders, ledger_store):
    gateway.add_item("55", "1201")

    result = await engine.accrual.accrue_purchase_order("1201", 1, cargo_marking="GODS-42")

    assert result.status == OutcomeStatus.WARNING
    assert result.step == "order_lookup"
    assert result.skipped_purchase_order_sync is True
    assert orders.orders == {}
    assert len(ledger_store.entries) == 1


@pytest.mark.asyncio
async def test_failed_purchase_order_write_is_an_error(engine, gateway, remote_order, ledger_store):
    gateway.add_purchase_order("900", "GODS-42")
    gateway.fail("POST", "/purchase-orders/900", status_code=500)

    result = await engine.accrual.accrue_purchase_order("1201", 1, cargo_marking="GODS-42")

    assert result.status == OutcomeStatus.ERROR
    assert result.step == "purchase_order_update_failed"
    assert "manuellt" in result.user_message
    assert ledger_store.entries[-1].status == LedgerStatus.ERROR.value


@pytest.mark.asyncio
async def test_purchase_order_details_unavailable(engine, gateway, remote_order):
    gateway.add_purchase_order("900", "GODS-42")
    gateway.fail("GET", "/purchase-orders/900", status_code=500)

    result = await engine.accrual.accrue_purchase_order("1201", 1, cargo_marking="GODS-42")

    assert result.status == OutcomeStatus.WARNING
    assert result.step == "purchase_order_details_failed"
    assert gateway.calls_to("POST", "/purchase-orders/900") == []


@pytest.mark.asyncio
@pytest.mark.parametrize("article_ref,quantity", [("", 1), ("1201", 0), ("1201", -3), ("1201", True), ("1201", "2")])
async def test_invalid_input_is_rejected_before_any_call(engine, gateway, ledger_store, article_ref, quantity):
    result = await engine.accrual.accrue_purchase_order(article_ref, quantity, cargo_marking="GODS-42")

    assert result.status == OutcomeStatus.ERROR
    assert result.step == "validation"
    assert gateway.calls == []
    assert len(ledger_store.entries) == 1


@pytest.mark.asyncio
async def test_concurrent_receipts_can_lose_an_increment(engine, gateway, remote_order):
    """Two receipts against one purchase order interleave between read and write"""
    gateway.add_purchase_order("900", "GODS-42", shipped=10, stock=10, total=10)

    first, second = await asyncio.gather(
        engine.accrual.accrue_purchase_order("1201", 3, cargo_marking="GODS-42"),
        engine.accrual.accrue_purchase_order("1201", 5, cargo_marking="GODS-42"),
    )

    assert first.status == second.status == OutcomeStatus.SUCCESS
    assert first.old_quantities.shipped_quantity == second.old_quantities.shipped_quantity == 10
    assert gateway.purchase_orders["900"]["shippedQuantity"] in (13, 15)
    assert gateway.purchase_orders["900"]["shippedQuantity"] != 18


def test_existing_stock_prefixes():
    assert is_existing_stock("645123") is True
    assert is_existing_stock("0645123") is True
    assert is_existing_stock("1201") is False
