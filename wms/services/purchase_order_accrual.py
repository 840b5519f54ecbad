# wms/services/purchase_order_accrual.py
"""
Receipt of goods against a Sellus purchase order.

When an article from a delivery note is received, the order it belongs to is
located, the receipt is mirrored into the local order shadow, and the
received quantity is added to the purchase order's counters in Sellus.

Sellus has no concurrency token for purchase orders, so the counter update is
a plain read-modify-write: two receipts against the same purchase order
processed at the same moment can lose one of the increments
(ConcurrentUpdateRisk). Nothing here locks against that.
"""

import logging
import time
from typing import Any, Dict, Optional, Tuple

from wms.core.enums import OrderStatus, OutcomeStatus, SyncDirection, SyncType
from wms.core.exceptions import NoOrderFound
from wms.core.utils import parse_datetime, utc_now
from wms.models import Order
from wms.schemas.sellus import SellusPurchaseOrder
from wms.schemas.sync import AccrualResult, CounterTriple
from wms.services.order_resolution import OrderResolution, OrderResolutionChain
from wms.services.sellus.client import SellusClient
from wms.services.sync_ledger import SyncLedger
from wms.stores.base import DeliveryStore, OrderStore

logger = logging.getLogger(__name__)

# Articles numbered 645... / 0645... are stock the shop already owned
EXISTING_STOCK_PREFIXES = ("645", "0645")


def is_existing_stock(article_ref: str) -> bool:
    return article_ref.startswith(EXISTING_STOCK_PREFIXES)


class PurchaseOrderAccrual:

    def __init__(
        self,
        client: SellusClient,
        order_chain: OrderResolutionChain,
        orders: OrderStore,
        deliveries: DeliveryStore,
        ledger: SyncLedger,
    ):
        self.client = client
        self.order_chain = order_chain
        self.orders = orders
        self.deliveries = deliveries
        self.ledger = ledger

    async def accrue_purchase_order(
        self,
        article_ref: str,
        quantity_received: Any,
        cargo_marking: Optional[str] = None,
        order_reference: Optional[str] = None,
        delivery_note_item_id: Optional[int] = None,
    ) -> AccrualResult:
        """
        Register a received quantity locally and on the Sellus purchase order.

        Args:
            article_ref: Article number as printed on the delivery note
            quantity_received: Received quantity, a whole number >= 1
            cargo_marking: Godsmärkning of the delivery, used to find the purchase order
            order_reference: Order number printed on the row; order hint and
                purchase order search fallback
            delivery_note_item_id: Delivery note item to link to the local order

        Returns:
            AccrualResult; exactly one ledger entry is written per call
        """
        started = time.monotonic()
        article_ref = (article_ref or "").strip() if isinstance(article_ref, str) else article_ref
        request_payload: Dict[str, Any] = {
            "articleNumber": article_ref,
            "quantityReceived": quantity_received,
            "orderReference": order_reference,
            "cargoMarking": cargo_marking,
        }
        response_payload = None

        try:
            result, response_payload = await self._accrue(
                article_ref, quantity_received, cargo_marking, order_reference, delivery_note_item_id, request_payload
            )
        except Exception as e:
            logger.exception(f"Unexpected error processing delivery item {article_ref}")
            result = AccrualResult(
                article_ref=article_ref if isinstance(article_ref, str) else None,
                status=OutcomeStatus.ERROR,
                step="exception",
                message=f"Unexpected error: {str(e)}",
                user_message="Ett oväntat fel inträffade. Kontakta administratör.",
            )

        result.duration_ms = int((time.monotonic() - started) * 1000)
        await self.ledger.record(
            sync_type=SyncType.DELIVERY_ITEM_WORKFLOW,
            direction=SyncDirection.WMS_TO_SELLUS,
            status=result.status.ledger_status,
            related_article_ref=result.article_ref,
            request_payload=request_payload,
            response_payload=response_payload,
            error_message=None if result.status == OutcomeStatus.SUCCESS else result.message,
            duration_ms=result.duration_ms,
        )
        return result

    async def _accrue(
        self,
        article_ref: Any,
        quantity_received: Any,
        cargo_marking: Optional[str],
        order_reference: Optional[str],
        delivery_note_item_id: Optional[int],
        request_payload: Dict[str, Any],
    ) -> Tuple[AccrualResult, Any]:
        if not isinstance(article_ref, str) or not article_ref:
            return self._invalid("Missing article number", article_ref), None
        if isinstance(quantity_received, bool) or not isinstance(quantity_received, int) or quantity_received < 1:
            return self._invalid(f"Invalid quantity received: {quantity_received!r}", article_ref), None

        quantity = quantity_received
        existing_stock = is_existing_stock(article_ref)
        if existing_stock:
            logger.info(f"Article {article_ref} marked as existing stock")

        # Step 1: locate the order
        try:
            resolution = await self.order_chain.resolve_order(article_ref, order_reference)
        except NoOrderFound as e:
            reasons = "; ".join(e.attempts)
            logger.warning(f"{str(e)} ({reasons})")
            return AccrualResult(
                article_ref=article_ref,
                quantity_received=quantity,
                is_existing_stock=existing_stock,
                skipped_purchase_order_sync=True,
                status=OutcomeStatus.WARNING,
                step="order_lookup",
                message=f"{str(e)}: {reasons}" if reasons else str(e),
                user_message="Ingen order hittades för denna artikel i Sellus. Kontrollera artikelnummer och ordernummer.",
            ), None

        request_payload["remoteOrderId"] = resolution.remote_order_id
        base = dict(
            article_ref=article_ref,
            quantity_received=quantity,
            remote_order_id=resolution.remote_order_id,
            order_strategy=resolution.strategy,
            is_existing_stock=existing_stock,
        )

        # Step 2: mirror the receipt into the local order shadow
        order = await self._mirror_receipt(resolution, article_ref, quantity, order_reference, delivery_note_item_id)
        base["local_order_id"] = order.id

        # Step 3: find the purchase order
        reference = (cargo_marking or "").strip() or (order_reference or "").strip()
        if not reference:
            return AccrualResult(
                **base,
                skipped_purchase_order_sync=True,
                status=OutcomeStatus.WARNING,
                step="no_cargo_marking",
                message="Order updated in WMS but purchase order not synced (no cargo marking)",
                user_message="Artikel registrerad men inköpsorder ej uppdaterad (saknar godsmärkning)",
            ), None

        search = await self.client.search_purchase_orders(reference)
        candidates = []
        if search.success:
            candidates = [po for po in SellusPurchaseOrder.from_list(search.data, "purchaseOrders") if po.id]
        if not candidates:
            detail = f" ({search.error})" if not search.success else ""
            return AccrualResult(
                **base,
                status=OutcomeStatus.WARNING,
                step="purchase_order_not_found",
                message=f"No purchase order found with cargo marking: {reference}{detail}",
                user_message=f'Artikel registrerad men inköpsorder med godsmärkning "{reference}" hittades inte',
            ), None

        purchase_order_id = candidates[0].id
        base["purchase_order_id"] = purchase_order_id
        request_payload["purchaseOrderId"] = purchase_order_id

        details = await self.client.get_purchase_order(purchase_order_id)
        purchase_order = SellusPurchaseOrder.from_payload(details.data) if details.success else None
        if purchase_order is None or not details.data:
            return AccrualResult(
                **base,
                status=OutcomeStatus.WARNING,
                step="purchase_order_details_failed",
                message=f"Could not fetch purchase order details for {purchase_order_id}",
                user_message="Artikel registrerad men kunde inte hämta inköpsorderdetaljer",
            ), None

        # Step 4: accrue onto the counters and write the full record back
        old_quantities = CounterTriple(
            shipped_quantity=purchase_order.shipped_quantity,
            stock_quantity=purchase_order.stock_quantity,
            total_stock_quantity=purchase_order.total_stock_quantity,
        )
        new_quantities = old_quantities.accrue(quantity)
        request_payload["oldQuantities"] = old_quantities.model_dump()
        request_payload["newQuantities"] = new_quantities.model_dump()
        logger.info(
            f"Purchase order {purchase_order_id}: {old_quantities.model_dump()} + {quantity} "
            f"-> {new_quantities.model_dump()}"
        )

        payload = {**purchase_order.raw, **new_quantities.as_payload()}
        update = await self.client.update_purchase_order(purchase_order_id, payload)

        base.update(old_quantities=old_quantities, new_quantities=new_quantities)
        if not update.success:
            return AccrualResult(
                **base,
                status=OutcomeStatus.ERROR,
                step="purchase_order_update_failed",
                message=f"Failed to update purchase order: {update.error}",
                user_message="VARNING: Artikel registrerad i WMS men inköpsorder kunde inte uppdateras i Sellus. Uppdatera manuellt!",
            ), None

        return AccrualResult(
            **base,
            status=OutcomeStatus.SUCCESS,
            step="complete",
            message="Delivery item processed successfully through full workflow",
            user_message=f"Artikel {article_ref} mottagen och synkad till Sellus",
        ), update.data

    def _invalid(self, message: str, article_ref: Any) -> AccrualResult:
        return AccrualResult(
            article_ref=article_ref if isinstance(article_ref, str) and article_ref else None,
            status=OutcomeStatus.ERROR,
            step="validation",
            message=message,
            user_message="Artikelnummer och antal (minst 1) krävs.",
        )

    async def _mirror_receipt(
        self,
        resolution: OrderResolution,
        article_ref: str,
        quantity: int,
        order_reference: Optional[str],
        delivery_note_item_id: Optional[int],
    ) -> Order:
        now = utc_now()
        order = await self.orders.get_by_external_id(resolution.remote_order_id)
        if order is None:
            remote = resolution.order
            order = await self.orders.create(
                resolution.remote_order_id,
                order_number=remote.order_number or order_reference or resolution.remote_order_id,
                customer_name=remote.customer_name or "Unknown",
                customer_notes=f"Godsmärkning: {order_reference}" if order_reference else None,
                status=OrderStatus.PENDING.value,
                order_date=parse_datetime(remote.order_date) or now,
                last_seen_remote_at=now,
            )
            logger.info(f"Created local order {order.id} for Sellus order {resolution.remote_order_id}")

        line = await self.orders.get_line(order.id, article_ref)
        if line is not None:
            picked = (line.quantity_picked or 0) + quantity
            await self.orders.update_line(
                line,
                quantity_picked=picked,
                is_picked=picked >= (line.quantity_ordered or 0),
                picked_at=now,
            )
            logger.info(f"Order line {line.id}: picked {picked} of {line.quantity_ordered}")
        else:
            await self.orders.add_line(
                order.id,
                article_ref,
                quantity_ordered=quantity,
                quantity_picked=quantity,
                is_picked=True,
                picked_at=now,
            )
            logger.info(f"Created order line for {article_ref} on order {order.id} with quantity {quantity}")

        if delivery_note_item_id is not None:
            item = await self.deliveries.get_item(delivery_note_item_id)
            if item is not None:
                await self.deliveries.update_item(
                    item, order_id=order.id, external_order_id=resolution.remote_order_id
                )
        return order
