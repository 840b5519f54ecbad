# wms/services/stock_reconciliation.py
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from wms.core.enums import OutcomeStatus, SyncDirection, SyncType
from wms.core.exceptions import SyncError, VerificationMismatch
from wms.models import Product
from wms.schemas.sellus import SellusItem
from wms.schemas.sync import StockSyncResult
from wms.services.identifier_resolver import IdentifierResolver
from wms.services.sellus.client import SellusClient
from wms.services.sync_ledger import SyncLedger
from wms.stores.base import FailureStore, ProductStore

logger = logging.getLogger(__name__)

# Fields Sellus rejects an item update without; existing values win
REQUIRED_ITEM_DEFAULTS = {
    "vatId": 1,
    "salesAccount": 3001,
    "stockStatus": "stockItem",
    "inventoryStatus": "normal",
}


def _branch_value(branch_id: str) -> Any:
    return int(branch_id) if str(branch_id).isdigit() else branch_id


class StockReconciliation:
    """
    Pushes a product's authoritative local stock to Sellus and checks it landed.

    The local total (sum over all inventory locations) always wins. The item
    record is read first so the update can echo back the fields Sellus
    requires, then written, then read again to verify.
    """

    def __init__(
        self,
        client: SellusClient,
        resolver: IdentifierResolver,
        products: ProductStore,
        failures: FailureStore,
        ledger: SyncLedger,
    ):
        self.client = client
        self.resolver = resolver
        self.products = products
        self.failures = failures
        self.ledger = ledger

    async def reconcile_stock(
        self,
        product_id: int,
        quantity_changed: Optional[int] = None,
        order_number: Optional[str] = None,
        enqueue_failure: bool = True,
    ) -> StockSyncResult:
        """
        Sync one product's stock to Sellus.

        Args:
            product_id: Local product id
            quantity_changed: The local change that triggered the sync, kept on a failure row
            order_number: Order the change belongs to, kept on a failure row
            enqueue_failure: Write an UnresolvedSyncFailure on terminal failure.
                The retry coordinator passes False so retries do not duplicate rows.

        Returns:
            StockSyncResult; exactly one ledger entry is written per call
        """
        started = time.monotonic()
        request_payload: Dict[str, Any] = {
            "product_id": product_id,
            "quantity_changed": quantity_changed,
            "order_number": order_number,
        }
        response_payload = None

        try:
            result, response_payload = await self._reconcile(
                product_id, quantity_changed, order_number, enqueue_failure, request_payload
            )
        except Exception as e:
            logger.exception(f"Unexpected error syncing stock for product {product_id}")
            result = StockSyncResult(
                product_id=product_id,
                status=OutcomeStatus.ERROR,
                step="exception",
                message=f"Unexpected error: {str(e)}",
                user_message="Ett oväntat fel inträffade. Kontakta administratör.",
            )

        result.duration_ms = int((time.monotonic() - started) * 1000)
        await self.ledger.record(
            sync_type=SyncType.INVENTORY_ITEM,
            direction=SyncDirection.WMS_TO_SELLUS,
            status=result.status.ledger_status,
            related_article_ref=result.article_ref,
            related_product_id=product_id,
            request_payload=request_payload,
            response_payload=response_payload,
            error_message=None if result.status == OutcomeStatus.SUCCESS else result.message,
            duration_ms=result.duration_ms,
        )
        return result

    async def _reconcile(
        self,
        product_id: int,
        quantity_changed: Optional[int],
        order_number: Optional[str],
        enqueue_failure: bool,
        request_payload: Dict[str, Any],
    ) -> Tuple[StockSyncResult, Any]:
        product = await self.products.get(product_id)
        if product is None:
            return StockSyncResult(
                product_id=product_id,
                status=OutcomeStatus.ERROR,
                step="product_not_found",
                message=f"Product {product_id} not found",
                user_message="Produkten finns inte.",
            ), None

        target_stock = await self.products.total_stock(product_id)
        request_payload["stock"] = target_stock
        logger.info(f"Syncing stock for product {product_id} ({product.name}): {target_stock}")

        try:
            resolved = await self.resolver.resolve(product_id, record=False)
        except SyncError as e:
            enqueued = await self._enqueue_failure(product, quantity_changed, order_number, str(e), enqueue_failure)
            return StockSyncResult(
                product_id=product_id,
                article_ref=product.external_article_ref,
                target_stock=target_stock,
                status=OutcomeStatus.ERROR,
                step="resolve_item_id",
                message=str(e),
                user_message="Lagersaldot kunde inte synkas: artikeln kunde inte kopplas till Sellus.",
                failure_enqueued=enqueued,
            ), None

        numeric_id = resolved.numeric_id
        request_payload["numeric_id"] = numeric_id

        current = await self.client.get_item(numeric_id)
        existing: Dict[str, Any] = dict(current.data) if current.success and isinstance(current.data, dict) else {}
        if not current.success:
            logger.warning(f"Could not read Sellus item {numeric_id}, sending minimal payload: {current.error}")
        old_stock = SellusItem.from_payload(existing).observed_stock if existing else None

        payload = self._build_payload(existing, target_stock)

        write = await self.client.update_item(numeric_id, payload)
        write_method = "POST"
        if write.method_not_allowed:
            logger.info(f"Sellus refused POST for item {numeric_id}, retrying with PUT")
            write = await self.client.update_item(numeric_id, payload, method="PUT")
            write_method = "PUT"
        request_payload["method"] = write_method

        if not write.success:
            await self.products.mark_error(product_id)
            error = f"Failed to update stock in Sellus: {write.error}"
            enqueued = await self._enqueue_failure(product, quantity_changed, order_number, error, enqueue_failure)
            return StockSyncResult(
                product_id=product_id,
                article_ref=product.external_article_ref,
                numeric_id=numeric_id,
                target_stock=target_stock,
                old_stock=old_stock,
                write_method=write_method,
                status=OutcomeStatus.ERROR,
                step="write_stock",
                message=error,
                user_message="VARNING: Lagersaldot kunde inte uppdateras i Sellus. Felet har sparats för ny körning.",
                failure_enqueued=enqueued,
            ), None

        await self.products.mark_synced(product_id, datetime.now(timezone.utc))

        check = await self.client.get_item(numeric_id)
        observed = None
        if check.success:
            item = SellusItem.from_payload(check.data)
            observed = item.observed_stock if item is not None else None

        common = dict(
            product_id=product_id,
            article_ref=product.external_article_ref,
            numeric_id=numeric_id,
            target_stock=target_stock,
            old_stock=old_stock,
            observed_stock=observed,
            write_method=write_method,
        )

        if check.success and observed == target_stock:
            logger.info(f"Stock for product {product_id} verified in Sellus: {old_stock} -> {target_stock}")
            return StockSyncResult(
                **common,
                verified=True,
                status=OutcomeStatus.SUCCESS,
                step="verified",
                message=f"Stock updated in Sellus: {old_stock} -> {target_stock}",
                user_message=f"Lagersaldo {target_stock} synkat till Sellus.",
            ), write.data

        if check.success:
            message = str(VerificationMismatch(target_stock, observed))
        else:
            message = f"Could not read back item {numeric_id}: {check.error}"
        logger.warning(f"Stock write for product {product_id} not verified: {message}")
        return StockSyncResult(
            **common,
            verified=False,
            status=OutcomeStatus.WARNING,
            step="verification",
            message=message,
            user_message="Lagersaldot skickades till Sellus men kunde inte bekräftas. Kontrollera i Sellus.",
        ), write.data

    def _build_payload(self, existing: Dict[str, Any], target_stock: int) -> Dict[str, Any]:
        payload = dict(existing)
        for key, default in REQUIRED_ITEM_DEFAULTS.items():
            if payload.get(key) is None:
                payload[key] = default
        if self.client.branch_id:
            payload["branchId"] = _branch_value(self.client.branch_id)
        payload["stock"] = target_stock
        payload["quantity"] = target_stock
        payload["availableQuantity"] = target_stock
        return payload

    async def _enqueue_failure(
        self,
        product: Product,
        quantity_changed: Optional[int],
        order_number: Optional[str],
        error: str,
        enabled: bool,
    ) -> bool:
        if not enabled:
            return False
        await self.failures.enqueue(
            product_id=product.id,
            product_name=product.name or "",
            article_ref=product.external_article_ref,
            quantity_changed=quantity_changed or 0,
            order_number=order_number,
            error_message=error,
        )
        logger.info(f"Queued stock sync failure for product {product.id} for retry")
        return True
