# wms/services/inventory_export.py
import logging
import time

from wms.core.enums import CheckpointType, OutcomeStatus
from wms.core.utils import utc_now
from wms.schemas.sync import InventoryExportSummary
from wms.services.stock_reconciliation import StockReconciliation
from wms.stores.base import CheckpointStore, ProductStore

logger = logging.getLogger(__name__)


class InventoryExport:
    """Bulk stock push: runs stock reconciliation for every linked product."""

    def __init__(self, products: ProductStore, stock: StockReconciliation, checkpoints: CheckpointStore):
        self.products = products
        self.stock = stock
        self.checkpoints = checkpoints

    async def export_all(self) -> InventoryExportSummary:
        started = time.monotonic()
        products = await self.products.with_article_ref()
        summary = InventoryExportSummary(total=len(products))
        logger.info(f"Exporting stock for {len(products)} products to Sellus")

        for product in products:
            result = await self.stock.reconcile_stock(product.id)
            if result.status == OutcomeStatus.SUCCESS:
                summary.synced += 1
            elif result.status == OutcomeStatus.WARNING:
                summary.warnings += 1
            else:
                summary.errors += 1
                summary.failures.append(f"{product.name} ({product.external_article_ref}): {result.message}")

        await self.checkpoints.record(
            CheckpointType.INVENTORY_EXPORT.value,
            utc_now(),
            synced=summary.synced + summary.warnings,
            errors=summary.errors,
        )
        summary.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"Inventory export complete: {summary.synced} synced, {summary.warnings} unverified, "
            f"{summary.errors} failed"
        )
        return summary
