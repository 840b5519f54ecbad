# wms/services/engine.py
"""
Builds the reconciliation workflows on top of one set of stores.

Routes, the scheduler and the CLI all go through `SyncEngine`, so every
entry point runs the same wiring. The workflows flush; whoever owns the
session commits.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from wms.core.config import Settings, get_settings
from wms.database import async_session, get_session
from wms.services.delivery_intake import DeliveryIntake
from wms.services.delivery_workflow import DeliveryWorkflow
from wms.services.identifier_resolver import IdentifierResolver
from wms.services.inventory_export import InventoryExport
from wms.services.order_import import OrderImport
from wms.services.order_resolution import OrderResolutionChain
from wms.services.purchase_order_accrual import PurchaseOrderAccrual
from wms.services.retry_coordinator import RetryCoordinator
from wms.services.sellus.client import SellusClient
from wms.services.stock_reconciliation import StockReconciliation
from wms.services.sync_ledger import SyncLedger
from wms.stores.base import (
    CheckpointStore,
    DeliveryStore,
    FailureStore,
    LedgerStore,
    OrderStore,
    ProductStore,
)
from wms.stores.sql import (
    SqlCheckpointStore,
    SqlDeliveryStore,
    SqlFailureStore,
    SqlLedgerStore,
    SqlOrderStore,
    SqlProductStore,
)


class SyncEngine:

    def __init__(
        self,
        client: SellusClient,
        products: ProductStore,
        orders: OrderStore,
        failures: FailureStore,
        deliveries: DeliveryStore,
        checkpoints: CheckpointStore,
        ledger_store: LedgerStore,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.client = client
        self.products = products
        self.failures = failures
        self.ledger = SyncLedger(ledger_store)

        self.resolver = IdentifierResolver(client, products, self.ledger)
        self.order_chain = OrderResolutionChain(client, self.resolver)
        self.stock = StockReconciliation(client, self.resolver, products, failures, self.ledger)
        self.accrual = PurchaseOrderAccrual(client, self.order_chain, orders, deliveries, self.ledger)
        self.retry = RetryCoordinator(failures, self.resolver, self.stock, batch_limit=settings.RETRY_BATCH_LIMIT)
        self.delivery = DeliveryWorkflow(deliveries, products, self.accrual, self.stock)
        self.intake = DeliveryIntake(deliveries)
        self.inventory = InventoryExport(products, self.stock, checkpoints)
        self.order_import = OrderImport(
            client, orders, checkpoints, self.ledger, grace_hours=settings.ZOMBIE_GRACE_HOURS
        )

    @classmethod
    def for_session(
        cls,
        db: AsyncSession,
        client: Optional[SellusClient] = None,
        settings: Optional[Settings] = None,
    ) -> "SyncEngine":
        settings = settings or get_settings()
        return cls(
            client=client or SellusClient.from_settings(settings),
            products=SqlProductStore(db),
            orders=SqlOrderStore(db),
            failures=SqlFailureStore(db),
            deliveries=SqlDeliveryStore(db),
            checkpoints=SqlCheckpointStore(db),
            ledger_store=SqlLedgerStore(async_session),
            settings=settings,
        )


@asynccontextmanager
async def engine_session(client: Optional[SellusClient] = None) -> AsyncIterator[SyncEngine]:
    """Engine on a fresh session, committed on exit (for the scheduler and CLI)."""
    async with get_session() as db:
        try:
            yield SyncEngine.for_session(db, client)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
