# wms/services/order_import.py
"""
Keeps the local order shadow in step with Sellus.

`import_orders` pulls orders changed since the last successful import into
the Order/OrderLine shadow. `cleanup_zombie_orders` removes shadow orders that
have disappeared from Sellus for longer than the grace window.
"""

import logging
import time
from datetime import datetime, timedelta
from typing import Optional

from wms.core.enums import (
    CheckpointType,
    LedgerStatus,
    OrderStatus,
    OutcomeStatus,
    SyncDirection,
    SyncType,
)
from wms.core.utils import parse_datetime, utc_now
from wms.models import Order
from wms.schemas.sellus import SellusOrder, SellusOrderSummary
from wms.schemas.sync import OrderImportSummary, ZombieCleanupSummary
from wms.services.sellus.client import SellusClient
from wms.services.sync_ledger import SyncLedger
from wms.stores.base import CheckpointStore, OrderStore

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK = timedelta(hours=24)


class OrderImport:

    def __init__(
        self,
        client: SellusClient,
        orders: OrderStore,
        checkpoints: CheckpointStore,
        ledger: SyncLedger,
        grace_hours: int = 24,
    ):
        self.client = client
        self.orders = orders
        self.checkpoints = checkpoints
        self.ledger = ledger
        self.grace_hours = grace_hours

    async def import_orders(self, now: Optional[datetime] = None) -> OrderImportSummary:
        """Import paid/confirmed Sellus orders since the last checkpoint (or the last 24h)."""
        started = time.monotonic()
        now = now or utc_now()

        checkpoint = await self.checkpoints.get(CheckpointType.SALE_IMPORT.value)
        since = parse_datetime(checkpoint.last_successful_sync) if checkpoint is not None else None
        since = since or now - DEFAULT_LOOKBACK
        summary = OrderImportSummary(since=since)
        logger.info(f"Importing Sellus orders since {since.isoformat()}")

        result = await self.client.list_orders(since=since.isoformat())
        if not result.success:
            summary.error = f"Could not fetch orders: {result.error}"
            summary.duration_ms = int((time.monotonic() - started) * 1000)
            logger.error(summary.error)
            await self._record(summary, LedgerStatus.ERROR)
            return summary

        remote_orders = SellusOrder.from_list(result.data, "orders")
        summary.fetched = len(remote_orders)

        for remote in remote_orders:
            if not remote.id or not remote.is_sale:
                summary.skipped += 1
                continue
            created = await self._upsert(remote, now)
            if created:
                summary.imported += 1
            else:
                summary.updated += 1

        await self.checkpoints.record(
            CheckpointType.SALE_IMPORT.value, now, synced=summary.imported + summary.updated
        )
        summary.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"Order import complete: {summary.fetched} fetched, {summary.imported} new, "
            f"{summary.updated} updated, {summary.skipped} skipped"
        )
        await self._record(summary, LedgerStatus.SUCCESS)
        return summary

    async def _upsert(self, remote: SellusOrder, now: datetime) -> bool:
        """Create or refresh the shadow of one order. Returns True when it was created."""
        fields = {
            "order_number": remote.order_number or remote.id,
            "customer_name": remote.customer_name,
            "order_date": parse_datetime(remote.order_date),
            "last_seen_remote_at": now,
        }
        local = await self.orders.get_by_external_id(remote.id)
        created = local is None
        if created:
            local = await self.orders.create(remote.id, status=OrderStatus.PENDING.value, **fields)
        else:
            await self.orders.update(local, **{k: v for k, v in fields.items() if v is not None})

        for line in remote.parsed_lines:
            if not line.article_ref:
                logger.warning(f"Skipping order line without article id in order {remote.id}")
                continue
            existing = await self.orders.get_line(local.id, line.article_ref)
            if existing is None:
                await self.orders.add_line(
                    local.id,
                    line.article_ref,
                    description=line.description,
                    quantity_ordered=line.quantity,
                    quantity_picked=0,
                    is_picked=False,
                )
            else:
                await self.orders.update_line(
                    existing,
                    quantity_ordered=line.quantity,
                    description=line.description or existing.description,
                    is_picked=(existing.quantity_picked or 0) >= line.quantity,
                )
        return created

    async def _record(self, summary: OrderImportSummary, status: LedgerStatus) -> None:
        await self.ledger.record(
            sync_type=SyncType.SALE_IMPORT,
            direction=SyncDirection.SELLUS_TO_WMS,
            status=status,
            request_payload={"since": summary.since},
            response_payload=summary.model_dump(mode="json", exclude={"since", "error"}),
            error_message=summary.error,
            duration_ms=summary.duration_ms,
        )

    async def cleanup_zombie_orders(self, now: Optional[datetime] = None) -> ZombieCleanupSummary:
        """
        Delete shadow orders missing from the Sellus listing for longer than the grace window.

        Orders still listed get their last_seen_remote_at refreshed. If the
        listing cannot be fetched nothing is deleted.
        """
        started = time.monotonic()
        now = now or utc_now()
        cutoff = now - timedelta(hours=self.grace_hours)

        result = await self.client.list_orders()
        if not result.success:
            summary = ZombieCleanupSummary(
                status=OutcomeStatus.ERROR,
                message=f"Could not fetch the Sellus order listing, nothing deleted: {result.error}",
            )
            logger.error(summary.message)
            await self._record_cleanup(summary, started)
            return summary

        remote_ids = {o.id for o in SellusOrderSummary.from_list(result.data, "orders") if o.id}
        local_orders = await self.orders.all_orders()
        summary = ZombieCleanupSummary(
            status=OutcomeStatus.SUCCESS,
            message="",
            remote_orders=len(remote_ids),
            checked=len(local_orders),
        )

        for order in local_orders:
            if order.external_order_id in remote_ids:
                await self.orders.update(order, last_seen_remote_at=now)
                continue
            if self._is_zombie(order, cutoff):
                logger.info(f"Deleting zombie order {order.external_order_id} (last seen {self._last_seen(order)})")
                summary.deleted_order_ids.append(order.external_order_id)
                await self.orders.delete(order)

        summary.deleted = len(summary.deleted_order_ids)
        summary.message = f"Deleted {summary.deleted} of {summary.checked} local orders missing from Sellus"
        logger.info(summary.message)
        await self._record_cleanup(summary, started)
        return summary

    @staticmethod
    def _last_seen(order: Order) -> Optional[datetime]:
        return parse_datetime(order.last_seen_remote_at) or parse_datetime(order.created_at)

    def _is_zombie(self, order: Order, cutoff: datetime) -> bool:
        last_seen = self._last_seen(order)
        return last_seen is not None and last_seen < cutoff

    async def _record_cleanup(self, summary: ZombieCleanupSummary, started: float) -> None:
        await self.ledger.record(
            sync_type=SyncType.ZOMBIE_CLEANUP,
            direction=SyncDirection.SELLUS_TO_WMS,
            status=summary.status.ledger_status,
            response_payload=summary.model_dump(mode="json"),
            error_message=summary.message if summary.status != OutcomeStatus.SUCCESS else None,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
