"""
SQLAlchemy implementations of the persistence seams.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wms.core.enums import DeliveryNoteStatus, ProductSyncStatus
from wms.models import (
    DeliveryNote,
    DeliveryNoteItem,
    InventoryRecord,
    Order,
    OrderLine,
    Product,
    SyncCheckpoint,
    SyncLedgerEntry,
    UnresolvedSyncFailure,
)
from wms.stores.base import (
    CheckpointStore,
    DeliveryStore,
    FailureStore,
    LedgerStore,
    OrderStore,
    ProductStore,
)

logger = logging.getLogger(__name__)


def _apply(instance, fields: Dict[str, Any]):
    for key, value in fields.items():
        setattr(instance, key, value)
    return instance


class SqlProductStore(ProductStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, product_id: int) -> Optional[Product]:
        return await self.db.get(Product, product_id)

    async def find_by_article_ref(self, article_ref: str) -> Optional[Product]:
        query = (
            select(Product)
            .where(Product.external_article_ref == article_ref)
            .order_by(Product.id)
            .limit(1)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def with_article_ref(self) -> List[Product]:
        query = (
            select(Product)
            .where(Product.external_article_ref.isnot(None), Product.external_article_ref != "")
            .order_by(Product.id)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def unresolved_with_ref(self) -> List[Product]:
        query = (
            select(Product)
            .where(
                Product.external_article_ref.isnot(None),
                Product.external_article_ref != "",
                Product.external_numeric_id.is_(None),
            )
            .order_by(Product.id)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def total_stock(self, product_id: int) -> int:
        query = select(func.coalesce(func.sum(InventoryRecord.quantity), 0)).where(
            InventoryRecord.product_id == product_id
        )
        result = await self.db.execute(query)
        return int(result.scalar() or 0)

    async def set_resolved(self, product_id: int, numeric_id: str, when: datetime) -> None:
        product = await self.get(product_id)
        if product is None:
            return
        product.external_numeric_id = numeric_id
        product.sync_status = ProductSyncStatus.SYNCED
        product.last_synced_at = when
        await self.db.flush()

    async def clear_resolved(self, product_id: int) -> None:
        product = await self.get(product_id)
        if product is None:
            return
        product.external_numeric_id = None
        product.sync_status = ProductSyncStatus.UNSYNCED
        await self.db.flush()

    async def mark_synced(self, product_id: int, when: datetime) -> None:
        product = await self.get(product_id)
        if product is None:
            return
        product.sync_status = ProductSyncStatus.SYNCED
        product.last_synced_at = when
        await self.db.flush()

    async def mark_error(self, product_id: int) -> None:
        product = await self.get(product_id)
        if product is None:
            return
        product.sync_status = ProductSyncStatus.ERROR
        await self.db.flush()


class SqlOrderStore(OrderStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_external_id(self, external_order_id: str) -> Optional[Order]:
        result = await self.db.execute(
            select(Order).where(Order.external_order_id == external_order_id)
        )
        return result.scalar_one_or_none()

    async def create(self, external_order_id: str, **fields: Any) -> Order:
        order = Order(external_order_id=external_order_id, **fields)
        self.db.add(order)
        await self.db.flush()
        return order

    async def update(self, order: Order, **fields: Any) -> Order:
        _apply(order, fields)
        await self.db.flush()
        return order

    async def get_line(self, order_id: int, article_ref: str) -> Optional[OrderLine]:
        query = (
            select(OrderLine)
            .where(OrderLine.order_id == order_id, OrderLine.article_ref == article_ref)
            .order_by(OrderLine.id)
            .limit(1)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def add_line(self, order_id: int, article_ref: str, **fields: Any) -> OrderLine:
        line = OrderLine(order_id=order_id, article_ref=article_ref, **fields)
        self.db.add(line)
        await self.db.flush()
        return line

    async def update_line(self, line: OrderLine, **fields: Any) -> OrderLine:
        _apply(line, fields)
        await self.db.flush()
        return line

    async def all_orders(self) -> List[Order]:
        result = await self.db.execute(select(Order).order_by(Order.id))
        return list(result.scalars().all())

    async def delete(self, order: Order) -> None:
        # Bulk deletes keep the async session from lazy-loading the lines collection
        await self.db.execute(delete(OrderLine).where(OrderLine.order_id == order.id))
        await self.db.execute(delete(Order).where(Order.id == order.id))
        await self.db.flush()


class SqlFailureStore(FailureStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def enqueue(
        self,
        product_id: Optional[int],
        product_name: str,
        article_ref: Optional[str],
        quantity_changed: int,
        order_number: Optional[str],
        error_message: str,
    ) -> UnresolvedSyncFailure:
        failure = UnresolvedSyncFailure(
            product_id=product_id,
            product_name=product_name or "",
            article_ref=article_ref,
            quantity_changed=quantity_changed or 0,
            order_number=order_number,
            error_message=error_message,
        )
        self.db.add(failure)
        await self.db.flush()
        return failure

    async def get(self, failure_id: int) -> Optional[UnresolvedSyncFailure]:
        return await self.db.get(UnresolvedSyncFailure, failure_id)

    async def unresolved(self, limit: int) -> List[UnresolvedSyncFailure]:
        query = (
            select(UnresolvedSyncFailure)
            .where(UnresolvedSyncFailure.resolved_at.is_(None))
            .order_by(UnresolvedSyncFailure.created_at.asc(), UnresolvedSyncFailure.id.asc())
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def mark_resolved(
        self, failure_id: int, when: datetime, resolved_by: Optional[str] = None
    ) -> Optional[UnresolvedSyncFailure]:
        failure = await self.get(failure_id)
        if failure is None:
            return None
        failure.resolved_at = when
        failure.resolved_by = resolved_by
        await self.db.flush()
        return failure

    async def recent(self, include_resolved: bool = False, limit: int = 100) -> List[UnresolvedSyncFailure]:
        query = select(UnresolvedSyncFailure)
        if not include_resolved:
            query = query.where(UnresolvedSyncFailure.resolved_at.is_(None))
        query = query.order_by(UnresolvedSyncFailure.created_at.desc()).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())


class SqlDeliveryStore(DeliveryStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_item(self, item_id: int) -> Optional[DeliveryNoteItem]:
        return await self.db.get(DeliveryNoteItem, item_id)

    async def get_note(self, note_id: int) -> Optional[DeliveryNote]:
        return await self.db.get(DeliveryNote, note_id)

    async def items_for_note(self, note_id: int) -> List[DeliveryNoteItem]:
        query = (
            select(DeliveryNoteItem)
            .where(DeliveryNoteItem.delivery_note_id == note_id)
            .order_by(DeliveryNoteItem.id)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update_item(self, item: DeliveryNoteItem, **fields: Any) -> DeliveryNoteItem:
        _apply(item, fields)
        await self.db.flush()
        return item

    async def update_note(self, note: DeliveryNote, **fields: Any) -> DeliveryNote:
        _apply(note, fields)
        await self.db.flush()
        return note

    async def create_note(
        self,
        delivery_note_number: Optional[str],
        cargo_marking: Optional[str],
        items: List[Dict[str, Any]],
    ) -> DeliveryNote:
        note = DeliveryNote(
            delivery_note_number=delivery_note_number,
            cargo_marking=cargo_marking,
            status=DeliveryNoteStatus.PENDING.value,
        )
        self.db.add(note)
        await self.db.flush()

        for fields in items:
            self.db.add(DeliveryNoteItem(delivery_note_id=note.id, **fields))
        await self.db.flush()
        return note


class SqlCheckpointStore(CheckpointStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, sync_type: str) -> Optional[SyncCheckpoint]:
        result = await self.db.execute(
            select(SyncCheckpoint).where(SyncCheckpoint.sync_type == sync_type)
        )
        return result.scalar_one_or_none()

    async def record(self, sync_type: str, when: datetime, synced: int = 0, errors: int = 0) -> SyncCheckpoint:
        checkpoint = await self.get(sync_type)
        if checkpoint is None:
            checkpoint = SyncCheckpoint(sync_type=sync_type, total_synced=0, total_errors=0)
            self.db.add(checkpoint)
        checkpoint.last_successful_sync = when
        checkpoint.total_synced = (checkpoint.total_synced or 0) + synced
        checkpoint.total_errors = (checkpoint.total_errors or 0) + errors
        await self.db.flush()
        return checkpoint


class SqlLedgerStore(LedgerStore):
    """
    Writes each entry in its own short-lived session and commits it at once.
    Entries survive a rollback of the workflow session.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def append(self, **fields: Any) -> SyncLedgerEntry:
        async with self.session_factory() as session:
            entry = SyncLedgerEntry(**fields)
            session.add(entry)
            await session.commit()
            return entry

    async def recent(
        self,
        limit: int = 100,
        sync_type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[SyncLedgerEntry]:
        query = select(SyncLedgerEntry)
        if sync_type:
            query = query.where(SyncLedgerEntry.sync_type == sync_type)
        if status:
            query = query.where(SyncLedgerEntry.status == status)
        query = query.order_by(SyncLedgerEntry.created_at.desc()).limit(limit)
        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())
