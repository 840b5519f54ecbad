"""
Persistence seams used by the sync workflows.

Workflows only talk to these interfaces; `wms.stores.sql` implements them on
the async SQLAlchemy session, and the tests swap in in-memory versions.
Implementations flush but never commit: the caller owns the unit of work.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from wms.models import (
    DeliveryNote,
    DeliveryNoteItem,
    Order,
    OrderLine,
    Product,
    SyncCheckpoint,
    SyncLedgerEntry,
    UnresolvedSyncFailure,
)


class ProductStore(ABC):
    """Products and the cached Sellus numeric id."""

    @abstractmethod
    async def get(self, product_id: int) -> Optional[Product]:
        pass

    @abstractmethod
    async def find_by_article_ref(self, article_ref: str) -> Optional[Product]:
        pass

    @abstractmethod
    async def with_article_ref(self) -> List[Product]:
        """All products carrying an article reference."""
        pass

    @abstractmethod
    async def unresolved_with_ref(self) -> List[Product]:
        """Products with an article reference but no cached numeric id."""
        pass

    @abstractmethod
    async def total_stock(self, product_id: int) -> int:
        """Sum of the product's inventory records over all locations."""
        pass

    @abstractmethod
    async def set_resolved(self, product_id: int, numeric_id: str, when: datetime) -> None:
        pass

    @abstractmethod
    async def clear_resolved(self, product_id: int) -> None:
        pass

    @abstractmethod
    async def mark_synced(self, product_id: int, when: datetime) -> None:
        pass

    @abstractmethod
    async def mark_error(self, product_id: int) -> None:
        pass


class OrderStore(ABC):
    """The local shadow of Sellus orders."""

    @abstractmethod
    async def get_by_external_id(self, external_order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def create(self, external_order_id: str, **fields: Any) -> Order:
        pass

    @abstractmethod
    async def update(self, order: Order, **fields: Any) -> Order:
        pass

    @abstractmethod
    async def get_line(self, order_id: int, article_ref: str) -> Optional[OrderLine]:
        pass

    @abstractmethod
    async def add_line(self, order_id: int, article_ref: str, **fields: Any) -> OrderLine:
        pass

    @abstractmethod
    async def update_line(self, line: OrderLine, **fields: Any) -> OrderLine:
        pass

    @abstractmethod
    async def all_orders(self) -> List[Order]:
        pass

    @abstractmethod
    async def delete(self, order: Order) -> None:
        pass


class FailureStore(ABC):
    """Unresolved sync failures: the retry queue."""

    @abstractmethod
    async def enqueue(
        self,
        product_id: Optional[int],
        product_name: str,
        article_ref: Optional[str],
        quantity_changed: int,
        order_number: Optional[str],
        error_message: str,
    ) -> UnresolvedSyncFailure:
        pass

    @abstractmethod
    async def get(self, failure_id: int) -> Optional[UnresolvedSyncFailure]:
        pass

    @abstractmethod
    async def unresolved(self, limit: int) -> List[UnresolvedSyncFailure]:
        """Rows with resolved_at IS NULL, oldest first."""
        pass

    @abstractmethod
    async def mark_resolved(
        self, failure_id: int, when: datetime, resolved_by: Optional[str] = None
    ) -> Optional[UnresolvedSyncFailure]:
        pass

    @abstractmethod
    async def recent(self, include_resolved: bool = False, limit: int = 100) -> List[UnresolvedSyncFailure]:
        pass


class DeliveryStore(ABC):
    """Delivery notes and their items."""

    @abstractmethod
    async def get_item(self, item_id: int) -> Optional[DeliveryNoteItem]:
        pass

    @abstractmethod
    async def get_note(self, note_id: int) -> Optional[DeliveryNote]:
        pass

    @abstractmethod
    async def items_for_note(self, note_id: int) -> List[DeliveryNoteItem]:
        pass

    @abstractmethod
    async def update_item(self, item: DeliveryNoteItem, **fields: Any) -> DeliveryNoteItem:
        pass

    @abstractmethod
    async def update_note(self, note: DeliveryNote, **fields: Any) -> DeliveryNote:
        pass

    @abstractmethod
    async def create_note(
        self,
        delivery_note_number: Optional[str],
        cargo_marking: Optional[str],
        items: List[Dict[str, Any]],
    ) -> DeliveryNote:
        pass


class CheckpointStore(ABC):

    @abstractmethod
    async def get(self, sync_type: str) -> Optional[SyncCheckpoint]:
        pass

    @abstractmethod
    async def record(self, sync_type: str, when: datetime, synced: int = 0, errors: int = 0) -> SyncCheckpoint:
        """Move the checkpoint forward and add to its running totals."""
        pass


class LedgerStore(ABC):
    """Append-only storage for sync ledger entries."""

    @abstractmethod
    async def append(self, **fields: Any) -> SyncLedgerEntry:
        pass

    @abstractmethod
    async def recent(
        self,
        limit: int = 100,
        sync_type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[SyncLedgerEntry]:
        pass
