from .product import Product, Location, InventoryRecord
from .order import Order, OrderLine
from .delivery_note import DeliveryNote, DeliveryNoteItem
from .sync_ledger import SyncLedgerEntry
from .sync_failure import UnresolvedSyncFailure
from .sync_checkpoint import SyncCheckpoint

# This ensures all models are registered with SQLAlchemy
__all__ = [
    'Product',
    'Location',
    'InventoryRecord',
    'Order',
    'OrderLine',
    'DeliveryNote',
    'DeliveryNoteItem',
    'SyncLedgerEntry',
    'UnresolvedSyncFailure',
    'SyncCheckpoint',
]
