"""
Shared enums and constants used across the application.
"""

from enum import Enum


class ProductSyncStatus(str, Enum):
    """Sync state of a product's link to its Sellus item"""
    UNSYNCED = "unsynced"
    SYNCED = "synced"
    ERROR = "error"


class LedgerStatus(str, Enum):
    """Status values stored on sync ledger entries"""
    SUCCESS = "success"
    ERROR = "error"
    PARTIAL_SUCCESS = "partial_success"


class OutcomeStatus(str, Enum):
    """
    Outcome of a workflow as reported to the caller.

    WARNING means the local side was updated but Sellus was not (or could not be verified).
    """
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"

    @property
    def ledger_status(self) -> LedgerStatus:
        return {
            OutcomeStatus.SUCCESS: LedgerStatus.SUCCESS,
            OutcomeStatus.WARNING: LedgerStatus.PARTIAL_SUCCESS,
            OutcomeStatus.ERROR: LedgerStatus.ERROR,
        }[self]


class SyncDirection(str, Enum):
    WMS_TO_SELLUS = "wms_to_sellus"
    SELLUS_TO_WMS = "sellus_to_wms"


class SyncType(str, Enum):
    RESOLVE_ITEM_ID = "resolve_item_id"
    BATCH_RESOLVE_ITEM_IDS = "batch_resolve_item_ids"
    INVENTORY_ITEM = "inventory_item"
    DELIVERY_ITEM_WORKFLOW = "delivery_item_workflow"
    SALE_IMPORT = "sale_import"
    ZOMBIE_CLEANUP = "zombie_cleanup"


class CheckpointType(str, Enum):
    SALE_IMPORT = "sale_import"
    INVENTORY_EXPORT = "inventory_export"


class DeliveryNoteStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class OrderStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
