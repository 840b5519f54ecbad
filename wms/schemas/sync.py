"""
Outcome models returned by the sync workflows.

Every workflow reports a status, the step it stopped at, a technical
`message` for the log/ledger and a `user_message` that can be shown on the
warehouse floor as-is.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from wms.core.enums import OutcomeStatus
from wms.schemas.base import BaseSchema


class WorkflowOutcome(BaseModel):
    status: OutcomeStatus
    step: str
    message: str
    user_message: str
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS


class ResolvedId(BaseModel):
    """A Sellus numeric item id and how it was obtained."""
    numeric_id: str
    cached: bool = False
    method: str = "cache"  # cache, catalog, item_number


class ResolveIdResult(WorkflowOutcome):
    product_id: int
    numeric_id: Optional[str] = None
    cached: bool = False


class ResolveFailure(BaseModel):
    product_id: int
    article_ref: Optional[str] = None
    error: str


class BatchResolveSummary(BaseModel):
    total: int = 0
    resolved: int = 0
    failed: int = 0
    failures: List[ResolveFailure] = Field(default_factory=list)
    error: Optional[str] = None
    duration_ms: int = 0


class StockSyncResult(WorkflowOutcome):
    product_id: int
    article_ref: Optional[str] = None
    numeric_id: Optional[str] = None
    target_stock: Optional[int] = None
    old_stock: Optional[int] = None
    observed_stock: Optional[int] = None
    verified: bool = False
    write_method: Optional[str] = None
    failure_enqueued: bool = False


class CounterTriple(BaseModel):
    """The three receipt counters Sellus keeps on a purchase order."""
    shipped_quantity: int = 0
    stock_quantity: int = 0
    total_stock_quantity: int = 0

    def accrue(self, quantity: int) -> "CounterTriple":
        return CounterTriple(
            shipped_quantity=self.shipped_quantity + quantity,
            stock_quantity=self.stock_quantity + quantity,
            total_stock_quantity=self.total_stock_quantity + quantity,
        )

    def as_payload(self) -> Dict[str, int]:
        return {
            "shippedQuantity": self.shipped_quantity,
            "stockQuantity": self.stock_quantity,
            "totalStockQuantity": self.total_stock_quantity,
        }


class AccrualResult(WorkflowOutcome):
    article_ref: Optional[str] = None
    quantity_received: Optional[int] = None
    remote_order_id: Optional[str] = None
    order_strategy: Optional[str] = None
    local_order_id: Optional[int] = None
    purchase_order_id: Optional[str] = None
    skipped_purchase_order_sync: bool = False
    old_quantities: Optional[CounterTriple] = None
    new_quantities: Optional[CounterTriple] = None
    is_existing_stock: bool = False


class RetrySummary(BaseModel):
    processed: int = 0
    resolved: int = 0
    still_failing: int = 0
    errors: List[str] = Field(default_factory=list)


class DeliveryCheckResult(WorkflowOutcome):
    item_id: int
    is_checked: bool = False
    quantity: int = 0
    note_status: Optional[str] = None
    accrual: Optional[AccrualResult] = None
    stock: Optional[StockSyncResult] = None


class InventoryExportSummary(BaseModel):
    total: int = 0
    synced: int = 0
    warnings: int = 0
    errors: int = 0
    failures: List[str] = Field(default_factory=list)
    duration_ms: int = 0


class OrderImportSummary(BaseModel):
    since: Optional[datetime] = None
    fetched: int = 0
    imported: int = 0
    updated: int = 0
    skipped: int = 0
    error: Optional[str] = None
    duration_ms: int = 0


class ZombieCleanupSummary(BaseModel):
    status: OutcomeStatus
    message: str
    remote_orders: int = 0
    checked: int = 0
    deleted: int = 0
    deleted_order_ids: List[str] = Field(default_factory=list)


class RejectedItem(BaseModel):
    index: int
    article_number: Optional[str] = None
    reason: str


class IntakeResult(BaseModel):
    delivery_note_id: Optional[int] = None
    items_stored: int = 0
    rejected: List[RejectedItem] = Field(default_factory=list)


class SyncFailureRead(BaseSchema):
    id: int
    product_id: Optional[int] = None
    product_name: str = ""
    article_ref: Optional[str] = None
    quantity_changed: int = 0
    order_number: Optional[str] = None
    error_message: str
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None


class SyncLedgerRead(BaseSchema):
    id: int
    sync_type: str
    direction: str
    related_article_ref: Optional[str] = None
    related_product_id: Optional[int] = None
    status: str
    request_payload: Optional[Any] = None
    response_payload: Optional[Any] = None
    error_message: Optional[str] = None
    duration_ms: int = 0
    created_at: Optional[datetime] = None


class CheckItemRequest(BaseModel):
    checked: bool = True


class StockSyncRequest(BaseModel):
    quantity_changed: Optional[int] = None
    order_number: Optional[str] = None


class ResolveFailureRequest(BaseModel):
    resolved_by: str = Field(min_length=1)
