"""
Schema exports for the application.
"""

# Base schemas
from .base import BaseSchema

# Sellus payload parsers
from .sellus import (
    SellusItem,
    SellusOrderSummary,
    SellusOrder,
    SellusOrderLine,
    SellusPurchaseOrder,
    extract_list,
)

# Delivery note intake
from .delivery import ExtractedDeliveryNote, ExtractedDeliveryItem

# Workflow outcomes
from .sync import (
    WorkflowOutcome,
    ResolvedId,
    ResolveIdResult,
    BatchResolveSummary,
    StockSyncResult,
    CounterTriple,
    AccrualResult,
    RetrySummary,
    DeliveryCheckResult,
    InventoryExportSummary,
    OrderImportSummary,
    ZombieCleanupSummary,
    IntakeResult,
    SyncFailureRead,
    SyncLedgerRead,
)
