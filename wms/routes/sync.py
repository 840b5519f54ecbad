# wms/routes/sync.py
"""
HTTP surface of the sync engine.

Every endpoint runs one workflow and commits the request's session
afterwards. Workflows report failures in their result, so these handlers
only raise for lookups that miss and for invalid input. A commit that fails
is rolled back and turns a workflow outcome into an error outcome.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wms.core.enums import OutcomeStatus
from wms.core.exceptions import ValidationError
from wms.dependencies import get_db, get_engine
from wms.schemas.sync import (
    BatchResolveSummary,
    CheckItemRequest,
    DeliveryCheckResult,
    IntakeResult,
    InventoryExportSummary,
    OrderImportSummary,
    ResolveFailureRequest,
    ResolveIdResult,
    RetrySummary,
    StockSyncRequest,
    StockSyncResult,
    SyncFailureRead,
    SyncLedgerRead,
    WorkflowOutcome,
    ZombieCleanupSummary,
)
from wms.services.engine import SyncEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["sync"])


async def _commit(db: AsyncSession, result):
    try:
        await db.commit()
    except SQLAlchemyError as e:
        logger.exception(f"Could not commit sync results: {str(e)}")
        await db.rollback()
        if isinstance(result, WorkflowOutcome):
            return result.model_copy(update={
                "status": OutcomeStatus.ERROR,
                "step": "commit",
                "message": f"Local changes were rolled back: {str(e)}",
                "user_message": "Ändringarna kunde inte sparas. Försök igen.",
            })
        raise HTTPException(status_code=500, detail="Sync results could not be saved")
    return result


@router.post("/delivery-notes", response_model=IntakeResult)
async def register_delivery_note(
    payload: dict = Body(...),
    db: AsyncSession = Depends(get_db),
    engine: SyncEngine = Depends(get_engine),
):
    """Store the fields extracted from a scanned delivery note."""
    try:
        result = await engine.intake.register_note(payload)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return await _commit(db, result)


@router.post("/delivery-items/{item_id}/check", response_model=DeliveryCheckResult)
async def check_delivery_item(
    item_id: int,
    request: Optional[CheckItemRequest] = None,
    db: AsyncSession = Depends(get_db),
    engine: SyncEngine = Depends(get_engine),
):
    checked = request.checked if request is not None else True
    result = await engine.delivery.check_off_delivery_item(item_id, checked=checked)
    return await _commit(db, result)


@router.post("/products/{product_id}/sync-stock", response_model=StockSyncResult)
async def sync_product_stock(
    product_id: int,
    request: Optional[StockSyncRequest] = None,
    db: AsyncSession = Depends(get_db),
    engine: SyncEngine = Depends(get_engine),
):
    request = request or StockSyncRequest()
    result = await engine.stock.reconcile_stock(
        product_id,
        quantity_changed=request.quantity_changed,
        order_number=request.order_number,
    )
    return await _commit(db, result)


@router.post("/products/{product_id}/resolve-id", response_model=ResolveIdResult)
async def resolve_product_id(
    product_id: int,
    refresh: bool = False,
    db: AsyncSession = Depends(get_db),
    engine: SyncEngine = Depends(get_engine),
):
    result = await engine.resolver.resolve_product(product_id, refresh=refresh)
    return await _commit(db, result)


@router.post("/sync/resolve-ids", response_model=BatchResolveSummary)
async def resolve_pending_ids(
    db: AsyncSession = Depends(get_db),
    engine: SyncEngine = Depends(get_engine),
):
    """Resolve the Sellus item id of every linked product that has none cached."""
    summary = await engine.resolver.resolve_all_pending()
    return await _commit(db, summary)


@router.post("/sync/retry-failed", response_model=RetrySummary)
async def retry_failed_syncs(
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    engine: SyncEngine = Depends(get_engine),
):
    summary = await engine.retry.retry_unresolved(limit=limit)
    return await _commit(db, summary)


@router.post("/sync/inventory", response_model=InventoryExportSummary)
async def export_inventory(
    db: AsyncSession = Depends(get_db),
    engine: SyncEngine = Depends(get_engine),
):
    summary = await engine.inventory.export_all()
    return await _commit(db, summary)


@router.post("/sync/orders", response_model=OrderImportSummary)
async def import_orders(
    db: AsyncSession = Depends(get_db),
    engine: SyncEngine = Depends(get_engine),
):
    summary = await engine.order_import.import_orders()
    return await _commit(db, summary)


@router.post("/sync/orders/cleanup", response_model=ZombieCleanupSummary)
async def cleanup_orders(
    db: AsyncSession = Depends(get_db),
    engine: SyncEngine = Depends(get_engine),
):
    summary = await engine.order_import.cleanup_zombie_orders()
    return await _commit(db, summary)


@router.get("/sync/failures", response_model=List[SyncFailureRead])
async def list_sync_failures(
    include_resolved: bool = False,
    limit: int = Query(100, ge=1, le=1000),
    engine: SyncEngine = Depends(get_engine),
):
    return await engine.failures.recent(include_resolved=include_resolved, limit=limit)


@router.post("/sync/failures/{failure_id}/resolve", response_model=SyncFailureRead)
async def resolve_sync_failure(
    failure_id: int,
    request: ResolveFailureRequest,
    db: AsyncSession = Depends(get_db),
    engine: SyncEngine = Depends(get_engine),
):
    failure = await engine.retry.mark_resolved(failure_id, request.resolved_by)
    if failure is None:
        raise HTTPException(status_code=404, detail=f"Sync failure {failure_id} not found")
    return await _commit(db, failure)


@router.get("/sync/ledger", response_model=List[SyncLedgerRead])
async def list_ledger_entries(
    sync_type: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    engine: SyncEngine = Depends(get_engine),
):
    return await engine.ledger.recent(limit=limit, sync_type=sync_type, status=status)
