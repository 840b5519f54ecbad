# wms/services/retry_coordinator.py
import logging
from typing import Optional

from wms.core.enums import OutcomeStatus
from wms.core.exceptions import BaseServiceError
from wms.core.utils import utc_now
from wms.models import UnresolvedSyncFailure
from wms.schemas.sync import RetrySummary
from wms.services.identifier_resolver import IdentifierResolver
from wms.services.stock_reconciliation import StockReconciliation
from wms.stores.base import FailureStore

logger = logging.getLogger(__name__)

# A landed write resolves the failure even when the read-back could not confirm it
LANDED_STATUSES = (OutcomeStatus.SUCCESS, OutcomeStatus.WARNING)


class RetryCoordinator:
    """
    Re-runs stock syncs that failed terminally.

    The queue is every UnresolvedSyncFailure with resolved_at unset, oldest
    first. Rows are never deleted or skipped: a row stays in the queue until a
    retry lands or an operator marks it resolved.
    """

    def __init__(
        self,
        failures: FailureStore,
        resolver: IdentifierResolver,
        stock: StockReconciliation,
        batch_limit: int = 50,
    ):
        self.failures = failures
        self.resolver = resolver
        self.stock = stock
        self.batch_limit = batch_limit

    async def retry_unresolved(self, limit: Optional[int] = None) -> RetrySummary:
        limit = limit or self.batch_limit
        rows = await self.failures.unresolved(limit)
        summary = RetrySummary()
        logger.info(f"Retrying {len(rows)} unresolved sync failures")

        for row in rows:
            summary.processed += 1
            try:
                error = await self._retry_row(row)
            except Exception as e:
                logger.exception(f"Unexpected error retrying sync failure {row.id}")
                error = f"Unexpected error: {str(e)}"

            if error is None:
                summary.resolved += 1
            else:
                summary.still_failing += 1
                summary.errors.append(f"{row.product_name or row.product_id or row.id}: {error}")

        logger.info(
            f"Retry complete: {summary.processed} processed, {summary.resolved} resolved, "
            f"{summary.still_failing} still failing"
        )
        return summary

    async def _retry_row(self, row: UnresolvedSyncFailure) -> Optional[str]:
        """Returns None when the row was resolved, otherwise the reason it was not."""
        if row.product_id is None:
            return "No product linked to the failure"

        try:
            await self.resolver.resolve(row.product_id)
        except BaseServiceError as e:
            logger.warning(f"Could not resolve product {row.product_id} before retry: {str(e)}")

        result = await self.stock.reconcile_stock(
            row.product_id,
            quantity_changed=row.quantity_changed,
            order_number=row.order_number,
            enqueue_failure=False,
        )
        if result.status not in LANDED_STATUSES:
            return result.message

        await self.failures.mark_resolved(row.id, utc_now(), resolved_by=None)
        logger.info(f"Sync failure {row.id} resolved (product {row.product_id})")
        return None

    async def mark_resolved(self, failure_id: int, resolved_by: str) -> Optional[UnresolvedSyncFailure]:
        """Operator action: take a failure out of the queue without retrying it."""
        failure = await self.failures.mark_resolved(failure_id, utc_now(), resolved_by=resolved_by)
        if failure is not None:
            logger.info(f"Sync failure {failure_id} marked resolved by {resolved_by}")
        return failure
