# wms/services/delivery_workflow.py
import logging
import time
from typing import List, Optional

from wms.core.enums import DeliveryNoteStatus, OutcomeStatus
from wms.core.exceptions import DeliveryItemNotFoundError
from wms.core.utils import utc_now
from wms.models import DeliveryNote
from wms.schemas.sync import AccrualResult, DeliveryCheckResult, StockSyncResult
from wms.services.purchase_order_accrual import PurchaseOrderAccrual
from wms.services.stock_reconciliation import StockReconciliation
from wms.stores.base import DeliveryStore, ProductStore

logger = logging.getLogger(__name__)


def overall_status(accrual: Optional[AccrualResult], stock: Optional[StockSyncResult]) -> OutcomeStatus:
    if accrual is not None and accrual.status == OutcomeStatus.ERROR:
        return OutcomeStatus.ERROR
    statuses = [r.status for r in (accrual, stock) if r is not None]
    if any(s != OutcomeStatus.SUCCESS for s in statuses):
        return OutcomeStatus.WARNING
    return OutcomeStatus.SUCCESS


class DeliveryWorkflow:
    """
    Checking off a delivery note row on the warehouse floor.

    The local receipt is recorded first and never rolled back; the Sellus side
    (purchase order accrual, stock push) is best-effort and reported in the
    outcome.
    """

    def __init__(
        self,
        deliveries: DeliveryStore,
        products: ProductStore,
        accrual: PurchaseOrderAccrual,
        stock: StockReconciliation,
    ):
        self.deliveries = deliveries
        self.products = products
        self.accrual = accrual
        self.stock = stock

    async def check_off_delivery_item(self, item_id: int, checked: bool = True) -> DeliveryCheckResult:
        started = time.monotonic()
        try:
            result = await self._check_off(item_id, checked)
        except DeliveryItemNotFoundError as e:
            result = DeliveryCheckResult(
                item_id=item_id,
                status=OutcomeStatus.ERROR,
                step="item_not_found",
                message=str(e),
                user_message="Raden finns inte på följesedeln.",
            )
        except Exception as e:
            logger.exception(f"Unexpected error checking off delivery item {item_id}")
            result = DeliveryCheckResult(
                item_id=item_id,
                status=OutcomeStatus.ERROR,
                step="exception",
                message=f"Unexpected error: {str(e)}",
                user_message="Ett oväntat fel inträffade. Kontakta administratör.",
            )
        result.duration_ms = int((time.monotonic() - started) * 1000)
        return result

    async def _check_off(self, item_id: int, checked: bool) -> DeliveryCheckResult:
        item = await self.deliveries.get_item(item_id)
        if item is None:
            raise DeliveryItemNotFoundError(f"Delivery note item {item_id} not found")

        note = await self.deliveries.get_note(item.delivery_note_id)
        quantity = item.quantity_checked or item.quantity_expected or 0
        now = utc_now()

        if not checked:
            await self.deliveries.update_item(item, is_checked=False, checked_at=None, quantity_checked=0)
            note_status = await self._roll_up(note)
            return DeliveryCheckResult(
                item_id=item_id,
                is_checked=False,
                quantity=0,
                note_status=note_status,
                status=OutcomeStatus.SUCCESS,
                step="unchecked",
                message=f"Delivery note item {item_id} unchecked",
                user_message="Raden är avbockad.",
            )

        if item.is_checked:
            logger.info(f"Delivery item {item_id} is already checked, receipt not accrued again")
            return DeliveryCheckResult(
                item_id=item_id,
                is_checked=True,
                quantity=quantity,
                note_status=note.status if note is not None else None,
                status=OutcomeStatus.SUCCESS,
                step="already_checked",
                message=f"Delivery note item {item_id} was already checked",
                user_message="Raden är redan bockad.",
            )

        await self.deliveries.update_item(item, is_checked=True, checked_at=now, quantity_checked=quantity)
        logger.info(f"Delivery item {item_id} checked: {item.article_number} x {quantity}")

        accrual = await self.accrual.accrue_purchase_order(
            item.article_number,
            quantity,
            cargo_marking=note.cargo_marking if note is not None else None,
            order_reference=item.order_number,
            delivery_note_item_id=item.id,
        )

        stock = None
        product = await self.products.find_by_article_ref(item.article_number)
        if product is not None:
            stock = await self.stock.reconcile_stock(
                product.id, quantity_changed=quantity, order_number=item.order_number
            )
        else:
            logger.info(f"No local product with article number {item.article_number}, stock not synced")

        note_status = await self._roll_up(note)
        status = overall_status(accrual, stock)

        messages: List[str] = [accrual.user_message]
        if stock is not None and stock.status != OutcomeStatus.SUCCESS:
            messages.append(stock.user_message)

        return DeliveryCheckResult(
            item_id=item_id,
            is_checked=True,
            quantity=quantity,
            note_status=note_status,
            accrual=accrual,
            stock=stock,
            status=status,
            step=self._failing_step(accrual, stock),
            message=accrual.message if stock is None else f"{accrual.message}; stock: {stock.message}",
            user_message=" ".join(messages),
        )

    @staticmethod
    def _failing_step(accrual: AccrualResult, stock: Optional[StockSyncResult]) -> str:
        if accrual.status != OutcomeStatus.SUCCESS:
            return accrual.step
        if stock is not None and stock.status != OutcomeStatus.SUCCESS:
            return f"stock_{stock.step}"
        return "complete"

    async def _roll_up(self, note: Optional[DeliveryNote]) -> Optional[str]:
        """Set the note status from its items: all checked, some checked or none."""
        if note is None:
            return None

        items = await self.deliveries.items_for_note(note.id)
        checked_count = sum(1 for i in items if i.is_checked)

        if items and checked_count == len(items):
            status, completed_at = DeliveryNoteStatus.COMPLETED, note.completed_at or utc_now()
        elif checked_count:
            status, completed_at = DeliveryNoteStatus.IN_PROGRESS, None
        else:
            status, completed_at = DeliveryNoteStatus.PENDING, None

        await self.deliveries.update_note(note, status=status.value, completed_at=completed_at)
        return status.value
