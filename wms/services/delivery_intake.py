# wms/services/delivery_intake.py
import logging
from typing import Any, Dict

from pydantic import ValidationError as PydanticValidationError

from wms.core.exceptions import ValidationError
from wms.schemas.delivery import ExtractedDeliveryNote
from wms.schemas.sync import IntakeResult, RejectedItem
from wms.stores.base import DeliveryStore

logger = logging.getLogger(__name__)


class DeliveryIntake:
    """Stores a delivery note read by the vision service after validating every row."""

    def __init__(self, deliveries: DeliveryStore):
        self.deliveries = deliveries

    async def register_note(self, extracted: Dict[str, Any]) -> IntakeResult:
        """
        Validate `extract_fields` output and store it as a pending delivery note.

        Rows that fail validation are reported in `rejected` and not stored.

        Raises:
            ValidationError: the payload is not a delivery note at all, or no row is valid
        """
        try:
            note = ExtractedDeliveryNote.model_validate(extracted)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid delivery note: {e.errors()[0]['msg']}")

        accepted, rejected = note.validated_items()
        rejected_items = [
            RejectedItem(index=index, article_number=str(article) if article is not None else None, reason=reason)
            for index, article, reason in rejected
        ]
        for entry in rejected_items:
            logger.warning(f"Rejected delivery note row {entry.index}: {entry.reason}")

        if not accepted:
            raise ValidationError("Delivery note has no valid items")

        stored = await self.deliveries.create_note(
            delivery_note_number=note.delivery_note_number,
            cargo_marking=note.cargo_marking,
            items=[
                {
                    "article_number": item.article_number,
                    "order_number": item.order_number,
                    "description": item.description,
                    "quantity_expected": item.quantity,
                    "quantity_checked": 0,
                    "is_checked": False,
                }
                for item in accepted
            ],
        )
        logger.info(
            f"Registered delivery note {stored.id} ({note.delivery_note_number or 'no number'}) "
            f"with {len(accepted)} items, {len(rejected_items)} rejected"
        )
        return IntakeResult(delivery_note_id=stored.id, items_stored=len(accepted), rejected=rejected_items)
