# wms/services/order_resolution.py
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from wms.core.exceptions import NoOrderFound, SyncError
from wms.schemas.sellus import SellusOrder, SellusOrderSummary
from wms.services.identifier_resolver import IdentifierResolver
from wms.services.sellus.client import SellusClient

logger = logging.getLogger(__name__)

DIRECT_REFERENCE = "direct_reference"
REFERENCE_MATCH = "reference_match"
FIRST_ACTIVE = "first_active"


@dataclass
class OrderResolution:
    remote_order_id: str
    order_details: Dict[str, Any] = field(default_factory=dict)
    strategy: str = DIRECT_REFERENCE

    @property
    def order(self) -> SellusOrder:
        return SellusOrder.from_payload(self.order_details) or SellusOrder(id=self.remote_order_id)


class OrderResolutionChain:
    """
    Locates the Sellus order a received article belongs to.

    Strategies, cheapest first:
      1. the order reference printed on the delivery note, used as an order id
      2. the article's item orders, preferring an exact reference match and
         falling back to the first active order

    No strategy is retried; when all fail `NoOrderFound` carries the reason
    each one gave.
    """

    def __init__(self, client: SellusClient, resolver: IdentifierResolver):
        self.client = client
        self.resolver = resolver

    async def resolve_order(self, article_ref: str, order_reference_hint: Optional[str] = None) -> OrderResolution:
        attempts: List[str] = []
        hint = (order_reference_hint or "").strip() or None

        if hint:
            result = await self.client.get_order(hint)
            if result.success:
                order = SellusOrder.from_payload(result.data)
                if order is not None and order.id:
                    logger.info(f"Order {order.id} found directly by reference {hint}")
                    return OrderResolution(order.id, dict(result.data), DIRECT_REFERENCE)
                attempts.append(f"{DIRECT_REFERENCE}: /orders/{hint} returned no order id")
            else:
                attempts.append(f"{DIRECT_REFERENCE}: {result.error}")

        try:
            numeric_id = await self.resolver.resolve_article_ref(article_ref)
        except SyncError as e:
            attempts.append(f"item_lookup: {str(e)}")
            raise NoOrderFound(f"No order found for article {article_ref}", attempts)

        result = await self.client.get_item_orders(numeric_id)
        if not result.success:
            attempts.append(f"item_orders: {result.error}")
            raise NoOrderFound(f"No order found for article {article_ref}", attempts)

        orders = [o for o in SellusOrderSummary.from_list(result.data, "orders") if o.id]

        chosen, strategy = None, None
        if hint:
            chosen = next((o for o in orders if o.matches_reference(hint)), None)
            strategy = REFERENCE_MATCH
        if chosen is None:
            chosen = next((o for o in orders if o.is_active), None)
            strategy = FIRST_ACTIVE
        if chosen is None:
            attempts.append(f"item_orders: {len(orders)} orders listed for item {numeric_id}, none active")
            raise NoOrderFound(f"No order found for article {article_ref}", attempts)

        details = await self.client.get_order(chosen.id)
        if details.success and isinstance(details.data, dict) and details.data:
            order_details = dict(details.data)
        else:
            logger.warning(f"Could not fetch details for order {chosen.id}, using the listing entry")
            order_details = dict(chosen.raw)

        logger.info(f"Order {chosen.id} selected for article {article_ref} ({strategy})")
        return OrderResolution(chosen.id, order_details, strategy)
