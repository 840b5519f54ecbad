"""
Parsers for Sellus API payloads.

Sellus returns differently shaped JSON depending on endpoint, deployment and
API version. Each model below lists, per field, every key the value has been
seen under; the first key present wins. `raw` keeps the untouched payload so
writes can echo back fields Sellus requires but we do not model.
"""

import re
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

INACTIVE_ORDER_STATUSES = {"closed", "cancelled", "canceled", "completed", "delivered", "invoiced"}


def extract_list(payload: Any, *keys: str) -> List[Any]:
    """
    Return the list of records in a Sellus list response.

    Accepts a bare list or an envelope holding the list under one of `keys`
    or the usual `results` / `items` / `data`.
    """
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in (*keys, "results", "items", "data"):
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    match = re.match(r"^\s*(-?\d+(?:[.,]\d+)?)", str(value))
    if not match:
        return None
    return int(float(match.group(1).replace(",", ".")))


class SellusPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    raw: Dict[str, Any] = Field(default_factory=dict, exclude=True)

    @classmethod
    def from_payload(cls, payload: Any):
        """Parse a single record; returns None for anything that is not a JSON object."""
        if not isinstance(payload, dict):
            return None
        model = cls.model_validate(payload)
        model.raw = dict(payload)
        return model

    @classmethod
    def from_list(cls, payload: Any, *keys: str) -> list:
        records = [cls.from_payload(entry) for entry in extract_list(payload, *keys)]
        return [record for record in records if record is not None]


class SellusItem(SellusPayload):
    id: Optional[str] = None
    item_number: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("itemNumber", "articleNumber", "item_number")
    )
    stock: Optional[int] = None
    quantity: Optional[int] = None
    available_quantity: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("availableQuantity", "available_quantity")
    )

    @field_validator("id", "item_number", mode="before")
    @classmethod
    def normalize_item_strings(cls, value):
        return _as_str(value)

    @field_validator("stock", "quantity", "available_quantity", mode="before")
    @classmethod
    def normalize_item_counts(cls, value):
        return _as_int(value)

    @property
    def observed_stock(self) -> Optional[int]:
        for value in (self.stock, self.quantity, self.available_quantity):
            if value is not None:
                return value
        return None


class SellusOrderSummary(SellusPayload):
    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("id", "orderId"))
    order_number: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("orderNumber", "number", "order_number")
    )
    status: Optional[str] = Field(default=None, validation_alias=AliasChoices("status", "orderStatus"))
    order_type: Optional[str] = Field(default=None, validation_alias=AliasChoices("type", "orderType"))

    @field_validator("id", "order_number", "status", "order_type", mode="before")
    @classmethod
    def normalize_summary_strings(cls, value):
        return _as_str(value)

    @property
    def is_active(self) -> bool:
        return (self.status or "").lower() not in INACTIVE_ORDER_STATUSES

    def matches_reference(self, reference: Optional[str]) -> bool:
        if not reference:
            return False
        return reference in (self.order_number, self.id)


class SellusOrderLine(SellusPayload):
    article_ref: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("articleId", "itemNumber", "itemId", "item_id", "productId"),
    )
    description: Optional[str] = Field(default=None, validation_alias=AliasChoices("description", "name"))
    quantity: int = Field(default=1, validation_alias=AliasChoices("quantity", "qty", "amount"))

    @field_validator("article_ref", "description", mode="before")
    @classmethod
    def normalize_line_strings(cls, value):
        return _as_str(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def normalize_quantity(cls, value):
        parsed = _as_int(value)
        return parsed if parsed else 1


class SellusOrder(SellusOrderSummary):
    customer_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("customerName", "customer", "customer_name")
    )
    order_date: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("orderDate", "date", "createdAt", "created_at")
    )
    lines: List[Dict[str, Any]] = Field(
        default_factory=list, validation_alias=AliasChoices("lines", "items", "details", "orderLines")
    )

    @field_validator("customer_name", "order_date", mode="before")
    @classmethod
    def normalize_order_strings(cls, value):
        return _as_str(value)

    @field_validator("lines", mode="before")
    @classmethod
    def keep_object_lines(cls, value):
        return [line for line in value if isinstance(line, dict)] if isinstance(value, list) else []

    @property
    def parsed_lines(self) -> List[SellusOrderLine]:
        return [SellusOrderLine.from_payload(line) for line in self.lines]

    @property
    def is_sale(self) -> bool:
        """Paid or confirmed orders; quotes, offers and drafts are not sales."""
        order_type = (self.order_type or "").lower()
        if any(word in order_type for word in ("quote", "offer", "draft")):
            return False
        status = (self.status or "").lower()
        return any(word in status for word in SALE_STATUSES)


SALE_STATUSES = (
    "completed", "delivered", "closed", "done",
    "paid", "confirmed", "processing", "shipped",
    "ready", "fulfilled", "invoiced",
)


class SellusPurchaseOrder(SellusPayload):
    id: Optional[str] = None
    note: Optional[str] = Field(default=None, validation_alias=AliasChoices("note", "cargoMarking", "reference"))
    shipped_quantity: int = Field(default=0, validation_alias=AliasChoices("shippedQuantity", "shipped_quantity"))
    stock_quantity: int = Field(default=0, validation_alias=AliasChoices("stockQuantity", "stock_quantity"))
    total_stock_quantity: int = Field(
        default=0, validation_alias=AliasChoices("totalStockQuantity", "total_stock_quantity")
    )

    @field_validator("id", "note", mode="before")
    @classmethod
    def normalize_purchase_order_strings(cls, value):
        return _as_str(value)

    @field_validator("shipped_quantity", "stock_quantity", "total_stock_quantity", mode="before")
    @classmethod
    def normalize_counters(cls, value):
        return _as_int(value) or 0
