"""
Schemas for delivery notes as read off paper by the vision service.

The extraction output is untrusted: it gets the same validation as a note
typed in by hand.
"""

import re
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError


def normalize_order_reference(value: Any) -> Optional[str]:
    """Strip whitespace and the 'Order'/'Ordernr' labels the printer puts in front of the number."""
    if value is None:
        return None
    text = re.sub(r"\s+", " ", str(value)).strip()
    text = re.sub(r"^order(?:nr|nummer)?\.?\s*[:#]?\s*", "", text, flags=re.IGNORECASE)
    return text or None


class ExtractedDeliveryItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    article_number: str = Field(validation_alias=AliasChoices("articleNumber", "article_number"))
    order_number: Optional[str] = Field(default=None, validation_alias=AliasChoices("orderNumber", "order_number"))
    description: Optional[str] = None
    quantity: int

    @field_validator("article_number", mode="before")
    @classmethod
    def strip_article_number(cls, value):
        text = str(value).strip() if value is not None else ""
        if not text:
            raise ValueError("article number is required")
        return text

    @field_validator("order_number", mode="before")
    @classmethod
    def normalize_order_number(cls, value):
        return normalize_order_reference(value)

    @field_validator("description", mode="before")
    @classmethod
    def strip_description(cls, value):
        if value is None:
            return None
        return str(value).strip() or None

    @field_validator("quantity", mode="before")
    @classmethod
    def parse_quantity(cls, value):
        if isinstance(value, bool):
            raise ValueError("quantity must be a whole number")
        if isinstance(value, str):
            match = re.match(r"^\s*(\d+)\s*(st|pcs|x)?\s*$", value, flags=re.IGNORECASE)
            if not match:
                raise ValueError(f"quantity '{value}' is not a whole number")
            value = int(match.group(1))
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError("quantity must be a whole number")
            value = int(value)
        if not isinstance(value, int) or value < 1:
            raise ValueError("quantity must be a positive whole number")
        return value


class ExtractedDeliveryNote(BaseModel):
    """
    Output of `extract_fields(image)`.

    Items are kept raw so that one unreadable row does not reject the whole
    note; `validated_items()` splits them into accepted and rejected rows.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    delivery_note_number: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("deliveryNoteNumber", "delivery_note_number")
    )
    cargo_marking: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("cargoMarking", "cargo_marking")
    )
    items: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("delivery_note_number", "cargo_marking", mode="before")
    @classmethod
    def strip_header_fields(cls, value):
        if value is None:
            return None
        return str(value).strip() or None

    @field_validator("items", mode="before")
    @classmethod
    def require_list(cls, value):
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("items must be a list")
        return [item if isinstance(item, dict) else {"_invalid": item} for item in value]

    def validated_items(self):
        """Return (accepted, rejected) where rejected is a list of (index, article_number, reason)."""
        accepted: List[ExtractedDeliveryItem] = []
        rejected = []
        for index, raw in enumerate(self.items):
            try:
                accepted.append(ExtractedDeliveryItem.model_validate(raw))
            except PydanticValidationError as e:
                reason = "; ".join(
                    f"{'.'.join(str(part) for part in error['loc']) or 'item'}: {error['msg']}"
                    for error in e.errors()
                )
                rejected.append((index, raw.get("articleNumber") or raw.get("article_number"), reason))
        return accepted, rejected
