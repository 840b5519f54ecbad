import pytest
from pydantic import ValidationError

from wms.schemas.delivery import ExtractedDeliveryItem, ExtractedDeliveryNote, normalize_order_reference


@pytest.mark.parametrize("raw,expected", [
    ("Order: 12345", "12345"),
    ("ordernr 12345", "12345"),
    ("Ordernummer #A-77", "A-77"),
    ("  555  ", "555"),
    ("", None),
    (None, None),
])
def test_normalize_order_reference(raw, expected):
    assert normalize_order_reference(raw) == expected


@pytest.mark.parametrize("raw,expected", [(3, 3), ("3", 3), ("3 st", 3), ("12 pcs", 12), (4.0, 4)])
def test_quantity_accepts_whole_numbers(raw, expected):
    item = ExtractedDeliveryItem.model_validate({"articleNumber": "1201", "quantity": raw})
    assert item.quantity == expected


@pytest.mark.parametrize("raw", [0, -2, 2.5, "two", True, None])
def test_quantity_rejects_anything_else(raw):
    with pytest.raises(ValidationError):
        ExtractedDeliveryItem.model_validate({"articleNumber": "1201", "quantity": raw})


def test_article_number_is_required():
    with pytest.raises(ValidationError):
        ExtractedDeliveryItem.model_validate({"articleNumber": "   ", "quantity": 1})


def test_note_splits_valid_and_invalid_rows():
    note = ExtractedDeliveryNote.model_validate({
        "deliveryNoteNumber": " FS-1001 ",
        "cargoMarking": "GODS-42",
        "items": [
            {"articleNumber": "1201", "orderNumber": "Order: 555", "quantity": "5 st"},
            {"articleNumber": "1300", "quantity": 0},
            "smudge",
            {"quantity": 2},
        ],
    })

    accepted, rejected = note.validated_items()

    assert note.delivery_note_number == "FS-1001"
    assert [item.article_number for item in accepted] == ["1201"]
    assert accepted[0].order_number == "555"
    assert accepted[0].quantity == 5
    assert [index for index, _, _ in rejected] == [1, 2, 3]
    assert rejected[0][1] == "1300"
    assert "quantity" in rejected[0][2]
