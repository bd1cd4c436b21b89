"""
Row decoders: positional spreadsheet rows and typed mapping rows.
"""

import pytest

from ordering_service.exceptions import RowDecodeError
from ordering_service.models import FAQ, InventoryItem
from ordering_service.rows import MappingRowDecoder, PositionalRowDecoder


@pytest.fixture
def positional():
    return PositionalRowDecoder()


@pytest.fixture
def mapping():
    return MappingRowDecoder()


def test_inventory_row_is_decoded_in_column_order(positional):
    item = positional.decode_inventory(["7", " Chicken Wings ", "12.5", "3", "true"])
    assert item == InventoryItem(id=7, name="Chicken Wings", price=12.5, quantity=3, is_available=True)


@pytest.mark.parametrize("flag, expected", [
    ("TRUE", True),
    ("True", True),
    ("true", True),
    ("yes", False),
    ("1", False),
    ("FALSE", False),
    ("", False),
])
def test_availability_flag_matches_true_only(positional, flag, expected):
    assert positional.decode_inventory(["1", "Tea", "2", "1", flag]).is_available is expected


def test_whole_number_written_as_float_is_an_integer(positional):
    assert positional.decode_inventory(["3.0", "Tea", "2", "4.0", "true"]).quantity == 4


@pytest.mark.parametrize("row", [
    [],
    ["1"],
    ["", "Tea", "2", "1", "true"],
    ["abc", "Tea", "2", "1", "true"],
    ["1", "", "2", "1", "true"],
    ["1", "Tea", "free", "1", "true"],
    ["1", "Tea", "2", "1.5", "true"],
    ["1", "Tea", "2", "-1", "true"],
])
def test_malformed_inventory_rows(positional, row):
    with pytest.raises(RowDecodeError):
        positional.decode_inventory(row)


def test_faq_row(positional):
    faq = positional.decode_faq(["2", "Do you deliver?", "Yes, within 5 km.", "TRUE"])
    assert faq == FAQ(id=2, question="Do you deliver?", answer="Yes, within 5 km.", is_active=True)
    assert positional.decode_faq(["3", "Q", "A"]).is_active is False


def test_faq_row_without_answer_is_malformed(positional):
    with pytest.raises(RowDecodeError) as exc_info:
        positional.decode_faq(["2", "Do you deliver?"])
    assert exc_info.value.entity == "faq"


def test_positional_order_encoding(positional):
    row = positional.encode_order({
        "id": "1700000000000-1",
        "customer_phone": "+1555",
        "customer_name": None,
        "items": [{"itemId": 1, "quantity": 2}],
        "total_amount": 19.98,
        "status": "pending",
        "created_at": "2026-10-18T12:00:00+00:00",
    })
    assert row == [
        "1700000000000-1", "+1555", "", '[{"itemId": 1, "quantity": 2}]',
        19.98, "pending", "2026-10-18T12:00:00+00:00",
    ]


def test_mapping_order_encoding_leaves_id_to_the_store(mapping):
    row = mapping.encode_order({
        "customer_phone": "+1555",
        "customer_name": "Ana",
        "items": [],
        "total_amount": 0.0,
        "status": "pending",
        "created_at": "2026-10-18T12:00:00+00:00",
    })
    assert "id" not in row
    assert row["items"] == "[]"


def test_mapping_order_accepts_text_or_list_items(mapping):
    base = {"id": 5, "customer_phone": "+1", "total_amount": 1, "created_at": "2026-10-18T12:00:00Z"}
    from_text = mapping.decode_order(dict(base, items='[{"itemId": 2, "quantity": 3}]'))
    from_list = mapping.decode_order(dict(base, items=[{"itemId": 2, "quantity": 3}]))
    assert from_text.items == from_list.items
    assert from_text.status == "pending"


def test_mapping_row_with_wrong_types_is_malformed(mapping):
    with pytest.raises(RowDecodeError):
        mapping.decode_inventory({"id": 1, "name": "Tea", "price": "n/a", "quantity": 1, "is_available": True})
