"""
rows.py — Fixed-schema decoders between raw store rows and canonical records.

Two row shapes exist:

    mapping     column name → value, as returned by the relational store
    positional  a list of cell strings, as returned by the spreadsheet store

Each decoder turns one raw row into a record or raises RowDecodeError, and
encodes a new order into the shape its store expects. Only the database
facade uses these decoders.
"""

import json

from pydantic import ValidationError
from pydantic_core import to_jsonable_python

from .exceptions import RowDecodeError
from .models import FAQ, InventoryItem, Order

# Column order of each sheet. Changing it breaks existing spreadsheets.
INVENTORY_COLUMNS = ("id", "name", "price", "quantity", "is_available")
FAQ_COLUMNS = ("id", "question", "answer", "is_active")
ORDER_COLUMNS = ("id", "customer_phone", "customer_name", "items", "total_amount", "status", "created_at")


def serialize_items(items):
    """Encodes order lines as JSON text for storage."""
    return json.dumps(to_jsonable_python(items or []))


class MappingRowDecoder:
    """
    Decoder for rows that arrive as dicts with typed columns.

    The relational store enforces its own schema, so a row that does not
    validate is a backend fault rather than a data-entry mistake.
    """
    row_format = "mapping"
    skip_malformed = False

    def decode_inventory(self, row):
        return self._validate(InventoryItem, "inventory", row)

    def decode_faq(self, row):
        return self._validate(FAQ, "faq", row)

    def decode_order(self, row):
        return self._validate(Order, "order", row)

    def encode_order(self, record):
        row = {column: record[column] for column in ORDER_COLUMNS if column in record}
        row["items"] = serialize_items(record.get("items"))
        return row

    @staticmethod
    def _validate(model, entity, row):
        try:
            return model.model_validate(row)
        except ValidationError as e:
            raise RowDecodeError(entity, row, f"{e.error_count()} invalid field(s)") from e


class PositionalRowDecoder:
    """
    Decoder for spreadsheet rows.

    Cells are read by position (see *_COLUMNS). The sheets API drops trailing
    empty cells, so a missing flag column reads as false. Spreadsheets have no
    schema enforcement; rows missing a required cell are reported as
    RowDecodeError and skipped by the facade.
    """
    row_format = "positional"
    skip_malformed = True

    def decode_inventory(self, row):
        entity = "inventory"
        quantity = _parse_int(entity, row, 3)
        if quantity < 0:
            raise RowDecodeError(entity, row, f"negative quantity {quantity}")
        return InventoryItem(
            id=_parse_int(entity, row, 0),
            name=_required(entity, row, 1),
            price=_parse_float(entity, row, 2),
            quantity=quantity,
            is_available=_parse_flag(row, 4),
        )

    def decode_faq(self, row):
        entity = "faq"
        return FAQ(
            id=_parse_int(entity, row, 0),
            question=_required(entity, row, 1),
            answer=_required(entity, row, 2),
            is_active=_parse_flag(row, 3),
        )

    def encode_order(self, record):
        row = []
        for column in ORDER_COLUMNS:
            value = record.get(column)
            if column == "items":
                value = serialize_items(value)
            row.append("" if value is None else value)
        return row


def _cell(row, index):
    if index >= len(row):
        return ""
    value = row[index]
    return "" if value is None else str(value).strip()


def _required(entity, row, index):
    value = _cell(row, index)
    if not value:
        raise RowDecodeError(entity, row, f"empty cell in column {index + 1}")
    return value


def _parse_int(entity, row, index):
    value = _required(entity, row, index)
    try:
        return int(value)
    except ValueError:
        pass
    try:
        number = float(value)
    except ValueError:
        raise RowDecodeError(entity, row, f"column {index + 1} is not an integer: {value!r}")
    if not number.is_integer():
        raise RowDecodeError(entity, row, f"column {index + 1} is not an integer: {value!r}")
    return int(number)


def _parse_float(entity, row, index):
    value = _required(entity, row, index)
    try:
        return float(value)
    except ValueError:
        raise RowDecodeError(entity, row, f"column {index + 1} is not a number: {value!r}")


def _parse_flag(row, index):
    return _cell(row, index).lower() == "true"


ROW_DECODERS = {
    MappingRowDecoder.row_format: MappingRowDecoder,
    PositionalRowDecoder.row_format: PositionalRowDecoder,
}
