"""
models.py — Data Models for the Ordering Service

This module defines the canonical records returned by the data-access layer and
the payloads accepted from callers. It uses Pydantic models so that every record
leaving the facade has a known shape regardless of the backing store.

Models:
    - InventoryItem: A sellable menu item and its stock level.
    - OrderItem: A single line of an order.
    - Order: A stored customer order.
    - FAQ: A frequently asked question with its answer.
    - NewOrderRequest: The order payload submitted by the conversation layer.
    - QuantityUpdate: Body of an inventory quantity update.
"""

import json
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

ORDER_STATUS_PENDING = "pending"


class InventoryItem(BaseModel):
    """
    Represents one inventory row.

    Attributes:
        id (int): Item identifier.
        name (str): Display name, matched by customers' free-text requests.
        price (float): Unit price in major currency units.
        quantity (int): Units in stock. Never negative.
        is_available (bool): True exactly when quantity > 0 at write time.
    """
    id: int
    name: str
    price: float
    quantity: int = Field(..., ge=0)
    is_available: bool


class OrderItem(BaseModel):
    """
    Represents a single product line in an order.

    Attributes:
        itemId (int | str): Identifier of the ordered inventory item.
        quantity (int): Units ordered. Must be greater than zero.
    """
    itemId: Union[int, str]
    quantity: int = Field(..., gt=0)


class Order(BaseModel):
    """
    Represents an order as stored by the backing store.

    The `id` is authoritative when the store assigns it. Spreadsheet-backed
    orders carry a locally generated id that is only unique within the running
    process and is not stable across restarts. Orders are read-only once stored.
    """
    model_config = ConfigDict(frozen=True)

    id: Union[int, str]
    customer_phone: str
    customer_name: Optional[str] = None
    items: List[OrderItem]
    total_amount: float
    status: str = ORDER_STATUS_PENDING
    created_at: datetime

    @field_validator("items", mode="before")
    @classmethod
    def _decode_items(cls, value):
        # Items are written as JSON text; stores may hand them back either way
        if isinstance(value, (str, bytes)):
            return json.loads(value) if value else []
        return value


class FAQ(BaseModel):
    id: int
    question: str
    answer: str
    is_active: bool


class NewOrderRequest(BaseModel):
    """
    Represents a new order submitted by the message handler.

    Attributes:
        customerPhone (str): WhatsApp phone number of the customer.
        customerName (str | None): Profile name, when the platform provides one.
        items (List[OrderItem]): Ordered lines.
        totalAmount (float): Order total in major currency units.
    """
    customerPhone: str
    customerName: Optional[str] = None
    items: List[OrderItem]
    totalAmount: float


class QuantityUpdate(BaseModel):
    quantity: int = Field(..., ge=0)
