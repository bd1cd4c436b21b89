"""
database.py — Backend-agnostic data access for the ordering agent

This module contains the facade the message handler and HTTP routes use to
read and write business data (inventory, orders, FAQs). Exactly one backing
store is chosen when the facade is built and stays fixed for the process
lifetime:

1. Supabase, when SUPABASE_URL and SUPABASE_ANON_KEY are set
2. Google Sheets, when the Supabase pair is absent and both
   GOOGLE_SHEETS_API_KEY and GOOGLE_SHEETS_SPREADSHEET_ID are set
3. Otherwise no store: the facade still builds, but every data call raises
   BackendUnavailable

Nothing is cached; every read goes to the store. Failures are logged and
re-raised to the caller unchanged. Operations the spreadsheet store cannot
perform (in-place stock updates, order queries) are capability gaps and come
back as False / [] / None instead of errors.
"""

import itertools
import logging
import time
from datetime import datetime, timezone

from pydantic import ValidationError
from pydantic_core import to_jsonable_python

from .clients import Capability, SheetsClient, SupabaseClient, UnconfiguredClient, default_timeout
from .exceptions import BackendUnavailable, InvalidOrder, NotFound, RowDecodeError
from .models import ORDER_STATUS_PENDING, NewOrderRequest, Order
from .rows import ROW_DECODERS

log = logging.getLogger(__name__)

# Tie-breaker for orders created within the same millisecond
_local_order_sequence = itertools.count(1)


def local_order_id() -> str:
    """
    Generates an order id for stores that do not assign one.

    The id is unique within the running process only. It is not stable across
    restarts and concurrent writers in other processes may produce the same value.
    """
    return f"{time.time_ns() // 1_000_000}-{next(_local_order_sequence)}"


class DatabaseService:
    """
    Facade over the configured backing store.

    Build one instance at startup and pass it to consumers. The store client
    and its row decoder are fixed at construction.
    """

    def __init__(self, client):
        self._client = client
        self._decoder = ROW_DECODERS[client.row_format]()

    @property
    def backend_name(self) -> str:
        return self._client.name

    @property
    def configured(self) -> bool:
        return self._client.configured

    def supports(self, capability: Capability) -> bool:
        return capability in self._client.capabilities

    def _decode_rows(self, rows, decode, entity):
        records = []
        for row in rows or []:
            try:
                records.append(decode(row))
            except RowDecodeError as e:
                if not self._decoder.skip_malformed:
                    raise BackendUnavailable(f"{self.backend_name} returned a malformed {entity} row") from e
                log.warning(f"[{entity.capitalize()}] Skipping malformed row: {e}")
        return records

    # ==================== INVENTORY ====================

    async def get_inventory(self):
        """
        Returns the items currently available for sale.

        Only items with is_available set and quantity > 0 are returned. A row
        whose flag disagrees with its quantity is stale and is left out.

        Raises:
            BackendUnavailable: No store configured, or the store call failed.
        """
        try:
            rows = await self._client.fetch_inventory_rows()
            items = []
            for item in self._decode_rows(rows, self._decoder.decode_inventory, "inventory"):
                if not item.is_available:
                    continue
                if item.quantity <= 0:
                    log.warning(f"[Inventory] Item {item.id} ({item.name}) is flagged available with quantity {item.quantity}; skipping.")
                    continue
                items.append(item)
        except Exception as e:
            log.error(f"[Inventory] Error fetching inventory from {self.backend_name}: {e}")
            raise
        log.info(f"[Inventory] Fetched {len(items)} available item(s) from {self.backend_name}.")
        return items

    async def get_item_by_name(self, item_name: str):
        """
        Returns the first available item whose name contains `item_name`,
        ignoring case, or None. The first match in inventory order wins, not the best one.
        """
        try:
            inventory = await self.get_inventory()
        except Exception as e:
            log.error(f"[Inventory] Error finding item by name {item_name!r}: {e}")
            raise
        needle = item_name.lower()
        return next((item for item in inventory if needle in item.name.lower()), None)

    async def update_inventory_quantity(self, item_id, new_quantity: int) -> bool:
        """
        Sets the stock level of one item and recomputes its availability.

        Returns:
            bool: True when the change was written. False when the store cannot
                update inventory in place; the change was not persisted and a
                retry will not help.
        """
        if not self.supports(Capability.UPDATE_INVENTORY):
            log.warning(f"[Inventory: {item_id}] {self.backend_name} does not support inventory updates; quantity={new_quantity} not persisted.")
            return False
        try:
            await self._client.update_inventory_quantity(item_id, new_quantity, new_quantity > 0)
        except Exception as e:
            log.error(f"[Inventory: {item_id}] Error updating inventory: {e}")
            raise
        log.info(f"[Inventory: {item_id}] Updated inventory: quantity={new_quantity}")
        return True

    # ==================== ORDERS ====================

    async def create_order(self, order_data) -> Order:
        """
        Stores a new pending order.

        Business rules (stock, totals) are the caller's job. The payload is only
        checked against the stored order shape, before anything is written.
        Items are stored as JSON text, status is "pending", created_at is the
        call time.

        Args:
            order_data (NewOrderRequest | dict): customerPhone, customerName,
                items ([{itemId, quantity}]), totalAmount.

        Returns:
            Order: The stored order. Its id comes from the store when the store
                assigns ids, otherwise it is generated locally (see local_order_id).

        Raises:
            InvalidOrder: The payload cannot form an order; nothing was written.
            BackendUnavailable: No store configured, or the store call failed.
        """
        if isinstance(order_data, NewOrderRequest):
            order_data = order_data.model_dump()
        record = {
            "customer_phone": order_data.get("customerPhone"),
            "customer_name": order_data.get("customerName"),
            "items": to_jsonable_python(order_data.get("items") or []),
            "total_amount": order_data.get("totalAmount"),
            "status": ORDER_STATUS_PENDING,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        assigns_ids = self.supports(Capability.ASSIGNS_ORDER_IDS)
        if not assigns_ids:
            record["id"] = local_order_id()

        try:
            # Stores that assign ids get a placeholder for the shape check only
            draft = Order.model_validate({"id": 0, **record})
        except ValidationError as e:
            log.error(f"[Order: new] Rejected order for {record['customer_phone']}: {e.error_count()} invalid field(s)")
            raise InvalidOrder(f"Order payload is invalid: {e.error_count()} invalid field(s)") from e
        record["total_amount"] = draft.total_amount

        try:
            stored = await self._client.insert_order(self._decoder.encode_order(record))
            if assigns_ids:
                order = self._decode_rows([stored], self._decoder.decode_order, "order")[0]
            else:
                order = draft
        except Exception as e:
            log.error(f"[Order: new] Error creating order for {record['customer_phone']}: {e}")
            raise
        log.info(f"[Order: {order.id}] Order created in {self.backend_name}.")
        return order

    async def get_orders_by_phone(self, customer_phone: str):
        """
        Returns the customer's orders, newest first.

        Stores without order queries return an empty list; that is a known
        gap, not "no orders".
        """
        if not self.supports(Capability.READ_ORDERS):
            log.warning(f"[Orders: {customer_phone}] {self.backend_name} does not support order lookup; returning no orders.")
            return []
        try:
            rows = await self._client.fetch_orders_by_phone(customer_phone)
            orders = self._decode_rows(rows, self._decoder.decode_order, "order")
        except Exception as e:
            log.error(f"[Orders: {customer_phone}] Error fetching orders: {e}")
            raise
        log.info(f"[Orders: {customer_phone}] Fetched {len(orders)} order(s).")
        return orders

    async def get_order_by_id(self, order_id):
        """Returns the order with this id, or None if there is none or the store cannot look it up."""
        if not self.supports(Capability.READ_ORDERS):
            log.debug(f"[Order: {order_id}] {self.backend_name} does not support order lookup.")
            return None
        try:
            row = await self._client.fetch_order_row(order_id)
            order = self._decode_rows([row], self._decoder.decode_order, "order")[0]
        except NotFound:
            log.info(f"[Order: {order_id}] Order not found.")
            return None
        except Exception as e:
            log.error(f"[Order: {order_id}] Error fetching order by id: {e}")
            raise
        return order

    # ==================== FAQ ====================

    async def get_faqs(self):
        """Returns active FAQs. Raises BackendUnavailable like get_inventory()."""
        try:
            rows = await self._client.fetch_faq_rows()
            faqs = [faq for faq in self._decode_rows(rows, self._decoder.decode_faq, "faq") if faq.is_active]
        except Exception as e:
            log.error(f"[FAQ] Error fetching FAQs from {self.backend_name}: {e}")
            raise
        log.info(f"[FAQ] Fetched {len(faqs)} active FAQ(s) from {self.backend_name}.")
        return faqs

    async def search_faq(self, query: str):
        """Returns the first active FAQ whose question or answer contains `query`, ignoring case, or None."""
        try:
            faqs = await self.get_faqs()
        except Exception as e:
            log.error(f"[FAQ] Error searching FAQ for {query!r}: {e}")
            raise
        needle = query.lower()
        return next(
            (faq for faq in faqs if needle in faq.question.lower() or needle in faq.answer.lower()),
            None,
        )

    # ==================== LIFECYCLE ====================

    async def ping(self) -> str:
        return await self._client.ping()

    async def aclose(self):
        await self._client.aclose()


def create_client(config, transport=None):
    """
    Chooses the store client for a configuration. Supabase wins over Google
    Sheets when both are configured.
    """
    timeout = default_timeout(config.http_timeout, config.http_read_timeout)
    backend = config.backend
    if backend == "supabase":
        return SupabaseClient(config.supabase_url, config.supabase_key, timeout=timeout, transport=transport)
    if backend == "sheets":
        return SheetsClient(
            config.sheets_api_key,
            config.spreadsheet_id,
            inventory_range=config.sheets_inventory_range,
            faq_range=config.sheets_faq_range,
            orders_range=config.sheets_orders_range,
            timeout=timeout,
            transport=transport,
        )
    return UnconfiguredClient()


def create_database_service(config, transport=None) -> DatabaseService:
    """Builds the process-wide facade. Never raises for missing configuration."""
    client = create_client(config, transport=transport)
    if client.configured:
        log.info(f"[Startup] Using {client.name} as the data store.")
    else:
        log.warning("[Startup] No database configuration found; data calls will fail.")
    return DatabaseService(client)


async def initialize_database(service: DatabaseService) -> bool:
    """
    Checks once that the configured store is reachable.

    Startup continues whatever the outcome; if the store is down, later data
    calls raise BackendUnavailable until it comes back.

    Returns:
        bool: True if the store answered (or needs no live check).
    """
    if not service.configured:
        log.warning("[Startup] No database configuration found")
        return False
    try:
        status = await service.ping()
    except Exception as e:
        log.error(f"[Startup] Database initialization failed ({service.backend_name}): {e}")
        return False
    log.info(f"[Startup] {status}")
    return True
