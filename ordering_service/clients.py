"""
This module provides the backing-store clients used by the database facade:
- Supabase (PostgREST over HTTPS) — the relational store
- Google Sheets (values API over HTTPS) — the spreadsheet store
- UnconfiguredClient — stands in when neither store is configured
Each class encapsulates its protocol, error handling, and connection management.
Clients return raw rows; turning rows into records is the facade's job.
"""

import enum
import logging
from abc import ABC, abstractmethod
from urllib.parse import quote

import httpx

from .config import DEFAULT_FAQ_RANGE, DEFAULT_INVENTORY_RANGE, DEFAULT_ORDERS_RANGE
from .exceptions import BackendUnavailable, NotFound, UnsupportedOperation

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"

# Postgres SQLSTATE for a value that does not parse as the column type
INVALID_TEXT_REPRESENTATION = "22P02"

log = logging.getLogger(__name__)


class Capability(enum.Flag):
    READ_INVENTORY = enum.auto()
    UPDATE_INVENTORY = enum.auto()
    CREATE_ORDER = enum.auto()
    READ_ORDERS = enum.auto()
    ASSIGNS_ORDER_IDS = enum.auto()
    READ_FAQS = enum.auto()

    ALL = READ_INVENTORY | UPDATE_INVENTORY | CREATE_ORDER | READ_ORDERS | ASSIGNS_ORDER_IDS | READ_FAQS


def default_timeout(connect=5.0, read=8.0):
    return httpx.Timeout(connect, read=read)


def _error_code(response):
    try:
        body = response.json()
    except ValueError:
        return None
    return body.get("code") if isinstance(body, dict) else None


class StoreClient(ABC):
    """
    Contract shared by every backing store.

    Reads and order creation are mandatory. Operations outside a store's
    `capabilities` keep the base implementation, which raises
    UnsupportedOperation; the facade checks capabilities first and reports
    the gap as an empty result instead.
    """
    name = None
    row_format = None
    capabilities = Capability(0)
    configured = True

    @abstractmethod
    async def fetch_inventory_rows(self) -> list:
        """Returns raw inventory rows; only available ones when the store can filter."""

    @abstractmethod
    async def fetch_faq_rows(self) -> list:
        """Returns raw FAQ rows; only active ones when the store can filter."""

    @abstractmethod
    async def insert_order(self, row):
        """Stores one encoded order row. Returns the stored row, or None if the store echoes nothing."""

    @abstractmethod
    async def ping(self) -> str:
        """One cheap reachability check. Returns a human-readable status line."""

    async def update_inventory_quantity(self, item_id, quantity, is_available) -> None:
        raise UnsupportedOperation(f"{self.name} cannot update inventory in place")

    async def fetch_orders_by_phone(self, customer_phone) -> list:
        raise UnsupportedOperation(f"{self.name} cannot query orders")

    async def fetch_order_row(self, order_id):
        raise UnsupportedOperation(f"{self.name} cannot query orders")

    async def aclose(self):
        pass

    def __repr__(self):
        return f"<{self.__class__.__name__}>"


# --- Supabase Client (REST) ---
class SupabaseClient(StoreClient):
    """
    Client for a Supabase project (PostgREST API).
    Filters and ordering run server-side; single-row lookups use PostgREST's
    object media type so that "no row" comes back as HTTP 406.
    """
    name = "supabase"
    row_format = "mapping"
    capabilities = Capability.ALL

    def __init__(self, url: str, key: str, timeout=None, transport=None):
        """
        Initializes the HTTP client for the project's REST endpoint.
        Args:
            url (str): Project URL, e.g. https://xyz.supabase.co
            key (str): anon or service key; sent as apikey and bearer token.
            timeout (httpx.Timeout | None): Transport timeouts.
            transport (httpx.AsyncBaseTransport | None): Custom transport (tests).
        """
        self.client = httpx.AsyncClient(
            base_url=f"{url.rstrip('/')}/rest/v1",
            headers={"apikey": key, "Authorization": f"Bearer {key}"},
            timeout=timeout or default_timeout(),
            transport=transport,
        )

    async def _request(self, method: str, table: str, context: str,
                       missing_status=None, missing_codes=(), **kwargs) -> httpx.Response:
        """
        Sends one request and checks the response status.
        Raises:
            NotFound: If the status equals `missing_status`, or the PostgREST
                error code is one of `missing_codes`.
            BackendUnavailable: On transport errors and other 4xx/5xx responses.
        """
        try:
            response = await self.client.request(method, f"/{table}", **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if (missing_status is not None and status == missing_status) or _error_code(e.response) in missing_codes:
                raise NotFound(f"No row in {table} for {kwargs.get('params')}") from e
            log.error(f"{context} Supabase {method} /{table} returned HTTP {status}: {e.response.text}")
            raise BackendUnavailable(f"Supabase {method} /{table} failed with HTTP {status}") from e
        except httpx.HTTPError as e:
            log.error(f"{context} Supabase {method} /{table} failed: {e!r}")
            raise BackendUnavailable(f"Supabase {method} /{table} failed: {e}") from e

    @staticmethod
    def _json(response: httpx.Response, context: str):
        try:
            return response.json()
        except ValueError as e:
            log.error(f"{context} Supabase sent a non-JSON body: {response.text[:200]!r}")
            raise BackendUnavailable("Supabase sent a non-JSON body") from e

    async def fetch_inventory_rows(self) -> list:
        context = "[Inventory]"
        response = await self._request(
            "GET", "inventory", context,
            params={"select": "*", "is_available": "eq.true"},
        )
        return self._json(response, context)

    async def update_inventory_quantity(self, item_id, quantity, is_available) -> None:
        context = f"[Inventory: {item_id}]"
        await self._request(
            "PATCH", "inventory", context,
            params={"id": f"eq.{item_id}"},
            json={"quantity": quantity, "is_available": is_available},
            headers={"Prefer": "return=minimal"},
        )

    async def insert_order(self, row):
        context = "[Order: new]"
        response = await self._request(
            "POST", "orders", context,
            json=[row],
            headers={"Prefer": "return=representation"},
        )
        rows = self._json(response, context)
        if not rows:
            log.error(f"{context} Supabase accepted the insert but returned no row.")
            raise BackendUnavailable("Supabase returned no row for the inserted order")
        return rows[0]

    async def fetch_orders_by_phone(self, customer_phone) -> list:
        context = f"[Orders: {customer_phone}]"
        response = await self._request(
            "GET", "orders", context,
            params={
                "select": "*",
                "customer_phone": f"eq.{customer_phone}",
                "order": "created_at.desc",
            },
        )
        return self._json(response, context)

    async def fetch_order_row(self, order_id):
        """
        Fetches exactly one order.
        Raises:
            NotFound: If no order has this id.
            BackendUnavailable: On any other failure.
        """
        context = f"[Order: {order_id}]"
        response = await self._request(
            "GET", "orders", context,
            missing_status=httpx.codes.NOT_ACCEPTABLE,
            # An id the column type cannot hold matches no row
            missing_codes=(INVALID_TEXT_REPRESENTATION,),
            params={"select": "*", "id": f"eq.{order_id}"},
            headers={"Accept": "application/vnd.pgrst.object+json"},
        )
        return self._json(response, context)

    async def fetch_faq_rows(self) -> list:
        context = "[FAQ]"
        response = await self._request(
            "GET", "faqs", context,
            params={"select": "*", "is_active": "eq.true"},
        )
        return self._json(response, context)

    async def count_inventory(self):
        """Row count of the inventory table from the Content-Range header, or None if not reported."""
        response = await self._request(
            "GET", "inventory", "[Startup]",
            params={"select": "id", "limit": "1"},
            headers={"Prefer": "count=exact"},
        )
        total = response.headers.get("content-range", "").rpartition("/")[2]
        return int(total) if total.isdigit() else None

    async def ping(self) -> str:
        count = await self.count_inventory()
        suffix = f" ({count} inventory rows)" if count is not None else ""
        return f"Supabase connected successfully{suffix}"

    async def aclose(self):
        await self.client.aclose()


# --- Google Sheets Client (REST) ---
class SheetsClient(StoreClient):
    """
    Client for one Google spreadsheet (Sheets API v4, values resource).
    Reads a fixed rectangular range per entity and appends order rows.
    There is no server-side filtering, no order lookup, and no in-place update.
    """
    name = "sheets"
    row_format = "positional"
    capabilities = Capability.READ_INVENTORY | Capability.CREATE_ORDER | Capability.READ_FAQS

    def __init__(self, api_key: str, spreadsheet_id: str,
                 inventory_range=DEFAULT_INVENTORY_RANGE, faq_range=DEFAULT_FAQ_RANGE,
                 orders_range=DEFAULT_ORDERS_RANGE, timeout=None, transport=None):
        self.spreadsheet_id = spreadsheet_id
        self.inventory_range = inventory_range
        self.faq_range = faq_range
        self.orders_range = orders_range
        self.client = httpx.AsyncClient(
            base_url=f"{SHEETS_API_URL}/{spreadsheet_id}",
            params={"key": api_key},
            timeout=timeout or default_timeout(),
            transport=transport,
        )

    async def _request(self, method: str, path: str, context: str, **kwargs):
        try:
            response = await self.client.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            log.error(f"{context} Google Sheets {method} {path} returned HTTP {status}: {e.response.text}")
            raise BackendUnavailable(f"Google Sheets {method} failed with HTTP {status}") from e
        except httpx.HTTPError as e:
            log.error(f"{context} Google Sheets {method} {path} failed: {e!r}")
            raise BackendUnavailable(f"Google Sheets {method} failed: {e}") from e
        except ValueError as e:
            log.error(f"{context} Google Sheets sent a non-JSON body.")
            raise BackendUnavailable("Google Sheets sent a non-JSON body") from e

    @staticmethod
    def _values_path(cell_range: str) -> str:
        return f"/values/{quote(cell_range, safe='')}"

    async def get_values(self, cell_range: str, context: str) -> list:
        data = await self._request("GET", self._values_path(cell_range), context)
        values = data.get("values", []) if isinstance(data, dict) else None
        if not isinstance(values, list):
            log.error(f"{context} Google Sheets sent an unexpected body for {cell_range}: {str(data)[:200]!r}")
            raise BackendUnavailable(f"Google Sheets sent an unexpected body for {cell_range}")
        return values

    async def fetch_inventory_rows(self) -> list:
        return await self.get_values(self.inventory_range, "[Inventory]")

    async def fetch_faq_rows(self) -> list:
        return await self.get_values(self.faq_range, "[FAQ]")

    async def insert_order(self, row):
        """Appends the row after the last filled row of the orders range. Nothing is echoed back."""
        await self._request(
            "POST", f"{self._values_path(self.orders_range)}:append", f"[Order: {row[0]}]",
            params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
            json={"values": [row]},
        )
        return None

    async def ping(self) -> str:
        # Configuration is accepted without a live call
        return f"Google Sheets configured (spreadsheet {self.spreadsheet_id})"

    async def aclose(self):
        await self.client.aclose()


# --- No store configured ---
class UnconfiguredClient(StoreClient):
    """Stands in when neither store is configured. Every operation fails."""
    name = "none"
    row_format = "mapping"
    capabilities = Capability.ALL
    configured = False

    def _unavailable(self):
        return BackendUnavailable("No database configuration found")

    async def fetch_inventory_rows(self) -> list:
        raise self._unavailable()

    async def update_inventory_quantity(self, item_id, quantity, is_available) -> None:
        raise self._unavailable()

    async def insert_order(self, row):
        raise self._unavailable()

    async def fetch_orders_by_phone(self, customer_phone) -> list:
        raise self._unavailable()

    async def fetch_order_row(self, order_id):
        raise self._unavailable()

    async def fetch_faq_rows(self) -> list:
        raise self._unavailable()

    async def ping(self) -> str:
        raise self._unavailable()
