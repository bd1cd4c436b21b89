"""
Shared fixtures: in-memory fakes of the Supabase REST API and the Google
Sheets values API, served to the real clients through httpx.MockTransport.
"""

import copy
import json
import os
from urllib.parse import unquote

import httpx
import pytest

# Keep test runs from writing a log file when ordering_service.main is imported
os.environ["LOG_FILE"] = ""

from ordering_service.clients import SheetsClient, SupabaseClient  # noqa: E402
from ordering_service.database import DatabaseService  # noqa: E402

SUPABASE_URL = "https://test-project.supabase.co"
SUPABASE_KEY = "test-anon-key"
SHEETS_KEY = "test-sheets-key"
SPREADSHEET_ID = "sheet-123"

INVENTORY_ROWS = [
    {"id": 1, "name": "Classic Burger", "price": 9.99, "quantity": 10, "is_available": True},
    {"id": 2, "name": "Cheeseburger", "price": 10.99, "quantity": 0, "is_available": False},
    {"id": 3, "name": "Veggie Wrap", "price": 8.5, "quantity": 4, "is_available": True},
    {"id": 4, "name": "Fries", "price": 3.5, "quantity": 0, "is_available": True},
]

FAQ_ROWS = [
    {"id": 1, "question": "What are your opening hours?", "answer": "We are open 10am to 10pm daily.", "is_active": True},
    {"id": 2, "question": "Can I cancel my order?", "answer": "Yes, within 5 minutes you get a full refund.", "is_active": True},
    {"id": 3, "question": "Do you offer refunds on old orders?", "answer": "No.", "is_active": False},
]

SHEET_VALUES = {
    "Inventory!A2:E1000": [
        ["1", "Classic Burger", "9.99", "10", "TRUE"],
        ["2", "Cheeseburger", "10.99", "0", "false"],
        ["3", "Veggie Wrap", "8.50", "4", "True"],
        ["x", "Broken Row", "1.00", "1", "true"],
        ["5", "Milkshake", "4.00", "3"],
    ],
    "FAQs!A2:D1000": [
        ["1", "What are your opening hours?", "We are open 10am to 10pm daily.", "TRUE"],
        ["2", "Can I cancel my order?", "Yes, within 5 minutes you get a full refund.", "true"],
        ["3", "Do you offer refunds on old orders?", "No.", "FALSE"],
        ["4", "", "Missing question", "TRUE"],
    ],
}


def _pg_text(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class FakeSupabase:
    """Just enough of PostgREST: eq filters, order, count, object media type, insert, update."""

    def __init__(self, inventory=None, orders=None, faqs=None):
        self.tables = {
            "inventory": copy.deepcopy(INVENTORY_ROWS if inventory is None else inventory),
            "orders": copy.deepcopy(orders or []),
            "faqs": copy.deepcopy(FAQ_ROWS if faqs is None else faqs),
        }
        self.next_order_id = 100
        self.requests = []
        self.fail_status = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_status:
            return httpx.Response(self.fail_status, json={"message": "boom"})
        if request.headers.get("apikey") != SUPABASE_KEY:
            return httpx.Response(401, json={"message": "Invalid API key"})

        table = request.url.path.rsplit("/", 1)[-1]
        rows = self.tables.get(table)
        if rows is None:
            return httpx.Response(404, json={"message": f"relation {table} does not exist"})

        filters = [
            (key, value[len("eq."):])
            for key, value in request.url.params.multi_items()
            if key not in ("select", "order", "limit") and value.startswith("eq.")
        ]
        for key, value in filters:
            if key == "id" and not value.isdigit():
                return httpx.Response(400, json={"code": "22P02", "message": f"invalid input syntax for type bigint: \"{value}\""})
        matching = [row for row in rows if all(_pg_text(row.get(k)) == v for k, v in filters)]

        if request.method == "GET":
            order = request.url.params.get("order")
            if order:
                column, _, direction = order.partition(".")
                matching = sorted(matching, key=lambda row: row[column], reverse=direction == "desc")
            headers = {}
            if request.headers.get("prefer") == "count=exact":
                headers["content-range"] = f"0-{max(len(matching) - 1, 0)}/{len(matching)}"
            if "limit" in request.url.params:
                matching = matching[: int(request.url.params["limit"])]
            if request.headers.get("accept") == "application/vnd.pgrst.object+json":
                if len(matching) != 1:
                    return httpx.Response(406, json={"code": "PGRST116", "message": "JSON object requested, multiple (or no) rows returned"})
                return httpx.Response(200, json=matching[0], headers=headers)
            return httpx.Response(200, json=matching, headers=headers)

        if request.method == "PATCH":
            changes = json.loads(request.content)
            for row in matching:
                row.update(changes)
            return httpx.Response(204)

        if request.method == "POST":
            inserted = []
            for body in json.loads(request.content):
                row = dict(body, id=self.next_order_id)
                self.next_order_id += 1
                rows.append(row)
                inserted.append(row)
            return httpx.Response(201, json=inserted)

        return httpx.Response(405)


class FakeSheets:
    """Values get and append for one spreadsheet."""

    def __init__(self, values=None):
        self.values = copy.deepcopy(SHEET_VALUES if values is None else values)
        self.appended = []
        self.requests = []
        self.fail_status = None
        # Replaces the JSON body of every values GET when set
        self.body_override = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_status:
            return httpx.Response(self.fail_status, json={"error": {"message": "boom"}})
        if request.url.params.get("key") != SHEETS_KEY:
            return httpx.Response(403, json={"error": {"message": "API key not valid"}})

        path = unquote(request.url.path)
        prefix = f"/v4/spreadsheets/{SPREADSHEET_ID}/values/"
        if not path.startswith(prefix):
            return httpx.Response(404, json={"error": {"message": "Requested entity was not found."}})
        cell_range = path[len(prefix):]

        if request.method == "POST" and cell_range.endswith(":append"):
            body = json.loads(request.content)
            self.appended.extend(body["values"])
            return httpx.Response(200, json={"updates": {"updatedRows": len(body["values"])}})
        if request.method == "GET":
            if self.body_override is not None:
                return httpx.Response(200, json=self.body_override)
            return httpx.Response(200, json={"range": cell_range, "values": self.values.get(cell_range, [])})
        return httpx.Response(405)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def fake_sheets():
    return FakeSheets()


@pytest.fixture
def supabase_service(fake_supabase):
    client = SupabaseClient(SUPABASE_URL, SUPABASE_KEY, transport=httpx.MockTransport(fake_supabase))
    return DatabaseService(client)


@pytest.fixture
def sheets_service(fake_sheets):
    client = SheetsClient(SHEETS_KEY, SPREADSHEET_ID, transport=httpx.MockTransport(fake_sheets))
    return DatabaseService(client)
