"""
config.py — Environment Configuration

This is the only place environment variables are read. A `.env` file in the
working directory is honored for local development.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

DEFAULT_INVENTORY_RANGE = "Inventory!A2:E1000"
DEFAULT_FAQ_RANGE = "FAQs!A2:D1000"
DEFAULT_ORDERS_RANGE = "Orders!A:G"


@dataclass(frozen=True)
class AppConfig:
    # Relational backend (Supabase / PostgREST)
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    # Spreadsheet backend (Google Sheets), only used without the Supabase pair
    sheets_api_key: Optional[str] = None
    spreadsheet_id: Optional[str] = None
    sheets_inventory_range: str = DEFAULT_INVENTORY_RANGE
    sheets_faq_range: str = DEFAULT_FAQ_RANGE
    sheets_orders_range: str = DEFAULT_ORDERS_RANGE

    http_timeout: float = 5.0
    http_read_timeout: float = 8.0

    port: int = 3000

    log_level: str = "INFO"
    log_file: Optional[str] = None

    @property
    def backend(self) -> Optional[str]:
        """Name of the backend this configuration selects, or None."""
        if self.supabase_url and self.supabase_key:
            return "supabase"
        if self.sheets_api_key and self.spreadsheet_id:
            return "sheets"
        return None


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name, default)
    if v is None:
        return None
    v = v.strip()
    return v if v else None


def _getfloat(name: str, default: float) -> float:
    v = _getenv(name)
    if v is None:
        return default
    try:
        return float(v)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {v!r}")


def get_config() -> AppConfig:
    """
    Builds the process configuration.
    - Loads `.env` from the working directory (or a parent) if present, without
      overriding real env vars
    - Blank values count as unset
    """
    load_dotenv(find_dotenv(usecwd=True), override=False)

    return AppConfig(
        supabase_url=_getenv("SUPABASE_URL"),
        supabase_key=_getenv("SUPABASE_ANON_KEY"),
        sheets_api_key=_getenv("GOOGLE_SHEETS_API_KEY"),
        spreadsheet_id=_getenv("GOOGLE_SHEETS_SPREADSHEET_ID"),
        sheets_inventory_range=_getenv("SHEETS_INVENTORY_RANGE", DEFAULT_INVENTORY_RANGE) or DEFAULT_INVENTORY_RANGE,
        sheets_faq_range=_getenv("SHEETS_FAQ_RANGE", DEFAULT_FAQ_RANGE) or DEFAULT_FAQ_RANGE,
        sheets_orders_range=_getenv("SHEETS_ORDERS_RANGE", DEFAULT_ORDERS_RANGE) or DEFAULT_ORDERS_RANGE,
        http_timeout=_getfloat("HTTP_TIMEOUT_SECONDS", 5.0),
        http_read_timeout=_getfloat("HTTP_READ_TIMEOUT_SECONDS", 8.0),
        port=int(_getfloat("PORT", 3000)),
        log_level=_getenv("LOG_LEVEL", "INFO") or "INFO",
        log_file=_getenv("LOG_FILE", "ordering_service.log"),
    )
