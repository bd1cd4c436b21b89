"""
main.py — FastAPI Entry Point for the Ordering Service

This module provides the REST API of the WhatsApp food ordering agent's data
layer. The startup routine builds the single DatabaseService for the process,
checks the configured store, and hands the instance to every route through
dependency injection.

Responsibilities:
    • Build and check the data store on startup, close it on shutdown
    • Expose inventory, order and FAQ operations over HTTP
    • Map BackendUnavailable to HTTP 503 and InvalidOrder to HTTP 422
    • Provide system health information
"""

from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .config import AppConfig, get_config
from .database import DatabaseService, create_database_service, initialize_database
from .exceptions import BackendUnavailable, InvalidOrder
from .logging_config import get_logger, setup_logging
from .models import NewOrderRequest, QuantityUpdate

SERVICE_NAME = "WhatsApp Food Ordering Agent"

log = get_logger(__name__)


def get_database(request: Request) -> DatabaseService:
    """Dependency returning the facade built by the startup routine."""
    return request.app.state.database


def create_app(config: AppConfig = None, transport=None) -> FastAPI:
    """
    Builds the FastAPI application.

    Args:
        config (AppConfig | None): Configuration; read from the environment when omitted.
        transport (httpx.AsyncBaseTransport | None): Transport for the store client (tests).
    """
    app = FastAPI(title=SERVICE_NAME)
    app.state.config = config or get_config()

    # Startup Event: build and check the data store
    @app.on_event("startup")
    async def on_startup():
        """
        Constructs the DatabaseService once and checks the store is reachable.

        A failed reachability check is logged and startup continues; routes then answer 503
        until the store is reachable.
        """
        log.info(f"{SERVICE_NAME} starting...")
        app.state.database = create_database_service(app.state.config, transport=transport)
        await initialize_database(app.state.database)

    @app.on_event("shutdown")
    async def on_shutdown():
        database = getattr(app.state, "database", None)
        if database is not None:
            await database.aclose()
        log.info(f"{SERVICE_NAME} stopped.")

    @app.exception_handler(BackendUnavailable)
    async def backend_unavailable_handler(request: Request, exc: BackendUnavailable):
        return JSONResponse(
            status_code=503,
            content={"error": "Service Unavailable", "message": str(exc)},
        )

    @app.exception_handler(InvalidOrder)
    async def invalid_order_handler(request: Request, exc: InvalidOrder):
        return JSONResponse(
            status_code=422,
            content={"error": "Invalid Order", "message": str(exc)},
        )

    # Health Check Endpoint
    @app.get("/health")
    def health_check(request: Request):
        """
        Simple health check endpoint.

        Reports the selected store but does not contact it.
        """
        database = getattr(request.app.state, "database", None)
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "backend": database.backend_name if database else None,
        }

    # --- Inventory ---
    @app.get("/inventory")
    async def list_inventory(database: DatabaseService = Depends(get_database)):
        return {"items": await database.get_inventory()}

    @app.get("/inventory/search")
    async def find_item(name: str, database: DatabaseService = Depends(get_database)):
        item = await database.get_item_by_name(name)
        if item is None:
            raise HTTPException(status_code=404, detail=f"No item matching '{name}'")
        return item

    @app.patch("/inventory/{item_id}")
    async def update_quantity(item_id: int, update: QuantityUpdate,
                              database: DatabaseService = Depends(get_database)):
        """
        Sets an item's stock level.

        `updated` is false when the configured store cannot persist inventory
        changes; the response is still 200.
        """
        updated = await database.update_inventory_quantity(item_id, update.quantity)
        return {"itemId": item_id, "quantity": update.quantity, "updated": updated}

    # --- Orders ---
    @app.post("/orders", status_code=201)
    async def submit_order(order: NewOrderRequest, database: DatabaseService = Depends(get_database)):
        """
        Stores a new order with status "pending".

        Returns:
            Order: The stored order, including its id.
        """
        log.info(f"[Order: new] New order received from {order.customerPhone}.")
        return await database.create_order(order)

    @app.get("/orders")
    async def list_orders(phone: str, database: DatabaseService = Depends(get_database)):
        return {"orders": await database.get_orders_by_phone(phone)}

    @app.get("/orders/{order_id}")
    async def get_order(order_id: str, database: DatabaseService = Depends(get_database)):
        order = await database.get_order_by_id(order_id)
        if order is None:
            raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
        return order

    # --- FAQ ---
    @app.get("/faqs")
    async def list_faqs(database: DatabaseService = Depends(get_database)):
        return {"faqs": await database.get_faqs()}

    @app.get("/faqs/search")
    async def find_faq(q: str, database: DatabaseService = Depends(get_database)):
        faq = await database.search_faq(q)
        if faq is None:
            raise HTTPException(status_code=404, detail=f"No FAQ matching '{q}'")
        return faq

    return app


# Initialization
# Configure logging and build the application from the environment
config = get_config()
setup_logging(config.log_level, config.log_file)
app = create_app(config)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=config.port)
