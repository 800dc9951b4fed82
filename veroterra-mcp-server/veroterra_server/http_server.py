"""HTTP server for the Veroterra order sheet."""

import logging
from contextlib import asynccontextmanager
from typing import Optional, Union

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel

from . import __version__
from .config import load_settings
from .errors import (
    CatalogLoadInProgress,
    IndexOutOfRange,
    InvalidLineItem,
)
from .exporter import CATALOG_EXPORT_FILENAME, ORDER_EXPORT_FILENAME, to_csv, to_json
from .session import OrderSession

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("veroterra-http-server")

# Global state
order_session: OrderSession


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    global order_session

    # Startup
    logger.info("Starting Veroterra HTTP Server...")
    settings = load_settings()
    order_session = OrderSession.from_settings(settings)
    order_session.load_persisted()
    if settings.auto_refresh:
        result = await order_session.refresh_catalog()
        logger.info(result.message)

    yield

    # Shutdown
    logger.info("Shutting down Veroterra HTTP Server...")
    await order_session.close()


app = FastAPI(
    title="Veroterra Order Server",
    description="HTTP API for building Veroterra product orders (price and PV totals)",
    version=__version__,
    lifespan=lifespan,
)


# Request/Response Models
class SearchRequest(BaseModel):
    query: str = ""


class AddToOrderRequest(BaseModel):
    name: Optional[str] = None
    price: Optional[Union[float, str]] = None
    pv: Optional[Union[float, str]] = None
    quantity: Union[int, float, str] = 1


class RemoveFromOrderRequest(BaseModel):
    index: int


class ShippingRequest(BaseModel):
    shipping: Union[float, str]


class ImportRequest(BaseModel):
    path: Optional[str] = None
    csv_text: Optional[str] = None
    json_text: Optional[str] = None


def _order_payload() -> dict:
    totals = order_session.totals
    return {
        "items": [item.model_dump(by_alias=True) for item in order_session.cart.items],
        "totals": {
            **totals.model_dump(),
            "grand_price_display": totals.grand_price_display,
            "grand_pv_display": totals.grand_pv_display,
        },
    }


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Veroterra Order Server",
        "version": __version__,
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "products": {"search": "POST /products/search", "select": "GET /products/{name}"},
            "order": {
                "get": "GET /order",
                "add": "POST /order/add",
                "remove": "POST /order/remove",
                "clear": "POST /order/clear",
            },
            "catalog": {"refresh": "POST /catalog/refresh", "import": "POST /catalog/import"},
            "export": {"catalog": "GET /export/catalog", "order": "GET /export/order"},
            "settings": {"shipping": "POST /settings/shipping"},
        },
        "products": len(order_session.catalog),
    }


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "products": len(order_session.catalog)}


# Product endpoints
@app.post("/products/search")
async def search_products(request: SearchRequest):
    """Search products by name prefix (case-insensitive)."""
    products = order_session.search(request.query)
    return {
        "count": len(products),
        "products": [product.model_dump() for product in products],
    }


@app.get("/products/{name:path}")
async def select_product(name: str):
    """Select a product by exact name."""
    product = order_session.select_product(name)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product not found: {name}")
    return product.model_dump()


# Order endpoints
@app.get("/order")
async def get_order():
    """Get order lines and totals."""
    return _order_payload()


@app.post("/order/add")
async def add_to_order(request: AddToOrderRequest):
    """Add a line to the order."""
    try:
        item = order_session.add_item(
            name=request.name,
            price=request.price,
            pv=request.pv,
            qty=request.quantity,
        )
        return {"item": item.model_dump(by_alias=True), **_order_payload()}
    except InvalidLineItem as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Add to order error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/order/remove")
async def remove_from_order(request: RemoveFromOrderRequest):
    """Remove the order line at an index."""
    try:
        item = order_session.remove_item(request.index)
        return {"removed": item.model_dump(by_alias=True), **_order_payload()}
    except IndexOutOfRange as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Remove from order error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/order/clear")
async def clear_order():
    """Remove all order lines."""
    try:
        order_session.clear_order()
        return _order_payload()
    except Exception as e:
        logger.error(f"Clear order error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/settings/shipping")
async def set_shipping(request: ShippingRequest):
    """Set the flat shipping charge."""
    try:
        order_session.set_shipping(request.shipping)
        return _order_payload()
    except Exception as e:
        logger.error(f"Set shipping error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


# Catalog endpoints
@app.post("/catalog/refresh")
async def refresh_catalog():
    """Reload the catalog from the published CSV."""
    try:
        result = await order_session.refresh_catalog()
        return result.model_dump()
    except CatalogLoadInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Catalog refresh error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/catalog/import")
async def import_catalog(request: ImportRequest):
    """Import the catalog from a local file, CSV text or JSON text."""
    try:
        if request.path:
            result = await order_session.import_file(request.path)
        elif request.csv_text is not None:
            result = order_session.import_csv_text(request.csv_text)
        elif request.json_text is not None:
            result = order_session.import_json_text(request.json_text)
        else:
            raise HTTPException(status_code=400, detail="One of path, csv_text or json_text is required")
        return result.model_dump()
    except HTTPException:
        raise
    except CatalogLoadInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Catalog import error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


# Export endpoints
@app.get("/export/catalog")
async def export_catalog():
    """Download the catalog as CSV."""
    if not order_session.catalog:
        raise HTTPException(status_code=404, detail="No products to export")
    return PlainTextResponse(
        to_csv(order_session.catalog),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{CATALOG_EXPORT_FILENAME}"'},
    )


@app.get("/export/order")
async def export_order():
    """Download the order lines as JSON."""
    if not len(order_session.cart):
        raise HTTPException(status_code=404, detail="Cart is empty")
    return Response(
        to_json(order_session.cart),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{ORDER_EXPORT_FILENAME}"'},
    )


def run_http_server(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """
    Run the HTTP server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to bind to (default: 8000)
        reload: Enable hot reloading (default: False)
    """
    import uvicorn

    logger.info(f"Starting server on {host}:{port} (reload={'enabled' if reload else 'disabled'})")

    if reload:
        uvicorn.run(
            "veroterra_server.http_server:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=["veroterra_server"],
            log_level="info",
        )
    else:
        uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    run_http_server()
