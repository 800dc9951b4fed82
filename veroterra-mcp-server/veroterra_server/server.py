"""MCP Server for the Veroterra order sheet."""

import asyncio
import json
import logging
from typing import Any

from mcp.server import Server
from mcp.types import Resource, Tool, TextContent
from pydantic import AnyUrl

from .config import load_settings
from .errors import VeroterraError
from .exporter import to_json
from .models import LoadResult
from .numeric import format_number
from .session import OrderSession

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("veroterra-mcp-server")

# Initialize server
app = Server("veroterra-mcp-server")

# Global state
order_session: OrderSession


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


def _load_result_text(result: LoadResult) -> str:
    if result.loaded:
        return f"✅ {result.message}"
    return f"⚠️ Catalog not replaced: {result.message}"


def format_order(session: OrderSession) -> str:
    """Render the order lines and totals as text."""
    totals = session.totals
    if not len(session.cart):
        lines = ["Your order is empty"]
    else:
        lines = [f"Order ({totals.line_count} line(s)):\n"]
        for index, item in enumerate(session.cart.items):
            lines.append(
                f"  [{index}] {item.name}: {item.qty} x {format_number(item.price)}"
                f" = {format_number(item.total_price)} (PV {format_number(item.total_pv)})"
            )
    lines.append(f"\nShipping: {format_number(totals.shipping)}")
    lines.append(f"Total price: {totals.grand_price_display}")
    lines.append(f"Total PV: {totals.grand_pv_display}")
    return "\n".join(lines)


@app.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    return [
        Resource(
            uri=AnyUrl("veroterra://catalog"),
            name="Product Catalog",
            mimeType="application/json",
            description="Currently loaded products (Name, Price, PV)",
        ),
        Resource(
            uri=AnyUrl("veroterra://order"),
            name="Current Order",
            mimeType="application/json",
            description="Order lines of the order being built",
        ),
    ]


@app.read_resource()
async def read_resource(uri: AnyUrl) -> str:
    """Read a resource by URI."""
    uri_str = str(uri)

    if uri_str == "veroterra://catalog":
        return json.dumps(order_session.catalog.to_records(), indent=2, ensure_ascii=False)

    if uri_str == "veroterra://order":
        return to_json(order_session.cart)

    raise ValueError(f"Unknown resource: {uri}")


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="veroterra_search_products",
            description="Search the catalog for products whose name starts with the query (case-insensitive)",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "Name prefix (empty lists the whole catalog)",
                    },
                },
            },
        ),
        Tool(
            name="veroterra_select_product",
            description="Select a product by its exact name and show its price and PV",
            inputSchema={
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "Exact product name"},
                },
                "required": ["name"],
            },
        ),
        Tool(
            name="veroterra_add_to_order",
            description="Add a line to the order (price and PV default to the catalog values)",
            inputSchema={
                "type": "object",
                "properties": {
                    "name": {
                        "type": "string",
                        "description": "Product name (defaults to the selected product)",
                    },
                    "price": {"type": ["number", "string"], "description": "Unit price override"},
                    "pv": {"type": ["number", "string"], "description": "Unit PV override"},
                    "quantity": {
                        "type": ["integer", "string"],
                        "description": "Quantity (default: 1)",
                        "default": 1,
                    },
                },
            },
        ),
        Tool(
            name="veroterra_remove_from_order",
            description="Remove an order line by its index as shown in veroterra_get_order",
            inputSchema={
                "type": "object",
                "properties": {
                    "index": {"type": "integer", "description": "Zero-based line index"},
                },
                "required": ["index"],
            },
        ),
        Tool(
            name="veroterra_get_order",
            description="Show the order lines and totals (price incl. shipping, PV)",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="veroterra_clear_order",
            description="Remove all lines from the order",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="veroterra_set_shipping",
            description="Set the flat shipping charge added to the order total",
            inputSchema={
                "type": "object",
                "properties": {
                    "shipping": {"type": ["number", "string"], "description": "Flat shipping amount"},
                },
                "required": ["shipping"],
            },
        ),
        Tool(
            name="veroterra_refresh_catalog",
            description="Reload the catalog from the published CSV (keeps the current catalog on failure)",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="veroterra_import_catalog",
            description="Import the catalog from a local CSV (Name,Price,PV) or JSON backup file",
            inputSchema={
                "type": "object",
                "properties": {
                    "path": {"type": "string", "description": "Path to a .csv or .json file"},
                },
                "required": ["path"],
            },
        ),
        Tool(
            name="veroterra_export_catalog",
            description="Export the catalog to veroterra_products.csv",
            inputSchema={
                "type": "object",
                "properties": {
                    "directory": {"type": "string", "description": "Target directory (optional)"},
                },
            },
        ),
        Tool(
            name="veroterra_export_order",
            description="Export the current order to veroterra_order.json",
            inputSchema={
                "type": "object",
                "properties": {
                    "directory": {"type": "string", "description": "Target directory (optional)"},
                },
            },
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls."""
    arguments = arguments or {}
    try:
        if name == "veroterra_search_products":
            query = arguments.get("query") or ""
            products = order_session.search(query)

            if not products:
                if not order_session.catalog:
                    return _text("-- no products -- (catalog is empty)")
                return _text(f"No products found for: {query}")

            result_lines = [f"Found {len(products)} product(s):\n"]
            for i, product in enumerate(products, 1):
                result_lines.append(
                    f"{i}. {product.name} | Price: {format_number(product.price)} | PV: {format_number(product.pv)}"
                )
            return _text("\n".join(result_lines))

        elif name == "veroterra_select_product":
            product_name = arguments.get("name") or ""
            product = order_session.select_product(product_name)
            if product is None:
                return _text(f"❌ Product not found: {product_name}")
            return _text(
                f"Selected {product.name}\n"
                f"Price: {format_number(product.price)}\n"
                f"PV: {format_number(product.pv)}"
            )

        elif name == "veroterra_add_to_order":
            item = order_session.add_item(
                name=arguments.get("name"),
                price=arguments.get("price"),
                pv=arguments.get("pv"),
                qty=arguments.get("quantity", 1),
            )
            return _text(
                f"✅ Added {item.qty} x {item.name} "
                f"(price {format_number(item.total_price)}, PV {format_number(item.total_pv)})\n"
                f"Order total: {order_session.totals.grand_price_display} | "
                f"PV: {order_session.totals.grand_pv_display}"
            )

        elif name == "veroterra_remove_from_order":
            item = order_session.remove_item(int(arguments["index"]))
            return _text(
                f"✅ Removed {item.name} from order\n"
                f"Order total: {order_session.totals.grand_price_display} | "
                f"PV: {order_session.totals.grand_pv_display}"
            )

        elif name == "veroterra_get_order":
            return _text(format_order(order_session))

        elif name == "veroterra_clear_order":
            order_session.clear_order()
            return _text("✅ Order cleared")

        elif name == "veroterra_set_shipping":
            totals = order_session.set_shipping(arguments.get("shipping"))
            return _text(
                f"✅ Shipping set to {format_number(totals.shipping)}\n"
                f"Order total: {totals.grand_price_display}"
            )

        elif name == "veroterra_refresh_catalog":
            result = await order_session.refresh_catalog()
            return _text(_load_result_text(result))

        elif name == "veroterra_import_catalog":
            path = arguments.get("path")
            if not path:
                return _text("Error: path parameter required")
            result = await order_session.import_file(path)
            return _text(_load_result_text(result))

        elif name == "veroterra_export_catalog":
            path = order_session.export_catalog(arguments.get("directory"))
            return _text(f"✅ Catalog exported to {path}")

        elif name == "veroterra_export_order":
            path = order_session.export_order(arguments.get("directory"))
            return _text(f"✅ Order exported to {path}")

        else:
            return _text(f"Unknown tool: {name}")

    except VeroterraError as e:
        logger.warning(f"Tool {name} rejected: {e}")
        return _text(f"❌ {e}")
    except Exception as e:
        logger.error(f"Error executing tool {name}: {e}", exc_info=True)
        return _text(f"Error: {str(e)}")


async def main() -> None:
    """Main entry point."""
    global order_session

    settings = load_settings()
    order_session = OrderSession.from_settings(settings)
    order_session.load_persisted()

    if settings.auto_refresh:
        result = await order_session.refresh_catalog()
        logger.info(result.message)
    else:
        logger.info("Remote catalog refresh disabled (VEROTERRA_AUTO_REFRESH)")

    logger.info("Starting Veroterra MCP Server...")

    # Import and run the server
    from mcp.server.stdio import stdio_server

    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(
                read_stream,
                write_stream,
                app.create_initialization_options(),
            )
    finally:
        await order_session.close()


if __name__ == "__main__":
    asyncio.run(main())
