"""Catalog and order export."""

import csv
import io
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Union

from pydantic import TypeAdapter

from .catalog import Catalog
from .models import LineItem
from .numeric import format_number

logger = logging.getLogger(__name__)

CATALOG_EXPORT_FILENAME = "veroterra_products.csv"
ORDER_EXPORT_FILENAME = "veroterra_order.json"

CSV_HEADER = ["Name", "Price", "PV"]

_line_items = TypeAdapter(list[LineItem])


def to_csv(catalog: Catalog) -> str:
    """Serialize the catalog as fully quoted CSV with a Name,Price,PV header."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for product in catalog:
        writer.writerow([product.name, format_number(product.price), format_number(product.pv)])
    return buffer.getvalue().rstrip("\n")


def to_json(items: Iterable[LineItem]) -> str:
    """Serialize order lines as pretty-printed JSON."""
    return _line_items.dump_json(list(items), indent=2, by_alias=True).decode("utf-8")


def write_export(text: str, directory: Union[str, Path], filename: str) -> Path:
    """Write export text to `directory/filename` and return the path."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(text, encoding="utf-8")
    logger.info(f"Exported {filename} to {path}")
    return path
