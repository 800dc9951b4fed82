"""Product catalog and catalog parsing."""

import csv
import io
import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Optional

from .errors import CatalogFormatError, EmptyCatalogError
from .models import CatalogRecord, Product

logger = logging.getLogger(__name__)


class Catalog:
    """Ordered, read-only list of products."""

    def __init__(self, products: Iterable[Product] = ()) -> None:
        self._products: tuple[Product, ...] = tuple(products)

    @property
    def products(self) -> tuple[Product, ...]:
        return self._products

    def __len__(self) -> int:
        return len(self._products)

    def __iter__(self) -> Iterator[Product]:
        return iter(self._products)

    def __bool__(self) -> bool:
        return bool(self._products)

    def __repr__(self) -> str:
        return f"Catalog({len(self._products)} products)"

    def search(self, prefix: str) -> list[Product]:
        """
        Find products whose name starts with prefix (case-insensitive).

        A blank prefix returns the whole catalog in its original order.
        """
        query = (prefix or "").strip().lower()
        if not query:
            return list(self._products)
        return [p for p in self._products if p.name.lower().startswith(query)]

    def find_exact(self, name: str) -> Optional[Product]:
        """Return the first product named exactly `name`, or None."""
        for product in self._products:
            if product.name == name:
                return product
        return None

    def to_records(self) -> list[dict[str, Any]]:
        """Serialize to the Name/Price/PV records used for persistence."""
        return [{"Name": p.name, "Price": p.price, "PV": p.pv} for p in self._products]


def parse_rows(rows: Iterable[Any]) -> Catalog:
    """
    Build a catalog from raw records.

    Rows without a name are skipped; price and PV are sanitized.

    Raises:
        EmptyCatalogError: if no row has a usable name
    """
    products = []
    skipped = 0
    for row in rows:
        if not isinstance(row, Mapping):
            skipped += 1
            continue
        record = CatalogRecord.model_validate({k: v for k, v in row.items() if isinstance(k, str)})
        if not record.name:
            skipped += 1
            continue
        products.append(record.to_product())

    if skipped:
        logger.debug(f"Skipped {skipped} row(s) without a product name")

    if not products:
        raise EmptyCatalogError()

    return Catalog(products)


def parse_csv(text: str) -> Catalog:
    """Parse header-keyed CSV text (Name,Price,PV)."""
    text = text.lstrip("\ufeff")
    reader = csv.DictReader(io.StringIO(text))
    try:
        rows = [row for row in reader if any(v.strip() for v in row.values() if isinstance(v, str))]
    except csv.Error as e:
        raise CatalogFormatError(f"CSV parse error: {e}") from e
    return parse_rows(rows)


def parse_json(text: str) -> Catalog:
    """Parse a JSON array of product objects."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise CatalogFormatError(f"Invalid JSON: {e}") from e

    if not isinstance(data, list):
        raise CatalogFormatError("Invalid JSON: expected an array of products")

    return parse_rows(data)
