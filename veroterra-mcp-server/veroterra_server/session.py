"""Order session: catalog, cart and totals for one running server."""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional, Union

from .cart import Cart, compute_totals
from .catalog import Catalog, parse_csv, parse_json, parse_rows
from .catalog_source import CatalogSource
from .config import DEFAULT_SHIPPING, Settings
from .errors import (
    CatalogFormatError,
    CatalogLoadInProgress,
    EmptyCatalogError,
    NothingToExport,
    SourceUnavailable,
)
from .exporter import (
    CATALOG_EXPORT_FILENAME,
    ORDER_EXPORT_FILENAME,
    to_csv,
    to_json,
    write_export,
)
from .models import LineItem, LoadResult, Product, Totals
from .numeric import format_number, sanitize_number
from .storage import CATALOG_SLOT, BlobStore

logger = logging.getLogger(__name__)

# Failures that leave the current catalog in place
_LOAD_FAILURES = (SourceUnavailable, EmptyCatalogError, CatalogFormatError)


class OrderSession:
    """
    Application state for the catalog and the order being built.

    Every cart mutation is followed by a full totals recomputation, so
    `totals` always matches the current cart and shipping value.
    """

    def __init__(
        self,
        store: BlobStore,
        source: CatalogSource,
        shipping: Any = DEFAULT_SHIPPING,
        export_dir: Union[str, Path] = ".",
    ) -> None:
        self.store = store
        self.source = source
        self.export_dir = Path(export_dir)
        self.catalog = Catalog()
        self.cart = Cart()
        self.selected: Optional[Product] = None
        self.shipping = sanitize_number(shipping)
        self.totals: Totals = compute_totals(self.cart, self.shipping)
        self._load_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "OrderSession":
        """Build a session (store, source) from settings."""
        return cls(
            store=BlobStore(settings.store_file),
            source=CatalogSource(settings.catalog_url),
            shipping=settings.shipping,
            export_dir=settings.export_dir,
        )

    # Catalog acquisition

    def load_persisted(self) -> Catalog:
        """Restore the last stored catalog; bad or missing data gives an empty catalog."""
        blob = self.store.get(CATALOG_SLOT)
        if not blob:
            logger.info("No stored catalog found")
            self.catalog = Catalog()
            return self.catalog

        try:
            if isinstance(blob, str):
                self.catalog = parse_json(blob)
            elif isinstance(blob, list):
                self.catalog = parse_rows(blob)
            else:
                raise CatalogFormatError(f"Unexpected stored catalog type: {type(blob).__name__}")
            logger.info(f"Loaded {len(self.catalog)} product(s) from stored catalog")
        except (EmptyCatalogError, CatalogFormatError) as e:
            logger.warning(f"Ignoring stored catalog: {e}")
            self.catalog = Catalog()

        return self.catalog

    @asynccontextmanager
    async def _acquisition(self, source: str):
        if self._load_lock.locked():
            raise CatalogLoadInProgress(
                f"A catalog load is already running; try {source} again when it finishes"
            )
        async with self._load_lock:
            yield

    def _replace_catalog(self, catalog: Catalog, source: str) -> LoadResult:
        self.catalog = catalog
        self.store.set(CATALOG_SLOT, catalog.to_records())
        first = catalog.products[0]
        logger.info(f"✓ Loaded {len(catalog)} product(s) from {source}")
        return LoadResult(
            source=source,
            loaded=True,
            count=len(catalog),
            message=(
                f"Imported {len(catalog)} products. "
                f"First: {first.name} (Price: {format_number(first.price)}, PV: {format_number(first.pv)})"
            ),
            first=first,
        )

    def _keep_current(self, source: str, error: Exception) -> LoadResult:
        logger.warning(f"Catalog load from {source} failed ({error}); keeping current catalog")
        return LoadResult(
            source=source,
            loaded=False,
            count=len(self.catalog),
            message=f"{error}. Keeping current catalog ({len(self.catalog)} products).",
        )

    def _ensure_idle(self) -> None:
        if self._load_lock.locked():
            raise CatalogLoadInProgress("A catalog load is already running")

    async def refresh_catalog(self) -> LoadResult:
        """
        Fetch the published CSV and replace the catalog.

        On any fetch or parse failure the current catalog stays active.

        Raises:
            CatalogLoadInProgress: if another load has not finished
        """
        async with self._acquisition("refresh"):
            try:
                text = await self.source.fetch_csv()
                catalog = parse_csv(text)
            except _LOAD_FAILURES as e:
                return self._keep_current(self.source.url, e)
            return self._replace_catalog(catalog, self.source.url)

    async def import_file(self, path: Union[str, Path]) -> LoadResult:
        """
        Import a local catalog file (.json as JSON, anything else as CSV).

        Raises:
            CatalogLoadInProgress: if another load has not finished
        """
        path = Path(path)
        async with self._acquisition("import"):
            try:
                text = self.source.read_file(path)
                if path.suffix.lower() == ".json":
                    catalog = parse_json(text)
                else:
                    catalog = parse_csv(text)
            except _LOAD_FAILURES as e:
                return self._keep_current(str(path), e)
            return self._replace_catalog(catalog, str(path))

    def import_csv_text(self, text: str, source: str = "csv") -> LoadResult:
        """Replace the catalog from CSV text already in hand."""
        self._ensure_idle()
        try:
            catalog = parse_csv(text)
        except _LOAD_FAILURES as e:
            return self._keep_current(source, e)
        return self._replace_catalog(catalog, source)

    def import_json_text(self, text: str, source: str = "json") -> LoadResult:
        """Replace the catalog from a JSON backup already in hand."""
        self._ensure_idle()
        try:
            catalog = parse_json(text)
        except _LOAD_FAILURES as e:
            return self._keep_current(source, e)
        return self._replace_catalog(catalog, source)

    # Selection

    def search(self, query: str) -> list[Product]:
        return self.catalog.search(query)

    def select_product(self, name: str) -> Optional[Product]:
        """Select a catalog product by exact name; its price/PV prefill add_item."""
        self.selected = self.catalog.find_exact(name)
        return self.selected

    # Order

    def _recompute(self) -> Totals:
        self.totals = compute_totals(self.cart, self.shipping)
        return self.totals

    def add_item(
        self,
        name: Optional[str] = None,
        price: Any = None,
        pv: Any = None,
        qty: Any = 1,
    ) -> LineItem:
        """
        Add an order line from user input.

        Without a name the selected product is used. Price and PV default to
        the catalog values of the named product; given values are sanitized.

        Raises:
            InvalidLineItem: if name is blank or qty is not a positive whole number
        """
        name = (name or "").strip()
        if not name and self.selected is not None:
            name = self.selected.name

        product = self.catalog.find_exact(name) if name else None
        if price is None:
            price = product.price if product else 0.0
        if pv is None:
            pv = product.pv if product else 0.0

        item = self.cart.add(
            name,
            sanitize_number(price),
            sanitize_number(pv),
            sanitize_number(qty),
        )
        self._recompute()
        return item

    def remove_item(self, index: int) -> LineItem:
        """
        Remove the order line at `index`.

        Raises:
            IndexOutOfRange: if there is no such line
        """
        item = self.cart.remove_at(index)
        self._recompute()
        return item

    def clear_order(self) -> Totals:
        self.cart.clear()
        return self._recompute()

    def set_shipping(self, raw: Any) -> Totals:
        self.shipping = sanitize_number(raw)
        return self._recompute()

    # Export

    def export_catalog(self, directory: Optional[Union[str, Path]] = None) -> Path:
        """
        Write the catalog as veroterra_products.csv.

        Raises:
            NothingToExport: if the catalog is empty
        """
        if not self.catalog:
            raise NothingToExport("No products to export")
        return write_export(to_csv(self.catalog), directory or self.export_dir, CATALOG_EXPORT_FILENAME)

    def export_order(self, directory: Optional[Union[str, Path]] = None) -> Path:
        """
        Write the order lines as veroterra_order.json.

        Raises:
            NothingToExport: if the order is empty
        """
        if not len(self.cart):
            raise NothingToExport("Cart is empty")
        return write_export(to_json(self.cart), directory or self.export_dir, ORDER_EXPORT_FILENAME)

    async def close(self) -> None:
        await self.source.close()
