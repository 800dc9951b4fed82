"""Pytest fixtures for catalog and order tests."""

import httpx
import pytest

from veroterra_server.catalog import Catalog
from veroterra_server.catalog_source import CatalogSource
from veroterra_server.models import Product
from veroterra_server.session import OrderSession
from veroterra_server.storage import BlobStore

CATALOG_CSV = "Name,Price,PV\nWidget,10,2\nGadget,25.5,4\nWidget Pro,40,8\n"


@pytest.fixture
def catalog():
    return Catalog(
        [
            Product(name="Widget", price=10, pv=2),
            Product(name="Gadget", price=25.5, pv=4),
            Product(name="Widget Pro", price=40, pv=8),
        ]
    )


@pytest.fixture
def store(tmp_path):
    return BlobStore(str(tmp_path / "store.json"))


def make_source(handler) -> CatalogSource:
    return CatalogSource("https://example.test/products.csv", transport=httpx.MockTransport(handler))


@pytest.fixture
def csv_source():
    """Source whose remote CSV is CATALOG_CSV."""
    return make_source(lambda request: httpx.Response(200, text=CATALOG_CSV))


@pytest.fixture
def session(store, csv_source, tmp_path):
    return OrderSession(store, csv_source, shipping=117, export_dir=tmp_path / "exports")
