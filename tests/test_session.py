import asyncio
import json

import httpx
import pytest

from veroterra_server.errors import (
    CatalogLoadInProgress,
    IndexOutOfRange,
    InvalidLineItem,
    NothingToExport,
)
from veroterra_server.session import OrderSession
from veroterra_server.storage import CATALOG_SLOT, BlobStore

from .conftest import make_source


async def test_refresh_replaces_and_persists_catalog(session, store):
    result = await session.refresh_catalog()

    assert result.loaded is True
    assert result.count == 3
    assert result.message.startswith("Imported 3 products. First: Widget (Price: 10, PV: 2)")
    assert [p.name for p in session.catalog] == ["Widget", "Gadget", "Widget Pro"]
    assert BlobStore(store.store_file).get(CATALOG_SLOT)[0] == {"Name": "Widget", "Price": 10.0, "PV": 2.0}


async def test_refresh_failure_keeps_previous_catalog(store, tmp_path):
    store.set(CATALOG_SLOT, [{"Name": "Stored", "Price": 5, "PV": 1}])
    source = make_source(lambda request: httpx.Response(500))
    session = OrderSession(store, source, export_dir=tmp_path)
    session.load_persisted()

    result = await session.refresh_catalog()

    assert result.loaded is False
    assert result.count == 1
    assert [p.name for p in session.catalog] == ["Stored"]
    assert store.get(CATALOG_SLOT) == [{"Name": "Stored", "Price": 5, "PV": 1}]


async def test_refresh_with_empty_csv_keeps_previous_catalog(store, tmp_path):
    source = make_source(lambda request: httpx.Response(200, text="Name,Price,PV\n,1,1\n"))
    session = OrderSession(store, source, export_dir=tmp_path)
    session.import_csv_text("Name,Price,PV\nWidget,10,2\n")

    result = await session.refresh_catalog()

    assert result.loaded is False
    assert [p.name for p in session.catalog] == ["Widget"]


async def test_concurrent_loads_are_rejected(store, tmp_path):
    release = asyncio.Event()

    async def slow_handler(request):
        await release.wait()
        return httpx.Response(200, text="Name,Price,PV\nWidget,10,2\n")

    session = OrderSession(store, make_source(slow_handler), export_dir=tmp_path)
    first = asyncio.create_task(session.refresh_catalog())
    await asyncio.sleep(0)

    with pytest.raises(CatalogLoadInProgress):
        await session.refresh_catalog()
    with pytest.raises(CatalogLoadInProgress):
        session.import_csv_text("Name,Price,PV\nOther,1,1\n")

    release.set()
    result = await first
    assert result.loaded is True
    assert [p.name for p in session.catalog] == ["Widget"]


def test_load_persisted_degrades_to_empty(store, csv_source):
    store.set(CATALOG_SLOT, "{broken")
    session = OrderSession(store, csv_source)
    assert len(session.load_persisted()) == 0

    store.set(CATALOG_SLOT, [{"Name": ""}])
    assert len(session.load_persisted()) == 0

    store.set(CATALOG_SLOT, json.dumps([{"name": "Widget", "price": 3}]))
    assert [p.name for p in session.load_persisted()] == ["Widget"]


async def test_import_file_csv_and_json(session, tmp_path):
    csv_path = tmp_path / "products.csv"
    csv_path.write_text("Name,Price,PV\nWidget,10,2\n", encoding="utf-8")
    json_path = tmp_path / "backup.json"
    json_path.write_text('[{"name": "Soap", "price": "4", "pv": "1"}]', encoding="utf-8")

    assert (await session.import_file(csv_path)).loaded is True
    assert [p.name for p in session.catalog] == ["Widget"]

    assert (await session.import_file(json_path)).loaded is True
    assert [p.name for p in session.catalog] == ["Soap"]


async def test_import_missing_file_keeps_catalog(session, tmp_path):
    session.import_csv_text("Name,Price,PV\nWidget,10,2\n")
    result = await session.import_file(tmp_path / "missing.csv")
    assert result.loaded is False
    assert len(session.catalog) == 1


def test_import_invalid_json_keeps_catalog(session):
    session.import_csv_text("Name,Price,PV\nWidget,10,2\n")
    result = session.import_json_text("{}")
    assert result.loaded is False
    assert "Invalid JSON" in result.message
    assert len(session.catalog) == 1


def test_totals_follow_every_mutation(session):
    session.import_csv_text("Name,Price,PV\nWidget,10,2\nGadget,25,4\n")
    assert session.totals.grand_price == 117

    session.add_item("Widget", qty=3)
    assert session.totals.grand_price == 147
    assert session.totals.grand_pv == 6

    session.add_item("Gadget", qty="2")
    assert session.totals.grand_price == 197
    assert session.totals.grand_pv == 14

    session.remove_item(0)
    assert session.totals.grand_price == 167

    session.set_shipping("abc")
    assert session.totals.grand_price == 50

    session.clear_order()
    assert session.totals.grand_price_display == "0.00"
    assert session.totals.grand_pv_display == "0.00"


def test_add_then_remove_leaves_shipping_only(session):
    session.add_item("Widget", 10, 2, 1)
    session.remove_item(0)
    assert session.totals.grand_price_display == "117.00"
    assert session.totals.grand_pv_display == "0.00"


def test_line_items_are_frozen_against_catalog_edits(session):
    session.import_csv_text("Name,Price,PV\nWidget,10,2\n")
    item = session.add_item("Widget", qty=3)

    session.import_csv_text("Name,Price,PV\nWidget,99,9\n")

    assert session.cart.items[0] is item
    assert item.total_price == 30
    assert item.total_pv == 6
    assert session.totals.grand_price == 147


def test_add_uses_selected_product_and_overrides(session):
    session.import_csv_text("Name,Price,PV\nWidget,10,2\n")
    assert session.select_product("Widget").price == 10

    item = session.add_item(price=" 8.5 ", qty=2)

    assert item.name == "Widget"
    assert item.total_price == 17
    assert item.total_pv == 4


def test_invalid_adds_leave_order_unchanged(session):
    session.add_item("Widget", 10, 2, 1)
    before = session.totals

    with pytest.raises(InvalidLineItem):
        session.add_item("Widget", 10, 2, "0")
    with pytest.raises(InvalidLineItem):
        session.add_item("", 10, 2, 1)
    with pytest.raises(IndexOutOfRange):
        session.remove_item(3)

    assert len(session.cart) == 1
    assert session.totals == before


def test_exports(session, tmp_path):
    with pytest.raises(NothingToExport):
        session.export_catalog()
    with pytest.raises(NothingToExport):
        session.export_order()

    session.import_csv_text("Name,Price,PV\nWidget,10,2\n")
    session.add_item("Widget", qty=1)

    csv_path = session.export_catalog()
    json_path = session.export_order(tmp_path / "elsewhere")

    assert csv_path.name == "veroterra_products.csv"
    assert csv_path.parent == tmp_path / "exports"
    assert json.loads(json_path.read_text())[0]["totalPrice"] == 10


def test_import_json_with_oversized_price_sanitizes_it(session):
    result = session.import_json_text('[{"Name": "Huge", "Price": 1' + "0" * 400 + ', "PV": 3}]')

    assert result.loaded is True
    assert session.catalog.products[0].price == 0.0
    assert session.catalog.products[0].pv == 3.0
