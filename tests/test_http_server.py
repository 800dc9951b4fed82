import pytest
from fastapi.testclient import TestClient

from veroterra_server.http_server import app


@pytest.fixture
def client(monkeypatch, tmp_path):
    monkeypatch.setenv("VEROTERRA_STORE_FILE", str(tmp_path / "store.json"))
    monkeypatch.setenv("VEROTERRA_EXPORT_DIR", str(tmp_path / "exports"))
    monkeypatch.setenv("VEROTERRA_AUTO_REFRESH", "0")
    with TestClient(app) as test_client:
        response = test_client.post(
            "/catalog/import",
            json={"csv_text": "Name,Price,PV\nWidget,10,2\nGadget,25.5,4\n"},
        )
        assert response.json()["loaded"] is True
        yield test_client


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy", "products": 2}


def test_search_and_select(client):
    data = client.post("/products/search", json={"query": "ga"}).json()
    assert data["count"] == 1
    assert data["products"][0] == {"name": "Gadget", "price": 25.5, "pv": 4.0}

    assert client.get("/products/Widget").json()["price"] == 10.0
    assert client.get("/products/widget").status_code == 404


def test_order_endpoints(client):
    data = client.post("/order/add", json={"name": "Widget", "quantity": 3}).json()
    assert data["item"]["totalPrice"] == 30.0
    assert data["totals"]["grand_price_display"] == "147.00"

    assert client.post("/order/add", json={"name": "Widget", "quantity": 0}).status_code == 400
    assert client.post("/order/remove", json={"index": 5}).status_code == 404

    data = client.post("/order/remove", json={"index": 0}).json()
    assert data["items"] == []
    assert data["totals"]["grand_price_display"] == "117.00"
    assert data["totals"]["grand_pv_display"] == "0.00"


def test_shipping_and_clear(client):
    client.post("/order/add", json={"name": "Gadget", "quantity": 2})
    data = client.post("/settings/shipping", json={"shipping": "x"}).json()
    assert data["totals"]["grand_price"] == 51.0

    data = client.post("/order/clear").json()
    assert data["items"] == []
    assert data["totals"]["grand_price"] == 0.0


def test_import_requires_input(client):
    assert client.post("/catalog/import", json={}).status_code == 400

    data = client.post("/catalog/import", json={"json_text": "[]"}).json()
    assert data["loaded"] is False
    assert data["count"] == 2


def test_exports(client):
    response = client.get("/export/catalog")
    assert response.status_code == 200
    assert 'filename="veroterra_products.csv"' in response.headers["content-disposition"]
    assert response.text.startswith('"Name","Price","PV"')

    assert client.get("/export/order").status_code == 404
    client.post("/order/add", json={"name": "Widget"})
    response = client.get("/export/order")
    assert response.json()[0]["name"] == "Widget"


def test_select_product_with_slash_in_name(client):
    client.post("/catalog/import", json={"csv_text": "Name,Price,PV\nOil 10ml/20ml,12,3\n"})

    response = client.get("/products/Oil 10ml/20ml")
    assert response.status_code == 200
    assert response.json() == {"name": "Oil 10ml/20ml", "price": 12.0, "pv": 3.0}


def test_unexpected_errors_return_500(client, monkeypatch):
    from veroterra_server import http_server

    def broken(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(http_server.order_session, "clear_order", broken)
    monkeypatch.setattr(http_server.order_session, "add_item", broken)

    response = client.post("/order/clear")
    assert response.status_code == 500
    assert response.json()["detail"] == "disk full"
    assert client.post("/order/add", json={"name": "Widget"}).status_code == 500
