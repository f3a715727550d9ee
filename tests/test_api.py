# tests/test_api.py
from datetime import datetime

from inventory.main import store as app_store


def _stamp(value):
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _create_product(client, sku, **fields):
    payload = {"sku": sku, "name": f"Product {sku}", "price": "10.00", "quantity": 5}
    payload.update(fields)
    return client.post("/products", json=payload)


def test_create_and_get_product(client):
    r = _create_product(client, "API-1", description="Blue Widget Deluxe", price="19.99")
    assert r.status_code == 201
    body = r.json()
    assert body["sku"] == "API-1"
    assert body["price"] == "19.99"
    assert body["category_id"] is None
    assert body["created_at"] == body["updated_at"]

    r2 = client.get(f"/products/{body['id']}")
    assert r2.status_code == 200
    assert r2.json() == body


def test_error_statuses(client):
    assert _create_product(client, "DUP-1").status_code == 201

    dup = _create_product(client, "DUP-1")
    assert dup.status_code == 409
    assert dup.json()["error"] == "duplicate_sku"

    bad = _create_product(client, "NEG-1", quantity=-3)
    assert bad.status_code == 400
    assert bad.json()["field"] == "quantity"

    missing = client.get("/products/999")
    assert missing.status_code == 404
    assert missing.json()["error"] == "not_found"

    assert client.delete("/products/999").status_code == 404
    assert client.put("/products/999", json={"sku": "X", "name": "X", "price": "1", "quantity": 1}).status_code == 404


def test_update_product(client):
    pid = _create_product(client, "UPD-1").json()["id"]

    r = client.put(f"/products/{pid}", json={"sku": "UPD-1", "name": "Renamed", "price": "2.50", "quantity": 0})

    assert r.status_code == 200
    assert r.json()["name"] == "Renamed"
    assert _stamp(r.json()["updated_at"]) > _stamp(r.json()["created_at"])


def test_category_lifecycle_and_delete_guard(client):
    r = client.post("/categories", json={"name": "Tools", "description": "Hand tools"})
    assert r.status_code == 201
    cid = r.json()["id"]

    assert client.post("/categories", json={"name": "Tools"}).status_code == 409

    pid = _create_product(client, "HAM-1", category_id=cid).json()["id"]
    assert client.get(f"/categories/{cid}").json()["product_count"] == 1

    blocked = client.delete(f"/categories/{cid}")
    assert blocked.status_code == 409
    assert blocked.json()["error"] == "conflicting_state"
    assert client.get(f"/products/{pid}").status_code == 200

    assert client.delete(f"/products/{pid}").status_code == 200
    assert client.delete(f"/categories/{cid}").status_code == 200
    assert client.get(f"/categories/{cid}").status_code == 404


def test_list_products_pagination_and_sorting(client):
    for i in range(25):
        _create_product(client, f"PG-{i:02d}", quantity=i)

    pages = [
        client.get("/products", params={"page": n, "size": 10, "sort_by": "quantity", "direction": "desc"}).json()
        for n in range(4)
    ]

    assert [len(p["items"]) for p in pages] == [10, 10, 5, 0]
    assert pages[0]["items"][0]["sku"] == "PG-24"
    assert pages[0]["total_count"] == 25
    assert pages[0]["total_pages"] == 3


def test_list_products_rejects_malformed_parameters(client):
    assert client.get("/products", params={"min_price": "20", "max_price": "10"}).status_code == 400
    assert client.get("/products", params={"sort_by": "colour"}).status_code == 400
    assert client.get("/products", params={"size": 0}).status_code == 400
    assert client.get("/products/low-stock", params={"threshold": -1}).status_code == 400


def test_price_range_defaults_to_price_order(client):
    for i, price in enumerate(["20.01", "20.00", "9.99", "15.00", "10.00"]):
        _create_product(client, f"PR-{i}", price=price)

    r = client.get("/products/price-range", params={"min_price": "10.00", "max_price": "20.00"})

    assert r.status_code == 200
    assert [p["price"] for p in r.json()["items"]] == ["10.00", "15.00", "20.00"]


def test_search_and_category_listings(client):
    cid = client.post("/categories", json={"name": "Office Supplies"}).json()["id"]
    client.post("/categories", json={"name": "Unused"})
    _create_product(client, "STP-1", name="Stapler", description="Blue Widget Deluxe", category_id=cid)
    _create_product(client, "CUP-1", name="Cup", quantity=0)

    search = client.get("/products/search", params={"keyword": "WIDGET"}).json()
    assert [p["sku"] for p in search["items"]] == ["STP-1"]

    by_ids = client.get("/products/by-categories", params=[("category_ids", cid), ("category_ids", 99)]).json()
    assert [p["sku"] for p in by_ids["items"]] == ["STP-1"]

    by_name = client.get("/products/by-category-name", params={"category": "office"}).json()
    assert [p["sku"] for p in by_name["items"]] == ["STP-1"]

    assert [p["sku"] for p in client.get("/products/out-of-stock").json()] == ["CUP-1"]
    assert [p["sku"] for p in client.get("/products/uncategorized").json()] == ["CUP-1"]

    assert [c["name"] for c in client.get("/categories/empty").json()["items"]] == ["Unused"]
    assert [c["name"] for c in client.get("/categories/search", params={"name": "supp"}).json()["items"]] == ["Office Supplies"]
    assert [c["name"] for c in client.get("/categories/low-stock", params={"threshold": 10}).json()["items"]] == ["Office Supplies"]


def test_reset_clears_everything(client):
    _create_product(client, "RST-1")

    assert client.post("/reset").json() == {"status": "reset"}
    assert client.get("/products").json()["total_count"] == 0


def test_missing_or_malformed_fields_are_invalid_input(client):
    r = client.post("/products", json={"name": "No sku", "price": "1.00", "quantity": 1})
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_input"
    assert r.json()["field"] == "sku"

    r = client.get("/products", params={"page": "abc"})
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_input"
    assert r.json()["field"] == "page"


def test_lock_registry_is_empty_after_requests(client):
    for i in range(50):
        assert client.delete(f"/products/{10000 + i}").status_code == 404
    _create_product(client, "LCK-1")
    assert _create_product(client, "LCK-1").status_code == 409
    client.post("/categories", json={"name": "Locks"})

    assert app_store._locks == {}
    assert app_store.lock_users("sku:LCK-1") == 0
