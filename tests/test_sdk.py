# tests/test_sdk.py
import pytest

from sdk.pyinventory import CatalogClient


@pytest.fixture
def sdk(client):
    return CatalogClient(base_url="http://testserver", session=client)


def test_sdk_product_and_category_round_trip(sdk):
    cat = sdk.create_category("Lighting", "Lamps and bulbs")
    lamp = sdk.create_product("LMP-1", "Desk Lamp", "34.90", 4, "LED", cat["id"])
    sdk.create_product("BLB-1", "Bulb", "2.10", 0, None, cat["id"])

    assert sdk.get_product(lamp["id"])["name"] == "Desk Lamp"
    assert sdk.get_category(cat["id"])["product_count"] == 2

    page = sdk.list_products(sort_by="price", direction="desc", category_name="light")
    assert [p["sku"] for p in page["items"]] == ["LMP-1", "BLB-1"]
    assert [p["sku"] for p in sdk.out_of_stock()] == ["BLB-1"]
    assert [p["sku"] for p in sdk.low_stock(5)["items"]] == ["BLB-1", "LMP-1"]
    assert [p["sku"] for p in sdk.price_range("2.00", "3.00")["items"]] == ["BLB-1"]


def test_sdk_delete_category_returns_conflict_body(sdk):
    cat = sdk.create_category("Busy")
    sdk.create_product("BSY-1", "Busy thing", "1.00", 1, None, cat["id"])

    body = sdk.delete_category(cat["id"])

    assert body["error"] == "conflicting_state"
    assert sdk.list_categories(name="busy")["total_count"] == 1
