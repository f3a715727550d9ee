# tests/test_query_engine.py
import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from inventory.core import CategoryFilter, CategoryIn, PageRequest, ProductFilter, Sort
from inventory.models import Product
from inventory.query import PRODUCT_SORT_KEYS, order, paginate, product_predicate, run_query

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def run(coro):
    return asyncio.run(coro)


def _product(pid, **overrides):
    data = {
        "id": pid, "sku": f"S-{pid}", "name": f"Item {pid}", "quantity": 1,
        "price": Decimal("1.00"), "created_at": T0, "updated_at": T0,
    }
    data.update(overrides)
    return Product(**data)


# ---------------------------
# Pagination and ordering
# ---------------------------
def test_pages_partition_25_products(catalog, make_product_draft):
    for i in range(25):
        run(catalog.create_product(make_product_draft(f"SKU-{i:02d}")))
    sort = Sort(field="sku")

    pages = [run(catalog.list_products(ProductFilter(), sort, PageRequest(page=n, size=10))) for n in range(4)]

    assert [len(p.items) for p in pages] == [10, 10, 5, 0]
    assert all(p.total_count == 25 and p.total_pages == 3 for p in pages)
    seen = [item.sku for p in pages for item in p.items]
    assert seen == [f"SKU-{i:02d}" for i in range(25)]


def test_page_past_the_end_is_empty_not_an_error():
    page = run_query([_product(1)], Sort(), PageRequest(page=50, size=10), PRODUCT_SORT_KEYS)

    assert page.items == []
    assert page.total_count == 1


def test_ties_break_by_id_ascending_in_both_directions():
    items = [_product(3, name="same"), _product(1, name="same"), _product(2, name="other")]

    asc = order(items, Sort(field="name"), PRODUCT_SORT_KEYS)
    desc = order(items, Sort(field="name", direction="DESC"), PRODUCT_SORT_KEYS)

    assert [p.id for p in asc] == [2, 1, 3]
    assert [p.id for p in desc] == [1, 3, 2]


def test_sort_by_price_is_exact_decimal_order():
    items = [_product(1, price=Decimal("0.3")), _product(2, price=Decimal("0.1") + Decimal("0.2")), _product(3, price=Decimal("0.29"))]

    ordered = order(items, Sort(field="price"), PRODUCT_SORT_KEYS)

    # 0.1 + 0.2 == 0.3 exactly, so ids 1 and 2 tie and fall back to id order
    assert [p.id for p in ordered] == [3, 1, 2]


def test_paginate_empty_sequence():
    page = paginate([], PageRequest(page=0, size=10))

    assert page.items == []
    assert page.total_count == 0
    assert page.total_pages == 0


# ---------------------------
# Product filters
# ---------------------------
def test_price_range_bounds_are_inclusive(catalog, make_product_draft):
    for i, price in enumerate(["9.99", "10.00", "15.00", "20.00", "20.01"]):
        run(catalog.create_product(make_product_draft(f"P-{i}", price=Decimal(price))))

    flt = ProductFilter(min_price=Decimal("10.00"), max_price=Decimal("20.00"))
    page = run(catalog.list_products(flt, Sort(field="price")))

    assert [p.price for p in page.items] == [Decimal("10.00"), Decimal("15.00"), Decimal("20.00")]


def test_keyword_matches_description_case_insensitively(catalog, make_product_draft):
    run(catalog.create_product(make_product_draft("BW-1", name="Stapler", description="Blue Widget Deluxe")))
    run(catalog.create_product(make_product_draft("PLAIN-1", name="Paper", description="A4 ream")))

    page = run(catalog.list_products(ProductFilter(keyword="widget")))

    assert [p.sku for p in page.items] == ["BW-1"]


def test_keyword_also_matches_sku_and_name():
    items = [
        _product(1, sku="ABC-widget"),
        _product(2, name="WIDGET holder"),
        _product(3, description=None),
    ]
    predicate = product_predicate(ProductFilter(keyword="Widget"), {})

    assert [p.id for p in items if predicate(p)] == [1, 2]


def test_filters_combine_conjunctively():
    items = [
        _product(1, name="red widget", price=Decimal("5")),
        _product(2, name="red widget", price=Decimal("50")),
        _product(3, name="blue gadget", price=Decimal("5")),
    ]
    flt = ProductFilter(keyword="widget", max_price=Decimal("10"))
    predicate = product_predicate(flt, {})

    assert [p.id for p in items if predicate(p)] == [1]


def test_stock_filters():
    items = [_product(1, quantity=0), _product(2, quantity=4), _product(3, quantity=12)]

    def ids(flt):
        predicate = product_predicate(flt, {})
        return [p.id for p in items if predicate(p)]

    assert ids(ProductFilter(out_of_stock=True)) == [1]
    assert ids(ProductFilter(quantity_below=5)) == [1, 2]
    assert ids(ProductFilter(min_quantity=4, max_quantity=12)) == [2, 3]


def test_product_category_filters():
    items = [
        _product(1, category_id=10),
        _product(2, category_id=20),
        _product(3, category_id=None),
    ]
    names = {10: "Garden Tools", 20: "Kitchen"}

    def ids(flt):
        predicate = product_predicate(flt, names)
        return [p.id for p in items if predicate(p)]

    assert ids(ProductFilter(category_ids=[10, 30])) == [1]
    assert ids(ProductFilter(category_name="garden")) == [1]
    assert ids(ProductFilter(uncategorized=True)) == [3]
    assert ids(ProductFilter(uncategorized=True, category_ids=[10])) == []


def test_created_range_is_inclusive_and_accepts_naive_bounds():
    items = [_product(i, created_at=T0 + timedelta(days=i)) for i in range(5)]
    flt = ProductFilter(created_from=datetime(2024, 1, 2), created_to=datetime(2024, 1, 4))
    predicate = product_predicate(flt, {})

    assert [p.id for p in items if predicate(p)] == [1, 2, 3]


def test_list_all_products_is_unpaginated(catalog, make_product_draft):
    for i in range(15):
        run(catalog.create_product(make_product_draft(f"ALL-{i:02d}")))

    items = run(catalog.list_all_products(sort=Sort(field="sku", direction="desc")))

    assert len(items) == 15
    assert items[0].sku == "ALL-14"


def test_products_created_between(catalog, make_product_draft):
    first = run(catalog.create_product(make_product_draft("T-1")))
    second = run(catalog.create_product(make_product_draft("T-2")))
    run(catalog.create_product(make_product_draft("T-3")))

    items = run(catalog.products_created_between(first.created_at, second.created_at))

    assert [p.sku for p in items] == ["T-1", "T-2"]


# ---------------------------
# Category listings
# ---------------------------
@pytest.fixture
def stocked_catalog(catalog, make_product_draft):
    tools = run(catalog.create_category(CategoryIn(name="Tools", description="Hand tools")))
    paint = run(catalog.create_category(CategoryIn(name="Paint")))
    run(catalog.create_category(CategoryIn(name="Empty Shelf")))
    run(catalog.create_product(make_product_draft("HAM", quantity=0, category_id=tools.id)))
    run(catalog.create_product(make_product_draft("SAW", quantity=30, category_id=tools.id)))
    run(catalog.create_product(make_product_draft("RED", quantity=12, category_id=paint.id)))
    return catalog


def names(page):
    return [c.name for c in page.items]


def test_categories_carry_product_counts(stocked_catalog):
    page = run(stocked_catalog.list_categories(sort=Sort(field="product_count", direction="desc")))

    assert [(c.name, c.product_count) for c in page.items] == [("Tools", 2), ("Paint", 1), ("Empty Shelf", 0)]


def test_category_filters(stocked_catalog):
    def listing(flt):
        return names(run(stocked_catalog.list_categories(flt)))

    assert listing(CategoryFilter(name="SHELF")) == ["Empty Shelf"]
    assert listing(CategoryFilter(keyword="hand")) == ["Tools"]
    assert listing(CategoryFilter(min_products=1, max_products=1)) == ["Paint"]
    assert listing(CategoryFilter(has_out_of_stock=True)) == ["Tools"]
    assert names(run(stocked_catalog.empty_categories())) == ["Empty Shelf"]
    assert names(run(stocked_catalog.categories_with_low_stock(15))) == ["Paint", "Tools"]


def test_list_all_categories(stocked_catalog):
    assert [c.name for c in run(stocked_catalog.list_all_categories())] == ["Empty Shelf", "Paint", "Tools"]
