# inventory/query.py
import math
from operator import attrgetter
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from .core import CategoryFilter, Page, PageRequest, ProductFilter, Sort
from .models import Category, Product

# Filter -> ordered sequence -> page window. Inputs are assumed already validated.

T = TypeVar("T")

SortKey = Callable[[Any], Any]

PRODUCT_SORT_KEYS: Dict[str, SortKey] = {
    field: attrgetter(field)
    for field in ("name", "sku", "price", "quantity", "created_at", "updated_at", "id")
}

CATEGORY_SORT_KEYS: Dict[str, SortKey] = {
    field: attrgetter(field) for field in ("name", "product_count", "id")
}


def _contains(haystack: Optional[str], needle: str) -> bool:
    return haystack is not None and needle in haystack.lower()


def _all_of(checks: List[Callable[[T], bool]]) -> Callable[[T], bool]:
    return lambda item: all(check(item) for check in checks)


def product_predicate(flt: ProductFilter, category_names: Dict[int, str]) -> Callable[[Product], bool]:
    """
    Build one conjunctive predicate from every supplied filter dimension.

    `category_names` maps category id -> name and is only consulted for
    the category-name substring filter.
    """
    checks: List[Callable[[Product], bool]] = []

    if flt.keyword is not None:
        kw = flt.keyword.lower()
        checks.append(
            lambda p: _contains(p.name, kw) or _contains(p.sku, kw) or _contains(p.description, kw)
        )
    if flt.min_price is not None:
        checks.append(lambda p: p.price >= flt.min_price)
    if flt.max_price is not None:
        checks.append(lambda p: p.price <= flt.max_price)
    if flt.quantity_below is not None:
        checks.append(lambda p: p.quantity < flt.quantity_below)
    if flt.out_of_stock:
        checks.append(lambda p: p.quantity == 0)
    if flt.min_quantity is not None:
        checks.append(lambda p: p.quantity >= flt.min_quantity)
    if flt.max_quantity is not None:
        checks.append(lambda p: p.quantity <= flt.max_quantity)
    if flt.category_ids is not None:
        wanted = set(flt.category_ids)
        checks.append(lambda p: p.category_id in wanted)
    if flt.category_name is not None:
        needle = flt.category_name.lower()
        checks.append(
            lambda p: p.category_id is not None and _contains(category_names.get(p.category_id), needle)
        )
    if flt.uncategorized:
        checks.append(lambda p: p.category_id is None)
    if flt.created_from is not None:
        checks.append(lambda p: p.created_at >= flt.created_from)
    if flt.created_to is not None:
        checks.append(lambda p: p.created_at <= flt.created_to)

    return _all_of(checks)


def category_predicate(flt: CategoryFilter, members: Dict[int, List[Product]]) -> Callable[[Category], bool]:
    """`members` is the store's reverse index snapshot: category id -> member products."""
    checks: List[Callable[[Category], bool]] = []

    if flt.name is not None:
        needle = flt.name.lower()
        checks.append(lambda c: _contains(c.name, needle))
    if flt.keyword is not None:
        kw = flt.keyword.lower()
        checks.append(lambda c: _contains(c.name, kw) or _contains(c.description, kw))
    if flt.min_products is not None:
        checks.append(lambda c: c.product_count >= flt.min_products)
    if flt.max_products is not None:
        checks.append(lambda c: c.product_count <= flt.max_products)
    if flt.empty:
        checks.append(lambda c: c.product_count == 0)
    if flt.low_stock_below is not None:
        checks.append(
            lambda c: any(p.quantity < flt.low_stock_below for p in members.get(c.id, ()))
        )
    if flt.has_out_of_stock:
        checks.append(lambda c: any(p.quantity == 0 for p in members.get(c.id, ())))

    return _all_of(checks)


def order(items: Iterable[T], sort: Sort, keys: Dict[str, SortKey]) -> List[T]:
    """Sort by `sort.field`; ties always fall back to id ascending."""
    ordered = sorted(items, key=attrgetter("id"))
    # list.sort is stable, including with reverse=True
    ordered.sort(key=keys[sort.field], reverse=sort.descending)
    return ordered


def paginate(items: Sequence[T], page: PageRequest) -> Page:
    total = len(items)
    start = page.page * page.size
    return Page(
        items=list(items[start:start + page.size]),
        total_count=total,
        page=page.page,
        size=page.size,
        total_pages=math.ceil(total / page.size),
    )


def run_query(items: Iterable[T], sort: Sort, page: PageRequest, keys: Dict[str, SortKey]) -> Page:
    return paginate(order(items, sort, keys), page)
