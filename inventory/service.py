# inventory/service.py
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

import structlog

from .config import Settings, settings as default_settings
from .core import (
    CategoryFilter, CategoryIn, Page, PageRequest, ProductFilter, ProductIn, Sort,
    _make_category, _make_product
)
from .database import CatalogStore
from .errors import CatalogError, NotFound
from .models import Category, Product
from .query import (
    CATEGORY_SORT_KEYS, PRODUCT_SORT_KEYS, category_predicate, order,
    product_predicate, run_query
)
from .validation import (
    ensure_category_deletable, ensure_category_exists, ensure_category_name_available,
    ensure_sku_available, validate_category_draft, validate_category_filter,
    validate_page_request, validate_product_draft, validate_product_filter, validate_sort
)

# This file contains the public catalog operations. Every write runs
# validate -> lock keys -> re-read and check -> commit, and the store
# re-checks its own constraints at commit.

logger = structlog.get_logger(__name__)


@contextmanager
def _logged_rejection(operation: str, **context) -> Iterator[None]:
    try:
        yield
    except CatalogError as exc:
        logger.info("write_rejected", operation=operation, error=exc.code, detail=exc.message, **context)
        raise


def _product_lock_keys(draft: ProductIn) -> List[str]:
    keys = [f"sku:{draft.sku}"]
    if draft.category_id is not None:
        # same key as category delete, so a create cannot race a delete of its category
        keys.append(f"category:{draft.category_id}")
    return keys


class CatalogService:
    def __init__(self, store: CatalogStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or default_settings

    # ---------------------------
    # Products
    # ---------------------------
    async def create_product(self, draft: ProductIn) -> Product:
        with _logged_rejection("create_product", sku=draft.sku):
            validate_product_draft(draft)
            async with self.store.locked(*_product_lock_keys(draft)):
                ensure_sku_available(self.store, draft.sku)
                ensure_category_exists(self.store, draft.category_id)
                stamp = self.store.now()
                product = _make_product(self.store.next_product_id(), draft, stamp, stamp)
                self.store.put_product(product)

        logger.info("product_created", product_id=product.id, sku=product.sku)
        return product

    async def update_product(self, product_id: int, draft: ProductIn) -> Product:
        """Replace every mutable field; id and created_at are kept."""
        with _logged_rejection("update_product", product_id=product_id):
            validate_product_draft(draft)
            keys = _product_lock_keys(draft) + [f"product:{product_id}"]
            async with self.store.locked(*keys):
                current = self.store.get_product(product_id)
                if current is None:
                    raise NotFound("Product", product_id)
                ensure_sku_available(self.store, draft.sku, current=current.sku)
                ensure_category_exists(self.store, draft.category_id)
                product = _make_product(product_id, draft, current.created_at, self.store.now())
                self.store.put_product(product)

        logger.info("product_updated", product_id=product_id, sku=product.sku)
        return product

    async def delete_product(self, product_id: int) -> None:
        with _logged_rejection("delete_product", product_id=product_id):
            async with self.store.locked(f"product:{product_id}"):
                if not self.store.delete_product(product_id):
                    raise NotFound("Product", product_id)

        logger.info("product_deleted", product_id=product_id)

    async def get_product(self, product_id: int) -> Product:
        product = self.store.get_product(product_id)
        if product is None:
            raise NotFound("Product", product_id)
        return product

    async def list_products(
        self,
        flt: Optional[ProductFilter] = None,
        sort: Optional[Sort] = None,
        page: Optional[PageRequest] = None,
    ) -> Page:
        flt = flt or ProductFilter()
        sort = sort or Sort()
        page = page or PageRequest(size=self.settings.DEFAULT_PAGE_SIZE)
        validate_page_request(page, self.settings.MAX_PAGE_SIZE)
        return run_query(self._matching_products(flt, sort), sort, page, PRODUCT_SORT_KEYS)

    async def list_all_products(
        self, flt: Optional[ProductFilter] = None, sort: Optional[Sort] = None
    ) -> List[Product]:
        """Unpaginated variant of list_products for reporting."""
        sort = sort or Sort()
        return order(self._matching_products(flt or ProductFilter(), sort), sort, PRODUCT_SORT_KEYS)

    async def low_stock_products(
        self,
        threshold: Optional[int] = None,
        sort: Optional[Sort] = None,
        page: Optional[PageRequest] = None,
    ) -> Page:
        if threshold is None:
            threshold = self.settings.LOW_STOCK_THRESHOLD
        return await self.list_products(ProductFilter(quantity_below=threshold), sort, page)

    async def out_of_stock_products(self) -> List[Product]:
        return await self.list_all_products(ProductFilter(out_of_stock=True))

    async def uncategorized_products(self) -> List[Product]:
        return await self.list_all_products(ProductFilter(uncategorized=True))

    async def products_created_between(self, start: datetime, end: datetime) -> List[Product]:
        flt = ProductFilter(created_from=start, created_to=end)
        return await self.list_all_products(flt, Sort(field="created_at"))

    def _matching_products(self, flt: ProductFilter, sort: Sort) -> List[Product]:
        validate_product_filter(flt)
        validate_sort(sort, PRODUCT_SORT_KEYS)
        names = self.store.category_names() if flt.category_name is not None else {}
        return self.store.scan_products(product_predicate(flt, names))

    # ---------------------------
    # Categories
    # ---------------------------
    async def create_category(self, draft: CategoryIn) -> Category:
        with _logged_rejection("create_category", name=draft.name):
            validate_category_draft(draft)
            async with self.store.locked(f"category-name:{draft.name}"):
                ensure_category_name_available(self.store, draft.name)
                category = self.store.put_category(
                    _make_category(self.store.next_category_id(), draft)
                )

        logger.info("category_created", category_id=category.id, name=category.name)
        return category

    async def update_category(self, category_id: int, draft: CategoryIn) -> Category:
        with _logged_rejection("update_category", category_id=category_id):
            validate_category_draft(draft)
            async with self.store.locked(f"category:{category_id}", f"category-name:{draft.name}"):
                current = self.store.get_category(category_id)
                if current is None:
                    raise NotFound("Category", category_id)
                ensure_category_name_available(self.store, draft.name, current=current.name)
                category = self.store.put_category(_make_category(category_id, draft))

        logger.info("category_updated", category_id=category_id, name=category.name)
        return category

    async def delete_category(self, category_id: int) -> None:
        with _logged_rejection("delete_category", category_id=category_id):
            async with self.store.locked(f"category:{category_id}"):
                ensure_category_deletable(self.store, category_id)
                if not self.store.delete_category(category_id):
                    raise NotFound("Category", category_id)

        logger.info("category_deleted", category_id=category_id)

    async def get_category(self, category_id: int) -> Category:
        category = self.store.get_category(category_id)
        if category is None:
            raise NotFound("Category", category_id)
        return category

    async def list_categories(
        self,
        flt: Optional[CategoryFilter] = None,
        sort: Optional[Sort] = None,
        page: Optional[PageRequest] = None,
    ) -> Page:
        flt = flt or CategoryFilter()
        sort = sort or Sort()
        page = page or PageRequest(size=self.settings.DEFAULT_PAGE_SIZE)
        validate_page_request(page, self.settings.MAX_PAGE_SIZE)
        return run_query(self._matching_categories(flt, sort), sort, page, CATEGORY_SORT_KEYS)

    async def list_all_categories(
        self, flt: Optional[CategoryFilter] = None, sort: Optional[Sort] = None
    ) -> List[Category]:
        sort = sort or Sort()
        return order(self._matching_categories(flt or CategoryFilter(), sort), sort, CATEGORY_SORT_KEYS)

    async def empty_categories(
        self, sort: Optional[Sort] = None, page: Optional[PageRequest] = None
    ) -> Page:
        return await self.list_categories(CategoryFilter(empty=True), sort, page)

    async def categories_with_low_stock(
        self,
        threshold: Optional[int] = None,
        sort: Optional[Sort] = None,
        page: Optional[PageRequest] = None,
    ) -> Page:
        if threshold is None:
            threshold = self.settings.LOW_STOCK_THRESHOLD
        return await self.list_categories(CategoryFilter(low_stock_below=threshold), sort, page)

    def _matching_categories(self, flt: CategoryFilter, sort: Sort) -> List[Category]:
        validate_category_filter(flt)
        validate_sort(sort, CATEGORY_SORT_KEYS)
        needs_members = flt.low_stock_below is not None or flt.has_out_of_stock
        members = self.store.category_members() if needs_members else {}
        return self.store.scan_categories(category_predicate(flt, members))
