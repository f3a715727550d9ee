# inventory/database.py
import asyncio
import itertools
import threading
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Callable, Dict, List, Optional, Set

from .errors import ConflictingState, DuplicateName, DuplicateSku, InvalidInput
from .models import Category, Product

# This file holds the in-memory entity store, its uniqueness indexes and the per-key locks.

ProductPredicate = Callable[[Product], bool]
CategoryPredicate = Callable[[Category], bool]


class CatalogStore:
    """
    Keyed storage for products and categories.

    Every public method runs under one internal mutex, so each call is atomic.
    The SKU index, the category-name index and the category reference check
    are enforced here at commit time and are the authoritative constraint;
    the service's advisory checks only fail fast.
    """

    def __init__(self):
        self._mutex = threading.RLock()
        # lock registry entries live only while a caller holds or waits on them
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self.clear()

    def clear(self) -> None:
        with self._mutex:
            self._products: Dict[int, Product] = {}
            self._categories: Dict[int, Category] = {}
            self._sku_index: Dict[str, int] = {}
            self._category_name_index: Dict[str, int] = {}
            # reverse index: category id -> ids of products referencing it
            self._category_members: Dict[int, Set[int]] = {}
            self._product_ids = itertools.count(1)
            self._category_ids = itertools.count(1)
            self._last_stamp: Optional[datetime] = None

    # ---------------------------
    # Sequences and clock
    # ---------------------------
    def next_product_id(self) -> int:
        with self._mutex:
            return next(self._product_ids)

    def next_category_id(self) -> int:
        with self._mutex:
            return next(self._category_ids)

    def now(self) -> datetime:
        """Return a UTC timestamp strictly greater than any previously returned one."""
        with self._mutex:
            stamp = datetime.now(timezone.utc)
            if self._last_stamp is not None and stamp <= self._last_stamp:
                stamp = self._last_stamp + timedelta(microseconds=1)
            self._last_stamp = stamp
            return stamp

    # ---------------------------
    # Products
    # ---------------------------
    def put_product(self, product: Product) -> Product:
        with self._mutex:
            owner = self._sku_index.get(product.sku)
            if owner is not None and owner != product.id:
                raise DuplicateSku(product.sku)
            if product.category_id is not None and product.category_id not in self._categories:
                raise InvalidInput("category_id", f"Category not found with id: {product.category_id}")

            previous = self._products.get(product.id)
            if previous is not None:
                if previous.sku != product.sku:
                    del self._sku_index[previous.sku]
                if previous.category_id is not None:
                    self._category_members.get(previous.category_id, set()).discard(product.id)

            self._products[product.id] = product
            self._sku_index[product.sku] = product.id
            if product.category_id is not None:
                self._category_members.setdefault(product.category_id, set()).add(product.id)
            return product

    def get_product(self, product_id: int) -> Optional[Product]:
        with self._mutex:
            return self._products.get(product_id)

    def delete_product(self, product_id: int) -> bool:
        with self._mutex:
            product = self._products.pop(product_id, None)
            if product is None:
                return False
            self._sku_index.pop(product.sku, None)
            if product.category_id is not None:
                self._category_members.get(product.category_id, set()).discard(product_id)
            return True

    def product_exists(self, product_id: int) -> bool:
        with self._mutex:
            return product_id in self._products

    def exists_by_sku(self, sku: str) -> bool:
        with self._mutex:
            return sku in self._sku_index

    def scan_products(self, predicate: Optional[ProductPredicate] = None) -> List[Product]:
        with self._mutex:
            snapshot = list(self._products.values())
        if predicate is None:
            return snapshot
        return [p for p in snapshot if predicate(p)]

    # ---------------------------
    # Categories
    # ---------------------------
    def put_category(self, category: Category) -> Category:
        with self._mutex:
            owner = self._category_name_index.get(category.name)
            if owner is not None and owner != category.id:
                raise DuplicateName(category.name)

            previous = self._categories.get(category.id)
            if previous is not None and previous.name != category.name:
                del self._category_name_index[previous.name]

            self._categories[category.id] = category
            self._category_name_index[category.name] = category.id
            self._category_members.setdefault(category.id, set())
            return self._with_count(category)

    def get_category(self, category_id: int) -> Optional[Category]:
        with self._mutex:
            category = self._categories.get(category_id)
            if category is None:
                return None
            return self._with_count(category)

    def delete_category(self, category_id: int) -> bool:
        with self._mutex:
            if category_id not in self._categories:
                return False
            members = self._category_members.get(category_id)
            if members:
                raise ConflictingState(
                    "Cannot delete category with associated products",
                    details={"category_id": category_id, "product_count": len(members)},
                )
            category = self._categories.pop(category_id)
            self._category_name_index.pop(category.name, None)
            self._category_members.pop(category_id, None)
            return True

    def category_exists(self, category_id: int) -> bool:
        with self._mutex:
            return category_id in self._categories

    def exists_by_category_name(self, name: str) -> bool:
        with self._mutex:
            return name in self._category_name_index

    def category_product_count(self, category_id: int) -> int:
        with self._mutex:
            return len(self._category_members.get(category_id, ()))

    def category_members(self) -> Dict[int, List[Product]]:
        """Snapshot of category id -> member products, read from the reverse index."""
        with self._mutex:
            return {
                cid: [self._products[pid] for pid in members]
                for cid, members in self._category_members.items()
            }

    def category_names(self) -> Dict[int, str]:
        with self._mutex:
            return {cid: c.name for cid, c in self._categories.items()}

    def scan_categories(self, predicate: Optional[CategoryPredicate] = None) -> List[Category]:
        with self._mutex:
            snapshot = [self._with_count(c) for c in self._categories.values()]
        if predicate is None:
            return snapshot
        return [c for c in snapshot if predicate(c)]

    def _with_count(self, category: Category) -> Category:
        count = len(self._category_members.get(category.id, ()))
        if category.product_count == count:
            return category
        return category.model_copy(update={"product_count": count})

    # ---------------------------
    # Per-key locks
    # ---------------------------
    def _get_lock(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def lock_users(self, key: str) -> int:
        """Number of callers currently holding or waiting on the lock for `key`."""
        return self._lock_users.get(key, 0)

    def _forget_key(self, key: str) -> None:
        remaining = self._lock_users.get(key, 0) - 1
        if remaining > 0:
            self._lock_users[key] = remaining
        else:
            self._lock_users.pop(key, None)
            self._locks.pop(key, None)

    @asynccontextmanager
    async def locked(self, *keys: str) -> AsyncIterator[None]:
        """Hold the locks for `keys` (acquired in sorted order) across a check-then-commit scope."""
        ordered = sorted(set(keys))
        for key in ordered:
            self._lock_users[key] = self._lock_users.get(key, 0) + 1
        locks = [self._get_lock(k) for k in ordered]
        acquired: List[asyncio.Lock] = []
        try:
            for lock in locks:
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in ordered:
                self._forget_key(key)
