# inventory/validation.py
from decimal import Decimal
from typing import Iterable, Optional

from .core import CategoryFilter, CategoryIn, PageRequest, ProductFilter, ProductIn, Sort
from .database import CatalogStore
from .errors import ConflictingState, DuplicateName, DuplicateSku, InvalidInput, NotFound

# Pure checks run before any mutation or query reaches the store.
# Each one either returns None or raises the specific violation.

MAX_NAME_LENGTH = 100
MAX_SKU_LENGTH = 20
MAX_DESCRIPTION_LENGTH = 500

SORT_DIRECTIONS = ("asc", "desc")


def _require_text(field: str, value: Optional[str], label: str, max_length: int) -> None:
    if value is None or not value.strip():
        raise InvalidInput(field, f"{label} cannot be empty")
    if len(value) > max_length:
        raise InvalidInput(field, f"{label} cannot be longer than {max_length} characters")


def _check_description(value: Optional[str], label: str) -> None:
    if value is not None and len(value) > MAX_DESCRIPTION_LENGTH:
        raise InvalidInput(
            "description",
            f"{label} description cannot be longer than {MAX_DESCRIPTION_LENGTH} characters",
        )


def _check_range(field: str, low, high, label: str) -> None:
    if low is not None and high is not None and low > high:
        raise InvalidInput(field, f"Minimum {label} cannot be greater than maximum {label}")


def _check_non_negative(field: str, value, label: str) -> None:
    if value is not None and value < 0:
        raise InvalidInput(field, f"{label} cannot be negative")


def _check_price(field: str, value: Optional[Decimal]) -> None:
    if value is None:
        return
    if not value.is_finite():
        raise InvalidInput(field, "Price must be a finite number")
    _check_non_negative(field, value, "Price")


# ---------------------------
# Drafts
# ---------------------------
def validate_product_draft(draft: ProductIn) -> None:
    _require_text("name", draft.name, "Product name", MAX_NAME_LENGTH)
    _require_text("sku", draft.sku, "Product SKU", MAX_SKU_LENGTH)
    _check_description(draft.description, "Product")
    _check_non_negative("quantity", draft.quantity, "Product quantity")
    _check_price("price", draft.price)


def validate_category_draft(draft: CategoryIn) -> None:
    _require_text("name", draft.name, "Category name", MAX_NAME_LENGTH)
    _check_description(draft.description, "Category")


# ---------------------------
# Query parameters
# ---------------------------
def validate_sort(sort: Sort, allowed_fields: Iterable[str]) -> None:
    if sort.field not in allowed_fields:
        raise InvalidInput("sort_by", f"Cannot sort by '{sort.field}'; expected one of {', '.join(allowed_fields)}")
    if sort.direction.lower() not in SORT_DIRECTIONS:
        raise InvalidInput("direction", f"Invalid sort direction '{sort.direction}'")


def validate_page_request(page: PageRequest, max_page_size: int) -> None:
    if page.page < 0:
        raise InvalidInput("page", "Page index cannot be negative")
    if page.size < 1 or page.size > max_page_size:
        raise InvalidInput("size", f"Page size must be between 1 and {max_page_size}")


def validate_product_filter(flt: ProductFilter) -> None:
    if flt.keyword is not None and not flt.keyword.strip():
        raise InvalidInput("keyword", "Search keyword cannot be empty")
    if flt.category_name is not None and not flt.category_name.strip():
        raise InvalidInput("category_name", "Category name cannot be empty")
    if flt.category_ids is not None and not flt.category_ids:
        raise InvalidInput("category_ids", "Category IDs cannot be empty")

    _check_price("min_price", flt.min_price)
    _check_price("max_price", flt.max_price)
    _check_range("min_price", flt.min_price, flt.max_price, "price")

    _check_non_negative("quantity_below", flt.quantity_below, "Threshold")
    _check_non_negative("min_quantity", flt.min_quantity, "Quantity")
    _check_non_negative("max_quantity", flt.max_quantity, "Quantity")
    _check_range("min_quantity", flt.min_quantity, flt.max_quantity, "quantity")

    if flt.created_from is not None and flt.created_to is not None and flt.created_from > flt.created_to:
        raise InvalidInput("created_from", "Start date cannot be after end date")


def validate_category_filter(flt: CategoryFilter) -> None:
    if flt.name is not None and not flt.name.strip():
        raise InvalidInput("name", "Category name cannot be empty")
    if flt.keyword is not None and not flt.keyword.strip():
        raise InvalidInput("keyword", "Search keyword cannot be empty")
    _check_non_negative("min_products", flt.min_products, "Product count")
    _check_non_negative("max_products", flt.max_products, "Product count")
    _check_range("min_products", flt.min_products, flt.max_products, "count")
    _check_non_negative("low_stock_below", flt.low_stock_below, "Threshold")


# ---------------------------
# Store-backed invariant checks
# ---------------------------
def ensure_sku_available(store: CatalogStore, sku: str, current: Optional[str] = None) -> None:
    """Fail if `sku` is taken; skipped when it equals the entity's current SKU."""
    if sku == current:
        return
    if store.exists_by_sku(sku):
        raise DuplicateSku(sku)


def ensure_category_name_available(store: CatalogStore, name: str, current: Optional[str] = None) -> None:
    if name == current:
        return
    if store.exists_by_category_name(name):
        raise DuplicateName(name)


def ensure_category_exists(store: CatalogStore, category_id: Optional[int]) -> None:
    if category_id is not None and not store.category_exists(category_id):
        raise InvalidInput("category_id", f"Category not found with id: {category_id}")


def ensure_category_deletable(store: CatalogStore, category_id: int) -> None:
    if not store.category_exists(category_id):
        raise NotFound("Category", category_id)
    count = store.category_product_count(category_id)
    if count:
        raise ConflictingState(
            "Cannot delete category with associated products",
            details={"category_id": category_id, "product_count": count},
        )
