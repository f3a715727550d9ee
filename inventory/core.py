# inventory/core.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, field_validator

from .models import Category, Product

# Input schemas and filters, plus the page envelope shared by every listing.

T = TypeVar("T")


class ProductIn(BaseModel):
    sku: str
    name: str
    description: Optional[str] = None
    quantity: int
    price: Decimal
    category_id: Optional[int] = None


class CategoryIn(BaseModel):
    name: str
    description: Optional[str] = None


class ProductFilter(BaseModel):
    keyword: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    quantity_below: Optional[int] = None
    out_of_stock: bool = False
    min_quantity: Optional[int] = None
    max_quantity: Optional[int] = None
    category_ids: Optional[List[int]] = None
    category_name: Optional[str] = None
    uncategorized: bool = False
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None

    @field_validator("created_from", "created_to")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # stored timestamps are aware UTC; naive bounds are read as UTC
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class CategoryFilter(BaseModel):
    name: Optional[str] = None
    keyword: Optional[str] = None
    min_products: Optional[int] = None
    max_products: Optional[int] = None
    empty: bool = False
    low_stock_below: Optional[int] = None
    has_out_of_stock: bool = False


class Sort(BaseModel):
    field: str = "name"
    direction: str = "asc"

    @property
    def descending(self) -> bool:
        return self.direction.lower() == "desc"


class PageRequest(BaseModel):
    page: int = 0
    size: int = 10


class Page(BaseModel, Generic[T]):
    items: List[T]
    total_count: int
    page: int
    size: int
    total_pages: int


# ---------------------------
# Helpers
# ---------------------------
def _make_product(product_id: int, p: ProductIn, created_at: datetime, updated_at: datetime) -> Product:
    return Product(
        id=product_id,
        sku=p.sku,
        name=p.name,
        description=p.description,
        quantity=p.quantity,
        price=p.price,
        category_id=p.category_id,
        created_at=created_at,
        updated_at=updated_at,
    )


def _make_category(category_id: int, c: CategoryIn) -> Category:
    return Category(id=category_id, name=c.name, description=c.description)
