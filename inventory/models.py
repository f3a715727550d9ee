# inventory/models.py
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

# Stored records are frozen; a mutation replaces the whole record in the store.


class Category(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: Optional[str] = None
    # derived from the store's reverse index when read, never stored
    product_count: int = 0


class Product(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    sku: str
    name: str
    description: Optional[str] = None
    quantity: int
    price: Decimal
    category_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
