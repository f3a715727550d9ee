# tests/conftest.py
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from inventory.config import Settings
from inventory.core import ProductIn
from inventory.database import CatalogStore
from inventory.main import app, store as app_store
from inventory.service import CatalogService


@pytest.fixture
def store():
    return CatalogStore()


@pytest.fixture
def catalog(store):
    return CatalogService(store, Settings())


@pytest.fixture
def client():
    app_store.clear()
    return TestClient(app)


@pytest.fixture
def make_product_draft():
    def _make(sku, /, **overrides):
        data = {"sku": sku, "name": f"Product {sku}", "quantity": 5, "price": Decimal("10.00")}
        data.update(overrides)
        return ProductIn(**data)
    return _make
