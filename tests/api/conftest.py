"""Shared fixtures for API tests."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storeapi.application.ports import Product
from storeapi.infrastructure.stores import get_product_catalog
from storeapi.main import app


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def seeded_catalog() -> None:
    """Register products in the process-wide catalog."""
    store_catalog = get_product_catalog()
    store_catalog.add(Product(id=10, name="Widget", price=Decimal("12.50"), sku="WID-10"))
    store_catalog.add(Product(id=11, name="Gadget", price=Decimal("4.00"), sku="GAD-11"))
