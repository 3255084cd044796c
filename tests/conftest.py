"""Shared fixtures for all tests."""

from collections.abc import Iterator
from decimal import Decimal

import pytest

from storeapi.application.ports import Product
from storeapi.infrastructure.catalog import InMemoryProductCatalog
from storeapi.infrastructure.stores import reset_stores


@pytest.fixture(autouse=True)
def reset_store_singletons() -> Iterator[None]:
    """Reset process-wide stores before and after each test."""
    reset_stores()
    yield
    reset_stores()


@pytest.fixture
def catalog() -> InMemoryProductCatalog:
    """Catalog with two simple products and one variation."""
    return InMemoryProductCatalog(
        [
            Product(id=10, name="Widget", price=Decimal("12.50"), sku="WID-10"),
            Product(id=11, name="Gadget", price=Decimal("4.00"), sku="GAD-11"),
            Product(id=21, name="Widget - Blue", price=Decimal("13.00"), sku="WID-10-BLU"),
        ]
    )
