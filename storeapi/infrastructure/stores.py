"""Process-wide store instances.

Orders go to the SQL store when a database is configured and to the
in-memory store otherwise. Coupons, customers and the product catalog are
always kept in memory.
"""

import structlog

from storeapi.application.ports import OrderStore
from storeapi.infrastructure.catalog import InMemoryProductCatalog
from storeapi.infrastructure.config import settings
from storeapi.infrastructure.database import database_configured, get_session_factory
from storeapi.infrastructure.memory_store import (
    InMemoryCouponRepository,
    InMemoryCustomerRepository,
    InMemoryOrderStore,
)
from storeapi.infrastructure.sql_store import SqlOrderStore

logger = structlog.get_logger()

_order_store: OrderStore | None = None
_coupon_repo: InMemoryCouponRepository | None = None
_customer_repo: InMemoryCustomerRepository | None = None
_catalog: InMemoryProductCatalog | None = None


def get_order_store() -> OrderStore:
    """Get order store singleton."""
    global _order_store
    if _order_store is None:
        if database_configured():
            _order_store = SqlOrderStore(get_session_factory())
            logger.info("Using SQL order store")
        else:
            _order_store = InMemoryOrderStore()
            logger.info("Using in-memory order store")
    return _order_store


def get_coupon_repository() -> InMemoryCouponRepository:
    """Get coupon repository singleton."""
    global _coupon_repo
    if _coupon_repo is None:
        _coupon_repo = InMemoryCouponRepository()
    return _coupon_repo


def get_customer_repository() -> InMemoryCustomerRepository:
    """Get customer repository singleton."""
    global _customer_repo
    if _customer_repo is None:
        _customer_repo = InMemoryCustomerRepository()
    return _customer_repo


def get_product_catalog() -> InMemoryProductCatalog:
    """Get product catalog singleton, seeded from ``catalog_file`` if set."""
    global _catalog
    if _catalog is None:
        if settings.catalog_file:
            _catalog = InMemoryProductCatalog.from_file(settings.catalog_file)
        else:
            _catalog = InMemoryProductCatalog()
    return _catalog


def reset_stores() -> None:
    """Reset every store (for testing)."""
    global _order_store, _coupon_repo, _customer_repo, _catalog
    _order_store = None
    _coupon_repo = None
    _customer_repo = None
    _catalog = None
