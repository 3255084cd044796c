"""API layer module.

Contains FastAPI routers, request schemas and exception handlers.
"""

from storeapi.api.coupons import router as coupons_router
from storeapi.api.customers import router as customers_router
from storeapi.api.health import router as health_router
from storeapi.api.orders import router as orders_router

__all__ = [
    "coupons_router",
    "customers_router",
    "health_router",
    "orders_router",
]
