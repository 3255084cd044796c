"""Store API main application module.

This module initializes the FastAPI application and configures
logging, middleware, exception handlers, routers and startup/shutdown
events.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storeapi.api.coupons import router as coupons_router
from storeapi.api.customers import router as customers_router
from storeapi.api.errors import setup_exception_handlers
from storeapi.api.health import router as health_router
from storeapi.api.middleware import setup_middleware
from storeapi.api.orders import router as orders_router
from storeapi.infrastructure.config import settings
from storeapi.infrastructure.database import database_configured, dispose_engine
from storeapi.infrastructure.log_config import configure_logging
from storeapi.infrastructure.stores import get_product_catalog

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    configure_logging(settings)
    logger.info(
        "Starting Store API",
        version=settings.api_version,
        debug=settings.debug,
        order_store="sql" if database_configured() else "memory",
    )
    logger.info("Product catalog ready", product_count=len(get_product_catalog()))

    yield

    logger.info("Shutting down Store API")
    await dispose_engine()


app = FastAPI(
    title="Store API",
    description="Order, coupon and customer REST resources",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware (must be added before custom middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-WP-Total", "X-WP-TotalPages", "X-Request-ID"],
)

# Request ID and error handling
setup_middleware(app)
setup_exception_handlers(app)

# Include routers
app.include_router(health_router, tags=["Health"])
app.include_router(orders_router)
app.include_router(coupons_router)
app.include_router(customers_router)
