"""Collaborator interfaces consumed by the order pipeline.

The pipeline only talks to persistence, tax calculation, payment and the
product catalog through these protocols; concrete implementations live in
``storeapi.infrastructure`` and ``storeapi.application.totals``.
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol

from storeapi.domain.coupon import Coupon
from storeapi.domain.order import Order

# Forces an empty result set: no order has id 0
EMPTY_RESULT: list[int] = [0]

CUSTOMER_META_KEY = "_customer_user"


# ============================================================================
# Query Specification
# ============================================================================


@dataclass
class MetaFilter:
    """Comparison against a stored order attribute addressed by meta key."""

    key: str
    value: Any
    compare: str = "="
    type: str = "CHAR"


@dataclass
class QuerySpec:
    """Structured order query produced by the query builder.

    Attributes:
        statuses: Internal (prefixed) statuses, None for any non-trashed status.
        include_ids: Restrict to these ids; ``[0]`` forces an empty result.
        exclude_ids: Ids to leave out.
        parent_ids: Restrict to children of these orders.
        parent_exclude: Leave out children of these orders.
        meta_filters: Attribute comparisons, AND-composed.
        created_after: Strictly later creation timestamp (UTC).
        created_before: Strictly earlier creation timestamp (UTC).
        modified_after: Strictly later modification timestamp (UTC).
        modified_before: Strictly earlier modification timestamp (UTC).
        page: 1-based page number.
        per_page: Page size, -1 for no limit.
        offset: Explicit row offset, overrides page.
        orderby: Sort key (date, id, modified, include).
        order: Sort direction (asc or desc).
    """

    statuses: list[str] | None = None
    include_ids: list[int] | None = None
    exclude_ids: list[int] = field(default_factory=list)
    parent_ids: list[int] | None = None
    parent_exclude: list[int] = field(default_factory=list)
    meta_filters: list[MetaFilter] = field(default_factory=list)
    created_after: datetime | None = None
    created_before: datetime | None = None
    modified_after: datetime | None = None
    modified_before: datetime | None = None
    page: int = 1
    per_page: int = 10
    offset: int | None = None
    orderby: str = "date"
    order: str = "desc"

    @property
    def is_empty(self) -> bool:
        """Check if the query is forced to return no rows."""
        return self.include_ids == EMPTY_RESULT

    @property
    def row_offset(self) -> int:
        """Get the number of rows to skip."""
        if self.offset is not None:
            return max(self.offset, 0)
        if self.per_page < 0:
            return 0
        return (max(self.page, 1) - 1) * self.per_page

    def unbounded(self) -> "QuerySpec":
        """Get a copy of the query without paging, for counting."""
        return replace(self, page=1, per_page=-1, offset=None)


# ============================================================================
# Collaborator Protocols
# ============================================================================


class OrderLookup(Protocol):
    """Id lookups used while building an order query."""

    async def order_ids_for_product(self, product_id: int) -> list[int]:
        """Get ids of orders with a line item for the product."""
        ...

    async def search_order_ids(self, term: str) -> list[int]:
        """Get ids of orders matching a free-text search."""
        ...

    async def order_ids_like(self, pattern: str, limit: int) -> list[int]:
        """Get order ids matching an escaped, left-anchored LIKE pattern."""
        ...


class OrderStore(OrderLookup, Protocol):
    """Persistence for the order aggregate."""

    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Open a unit of work; any exception rolls it back."""
        ...

    async def find(self, order_id: int) -> Order | None:
        """Load an order, or None when the id is unknown."""
        ...

    async def find_many(self, order_ids: list[int]) -> list[Order]:
        """Load several orders in the given id order, skipping unknown ids."""
        ...

    async def query(self, spec: QuerySpec) -> tuple[list[int], int]:
        """Run a query and return one page of ids with the total count."""
        ...

    async def save(self, order: Order) -> int:
        """Persist an order, assigning an id when new."""
        ...

    async def delete(self, order_id: int, hard: bool) -> bool:
        """Remove an order (hard) or move it to the trash."""
        ...


class TotalsCalculator(Protocol):
    """Recomputes derived order totals in place."""

    def calculate_totals(self, order: Order, recalc_full: bool = True) -> None:
        ...


class PaymentTransition(Protocol):
    """Marks an order as paid."""

    def mark_paid(self, order: Order) -> None:
        ...


@dataclass(frozen=True)
class Product:
    """Catalog product referenced by line items."""

    id: int
    name: str
    price: Decimal
    sku: str = ""


class ProductCatalog(Protocol):
    """Product lookup used to price new line items and render SKUs."""

    def get(self, product_id: int) -> Product | None:
        ...


class CouponLookup(Protocol):
    """Coupon lookup used to apply coupon lines."""

    def find_by_code(self, code: str) -> Coupon | None:
        ...


class CustomerLookup(Protocol):
    """Customer lookup used to validate order ownership."""

    def exists(self, customer_id: int) -> bool:
        ...


# Called after mapping with (order, payload, is_create); raise to veto
PreInsertTransformer = Callable[[Order, dict[str, Any], bool], Order]

# Called after a successful save with (order, payload, is_create)
PostSaveObserver = Callable[[Order, dict[str, Any], bool], None]
