"""In-memory stores.

Used when no database is configured, and in tests. Every read returns a
deep copy so callers can mutate what they load without touching stored
state until they save.
"""

import operator
import re
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from copy import deepcopy
from datetime import datetime
from typing import Any

from storeapi.application.ports import CUSTOMER_META_KEY, MetaFilter, QuerySpec
from storeapi.domain.coupon import Coupon, CouponStatus, format_coupon_code
from storeapi.domain.customer import Customer
from storeapi.domain.formatting import to_decimal
from storeapi.domain.order import TRASH_STATUS_META_KEY, Order, OrderStatus
from storeapi.infrastructure.order_codec import order_search_text

META_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "=": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
    "IN": lambda left, right: left in right,
    "NOT IN": lambda left, right: left not in right,
}


def like_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a LIKE pattern (backslash escapes) into a full-match regex."""
    parts = []
    escaped = False
    for char in pattern:
        if escaped:
            parts.append(re.escape(char))
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.DOTALL)


def _meta_value(order: Order, key: str) -> Any:
    if key == CUSTOMER_META_KEY:
        return order.customer_id
    return order.get_meta(key)


def _matches_meta(order: Order, meta_filter: MetaFilter) -> bool:
    compare = META_COMPARATORS.get(meta_filter.compare.upper())
    if compare is None:
        return False
    value = _meta_value(order, meta_filter.key)
    if value is None:
        return False
    expected = meta_filter.value
    if meta_filter.type.upper() == "NUMERIC":
        value = to_decimal(value)
        if isinstance(expected, (list, tuple, set)):
            expected = [to_decimal(v) for v in expected]
        else:
            expected = to_decimal(expected)
    else:
        value = str(value)
        if isinstance(expected, (list, tuple, set)):
            expected = [str(v) for v in expected]
        else:
            expected = str(expected)
    return compare(value, expected)


def _between(value: datetime, after: datetime | None, before: datetime | None) -> bool:
    if after is not None and not value > after:
        return False
    if before is not None and not value < before:
        return False
    return True


# ============================================================================
# Order Store
# ============================================================================


class InMemoryOrderStore:
    """Order store keeping orders in a dict.

    Transactions snapshot the whole store and restore it when the block
    raises.
    """

    def __init__(self) -> None:
        self._orders: dict[int, Order] = {}
        self._next_id = 1

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Open a unit of work; any exception restores the snapshot."""
        snapshot = deepcopy(self._orders), self._next_id
        try:
            yield
        except BaseException:
            self._orders, self._next_id = snapshot
            raise

    async def find(self, order_id: int) -> Order | None:
        """Load a copy of an order."""
        order = self._orders.get(order_id)
        return deepcopy(order) if order is not None else None

    async def find_many(self, order_ids: list[int]) -> list[Order]:
        """Load copies of several orders in the given order."""
        return [deepcopy(self._orders[i]) for i in order_ids if i in self._orders]

    async def save(self, order: Order) -> int:
        """Store a copy of an order, assigning the next id when new."""
        if not order.id:
            order.assign_id(self._next_id)
            self._next_id += 1
        else:
            self._next_id = max(self._next_id, order.id + 1)
        self._orders[order.id] = deepcopy(order)
        return order.id

    async def delete(self, order_id: int, hard: bool) -> bool:
        """Remove an order, or move it to the trash remembering its status."""
        order = self._orders.get(order_id)
        if order is None:
            return False
        if hard:
            del self._orders[order_id]
            return True
        order.update_meta_data(TRASH_STATUS_META_KEY, order.status.internal)
        order.status = OrderStatus.TRASH
        order.touch()
        return True

    async def query(self, spec: QuerySpec) -> tuple[list[int], int]:
        """Run a query and return one page of ids with the total count."""
        if spec.is_empty:
            return [], 0

        matches = [order for order in self._orders.values() if self._matches(order, spec)]
        self._sort(matches, spec)

        ids = [order.id for order in matches]
        start = spec.row_offset
        end = None if spec.per_page < 0 else start + spec.per_page
        return ids[start:end], len(ids)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    async def order_ids_for_product(self, product_id: int) -> list[int]:
        """Get ids of orders with a line item for a product or variation."""
        return sorted(
            order.id
            for order in self._orders.values()
            if any(product_id in (li.product_id, li.variation_id) for li in order.line_items)
        )

    async def search_order_ids(self, term: str) -> list[int]:
        """Get ids of orders whose addresses, email or item names contain a term."""
        needle = term.strip().lower()
        if not needle:
            return []
        return sorted(
            order.id
            for order in self._orders.values()
            if needle in order_search_text(order) or needle == str(order.id)
        )

    async def order_ids_like(self, pattern: str, limit: int) -> list[int]:
        """Get order ids whose number matches a LIKE pattern."""
        regex = like_to_regex(pattern)
        ids = sorted(i for i in self._orders if regex.fullmatch(str(i)))
        return ids[:limit] if limit > 0 else ids

    @staticmethod
    def _matches(order: Order, spec: QuerySpec) -> bool:
        internal = order.status.internal
        if spec.statuses is None:
            if order.status is OrderStatus.TRASH:
                return False
        elif internal not in spec.statuses:
            return False

        if spec.include_ids is not None and order.id not in spec.include_ids:
            return False
        if order.id in spec.exclude_ids:
            return False
        if spec.parent_ids is not None and order.parent_id not in spec.parent_ids:
            return False
        if order.parent_id in spec.parent_exclude:
            return False
        if not all(_matches_meta(order, f) for f in spec.meta_filters):
            return False

        return _between(order.date_created, spec.created_after, spec.created_before) and _between(
            order.date_modified, spec.modified_after, spec.modified_before
        )

    @staticmethod
    def _sort(orders: list[Order], spec: QuerySpec) -> None:
        if spec.orderby == "include" and spec.include_ids:
            position = {order_id: index for index, order_id in enumerate(spec.include_ids)}
            orders.sort(key=lambda o: position.get(o.id, len(position)))
            return

        keys: dict[str, Callable[[Order], Any]] = {
            "id": lambda o: o.id,
            "modified": lambda o: (o.date_modified, o.id),
        }
        key = keys.get(spec.orderby, lambda o: (o.date_created, o.id))
        orders.sort(key=key, reverse=spec.order == "desc")


# ============================================================================
# Coupon and Customer Repositories
# ============================================================================


class InMemoryCouponRepository:
    """In-memory repository for coupons."""

    def __init__(self) -> None:
        self._coupons: dict[int, Coupon] = {}
        self._next_id = 1

    def save(self, coupon: Coupon) -> int:
        """Store a copy of a coupon, assigning the next id when new."""
        if not coupon.id:
            coupon.id = self._next_id
            self._next_id += 1
        self._coupons[coupon.id] = deepcopy(coupon)
        return coupon.id

    def get(self, coupon_id: int) -> Coupon | None:
        """Get a copy of a coupon by ID."""
        coupon = self._coupons.get(coupon_id)
        return deepcopy(coupon) if coupon is not None else None

    def find_by_code(self, code: str) -> Coupon | None:
        """Get a published coupon by code."""
        code = format_coupon_code(code)
        for coupon in self._coupons.values():
            if coupon.code == code and coupon.status is CouponStatus.PUBLISH:
                return deepcopy(coupon)
        return None

    def delete(self, coupon_id: int) -> bool:
        """Remove a coupon permanently."""
        return self._coupons.pop(coupon_id, None) is not None

    def list_all(self) -> list[Coupon]:
        """Get copies of every coupon."""
        return [deepcopy(c) for c in self._coupons.values()]


class InMemoryCustomerRepository:
    """In-memory repository for customers."""

    def __init__(self) -> None:
        self._customers: dict[int, Customer] = {}
        self._next_id = 1

    def save(self, customer: Customer) -> int:
        """Store a copy of a customer, assigning the next id when new."""
        if not customer.id:
            customer.id = self._next_id
            self._next_id += 1
        self._customers[customer.id] = deepcopy(customer)
        return customer.id

    def get(self, customer_id: int) -> Customer | None:
        """Get a copy of a customer by ID."""
        customer = self._customers.get(customer_id)
        return deepcopy(customer) if customer is not None else None

    def exists(self, customer_id: int) -> bool:
        """Check if a customer ID is known."""
        return customer_id in self._customers

    def find_by_email(self, email: str) -> Customer | None:
        """Get a customer by email, case-insensitively."""
        email = email.strip().lower()
        for customer in self._customers.values():
            if customer.email.lower() == email:
                return deepcopy(customer)
        return None

    def delete(self, customer_id: int) -> bool:
        """Remove a customer permanently."""
        return self._customers.pop(customer_id, None) is not None

    def list_all(self) -> list[Customer]:
        """Get copies of every customer."""
        return [deepcopy(c) for c in self._customers.values()]
