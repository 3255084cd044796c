"""Order query builder.

Translates REST collection parameters into a ``QuerySpec``. Filters that
resolve to id sets (product, search, partial number) are looked up through
the store; an empty id set becomes a query that matches nothing rather
than no filter at all.
"""

from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from datetime import timezone as dt_timezone

import structlog

from storeapi.application.ports import (
    CUSTOMER_META_KEY,
    EMPTY_RESULT,
    MetaFilter,
    OrderLookup,
    QuerySpec,
)
from storeapi.domain.exceptions import ValidationError
from storeapi.domain.formatting import parse_datetime
from storeapi.domain.order import REGISTERED_STATUSES, prefix_status, unprefix_status

logger = structlog.get_logger()

ANY_STATUS = "any"

ORDERBY_VALUES = ("date", "id", "modified", "include")


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so a value matches literally.

    Backslash is the escape character, so it is escaped first.

    Args:
        value: Raw text.

    Returns:
        Text safe to embed in a LIKE pattern with ``ESCAPE '\\'``.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class OrderFilters:
    """REST collection parameters for orders."""

    status: list[str] = field(default_factory=lambda: [ANY_STATUS])
    customer: int | None = None
    product: int | None = None
    search: str | None = None
    s: str | None = None
    number: str | None = None
    created_since: datetime | str | None = None
    created_before: datetime | str | None = None
    updated_since: datetime | str | None = None
    updated_before: datetime | str | None = None
    include: list[int] = field(default_factory=list)
    exclude: list[int] = field(default_factory=list)
    parent: list[int] = field(default_factory=list)
    parent_exclude: list[int] = field(default_factory=list)
    page: int = 1
    per_page: int = 10
    offset: int | None = None
    order: str = "desc"
    orderby: str = "date"


class OrderQueryBuilder:
    """Builds order queries from collection parameters.

    Attributes:
        lookup: Store-backed id lookups for product, search and number filters.
        tz: Site timezone for naive date filters.
    """

    def __init__(self, lookup: OrderLookup, tz: tzinfo = dt_timezone.utc) -> None:
        self.lookup = lookup
        self.tz = tz

    async def build(self, filters: OrderFilters) -> QuerySpec:
        """Build a query specification.

        Args:
            filters: Collection parameters.

        Returns:
            QuerySpec ready for the store.

        Raises:
            ValidationError: If a date filter or paging value is invalid.
        """
        spec = QuerySpec(
            statuses=self.map_statuses(filters.status),
            exclude_ids=list(filters.exclude),
            parent_ids=list(filters.parent) or None,
            parent_exclude=list(filters.parent_exclude),
            page=filters.page,
            per_page=filters.per_page,
            offset=filters.offset,
            order="asc" if filters.order.lower() == "asc" else "desc",
            orderby=self._orderby(filters.orderby),
        )
        if filters.per_page == 0 or filters.page < 1:
            raise ValidationError("Invalid paging parameters.", field="per_page")

        if filters.include:
            self._restrict(spec, filters.include)

        if filters.customer is not None:
            spec.meta_filters.append(
                MetaFilter(
                    key=CUSTOMER_META_KEY,
                    value=int(filters.customer),
                    type="NUMERIC",
                )
            )

        if filters.product:
            ids = await self.lookup.order_ids_for_product(int(filters.product))
            self._restrict(spec, ids)

        term = filters.search if filters.search else filters.s
        if term:
            ids = await self.lookup.search_order_ids(term)
            self._restrict(spec, ids)

        if filters.number:
            ids = await self.lookup.order_ids_like(
                self.number_pattern(filters.number),
                filters.per_page if filters.per_page > 0 else 100,
            )
            self._restrict(spec, ids)

        spec.created_after = parse_datetime(filters.created_since, self.tz, "created_since")
        spec.created_before = parse_datetime(filters.created_before, self.tz, "created_before")
        spec.modified_after = parse_datetime(filters.updated_since, self.tz, "updated_since")
        spec.modified_before = parse_datetime(filters.updated_before, self.tz, "updated_before")

        logger.debug(
            "Order query built",
            statuses=spec.statuses,
            include_ids=spec.include_ids,
            empty=spec.is_empty,
        )
        return spec

    @staticmethod
    def map_statuses(statuses: list[str]) -> list[str] | None:
        """Map requested statuses to their stored form.

        ``any`` anywhere in the list means no status filter. Statuses that
        are not registered pass through unchanged.

        Args:
            statuses: Requested statuses, prefixed or not.

        Returns:
            Stored statuses, or None for any status.
        """
        mapped: list[str] = []
        for status in statuses:
            if status == ANY_STATUS:
                return None
            if unprefix_status(status) in REGISTERED_STATUSES:
                mapped.append(prefix_status(status))
            else:
                mapped.append(status)
        return mapped or None

    @staticmethod
    def number_pattern(number: str) -> str:
        """Build the left-anchored LIKE pattern for a partial order number."""
        digits = "".join(ch for ch in number.strip() if ch.isdigit())
        partial = str(int(digits)) if digits else "0"
        return escape_like(partial) + "%"

    @staticmethod
    def _restrict(spec: QuerySpec, ids: list[int]) -> None:
        ids = [int(i) for i in ids if int(i) > 0]
        if spec.include_ids is not None:
            found = set(ids)
            ids = [i for i in spec.include_ids if i in found]
        spec.include_ids = ids or list(EMPTY_RESULT)

    @staticmethod
    def _orderby(value: str) -> str:
        if value not in ORDERBY_VALUES:
            raise ValidationError(f"Invalid orderby value: {value}", field="orderby")
        return value
