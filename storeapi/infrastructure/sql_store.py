"""SQLAlchemy order store.

Persists orders through the async session factory. Every filter value is
bound as a statement parameter; LIKE patterns use backslash escapes.
"""

import operator
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any

import structlog
from sqlalchemy import (
    ColumnElement,
    Numeric,
    Select,
    String,
    and_,
    case,
    cast,
    delete,
    distinct,
    exists,
    func,
    or_,
    select,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storeapi.application.ports import CUSTOMER_META_KEY, MetaFilter, QuerySpec
from storeapi.application.query_builder import escape_like
from storeapi.domain.exceptions import PersistenceError
from storeapi.domain.order import TRASH_STATUS_META_KEY, LineItem, Order, OrderStatus
from storeapi.infrastructure.models import OrderItemModel, OrderMetaModel, OrderModel
from storeapi.infrastructure.order_codec import (
    order_from_document,
    order_search_text,
    order_to_document,
)

logger = structlog.get_logger()

LIKE_ESCAPE = "\\"

_SQL_COMPARATORS: dict[str, Callable[[Any, Any], ColumnElement[bool]]] = {
    "=": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
    "IN": lambda column, value: column.in_(list(value)),
    "NOT IN": lambda column, value: column.not_in(list(value)),
}

# Session of the transaction running in the current task
_current_session: ContextVar[AsyncSession | None] = ContextVar(
    "storeapi_order_session", default=None
)


# ============================================================================
# Query Construction
# ============================================================================


def _meta_condition(meta_filter: MetaFilter) -> ColumnElement[bool]:
    compare = _SQL_COMPARATORS.get(meta_filter.compare.upper())
    if compare is None:
        raise PersistenceError(f"Unsupported meta comparison: {meta_filter.compare}")

    numeric = meta_filter.type.upper() == "NUMERIC"
    if meta_filter.key == CUSTOMER_META_KEY:
        return compare(OrderModel.customer_id, meta_filter.value)

    column = cast(OrderMetaModel.meta_value, Numeric) if numeric else OrderMetaModel.meta_value
    value = meta_filter.value
    if not numeric:
        value = [str(v) for v in value] if isinstance(value, (list, tuple, set)) else str(value)
    return exists(
        select(OrderMetaModel.id).where(
            OrderMetaModel.order_id == OrderModel.id,
            OrderMetaModel.meta_key == meta_filter.key,
            compare(column, value),
        )
    )


def _conditions(spec: QuerySpec) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = []

    if spec.statuses is None:
        conditions.append(OrderModel.status != OrderStatus.TRASH.value)
    else:
        conditions.append(OrderModel.status.in_(spec.statuses))

    if spec.include_ids is not None:
        conditions.append(OrderModel.id.in_(spec.include_ids))
    if spec.exclude_ids:
        conditions.append(OrderModel.id.not_in(spec.exclude_ids))
    if spec.parent_ids is not None:
        conditions.append(OrderModel.parent_id.in_(spec.parent_ids))
    if spec.parent_exclude:
        conditions.append(OrderModel.parent_id.not_in(spec.parent_exclude))

    conditions.extend(_meta_condition(f) for f in spec.meta_filters)

    if spec.created_after is not None:
        conditions.append(OrderModel.date_created > spec.created_after)
    if spec.created_before is not None:
        conditions.append(OrderModel.date_created < spec.created_before)
    if spec.modified_after is not None:
        conditions.append(OrderModel.date_modified > spec.modified_after)
    if spec.modified_before is not None:
        conditions.append(OrderModel.date_modified < spec.modified_before)

    return conditions


def _ordering(spec: QuerySpec) -> list[Any]:
    if spec.orderby == "include" and spec.include_ids:
        position = {order_id: index for index, order_id in enumerate(spec.include_ids)}
        return [case(position, value=OrderModel.id, else_=len(position))]

    columns = {
        "id": OrderModel.id,
        "modified": OrderModel.date_modified,
    }
    column = columns.get(spec.orderby, OrderModel.date_created)
    if spec.order == "asc":
        return [column.asc(), OrderModel.id.asc()]
    return [column.desc(), OrderModel.id.desc()]


def build_order_query(spec: QuerySpec) -> tuple[Select, Select]:
    """Build the page and count statements for a query.

    Args:
        spec: Query specification.

    Returns:
        Tuple of (page statement selecting ids, count statement).
    """
    conditions = _conditions(spec)

    page = select(OrderModel.id).where(and_(*conditions)).order_by(*_ordering(spec))
    if spec.row_offset:
        page = page.offset(spec.row_offset)
    if spec.per_page >= 0:
        page = page.limit(spec.per_page)

    count = select(func.count()).select_from(OrderModel).where(and_(*conditions))
    return page, count


def build_search_query(term: str) -> Select:
    """Build the statement matching orders by free text."""
    pattern = f"%{escape_like(term.strip().lower())}%"
    condition = OrderModel.search_text.like(pattern, escape=LIKE_ESCAPE)
    if term.strip().isdigit():
        condition = or_(condition, OrderModel.id == int(term.strip()))
    return select(OrderModel.id).where(condition).order_by(OrderModel.id)


def build_number_query(pattern: str, limit: int) -> Select:
    """Build the statement matching order numbers against a LIKE pattern."""
    statement = (
        select(OrderModel.id)
        .where(cast(OrderModel.id, String).like(pattern, escape=LIKE_ESCAPE))
        .order_by(OrderModel.id)
    )
    return statement.limit(limit) if limit > 0 else statement


def build_product_query(product_id: int) -> Select:
    """Build the statement finding orders with a product or variation."""
    return (
        select(distinct(OrderItemModel.order_id))
        .where(
            OrderItemModel.item_type == LineItem.type.value,
            or_(
                OrderItemModel.product_id == product_id,
                OrderItemModel.variation_id == product_id,
            ),
        )
        .order_by(OrderItemModel.order_id)
    )


# ============================================================================
# Order Store
# ============================================================================


class SqlOrderStore:
    """Order store backed by SQLAlchemy.

    Attributes:
        session_factory: Factory for async sessions.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Open a session and transaction shared by calls in this task."""
        async with self._session() as session:
            token = _current_session.set(session)
            try:
                yield
            finally:
                _current_session.reset(token)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        current = _current_session.get()
        if current is not None:
            yield current
            return
        try:
            async with self.session_factory() as session, session.begin():
                yield session
        except SQLAlchemyError as e:
            logger.error("Order store failure", error=str(e))
            raise PersistenceError("Order store failure.", details={"error": str(e)}) from e

    async def find(self, order_id: int) -> Order | None:
        """Load an order by ID."""
        async with self._session() as session:
            model = await session.get(OrderModel, order_id)
            if model is None:
                return None
            return self._to_order(model)

    async def find_many(self, order_ids: list[int]) -> list[Order]:
        """Load several orders in the given id order."""
        if not order_ids:
            return []
        async with self._session() as session:
            result = await session.execute(select(OrderModel).where(OrderModel.id.in_(order_ids)))
            models = {model.id: model for model in result.scalars()}
        return [self._to_order(models[i]) for i in order_ids if i in models]

    async def query(self, spec: QuerySpec) -> tuple[list[int], int]:
        """Run a query and return one page of ids with the total count."""
        page, count = build_order_query(spec)
        async with self._session() as session:
            ids = list((await session.execute(page)).scalars())
            total = (await session.execute(count)).scalar_one()
        return ids, int(total)

    async def save(self, order: Order) -> int:
        """Insert or update an order with its projections."""
        async with self._session() as session:
            model = await session.get(OrderModel, order.id) if order.id else None
            if model is None:
                model = OrderModel(id=order.id or None, document={})
                session.add(model)

            self._apply_columns(model, order)
            if not order.id:
                await session.flush()
                order.assign_id(model.id)
            model.document = order_to_document(order)

            await session.execute(delete(OrderItemModel).where(OrderItemModel.order_id == order.id))
            await session.execute(delete(OrderMetaModel).where(OrderMetaModel.order_id == order.id))
            session.add_all(
                OrderItemModel(
                    order_id=order.id,
                    item_id=item.id,
                    item_type=item.type.value,
                    name=item.name,
                    product_id=getattr(item, "product_id", 0),
                    variation_id=getattr(item, "variation_id", 0),
                )
                for item in order.items
            )
            session.add_all(
                OrderMetaModel(order_id=order.id, meta_key=entry.key, meta_value=str(entry.value))
                for entry in order.meta_data
            )
            await session.flush()
        return order.id

    async def delete(self, order_id: int, hard: bool) -> bool:
        """Remove an order, or move it to the trash remembering its status."""
        if not hard:
            order = await self.find(order_id)
            if order is None:
                return False
            order.update_meta_data(TRASH_STATUS_META_KEY, order.status.internal)
            order.status = OrderStatus.TRASH
            order.touch()
            await self.save(order)
            return True

        async with self._session() as session:
            result = await session.execute(delete(OrderModel).where(OrderModel.id == order_id))
        return bool(result.rowcount)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    async def order_ids_for_product(self, product_id: int) -> list[int]:
        """Get ids of orders with a line item for a product or variation."""
        return await self._ids(build_product_query(product_id))

    async def search_order_ids(self, term: str) -> list[int]:
        """Get ids of orders matching a free-text search."""
        if not term.strip():
            return []
        return await self._ids(build_search_query(term))

    async def order_ids_like(self, pattern: str, limit: int) -> list[int]:
        """Get order ids whose number matches a LIKE pattern."""
        return await self._ids(build_number_query(pattern, limit))

    async def _ids(self, statement: Select) -> list[int]:
        async with self._session() as session:
            return [int(i) for i in (await session.execute(statement)).scalars()]

    # -------------------------------------------------------------------------
    # Mapping
    # -------------------------------------------------------------------------

    @staticmethod
    def _apply_columns(model: OrderModel, order: Order) -> None:
        model.parent_id = order.parent_id
        model.status = order.status.internal
        model.customer_id = order.customer_id
        model.currency = order.currency
        model.total = order.total
        model.billing_email = order.billing.email or None
        model.search_text = order_search_text(order)
        model.date_created = order.date_created
        model.date_modified = order.date_modified

    @staticmethod
    def _to_order(model: OrderModel) -> Order:
        order = order_from_document(model.document)
        order.assign_id(model.id)
        return order
