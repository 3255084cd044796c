"""Order application service.

Runs the order write workflow and the read paths:
- Create and update: map the request, recompute totals, persist and
  optionally complete payment, all in one store transaction
- Get and list, the latter through the query builder
- Delete, either to the trash or permanently
"""

from typing import Any

import structlog

from storeapi.application.order_request import OrderRequestMapper, touches_totals
from storeapi.application.paging import Page
from storeapi.application.ports import (
    OrderStore,
    PaymentTransition,
    PostSaveObserver,
    PreInsertTransformer,
    TotalsCalculator,
)
from storeapi.application.payment import OrderPaymentTransition
from storeapi.application.query_builder import OrderFilters, OrderQueryBuilder
from storeapi.application.store_config import StoreConfig
from storeapi.application.totals import DefaultTotalsCalculator
from storeapi.domain.exceptions import AlreadyTrashedError, NotFoundError
from storeapi.domain.order import Order, OrderStatus
from storeapi.infrastructure.stores import (
    get_coupon_repository,
    get_customer_repository,
    get_order_store,
    get_product_catalog,
)

logger = structlog.get_logger()

CREATED_VIA = "rest-api"

OrderPage = Page[Order]


# ============================================================================
# Order Service
# ============================================================================


class OrderService:
    """Application service for the order resource.

    Write workflow: NEW -> MAPPED -> TOTALS_RECOMPUTED -> PERSISTED -> PAID.
    Any error before commit rolls the store transaction back and
    propagates to the caller.
    """

    def __init__(
        self,
        store: OrderStore,
        mapper: OrderRequestMapper,
        calculator: TotalsCalculator | None = None,
        payment: PaymentTransition | None = None,
        config: StoreConfig | None = None,
        observers: list[PostSaveObserver] | None = None,
        request_id: str | None = None,
    ) -> None:
        """Initialize service.

        Args:
            store: Order persistence.
            mapper: Request mapper, carrying the pre-insert transformers.
            calculator: Totals calculator.
            payment: Payment-completion transition.
            config: Store configuration snapshot for this request.
            observers: Callbacks run after a write commits.
            request_id: Request ID for correlation.
        """
        self.store = store
        self.mapper = mapper
        self.config = config or mapper.config
        self.calculator = calculator or DefaultTotalsCalculator(self.config.price_decimals)
        self.payment = payment or OrderPaymentTransition()
        self.observers = list(observers or [])
        self.request_id = request_id

    async def create_order(self, payload: dict[str, Any]) -> Order:
        """Create an order from a write request.

        Args:
            payload: Validated request body; ``set_paid`` is honored.

        Returns:
            The stored order, re-read after commit.

        Raises:
            StoreApiError: If mapping, recomputation or persistence fails.
        """
        async with self.store.transaction():
            order = Order(
                currency=self.config.currency,
                prices_include_tax=self.config.prices_include_tax,
                created_via=CREATED_VIA,
            )
            order = self.mapper.map(payload, order, is_create=True)
            self.mapper.refresh_coupon_discounts(order)
            self.calculator.calculate_totals(order, recalc_full=True)
            await self.store.save(order)

            if payload.get("set_paid"):
                await self._complete_payment(order)

        logger.info(
            "Order created",
            order_id=order.id,
            status=order.status.value,
            total=str(order.total),
            request_id=self.request_id,
        )
        self._notify(order, payload, is_create=True)
        return await self.get_order(order.id)

    async def update_order(self, order_id: int, payload: dict[str, Any]) -> Order:
        """Apply a partial update to an order.

        Totals are recomputed only when an address or line collection is
        part of the request.

        Args:
            order_id: Order identifier.
            payload: Validated request body; ``set_paid`` is honored.

        Returns:
            The stored order, re-read after commit.

        Raises:
            NotFoundError: If the order does not exist.
            StoreApiError: If mapping, recomputation or persistence fails.
        """
        async with self.store.transaction():
            order = await self.store.find(order_id)
            if order is None:
                raise NotFoundError("order", order_id)

            order = self.mapper.map(payload, order, is_create=False)
            recompute = touches_totals(payload)
            if recompute:
                self.mapper.refresh_coupon_discounts(order)
                self.calculator.calculate_totals(order, recalc_full=True)
            order.touch()
            await self.store.save(order)

            if payload.get("set_paid") and order.needs_payment():
                await self._complete_payment(order)

        logger.info(
            "Order updated",
            order_id=order.id,
            status=order.status.value,
            recomputed=recompute,
            request_id=self.request_id,
        )
        self._notify(order, payload, is_create=False)
        return await self.get_order(order.id)

    async def get_order(self, order_id: int) -> Order:
        """Get an order by ID.

        Raises:
            NotFoundError: If the order does not exist.
        """
        order = await self.store.find(order_id)
        if order is None:
            raise NotFoundError("order", order_id)
        return order

    async def list_orders(self, filters: OrderFilters) -> OrderPage:
        """List orders matching collection filters.

        When a page past the end comes back empty, a second unbounded
        query establishes the total.

        Args:
            filters: Collection parameters.

        Returns:
            OrderPage with the orders of the requested page.
        """
        builder = OrderQueryBuilder(self.store, self.config.tzinfo)
        spec = await builder.build(filters)

        ids, total = await self.store.query(spec)
        if total < 1 and spec.page > 1:
            _, total = await self.store.query(spec.unbounded())

        orders = await self.store.find_many(ids)
        return OrderPage(items=orders, total=total, page=spec.page, per_page=spec.per_page)

    async def delete_order(self, order_id: int, force: bool = False) -> Order:
        """Delete an order.

        Args:
            order_id: Order identifier.
            force: Remove permanently instead of moving to the trash.

        Returns:
            The order as it was before a permanent delete, or the trashed
            order.

        Raises:
            NotFoundError: If the order does not exist.
            AlreadyTrashedError: If trashing an order already in the trash.
        """
        async with self.store.transaction():
            order = await self.store.find(order_id)
            if order is None:
                raise NotFoundError("order", order_id)

            if not force and order.status is OrderStatus.TRASH:
                raise AlreadyTrashedError("order", order_id)

            await self.store.delete(order_id, hard=force)

        logger.info(
            "Order deleted",
            order_id=order_id,
            force=force,
            request_id=self.request_id,
        )
        if force:
            return order
        return await self.get_order(order_id)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _complete_payment(self, order: Order) -> None:
        previous = order.status
        self.payment.mark_paid(order)
        await self.store.save(order)
        logger.info(
            "Order paid",
            order_id=order.id,
            from_status=previous.value,
            to_status=order.status.value,
            request_id=self.request_id,
        )

    def _notify(self, order: Order, payload: dict[str, Any], is_create: bool) -> None:
        for observer in self.observers:
            observer(order, payload, is_create)


# ============================================================================
# Service Factory
# ============================================================================


def get_order_service(
    request_id: str | None = None,
    config: StoreConfig | None = None,
    transformers: list[PreInsertTransformer] | None = None,
    observers: list[PostSaveObserver] | None = None,
) -> OrderService:
    """Get order service instance.

    Args:
        request_id: Request ID for correlation.
        config: Configuration snapshot, captured from settings when omitted.
        transformers: Pre-insert transformers.
        observers: Post-save observers.

    Returns:
        OrderService wired to the configured stores.
    """
    config = config or StoreConfig.from_settings()
    mapper = OrderRequestMapper(
        catalog=get_product_catalog(),
        coupons=get_coupon_repository(),
        customers=get_customer_repository(),
        config=config,
        transformers=transformers,
    )
    return OrderService(
        store=get_order_store(),
        mapper=mapper,
        config=config,
        observers=observers,
        request_id=request_id,
    )
