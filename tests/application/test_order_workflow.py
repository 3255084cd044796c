"""Tests for the order write workflow and read paths."""

from decimal import Decimal
from typing import Any

import pytest

from storeapi.application.order_request import OrderRequestMapper
from storeapi.application.order_response import OrderResponseBuilder
from storeapi.application.order_service import OrderService
from storeapi.application.ports import QuerySpec
from storeapi.application.query_builder import OrderFilters
from storeapi.application.store_config import StoreConfig
from storeapi.application.totals import DefaultTotalsCalculator
from storeapi.domain.exceptions import (
    AlreadyTrashedError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from storeapi.domain.coupon import Coupon, DiscountType
from storeapi.domain.order import TRASH_STATUS_META_KEY, Order, OrderStatus
from storeapi.infrastructure.catalog import InMemoryProductCatalog
from storeapi.infrastructure.memory_store import (
    InMemoryCouponRepository,
    InMemoryCustomerRepository,
    InMemoryOrderStore,
)


class SpyCalculator(DefaultTotalsCalculator):
    """Counts recomputations."""

    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    def calculate_totals(self, order: Order, recalc_full: bool = True) -> None:
        self.calls += 1
        super().calculate_totals(order, recalc_full)


class PagingStore(InMemoryOrderStore):
    """Reports a zero count for pages past the end, like a SQL found-rows query."""

    def __init__(self) -> None:
        super().__init__()
        self.specs: list[QuerySpec] = []

    async def query(self, spec: QuerySpec) -> tuple[list[int], int]:
        self.specs.append(spec)
        ids, total = await super().query(spec)
        if not ids and spec.per_page > 0:
            return ids, 0
        return ids, total


def make_service(
    catalog: InMemoryProductCatalog,
    store: InMemoryOrderStore | None = None,
    calculator: DefaultTotalsCalculator | None = None,
    transformers: list[Any] | None = None,
    observers: list[Any] | None = None,
    coupons: InMemoryCouponRepository | None = None,
) -> OrderService:
    mapper = OrderRequestMapper(
        catalog,
        coupons=coupons or InMemoryCouponRepository(),
        customers=InMemoryCustomerRepository(),
        transformers=transformers,
    )
    return OrderService(
        store=store or InMemoryOrderStore(),
        mapper=mapper,
        calculator=calculator,
        observers=observers,
    )


ITEM_PAYLOAD = {"line_items": [{"product_id": 10, "quantity": 2}]}


class TestCreateOrder:
    """Tests for OrderService.create_order."""

    @pytest.mark.asyncio
    async def test_empty_order(self, catalog: InMemoryProductCatalog) -> None:
        """An empty body creates a pending, zero-total order."""
        service = make_service(catalog)
        order = await service.create_order({})

        assert order.id == 1
        assert order.status is OrderStatus.PENDING
        assert order.created_via == "rest-api"
        data = OrderResponseBuilder(StoreConfig()).prepare(order)
        assert data["total"] == "0.00"

    @pytest.mark.asyncio
    async def test_create_always_recomputes(self, catalog: InMemoryProductCatalog) -> None:
        """Totals are computed once per create."""
        spy = SpyCalculator()
        order = await make_service(catalog, calculator=spy).create_order(ITEM_PAYLOAD)

        assert spy.calls == 1
        assert order.total == Decimal("25.00")

    @pytest.mark.asyncio
    async def test_total_invariant(self, catalog: InMemoryProductCatalog) -> None:
        """Stored totals satisfy the order total equation."""
        order = await make_service(catalog).create_order(
            {
                "line_items": [
                    {
                        "product_id": 10,
                        "subtotal": "25",
                        "total": "20",
                        "taxes": [{"id": 1, "total": "2", "subtotal": "2.5"}],
                    }
                ],
                "shipping_lines": [{"method_id": "flat_rate", "total": "5"}],
                "fee_lines": [{"name": "Handling", "total": "1.50"}],
            }
        )

        assert order.total == Decimal("28.50")
        assert order.total == (
            order.subtotal - order.discount_total + order.shipping_total + order.total_tax
        )
        assert [line.rate_id for line in order.tax_lines] == [1]

    @pytest.mark.asyncio
    async def test_set_paid_with_items(self, catalog: InMemoryProductCatalog) -> None:
        """Paid orders with items move to processing."""
        order = await make_service(catalog).create_order({**ITEM_PAYLOAD, "set_paid": True})

        assert order.status is OrderStatus.PROCESSING
        assert order.date_paid is not None

    @pytest.mark.asyncio
    async def test_set_paid_without_items(self, catalog: InMemoryProductCatalog) -> None:
        """Paid orders without items complete directly."""
        order = await make_service(catalog).create_order({"set_paid": True})

        assert order.status is OrderStatus.COMPLETED
        assert order.date_completed is not None

    @pytest.mark.asyncio
    async def test_mapping_error_persists_nothing(
        self, catalog: InMemoryProductCatalog
    ) -> None:
        """A rejected field leaves the store untouched."""
        store = InMemoryOrderStore()
        service = make_service(catalog, store=store)
        with pytest.raises(ValidationError):
            await service.create_order({"line_items": [{"product_id": 999}]})

        assert await store.query(QuerySpec()) == ([], 0)

    @pytest.mark.asyncio
    async def test_transformer_veto_rolls_back(self, catalog: InMemoryProductCatalog) -> None:
        """A vetoing transformer aborts the create."""

        def veto(order: Order, payload: dict[str, Any], is_create: bool) -> Order:
            raise DomainError("Orders are closed.", code="store_closed", status=403)

        store = InMemoryOrderStore()
        with pytest.raises(DomainError):
            await make_service(catalog, store=store, transformers=[veto]).create_order({})

        assert await store.query(QuerySpec()) == ([], 0)

    @pytest.mark.asyncio
    async def test_observers_after_commit(self, catalog: InMemoryProductCatalog) -> None:
        """Observers see the stored order."""
        seen = []

        def observe(order: Order, payload: dict[str, Any], is_create: bool) -> None:
            seen.append((order.id, is_create))

        service = make_service(catalog, observers=[observe])
        order = await service.create_order({})
        await service.update_order(order.id, {"customer_note": "hi"})

        assert seen == [(1, True), (1, False)]


class TestUpdateOrder:
    """Tests for OrderService.update_order."""

    @pytest.mark.asyncio
    async def test_recompute_only_when_needed(self, catalog: InMemoryProductCatalog) -> None:
        """Notes do not recompute; line and address changes do."""
        spy = SpyCalculator()
        service = make_service(catalog, calculator=spy)
        order = await service.create_order(ITEM_PAYLOAD)

        await service.update_order(order.id, {"customer_note": "leave at door"})
        assert spy.calls == 1
        await service.update_order(order.id, {"billing": {"city": "Paris"}})
        assert spy.calls == 2
        updated = await service.update_order(
            order.id, {"line_items": [{"product_id": 11, "quantity": 1}]}
        )
        assert spy.calls == 3
        assert updated.total == Decimal("29.00")

    @pytest.mark.asyncio
    async def test_status_change(self, catalog: InMemoryProductCatalog) -> None:
        """Completing an order stamps its dates."""
        service = make_service(catalog)
        order = await service.create_order(ITEM_PAYLOAD)
        updated = await service.update_order(order.id, {"status": "completed"})

        assert updated.status is OrderStatus.COMPLETED
        assert updated.date_completed is not None
        assert updated.date_modified >= order.date_modified

    @pytest.mark.asyncio
    async def test_set_paid_on_unpaid_order(self, catalog: InMemoryProductCatalog) -> None:
        """set_paid completes payment for orders that need it."""
        service = make_service(catalog)
        order = await service.create_order(ITEM_PAYLOAD)
        updated = await service.update_order(order.id, {"set_paid": True})

        assert updated.status is OrderStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_set_paid_on_paid_order(self, catalog: InMemoryProductCatalog) -> None:
        """set_paid on a paid order changes nothing."""
        service = make_service(catalog)
        order = await service.create_order({**ITEM_PAYLOAD, "set_paid": True})
        updated = await service.update_order(order.id, {"set_paid": True})

        assert updated.status is OrderStatus.PROCESSING
        assert updated.date_paid == order.date_paid

    @pytest.mark.asyncio
    async def test_set_paid_on_free_order(self, catalog: InMemoryProductCatalog) -> None:
        """Zero-total orders do not need payment on update."""
        service = make_service(catalog)
        order = await service.create_order({})
        updated = await service.update_order(order.id, {"set_paid": True})

        assert updated.status is OrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_veto_keeps_stored_order(self, catalog: InMemoryProductCatalog) -> None:
        """A vetoed update leaves the stored order as it was."""

        def veto(order: Order, payload: dict[str, Any], is_create: bool) -> Order:
            if not is_create:
                raise DomainError("Locked.", code="order_locked")
            return order

        service = make_service(catalog, transformers=[veto])
        order = await service.create_order(ITEM_PAYLOAD)
        with pytest.raises(DomainError):
            await service.update_order(order.id, {"line_items": [{"product_id": 11}]})

        stored = await service.get_order(order.id)
        assert len(stored.line_items) == 1
        assert stored.total == Decimal("25.00")

    @pytest.mark.asyncio
    async def test_line_change_refreshes_coupon(self, catalog: InMemoryProductCatalog) -> None:
        """Coupon discounts are re-derived when line items change."""
        coupons = InMemoryCouponRepository()
        coupons.save(
            Coupon(code="save10", amount=Decimal("10"), discount_type=DiscountType.PERCENT)
        )
        service = make_service(catalog, coupons=coupons)
        order = await service.create_order(
            {
                "line_items": [{"product_id": 10, "quantity": 8}],
                "coupon_lines": [{"code": "save10"}],
            }
        )
        assert order.total == Decimal("90.00")

        updated = await service.update_order(
            order.id, {"line_items": [{"id": order.line_items[0].id, "quantity": 1}]}
        )

        assert updated.coupon_lines[0].discount == Decimal("1.25")
        assert updated.discount_total == Decimal("1.25")
        assert updated.total == Decimal("11.25")
        assert updated.total == (
            updated.subtotal
            - updated.discount_total
            + updated.shipping_total
            + updated.total_tax
        )

    @pytest.mark.asyncio
    async def test_unknown_order(self, catalog: InMemoryProductCatalog) -> None:
        """Updating a missing order is a not-found error."""
        with pytest.raises(NotFoundError) as exc_info:
            await make_service(catalog).update_order(42, {"customer_note": "x"})
        assert exc_info.value.status == 404


class TestDeleteOrder:
    """Tests for OrderService.delete_order."""

    @pytest.mark.asyncio
    async def test_trash(self, catalog: InMemoryProductCatalog) -> None:
        """Soft delete moves to the trash and remembers the status."""
        service = make_service(catalog)
        order = await service.create_order({})
        trashed = await service.delete_order(order.id)

        assert trashed.status is OrderStatus.TRASH
        assert trashed.get_meta(TRASH_STATUS_META_KEY) == "wc-pending"
        with pytest.raises(AlreadyTrashedError) as exc_info:
            await service.delete_order(order.id)
        assert exc_info.value.status == 410

    @pytest.mark.asyncio
    async def test_force_returns_previous_state(
        self, catalog: InMemoryProductCatalog
    ) -> None:
        """Permanent delete returns the order as it was."""
        service = make_service(catalog)
        order = await service.create_order(ITEM_PAYLOAD)
        removed = await service.delete_order(order.id, force=True)

        assert removed.id == order.id
        assert removed.status is OrderStatus.PENDING
        with pytest.raises(NotFoundError):
            await service.get_order(order.id)


class TestListOrders:
    """Tests for OrderService.list_orders."""

    @pytest.mark.asyncio
    async def test_status_filters(self, catalog: InMemoryProductCatalog) -> None:
        """'any' hides trash; explicit statuses select."""
        service = make_service(catalog)
        first = await service.create_order({})
        await service.create_order({"status": "processing"})
        await service.create_order({})
        await service.delete_order(first.id)

        page = await service.list_orders(OrderFilters())
        assert sorted(o.id for o in page.items) == [2, 3]
        page = await service.list_orders(OrderFilters(status=["processing"]))
        assert [o.id for o in page.items] == [2]
        page = await service.list_orders(OrderFilters(status=["trash"]))
        assert [o.id for o in page.items] == [1]

    @pytest.mark.asyncio
    async def test_product_without_orders(self, catalog: InMemoryProductCatalog) -> None:
        """A product nobody ordered yields an empty page."""
        service = make_service(catalog)
        await service.create_order(ITEM_PAYLOAD)

        page = await service.list_orders(OrderFilters(product=11))
        assert (page.items, page.total) == ([], 0)
        page = await service.list_orders(OrderFilters(product=10))
        assert page.total == 1

    @pytest.mark.asyncio
    async def test_sorted_by_id(self, catalog: InMemoryProductCatalog) -> None:
        """orderby and order are honored."""
        service = make_service(catalog)
        for _ in range(3):
            await service.create_order({})

        page = await service.list_orders(OrderFilters(orderby="id", order="asc"))
        assert [o.id for o in page.items] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_page_past_end_counts(self, catalog: InMemoryProductCatalog) -> None:
        """An empty page past the end still reports the total."""
        store = PagingStore()
        service = make_service(catalog, store=store)
        for _ in range(3):
            await service.create_order({})

        page = await service.list_orders(OrderFilters(page=5, per_page=2))
        assert page.items == []
        assert page.total == 3
        assert page.total_pages == 2
        assert store.specs[-1].per_page == -1
