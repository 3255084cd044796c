"""Tests for the payment-completion transition."""

from decimal import Decimal

import pytest

from storeapi.application.payment import OrderPaymentTransition
from storeapi.domain.order import LineItem, Order, OrderStatus


def order_with_item(status: OrderStatus = OrderStatus.PENDING) -> Order:
    order = Order(status=status)
    order.add_item(LineItem(product_id=10, subtotal=Decimal("5"), total=Decimal("5")))
    return order


class TestOrderPaymentTransition:
    """Tests for OrderPaymentTransition."""

    def test_order_with_items_needs_processing(self) -> None:
        """Orders with line items move to processing."""
        order = order_with_item()
        OrderPaymentTransition().mark_paid(order)

        assert order.status is OrderStatus.PROCESSING
        assert order.date_paid is not None
        assert order.date_completed is None

    def test_order_without_items_completes(self) -> None:
        """Orders without line items are completed directly."""
        order = Order()
        OrderPaymentTransition().mark_paid(order)

        assert order.status is OrderStatus.COMPLETED
        assert order.date_paid is not None
        assert order.date_completed is not None

    @pytest.mark.parametrize(
        "status", [OrderStatus.ON_HOLD, OrderStatus.FAILED, OrderStatus.CANCELLED]
    )
    def test_payable_statuses(self, status: OrderStatus) -> None:
        """Held, failed and cancelled orders can still be paid."""
        order = order_with_item(status)
        OrderPaymentTransition().mark_paid(order)

        assert order.status is OrderStatus.PROCESSING

    @pytest.mark.parametrize(
        "status", [OrderStatus.PROCESSING, OrderStatus.COMPLETED, OrderStatus.REFUNDED]
    )
    def test_paid_orders_unchanged(self, status: OrderStatus) -> None:
        """Orders past payment are left alone."""
        order = order_with_item(status)
        OrderPaymentTransition().mark_paid(order)

        assert order.status is status
        assert order.date_paid is None
