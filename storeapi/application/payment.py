"""Payment-completion transition."""

import structlog

from storeapi.domain.order import Order, OrderStatus

logger = structlog.get_logger()

# Statuses from which a payment can complete
PAYABLE_STATUSES = frozenset(
    {
        OrderStatus.PENDING,
        OrderStatus.ON_HOLD,
        OrderStatus.FAILED,
        OrderStatus.CANCELLED,
    }
)


class OrderPaymentTransition:
    """Moves an order to its paid status.

    Orders with line items need processing; orders without any go
    straight to completed. Orders already past payment are left alone.
    """

    def mark_paid(self, order: Order) -> None:
        """Record a completed payment.

        Args:
            order: Order to transition in place.
        """
        if order.status not in PAYABLE_STATUSES:
            logger.info(
                "Payment ignored for order status",
                order_id=order.id,
                status=order.status.value,
            )
            return

        target = OrderStatus.PROCESSING if order.line_items else OrderStatus.COMPLETED
        previous = order.set_status(target)
        logger.info(
            "Order payment completed",
            order_id=order.id,
            from_status=previous.value,
            to_status=target.value,
        )
