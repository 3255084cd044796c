"""Default totals calculator.

Sums amounts already present on the line groups. Tax rates are never
looked up: per-rate breakdowns are taken as given.
"""

from decimal import Decimal

import structlog

from storeapi.domain.formatting import round_decimal
from storeapi.domain.order import LineItem, Order, TaxAmount, TaxLine

logger = structlog.get_logger()

ZERO = Decimal(0)


def _sum(values) -> Decimal:
    return sum(values, ZERO)


class DefaultTotalsCalculator:
    """Recomputes order totals from line groups.

    With ``recalc_full`` the per-line tax totals are rebuilt from their
    breakdowns and the tax lines are regenerated per rate before the order
    totals are summed.

    Attributes:
        precision: Decimal places every stored total is rounded to.
    """

    def __init__(self, precision: int = 2) -> None:
        self.precision = precision

    def calculate_totals(self, order: Order, recalc_full: bool = True) -> None:
        """Recompute derived totals in place.

        Args:
            order: Order to recompute.
            recalc_full: Whether line taxes and tax lines are rebuilt too.
        """
        if recalc_full:
            self._calculate_line_taxes(order)
            self._rebuild_tax_lines(order)

        line_items = order.line_items
        discount = _sum(li.subtotal - li.total for li in line_items) + _sum(
            c.discount for c in order.coupon_lines
        )
        discount_tax = _sum(li.subtotal_tax - li.total_tax for li in line_items) + _sum(
            c.discount_tax for c in order.coupon_lines
        )

        order.discount_total = self._round(discount)
        order.discount_tax = self._round(discount_tax)
        order.shipping_total = self._round(_sum(s.total for s in order.shipping_lines))
        order.shipping_tax = self._round(_sum(s.total_tax for s in order.shipping_lines))
        order.cart_tax = self._round(
            _sum(li.total_tax for li in line_items) + _sum(f.total_tax for f in order.fee_lines)
        )

        total = (
            self._round(order.subtotal)
            - order.discount_total
            + order.shipping_total
            + order.total_tax
        )
        order.total = max(total, ZERO)

        logger.debug(
            "Order totals calculated",
            order_id=order.id,
            total=str(order.total),
            recalc_full=recalc_full,
        )

    def _calculate_line_taxes(self, order: Order) -> None:
        for item in order.line_items:
            item.total_tax = self._round(_sum(t.total for t in item.taxes.values()))
            item.subtotal_tax = self._round(
                _sum(t.total if t.subtotal is None else t.subtotal for t in item.taxes.values())
            )
        for line in order.shipping_lines:
            line.total_tax = self._round(_sum(t.total for t in line.taxes.values()))
        for fee in order.fee_lines:
            fee.total_tax = (
                self._round(_sum(t.total for t in fee.taxes.values()))
                if fee.tax_status == "taxable"
                else ZERO
            )

    def _rebuild_tax_lines(self, order: Order) -> None:
        cart: dict[int, Decimal] = {}
        shipping: dict[int, Decimal] = {}
        for item in [*order.line_items, *order.fee_lines]:
            if not isinstance(item, LineItem) and item.tax_status != "taxable":
                continue
            _accumulate(cart, item.taxes)
        for line in order.shipping_lines:
            _accumulate(shipping, line.taxes)

        existing = {line.rate_id: line for line in order.tax_lines}
        for rate_id, line in existing.items():
            if rate_id not in cart and rate_id not in shipping:
                order.remove_item(line.id)

        for rate_id in [*cart, *(r for r in shipping if r not in cart)]:
            line = existing.get(rate_id)
            if line is None:
                line = TaxLine(rate_id=rate_id, rate_code=f"TAX-{rate_id}", label="Tax")
                order.add_item(line)
            line.tax_total = self._round(cart.get(rate_id, ZERO))
            line.shipping_tax_total = self._round(shipping.get(rate_id, ZERO))

    def _round(self, value: Decimal) -> Decimal:
        return round_decimal(value, self.precision)


def _accumulate(into: dict[int, Decimal], taxes: dict[int, TaxAmount]) -> None:
    for rate_id, amount in taxes.items():
        into[rate_id] = into.get(rate_id, ZERO) + amount.total
