"""Order request mapping.

Applies a validated write payload onto an ``Order``. Writable fields form
a closed enum with one mutation per member; fields outside the enum are
ignored and null values are skipped.
"""

from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, ClassVar

import structlog

from storeapi.application.ports import (
    CouponLookup,
    CustomerLookup,
    PreInsertTransformer,
    Product,
    ProductCatalog,
)
from storeapi.application.store_config import StoreConfig
from storeapi.domain.coupon import Coupon, format_coupon_code
from storeapi.domain.currency import Currency
from storeapi.domain.exceptions import ValidationError
from storeapi.domain.order import (
    CouponLine,
    FeeLine,
    LineGroup,
    LineItem,
    LineType,
    MetaDataMixin,
    Order,
    OrderStatus,
    ShippingLine,
    TaxAmount,
)

logger = structlog.get_logger()


class OrderField(str, Enum):
    """Order fields a write request may set."""

    PARENT_ID = "parent_id"
    STATUS = "status"
    CURRENCY = "currency"
    CUSTOMER_ID = "customer_id"
    CUSTOMER_NOTE = "customer_note"
    BILLING = "billing"
    SHIPPING = "shipping"
    PAYMENT_METHOD = "payment_method"
    PAYMENT_METHOD_TITLE = "payment_method_title"
    TRANSACTION_ID = "transaction_id"
    META_DATA = "meta_data"
    LINE_ITEMS = "line_items"
    SHIPPING_LINES = "shipping_lines"
    FEE_LINES = "fee_lines"
    COUPON_LINES = "coupon_lines"


# Fields whose presence on update makes totals stale
TOTALS_FIELDS = frozenset(
    {
        OrderField.BILLING,
        OrderField.SHIPPING,
        OrderField.LINE_ITEMS,
        OrderField.SHIPPING_LINES,
        OrderField.FEE_LINES,
        OrderField.COUPON_LINES,
    }
)

FEE_TAX_STATUSES = ("taxable", "none")


def touches_totals(payload: dict[str, Any]) -> bool:
    """Check if a payload sets any field that feeds the order totals."""
    return any(payload.get(f.value) is not None for f in TOTALS_FIELDS)


# ============================================================================
# Value Parsing
# ============================================================================


def parse_amount(value: Any, field: str) -> Decimal:
    """Parse a monetary request value.

    Args:
        value: Number or numeric string.
        field: Field path reported on failure.

    Returns:
        Finite Decimal.

    Raises:
        ValidationError: If the value is not a finite number.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} is not a valid amount.", field=field)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"{field} is not a valid amount.", field=field) from e
    if not amount.is_finite():
        raise ValidationError(f"{field} is not a valid amount.", field=field)
    return amount


def parse_int(value: Any, field: str, minimum: int = 0) -> int:
    """Parse an integer request value with a lower bound."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} is not of type integer.", field=field)
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field} is not of type integer.", field=field) from e
    if number < minimum:
        raise ValidationError(f"{field} must be at least {minimum}.", field=field)
    return number


def parse_taxes(values: Any, field: str) -> dict[int, TaxAmount]:
    """Parse a per-rate tax list into a rate-keyed breakdown.

    Args:
        values: List of ``{id, total, subtotal?}`` records.
        field: Field path reported on failure.

    Returns:
        Mapping of rate id to its amounts, in request order.
    """
    if not isinstance(values, list):
        raise ValidationError(f"{field} is not of type array.", field=field)
    taxes: dict[int, TaxAmount] = {}
    for index, entry in enumerate(values):
        path = f"{field}[{index}]"
        if not isinstance(entry, dict) or "id" not in entry:
            raise ValidationError(f"{path} requires a rate id.", field=path)
        rate_id = parse_int(entry["id"], f"{path}.id", minimum=1)
        subtotal = entry.get("subtotal")
        taxes[rate_id] = TaxAmount(
            total=parse_amount(entry.get("total", 0), f"{path}.total"),
            subtotal=(
                parse_amount(subtotal, f"{path}.subtotal")
                if subtotal not in (None, "")
                else None
            ),
        )
    return taxes


def _text(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


def _discount_for_items(coupon: Coupon, order: Order) -> Decimal:
    eligible = [
        li
        for li in order.line_items
        if (not coupon.product_ids or li.product_id in coupon.product_ids)
        and li.product_id not in coupon.excluded_product_ids
    ]
    subtotal = sum((li.subtotal for li in eligible), Decimal(0))
    quantity = sum(li.quantity for li in eligible)
    return coupon.discount_for(subtotal, quantity)


# ============================================================================
# Request Mapper
# ============================================================================


class OrderRequestMapper:
    """Maps write payloads onto orders.

    Attributes:
        catalog: Product lookup for new line items.
        coupons: Coupon lookup for coupon lines, optional.
        customers: Customer lookup for ``customer_id``, optional.
        config: Store configuration snapshot.
        transformers: Pre-insert transformers run after mapping, in order.
    """

    def __init__(
        self,
        catalog: ProductCatalog,
        coupons: CouponLookup | None = None,
        customers: CustomerLookup | None = None,
        config: StoreConfig | None = None,
        transformers: list[PreInsertTransformer] | None = None,
    ) -> None:
        self.catalog = catalog
        self.coupons = coupons
        self.customers = customers
        self.config = config or StoreConfig()
        self.transformers = list(transformers or [])

    def map(self, payload: dict[str, Any], order: Order, is_create: bool) -> Order:
        """Apply a write payload to an order.

        Fields are applied in ``OrderField`` order so coupon lines see the
        line items of the same request.

        Args:
            payload: Validated request body.
            order: Order to mutate (a fresh order when creating).
            is_create: Whether the request creates the order.

        Returns:
            The mapped order, as returned by the last transformer.

        Raises:
            ValidationError: If a field value is rejected.
            StoreApiError: If a transformer vetoes the request.
        """
        for order_field in OrderField:
            value = payload.get(order_field.value)
            if value is None:
                continue
            self._MUTATIONS[order_field](self, order, value)

        for transformer in self.transformers:
            order = transformer(order, payload, is_create)

        logger.debug(
            "Order request mapped",
            order_id=order.id,
            is_create=is_create,
            fields=[f.value for f in OrderField if payload.get(f.value) is not None],
        )
        return order

    def refresh_coupon_discounts(self, order: Order) -> None:
        """Re-derive coupon line discounts from the current line items.

        Coupons already on the order are not re-validated. A line whose
        coupon no longer exists keeps its stored discount.

        Args:
            order: Order whose coupon lines are refreshed in place.
        """
        if self.coupons is None:
            return
        for line in order.coupon_lines:
            coupon = self.coupons.find_by_code(line.code)
            if coupon is not None:
                line.discount = _discount_for_items(coupon, order)
    # -------------------------------------------------------------------------

    def _set_parent_id(self, order: Order, value: Any) -> None:
        order.parent_id = parse_int(value, "parent_id")

    def _set_status(self, order: Order, value: Any) -> None:
        try:
            status = OrderStatus.parse(_text(value))
        except ValueError as e:
            raise ValidationError(
                f"Invalid order status: {value}", field="status", code="invalid_status"
            ) from e
        if status is not order.status:
            order.set_status(status)

    def _set_currency(self, order: Order, value: Any) -> None:
        try:
            order.currency = Currency(_text(value).upper()).value
        except ValueError as e:
            raise ValidationError(
                f"Unsupported currency: {value}", field="currency", code="invalid_currency"
            ) from e

    def _set_customer_id(self, order: Order, value: Any) -> None:
        customer_id = parse_int(value, "customer_id")
        if customer_id and self.customers is not None and not self.customers.exists(customer_id):
            raise ValidationError(
                "Customer ID is invalid.", field="customer_id", code="invalid_customer_id"
            )
        order.customer_id = customer_id

    def _set_customer_note(self, order: Order, value: Any) -> None:
        order.customer_note = _text(value)

    def _set_billing(self, order: Order, value: Any) -> None:
        if not isinstance(value, dict):
            raise ValidationError("billing is not of type object.", field="billing")
        order.billing.merge(value)

    def _set_shipping(self, order: Order, value: Any) -> None:
        if not isinstance(value, dict):
            raise ValidationError("shipping is not of type object.", field="shipping")
        order.shipping.merge(value)

    def _set_payment_method(self, order: Order, value: Any) -> None:
        order.payment_method = _text(value)

    def _set_payment_method_title(self, order: Order, value: Any) -> None:
        order.payment_method_title = _text(value)

    def _set_transaction_id(self, order: Order, value: Any) -> None:
        order.transaction_id = _text(value)

    def _set_meta_data(self, order: Order, value: Any) -> None:
        self._apply_meta(order, value, "meta_data")

    # -------------------------------------------------------------------------
    # Line Collections
    # -------------------------------------------------------------------------

    def _set_line_items(self, order: Order, value: Any) -> None:
        self._apply_lines(order, value, LineType.LINE_ITEM, "line_items", self._update_line_item)

    def _set_shipping_lines(self, order: Order, value: Any) -> None:
        self._apply_lines(order, value, LineType.SHIPPING, "shipping_lines", self._update_shipping)

    def _set_fee_lines(self, order: Order, value: Any) -> None:
        self._apply_lines(order, value, LineType.FEE, "fee_lines", self._update_fee)

    def _set_coupon_lines(self, order: Order, value: Any) -> None:
        self._apply_lines(order, value, LineType.COUPON, "coupon_lines", self._update_coupon)

    def _apply_lines(
        self,
        order: Order,
        values: Any,
        line_type: LineType,
        field: str,
        update: Callable[[Order, Any, dict[str, Any], str, bool], None],
    ) -> None:
        if not isinstance(values, list):
            raise ValidationError(f"{field} is not of type array.", field=field)

        for index, data in enumerate(values):
            path = f"{field}[{index}]"
            if not isinstance(data, dict):
                raise ValidationError(f"{path} is not of type object.", field=path)

            item_id = data.get("id")
            if item_id:
                item = order.get_item(parse_int(item_id, f"{path}.id"), line_type)
                if item is None:
                    raise ValidationError(
                        f"Invalid item ID for {field}: {item_id}",
                        field=f"{path}.id",
                        code="invalid_item_id",
                    )
                update(order, item, data, path, False)
            else:
                item = LINE_FACTORIES[line_type]()
                update(order, item, data, path, True)
                order.add_item(item)

            removed = not any(existing is item for existing in order.items)
            if data.get("meta_data") is not None and not removed:
                self._apply_meta(item, data["meta_data"], f"{path}.meta_data")

    def _update_line_item(
        self, order: Order, item: LineItem, data: dict[str, Any], path: str, is_new: bool
    ) -> None:
        if not is_new and data.get("quantity") is not None:
            if parse_int(data["quantity"], f"{path}.quantity") == 0:
                order.remove_item(item.id)
                return

        product_changed = False
        for key in ("product_id", "variation_id"):
            if data.get(key) is not None:
                setattr(item, key, parse_int(data[key], f"{path}.{key}"))
                product_changed = True

        if is_new and not item.product_reference:
            raise ValidationError(
                "Product ID or variation ID must be provided.",
                field=f"{path}.product_id",
                code="missing_product_id",
            )
        product = self._product_for(item, path) if product_changed else None

        if data.get("quantity") is not None:
            item.quantity = parse_int(data["quantity"], f"{path}.quantity", minimum=1)
        if data.get("name") is not None:
            item.name = _text(data["name"])
        elif product is not None and (is_new or not item.name):
            item.name = product.name
        if data.get("tax_class") is not None:
            item.tax_class = _text(data["tax_class"])
        if data.get("taxes") is not None:
            item.taxes = parse_taxes(data["taxes"], f"{path}.taxes")

        subtotal = data.get("subtotal")
        total = data.get("total")
        if subtotal is not None:
            item.subtotal = parse_amount(subtotal, f"{path}.subtotal")
        if total is not None:
            item.total = parse_amount(total, f"{path}.total")

        if subtotal is None and total is None:
            if is_new or product_changed or data.get("quantity") is not None:
                product = product or self._product_for(item, path)
                item.subtotal = item.total = product.price * item.quantity
        elif subtotal is None and is_new:
            item.subtotal = item.total
        elif total is None and is_new:
            item.total = item.subtotal

    def _update_shipping(
        self, order: Order, item: ShippingLine, data: dict[str, Any], path: str, is_new: bool
    ) -> None:
        if is_new and not data.get("method_id"):
            raise ValidationError(
                "Shipping method ID is required.",
                field=f"{path}.method_id",
                code="missing_method_id",
            )
        for key in ("method_id", "method_title", "instance_id"):
            if data.get(key) is not None:
                setattr(item, key, _text(data[key]))
        if data.get("total") is not None:
            item.total = parse_amount(data["total"], f"{path}.total")
        if data.get("taxes") is not None:
            item.taxes = parse_taxes(data["taxes"], f"{path}.taxes")

    def _update_fee(
        self, order: Order, item: FeeLine, data: dict[str, Any], path: str, is_new: bool
    ) -> None:
        if is_new and not data.get("name"):
            raise ValidationError(
                "Fee name is required.", field=f"{path}.name", code="missing_fee_name"
            )
        if data.get("name") is not None:
            item.name = _text(data["name"])
        if data.get("tax_class") is not None:
            item.tax_class = _text(data["tax_class"])
        if data.get("tax_status") is not None:
            if data["tax_status"] not in FEE_TAX_STATUSES:
                raise ValidationError(
                    f"{path}.tax_status is not one of {', '.join(FEE_TAX_STATUSES)}.",
                    field=f"{path}.tax_status",
                )
            item.tax_status = data["tax_status"]
        if data.get("total") is not None:
            item.total = parse_amount(data["total"], f"{path}.total")
            if data.get("amount") is None:
                item.amount = item.total
        if data.get("amount") is not None:
            item.amount = parse_amount(data["amount"], f"{path}.amount")
        if data.get("taxes") is not None:
            item.taxes = parse_taxes(data["taxes"], f"{path}.taxes")

    def _update_coupon(
        self, order: Order, item: CouponLine, data: dict[str, Any], path: str, is_new: bool
    ) -> None:
        if is_new and not data.get("code"):
            raise ValidationError(
                "Coupon code is required.", field=f"{path}.code", code="missing_coupon_code"
            )
        if data.get("code") is None:
            return

        code = format_coupon_code(_text(data["code"]))
        if any(c.code == code and c is not item for c in order.coupon_lines):
            raise ValidationError(
                f"Coupon code {code} has already been applied.",
                field=f"{path}.code",
                code="coupon_already_applied",
            )
        item.code = code
        item.discount = self._coupon_discount(order, code, path)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _product_for(self, item: LineItem, path: str) -> Product:
        product = self.catalog.get(item.product_reference)
        if product is None and item.variation_id and item.product_id:
            product = self.catalog.get(item.product_id)
        if product is None:
            raise ValidationError(
                f"Product ID {item.product_reference} is invalid.",
                field=f"{path}.product_id",
                code="invalid_product_id",
            )
        return product

    def _coupon_discount(self, order: Order, code: str, path: str) -> Decimal:
        if self.coupons is None:
            return Decimal(0)

        coupon = self.coupons.find_by_code(code)
        if coupon is None:
            raise ValidationError(
                f'Coupon "{code}" does not exist!', field=f"{path}.code", code="invalid_coupon"
            )
        if coupon.is_expired():
            raise ValidationError(
                f'Coupon "{code}" has expired.', field=f"{path}.code", code="coupon_expired"
            )
        if coupon.is_usage_exhausted():
            raise ValidationError(
                f'Coupon "{code}" usage limit has been reached.',
                field=f"{path}.code",
                code="coupon_usage_limit_reached",
            )
        return _discount_for_items(coupon, order)

    @staticmethod
    def _apply_meta(target: MetaDataMixin, values: Any, field: str) -> None:
        if not isinstance(values, list):
            raise ValidationError(f"{field} is not of type array.", field=field)
        for index, entry in enumerate(values):
            path = f"{field}[{index}]"
            if not isinstance(entry, dict) or not entry.get("key"):
                raise ValidationError(f"{path} requires a key.", field=f"{path}.key")
            meta_id = entry.get("id")
            target.update_meta_data(
                _text(entry["key"]),
                entry.get("value"),
                parse_int(meta_id, f"{path}.id") if meta_id else None,
            )

    _MUTATIONS: ClassVar[dict[OrderField, Callable[["OrderRequestMapper", Order, Any], None]]] = {
        OrderField.PARENT_ID: _set_parent_id,
        OrderField.STATUS: _set_status,
        OrderField.CURRENCY: _set_currency,
        OrderField.CUSTOMER_ID: _set_customer_id,
        OrderField.CUSTOMER_NOTE: _set_customer_note,
        OrderField.BILLING: _set_billing,
        OrderField.SHIPPING: _set_shipping,
        OrderField.PAYMENT_METHOD: _set_payment_method,
        OrderField.PAYMENT_METHOD_TITLE: _set_payment_method_title,
        OrderField.TRANSACTION_ID: _set_transaction_id,
        OrderField.META_DATA: _set_meta_data,
        OrderField.LINE_ITEMS: _set_line_items,
        OrderField.SHIPPING_LINES: _set_shipping_lines,
        OrderField.FEE_LINES: _set_fee_lines,
        OrderField.COUPON_LINES: _set_coupon_lines,
    }

    @classmethod
    def mapped_fields(cls) -> frozenset[OrderField]:
        """Get the fields that have a mutation."""
        return frozenset(cls._MUTATIONS)


LINE_FACTORIES: dict[LineType, Callable[[], LineGroup]] = {
    LineType.LINE_ITEM: LineItem,
    LineType.SHIPPING: ShippingLine,
    LineType.FEE: FeeLine,
    LineType.COUPON: CouponLine,
}
