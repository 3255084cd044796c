"""Order response builder.

Renders an ``Order`` into its external JSON shape: formatted totals,
local/UTC date pairs, unprefixed status and normalized line groups.
"""

from typing import Any

from storeapi.application.store_config import StoreConfig
from storeapi.domain.currency import currency_symbol
from storeapi.domain.exceptions import ValidationError
from storeapi.domain.formatting import format_datetime, format_decimal
from storeapi.domain.normalizer import SkuLookup, normalize_line_group
from storeapi.domain.order import LineType, Order

CONTEXTS = ("view", "edit")

DATE_FIELDS = ("date_created", "date_modified", "date_paid", "date_completed")

TOTAL_FIELDS = (
    "discount_total",
    "discount_tax",
    "shipping_total",
    "shipping_tax",
    "cart_tax",
    "total",
    "total_tax",
)

LINE_COLLECTIONS = {
    "line_items": LineType.LINE_ITEM,
    "tax_lines": LineType.TAX,
    "shipping_lines": LineType.SHIPPING,
    "fee_lines": LineType.FEE,
    "coupon_lines": LineType.COUPON,
}

ORDER_FIELDS = (
    "id",
    "parent_id",
    "number",
    "order_key",
    "created_via",
    "status",
    "currency",
    "currency_symbol",
    "date_created",
    "date_created_gmt",
    "date_modified",
    "date_modified_gmt",
    *TOTAL_FIELDS,
    "prices_include_tax",
    "customer_id",
    "customer_ip_address",
    "customer_user_agent",
    "customer_note",
    "billing",
    "shipping",
    "payment_method",
    "payment_method_title",
    "transaction_id",
    "date_paid",
    "date_paid_gmt",
    "date_completed",
    "date_completed_gmt",
    "cart_hash",
    "needs_payment",
    "meta_data",
    *LINE_COLLECTIONS,
    "refunds",
)


def requested_fields(fields: list[str] | None) -> set[str] | None:
    """Resolve a ``_fields`` selection to top-level keys.

    Nested selections (``line_items.name``) select their top-level key and
    every date key brings its ``_gmt`` counterpart.

    Args:
        fields: Requested field names, None for all.

    Returns:
        Set of top-level keys, or None for all.
    """
    if not fields:
        return None
    selected = set()
    for name in fields:
        key = name.strip().split(".", 1)[0]
        if not key:
            continue
        selected.add(key)
        if key in DATE_FIELDS:
            selected.add(f"{key}_gmt")
    return selected or None


class OrderResponseBuilder:
    """Builds order representations.

    Attributes:
        config: Store configuration snapshot (precision and timezone).
        sku_lookup: Resolves product ids to SKUs for line items.
    """

    def __init__(self, config: StoreConfig, sku_lookup: SkuLookup | None = None) -> None:
        self.config = config
        self.sku_lookup = sku_lookup

    def prepare(
        self,
        order: Order,
        context: str = "view",
        fields: list[str] | None = None,
    ) -> dict[str, Any]:
        """Render an order.

        Args:
            order: Order to render.
            context: Request context, ``view`` or ``edit``.
            fields: Optional ``_fields`` selection.

        Returns:
            JSON-ready mapping.

        Raises:
            ValidationError: If the context is unknown.
        """
        if context not in CONTEXTS:
            raise ValidationError(f"Invalid context: {context}", field="context")
        precision = self.config.price_decimals
        tz = self.config.tzinfo

        data: dict[str, Any] = {
            "id": order.id,
            "parent_id": order.parent_id,
            "number": order.number,
            "order_key": order.order_key,
            "created_via": order.created_via,
            "status": order.status.value,
            "currency": order.currency,
            "currency_symbol": currency_symbol(order.currency),
            "prices_include_tax": order.prices_include_tax,
            "customer_id": order.customer_id,
            "customer_ip_address": order.customer_ip_address,
            "customer_user_agent": order.customer_user_agent,
            "customer_note": order.customer_note,
            "billing": order.billing.to_dict(include_contact=True),
            "shipping": order.shipping.to_dict(include_contact=False),
            "payment_method": order.payment_method,
            "payment_method_title": order.payment_method_title,
            "transaction_id": order.transaction_id,
            "cart_hash": order.cart_hash,
            "needs_payment": order.needs_payment(),
            "meta_data": [entry.to_dict() for entry in order.meta_data],
        }

        for name in TOTAL_FIELDS:
            data[name] = format_decimal(getattr(order, name), precision)

        for name in DATE_FIELDS:
            data[name], data[f"{name}_gmt"] = format_datetime(getattr(order, name), tz)

        for name, line_type in LINE_COLLECTIONS.items():
            data[name] = [
                normalize_line_group(item, precision, self.sku_lookup)
                for item in order.get_items(line_type)
            ]

        data["refunds"] = [
            {
                "id": refund.id,
                "reason": refund.reason or "",
                "total": format_decimal(-refund.amount, precision),
            }
            for refund in order.refunds
        ]

        selected = requested_fields(fields)
        return {
            key: data[key]
            for key in ORDER_FIELDS
            if key in data and (selected is None or key in selected)
        }
