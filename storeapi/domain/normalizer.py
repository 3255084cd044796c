"""Line-group normalization.

Flattens any line-group variant into the external record shape used in
order responses.
"""

from collections.abc import Callable
from decimal import Decimal
from typing import Any

from storeapi.domain.formatting import format_decimal
from storeapi.domain.order import LineGroup, LineItem, LineType, TaxAmount

SkuLookup = Callable[[int], str | None]

MONETARY_FIELDS = (
    "subtotal",
    "subtotal_tax",
    "total",
    "total_tax",
    "tax_total",
    "shipping_tax_total",
    "amount",
    "discount",
    "discount_tax",
)

# Variant-specific fields that make the generic name redundant
NAME_OVERRIDES = ("code", "rate_code", "method_title")

INTERNAL_FIELDS = ("order_id", "type")

# Variants whose tax breakdown carries a subtotal per rate
_TAX_SUBTOTAL_TYPES = {LineType.LINE_ITEM, LineType.FEE}


def explode_taxes(
    taxes: dict[Any, TaxAmount | dict[str, Any]], with_subtotal: bool = True
) -> list[dict[str, Any]]:
    """Explode a rate-keyed tax breakdown into an ordered list.

    Args:
        taxes: Mapping of tax rate id to its amounts.
        with_subtotal: Whether each entry carries a subtotal key.

    Returns:
        List of ``{id, total, subtotal}`` records in breakdown order.
        A missing subtotal renders as an empty string.
    """
    exploded = []
    for rate_id, amounts in taxes.items():
        if isinstance(amounts, TaxAmount):
            total, subtotal = amounts.total, amounts.subtotal
        else:
            total, subtotal = amounts.get("total"), amounts.get("subtotal")
        entry: dict[str, Any] = {"id": int(rate_id), "total": _raw_amount(total)}
        if with_subtotal:
            entry["subtotal"] = _raw_amount(subtotal) if subtotal is not None else ""
        exploded.append(entry)
    return exploded


def unit_price(total: Decimal, quantity: int, precision: int) -> str:
    """Derive the unit price of a line, zero when quantity is zero."""
    if not quantity:
        return format_decimal(0, precision)
    return format_decimal(total / Decimal(quantity), precision)


def normalize_line_group(
    item: LineGroup, precision: int, sku_lookup: SkuLookup | None = None
) -> dict[str, Any]:
    """Convert a line group into its external record.

    Args:
        item: Any line-group variant.
        precision: Decimal places for monetary fields.
        sku_lookup: Resolves a product id to its SKU.

    Returns:
        Flat mapping ready for JSON encoding.
    """
    data = item.to_record()

    for key in MONETARY_FIELDS:
        if key in data:
            data[key] = format_decimal(data[key], precision)

    if "taxes" in data:
        data["taxes"] = explode_taxes(
            data["taxes"], with_subtotal=item.type in _TAX_SUBTOTAL_TYPES
        )

    if isinstance(item, LineItem):
        reference = item.product_reference
        data["sku"] = sku_lookup(reference) if sku_lookup and reference else None
        data["price"] = unit_price(item.total, item.quantity, precision)

    data["meta_data"] = [entry.to_dict() for entry in item.meta_data]

    if any(key in data for key in NAME_OVERRIDES):
        data.pop("name", None)

    for key in INTERNAL_FIELDS:
        data.pop(key, None)

    return data


def _raw_amount(value: Any) -> str:
    if isinstance(value, Decimal):
        return f"{value:f}"
    return "" if value is None else str(value)
