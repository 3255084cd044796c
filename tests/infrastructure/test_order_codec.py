"""Tests for the order document codec."""

import json
from datetime import datetime, timezone
from decimal import Decimal

from storeapi.domain.order import (
    Address,
    CouponLine,
    FeeLine,
    LineItem,
    LineType,
    Order,
    OrderStatus,
    Refund,
    ShippingLine,
    TaxAmount,
    TaxLine,
)
from storeapi.infrastructure.order_codec import (
    DOCUMENT_VERSION,
    decode_line_group,
    encode_line_group,
    order_from_document,
    order_search_text,
    order_to_document,
)


def full_order() -> Order:
    order = Order(
        id=4,
        status=OrderStatus.ON_HOLD,
        billing=Address(first_name="Ada", email="ada@example.com"),
        total=Decimal("12.345"),
        date_paid=datetime(2024, 2, 1, 9, 30, tzinfo=timezone.utc),
    )
    order.update_meta_data("gift", {"wrap": True})
    item = LineItem(
        product_id=10,
        name="Widget",
        subtotal=Decimal("10.00"),
        total=Decimal("9.50"),
        taxes={3: TaxAmount(total=Decimal("0.95"), subtotal=Decimal("1.00"))},
    )
    item.update_meta_data("engraving", "A")
    order.add_item(item)
    order.add_item(TaxLine(rate_id=3, rate_code="TAX-3", tax_total=Decimal("0.95")))
    order.add_item(ShippingLine(method_id="flat_rate", total=Decimal("2")))
    order.add_item(FeeLine(name="Fee", tax_status="none", total=Decimal("1")))
    order.add_item(CouponLine(code="save", discount=Decimal("0.5")))
    order.refunds.append(Refund(id=1, amount=Decimal("1"), reason="late"))
    return order


class TestOrderDocument:
    """Tests for order_to_document and order_from_document."""

    def test_document_is_json_safe(self) -> None:
        """Documents survive a JSON round trip with exact amounts."""
        document = json.loads(json.dumps(order_to_document(full_order())))

        assert document["version"] == DOCUMENT_VERSION
        assert document["total"] == "12.345"
        assert document["status"] == "on-hold"
        assert [item["type"] for item in document["items"]] == [
            "line_item",
            "tax",
            "shipping",
            "fee",
            "coupon",
        ]

    def test_decode_restores_aggregate(self) -> None:
        """Decoding restores types, variants, taxes and metadata."""
        original = full_order()
        document = json.loads(json.dumps(order_to_document(original)))
        order = order_from_document(document)

        assert order == original
        assert order.status is OrderStatus.ON_HOLD
        assert isinstance(order.total, Decimal)
        assert order.date_paid == original.date_paid
        assert order.line_items[0].taxes == {
            3: TaxAmount(total=Decimal("0.95"), subtotal=Decimal("1.00"))
        }
        assert order.line_items[0].get_meta("engraving") == "A"
        assert order.get_meta("gift") == {"wrap": True}
        assert order.get_items(LineType.TAX)[0].rate_code == "TAX-3"

    def test_missing_fields_take_defaults(self) -> None:
        """Older documents without newer fields still decode."""
        order = order_from_document({"id": 3, "status": "pending", "version": 1})

        assert order.id == 3
        assert order.items == []
        assert order.currency == "USD"


class TestLineGroupCodec:
    """Tests for tagged line-group records."""

    def test_tagged_record(self) -> None:
        """The type tag selects the variant."""
        record = encode_line_group(FeeLine(id=2, name="Fee", total=Decimal("1.5")))
        assert record["type"] == "fee"

        fee = decode_line_group(record)
        assert isinstance(fee, FeeLine)
        assert fee.total == Decimal("1.5")


class TestSearchText:
    """Tests for order_search_text."""

    def test_search_text(self) -> None:
        """Addresses and item names are lower-cased into one string."""
        text = order_search_text(full_order())

        assert "ada" in text
        assert "ada@example.com" in text
        assert "widget" in text
        assert "fee" not in text
