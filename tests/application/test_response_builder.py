"""Tests for the order response builder."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from storeapi.application.order_response import OrderResponseBuilder, requested_fields
from storeapi.application.store_config import StoreConfig
from storeapi.domain.exceptions import ValidationError
from storeapi.domain.order import (
    Address,
    LineItem,
    Order,
    OrderStatus,
    Refund,
    ShippingLine,
)


@pytest.fixture
def order() -> Order:
    """A paid order with one line item and one shipping line."""
    order = Order(
        id=7,
        status=OrderStatus.PROCESSING,
        currency="EUR",
        billing=Address(first_name="Ada", email="ada@example.com"),
        shipping=Address(city="Paris"),
        total=Decimal("30"),
        shipping_total=Decimal("5"),
        date_created=datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
        date_paid=datetime(2024, 3, 1, 12, 5, tzinfo=timezone.utc),
    )
    order.add_item(
        LineItem(product_id=10, quantity=2, subtotal=Decimal("25"), total=Decimal("25"))
    )
    order.add_item(ShippingLine(method_id="flat_rate", method_title="Flat", total=Decimal("5")))
    order.refunds.append(Refund(id=3, amount=Decimal("4.5"), reason="Damaged"))
    return order


class TestOrderResponseBuilder:
    """Tests for OrderResponseBuilder.prepare."""

    def test_shape(self, order: Order) -> None:
        """Core fields are rendered in their external form."""
        data = OrderResponseBuilder(StoreConfig()).prepare(order)

        assert data["id"] == 7
        assert data["number"] == "7"
        assert data["status"] == "processing"
        assert data["currency_symbol"] == "€"
        assert data["total"] == "30.00"
        assert data["shipping_total"] == "5.00"
        assert data["total_tax"] == "0.00"
        assert data["needs_payment"] is False

    def test_dates(self, order: Order) -> None:
        """Dates render as site-local and UTC pairs; unset dates are null."""
        config = StoreConfig(timezone="Europe/Paris")
        data = OrderResponseBuilder(config).prepare(order)

        assert data["date_created"] == "2024-03-01T13:00:00"
        assert data["date_created_gmt"] == "2024-03-01T12:00:00"
        assert data["date_paid_gmt"] == "2024-03-01T12:05:00"
        assert data["date_completed"] is None
        assert data["date_completed_gmt"] is None

    def test_addresses(self, order: Order) -> None:
        """Billing carries contact fields; shipping does not."""
        data = OrderResponseBuilder(StoreConfig()).prepare(order)

        assert data["billing"]["email"] == "ada@example.com"
        assert data["billing"]["phone"] == ""
        assert "email" not in data["shipping"]
        assert data["shipping"]["city"] == "Paris"

    def test_line_groups(self, order: Order) -> None:
        """Line groups are normalized with SKUs and unit prices."""
        builder = OrderResponseBuilder(StoreConfig(), {10: "WID-10"}.get)
        data = builder.prepare(order)

        (item,) = data["line_items"]
        assert item["sku"] == "WID-10"
        assert item["price"] == "12.50"
        assert item["total"] == "25.00"
        (shipping,) = data["shipping_lines"]
        assert shipping["method_title"] == "Flat"
        assert "name" not in shipping
        assert data["tax_lines"] == []

    def test_refunds_are_negative(self, order: Order) -> None:
        """Refund totals render negated."""
        data = OrderResponseBuilder(StoreConfig()).prepare(order)

        assert data["refunds"] == [{"id": 3, "reason": "Damaged", "total": "-4.50"}]

    def test_precision(self, order: Order) -> None:
        """Requested precision applies to every amount."""
        data = OrderResponseBuilder(StoreConfig().with_precision(3)).prepare(order)

        assert data["total"] == "30.000"
        assert data["line_items"][0]["subtotal"] == "25.000"

    def test_field_selection(self, order: Order) -> None:
        """_fields keeps selected top-level keys and date pairs."""
        data = OrderResponseBuilder(StoreConfig()).prepare(
            order, fields=["id", "line_items.name", "date_created"]
        )

        assert set(data) == {"id", "line_items", "date_created", "date_created_gmt"}

    def test_needs_payment(self) -> None:
        """Pending orders with a positive total need payment."""
        order = Order(total=Decimal("1"))
        assert OrderResponseBuilder(StoreConfig()).prepare(order)["needs_payment"] is True

    def test_invalid_context(self, order: Order) -> None:
        """Only view and edit contexts are accepted."""
        with pytest.raises(ValidationError):
            OrderResponseBuilder(StoreConfig()).prepare(order, context="embed")


class TestRequestedFields:
    """Tests for _fields resolution."""

    def test_empty_selection(self) -> None:
        """No selection means every field."""
        assert requested_fields(None) is None
        assert requested_fields([]) is None
        assert requested_fields([" "]) is None

    def test_nested_and_dates(self) -> None:
        """Nested names select their parent; dates bring their GMT twin."""
        assert requested_fields(["billing.city", "date_paid"]) == {
            "billing",
            "date_paid",
            "date_paid_gmt",
        }


class TestStoreConfig:
    """Tests for StoreConfig helpers."""

    def test_with_precision(self) -> None:
        """Precision overrides return a copy; None keeps the original."""
        config = StoreConfig(currency="EUR")
        assert config.with_precision(None) is config
        assert config.with_precision(4).price_decimals == 4
        assert config.with_precision(4).currency == "EUR"

    def test_tzinfo(self) -> None:
        """Named timezones resolve through zoneinfo."""
        assert StoreConfig().tzinfo is timezone.utc
        winter = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert StoreConfig(timezone="Europe/Paris").tzinfo.utcoffset(winter) == timedelta(hours=1)
