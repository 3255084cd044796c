"""Domain layer - order aggregate, coupons, customers and formatting rules.

Example usage:
    from storeapi.domain import LineItem, Order, format_decimal

    order = Order()
    order.add_item(LineItem(name="Widget", quantity=2))
    print(format_decimal(order.total))  # 0.00
"""

from storeapi.domain.coupon import Coupon, CouponStatus, DiscountType
from storeapi.domain.customer import Customer
from storeapi.domain.exceptions import (
    AlreadyTrashedError,
    ConflictError,
    DomainError,
    NotFoundError,
    PersistenceError,
    StoreApiError,
    TrashNotSupportedError,
    ValidationError,
)
from storeapi.domain.formatting import format_datetime, format_decimal, parse_datetime
from storeapi.domain.order import (
    Address,
    CouponLine,
    FeeLine,
    LineItem,
    LineType,
    MetaData,
    Order,
    OrderStatus,
    ShippingLine,
    TaxAmount,
    TaxLine,
)

__all__ = [
    # Entities
    "Order",
    "Coupon",
    "Customer",
    # Line groups
    "LineType",
    "LineItem",
    "TaxLine",
    "ShippingLine",
    "FeeLine",
    "CouponLine",
    # Value objects
    "Address",
    "MetaData",
    "TaxAmount",
    # Enums
    "OrderStatus",
    "CouponStatus",
    "DiscountType",
    # Formatting
    "format_decimal",
    "format_datetime",
    "parse_datetime",
    # Exceptions
    "StoreApiError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "TrashNotSupportedError",
    "AlreadyTrashedError",
    "DomainError",
    "PersistenceError",
]
