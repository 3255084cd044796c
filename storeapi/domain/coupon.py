"""Coupon entity."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from storeapi.domain.order import MetaData, MetaDataMixin


class DiscountType(str, Enum):
    """How a coupon amount is applied."""

    PERCENT = "percent"
    FIXED_CART = "fixed_cart"
    FIXED_PRODUCT = "fixed_product"


class CouponStatus(str, Enum):
    """Coupon post status."""

    PUBLISH = "publish"
    TRASH = "trash"


def format_coupon_code(code: str) -> str:
    """Normalize a coupon code for storage and comparison."""
    return code.strip().lower()


@dataclass(kw_only=True)
class Coupon(MetaDataMixin):
    """A discount coupon.

    Attributes:
        code: Unique, lower-cased coupon code.
        amount: Percentage or fixed amount depending on discount type.
        usage_limit: Total uses allowed, 0 for unlimited.
    """

    id: int = 0
    code: str = ""
    amount: Decimal = Decimal(0)
    discount_type: DiscountType = DiscountType.FIXED_CART
    description: str = ""
    status: CouponStatus = CouponStatus.PUBLISH
    date_expires: datetime | None = None
    usage_count: int = 0
    usage_limit: int = 0
    usage_limit_per_user: int = 0
    individual_use: bool = False
    free_shipping: bool = False
    product_ids: list[int] = field(default_factory=list)
    excluded_product_ids: list[int] = field(default_factory=list)
    minimum_amount: Decimal = Decimal(0)
    maximum_amount: Decimal = Decimal(0)
    email_restrictions: list[str] = field(default_factory=list)
    used_by: list[str] = field(default_factory=list)
    meta_data: list[MetaData] = field(default_factory=list)
    date_created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    date_modified: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if the coupon expiry date has passed."""
        if self.date_expires is None:
            return False
        return (now or datetime.now(timezone.utc)) > self.date_expires

    def is_usage_exhausted(self) -> bool:
        """Check if the coupon reached its usage limit."""
        return bool(self.usage_limit) and self.usage_count >= self.usage_limit

    def discount_for(self, subtotal: Decimal, quantity: int) -> Decimal:
        """Compute the discount this coupon grants.

        Args:
            subtotal: Sum of eligible line subtotals.
            quantity: Number of eligible units.

        Returns:
            Discount amount, never more than the subtotal.
        """
        if self.discount_type is DiscountType.PERCENT:
            discount = subtotal * self.amount / Decimal(100)
        elif self.discount_type is DiscountType.FIXED_PRODUCT:
            discount = self.amount * quantity
        else:
            discount = self.amount
        return max(min(discount, subtotal), Decimal(0))

    def touch(self) -> None:
        """Update the modification timestamp."""
        self.date_modified = datetime.now(timezone.utc)
