"""Order aggregate and its line groups.

An order owns five kinds of line groups (line items, tax lines, shipping
lines, fee lines and coupon lines). Each kind is its own dataclass carrying
only its relevant fields; they are flattened to one record shape only when
a response is built.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar
from uuid import uuid4

STATUS_PREFIX = "wc-"

# Status an order had before it was trashed
TRASH_STATUS_META_KEY = "_wp_trash_meta_status"


# ============================================================================
# Order Status
# ============================================================================


class OrderStatus(str, Enum):
    """Order lifecycle states.

    Statuses are stored with a ``wc-`` prefix (except ``trash``) and
    exposed without it.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    ON_HOLD = "on-hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    FAILED = "failed"
    TRASH = "trash"

    @classmethod
    def parse(cls, value: str) -> "OrderStatus":
        """Parse a prefixed or unprefixed status.

        Args:
            value: Status such as ``processing`` or ``wc-processing``.

        Returns:
            Matching OrderStatus.

        Raises:
            ValueError: If the status is unknown.
        """
        return cls(unprefix_status(value))

    @property
    def internal(self) -> str:
        """Get the stored (prefixed) form of the status."""
        return prefix_status(self.value)

    def needs_payment(self) -> bool:
        """Check if orders in this status are still awaiting payment."""
        return self in {OrderStatus.PENDING, OrderStatus.FAILED}

    def is_paid(self) -> bool:
        """Check if this status implies the order has been paid."""
        return self in {OrderStatus.PROCESSING, OrderStatus.COMPLETED}

    def is_terminal(self) -> bool:
        """Check if this is a terminal status."""
        return self in _TERMINAL_STATUSES


_TERMINAL_STATUSES = {
    OrderStatus.COMPLETED,
    OrderStatus.CANCELLED,
    OrderStatus.REFUNDED,
    OrderStatus.FAILED,
}

# Statuses that exist as registered order statuses (trash is a post status)
REGISTERED_STATUSES = [s.value for s in OrderStatus if s is not OrderStatus.TRASH]


def prefix_status(value: str) -> str:
    """Add the internal prefix to a registered order status."""
    value = unprefix_status(value)
    if value in REGISTERED_STATUSES:
        return STATUS_PREFIX + value
    return value


def unprefix_status(value: str) -> str:
    """Strip the internal prefix from a status."""
    if value.startswith(STATUS_PREFIX):
        return value[len(STATUS_PREFIX):]
    return value


# ============================================================================
# Value Types
# ============================================================================


@dataclass
class Address:
    """Billing or shipping address block."""

    first_name: str = ""
    last_name: str = ""
    company: str = ""
    address_1: str = ""
    address_2: str = ""
    city: str = ""
    state: str = ""
    postcode: str = ""
    country: str = ""
    email: str | None = None
    phone: str | None = None

    FIELDS: ClassVar[tuple[str, ...]] = (
        "first_name",
        "last_name",
        "company",
        "address_1",
        "address_2",
        "city",
        "state",
        "postcode",
        "country",
        "email",
        "phone",
    )

    def merge(self, values: dict[str, Any]) -> None:
        """Merge supplied fields into the address, leaving others intact.

        Args:
            values: Partial address; unknown keys and None are ignored.
        """
        for key, value in values.items():
            if key in self.FIELDS and value is not None:
                setattr(self, key, str(value))

    def to_dict(self, include_contact: bool = True) -> dict[str, Any]:
        """Convert to dictionary.

        Args:
            include_contact: Whether email and phone are part of the block.
        """
        data = {name: getattr(self, name) for name in self.FIELDS}
        if not include_contact:
            data.pop("email")
            data.pop("phone")
        else:
            data["email"] = data["email"] or ""
            data["phone"] = data["phone"] or ""
        return data


@dataclass
class MetaData:
    """A key/value metadata entry with its own identity."""

    id: int
    key: str
    value: Any

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"id": self.id, "key": self.key, "value": self.value}


@dataclass
class TaxAmount:
    """Tax charged for a single tax rate."""

    total: Decimal = Decimal(0)
    subtotal: Decimal | None = None


class MetaDataMixin:
    """Metadata upsert shared by the order and its line groups."""

    meta_data: list[MetaData]

    def get_meta(self, key: str, default: Any = None) -> Any:
        """Get the first metadata value stored under a key."""
        for entry in self.meta_data:
            if entry.key == key:
                return entry.value
        return default

    def update_meta_data(self, key: str, value: Any, meta_id: int | None = None) -> MetaData:
        """Insert or update a metadata entry.

        An id matching an existing entry updates that entry. Without an id,
        the first entry with the same key is updated. Anything else appends.

        Args:
            key: Metadata key.
            value: Metadata value.
            meta_id: Optional id of the entry to update.

        Returns:
            The updated or created entry.
        """
        existing = None
        if meta_id:
            existing = next((m for m in self.meta_data if m.id == meta_id), None)
        else:
            existing = next((m for m in self.meta_data if m.key == key), None)

        if existing is not None:
            existing.key = key
            existing.value = value
            return existing

        entry = MetaData(id=self._next_meta_id(), key=key, value=value)
        self.meta_data.append(entry)
        return entry

    def _next_meta_id(self) -> int:
        return max((m.id for m in self.meta_data), default=0) + 1


# ============================================================================
# Line Groups
# ============================================================================


class LineType(str, Enum):
    """Discriminant of the five line-group variants."""

    LINE_ITEM = "line_item"
    TAX = "tax"
    SHIPPING = "shipping"
    FEE = "fee"
    COUPON = "coupon"


@dataclass(kw_only=True)
class LineGroup(MetaDataMixin):
    """Fields common to every line-group variant."""

    type: ClassVar[LineType]

    id: int = 0
    order_id: int = 0
    name: str = ""
    meta_data: list[MetaData] = field(default_factory=list)

    def to_record(self) -> dict[str, Any]:
        """Get the raw record for this line group.

        Returns:
            Field values keyed by name, including the ``type`` discriminant.
        """
        record: dict[str, Any] = {f.name: getattr(self, f.name) for f in fields(self)}
        record["type"] = self.type.value
        return record


@dataclass(kw_only=True)
class LineItem(LineGroup):
    """A product line."""

    type: ClassVar[LineType] = LineType.LINE_ITEM

    product_id: int = 0
    variation_id: int = 0
    quantity: int = 1
    tax_class: str = ""
    subtotal: Decimal = Decimal(0)
    subtotal_tax: Decimal = Decimal(0)
    total: Decimal = Decimal(0)
    total_tax: Decimal = Decimal(0)
    taxes: dict[int, TaxAmount] = field(default_factory=dict)

    @property
    def product_reference(self) -> int:
        """Get the variation id when set, else the product id."""
        return self.variation_id or self.product_id


@dataclass(kw_only=True)
class TaxLine(LineGroup):
    """A per-rate tax summary line."""

    type: ClassVar[LineType] = LineType.TAX

    rate_code: str = ""
    rate_id: int = 0
    label: str = ""
    compound: bool = False
    tax_total: Decimal = Decimal(0)
    shipping_tax_total: Decimal = Decimal(0)


@dataclass(kw_only=True)
class ShippingLine(LineGroup):
    """A shipping method line."""

    type: ClassVar[LineType] = LineType.SHIPPING

    method_title: str = ""
    method_id: str = ""
    instance_id: str = ""
    total: Decimal = Decimal(0)
    total_tax: Decimal = Decimal(0)
    taxes: dict[int, TaxAmount] = field(default_factory=dict)


@dataclass(kw_only=True)
class FeeLine(LineGroup):
    """A fee line."""

    type: ClassVar[LineType] = LineType.FEE

    tax_class: str = ""
    tax_status: str = "taxable"
    amount: Decimal = Decimal(0)
    total: Decimal = Decimal(0)
    total_tax: Decimal = Decimal(0)
    taxes: dict[int, TaxAmount] = field(default_factory=dict)


@dataclass(kw_only=True)
class CouponLine(LineGroup):
    """An applied coupon line."""

    type: ClassVar[LineType] = LineType.COUPON

    code: str = ""
    discount: Decimal = Decimal(0)
    discount_tax: Decimal = Decimal(0)


LINE_TYPES: dict[LineType, type[LineGroup]] = {
    LineType.LINE_ITEM: LineItem,
    LineType.TAX: TaxLine,
    LineType.SHIPPING: ShippingLine,
    LineType.FEE: FeeLine,
    LineType.COUPON: CouponLine,
}


@dataclass
class Refund:
    """Read-only view of a refund issued against an order."""

    id: int
    amount: Decimal
    reason: str | None = None
    date_created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# ============================================================================
# Order Aggregate Root
# ============================================================================


@dataclass(kw_only=True)
class Order(MetaDataMixin):
    """Order aggregate root.

    Monetary totals are Decimals written only by the totals calculator.
    An id of 0 means the order has not been persisted yet.

    Attributes:
        id: Order identifier.
        status: Current order status.
        customer_id: Owning customer, 0 for guests.
        items: Line groups of every variant, in insertion order.
        refunds: Refunds issued against the order.
    """

    id: int = 0
    parent_id: int = 0
    status: OrderStatus = OrderStatus.PENDING
    currency: str = "USD"
    order_key: str = field(default_factory=lambda: f"wc_order_{uuid4().hex[:13]}")
    created_via: str = ""
    prices_include_tax: bool = False
    customer_id: int = 0
    customer_ip_address: str = ""
    customer_user_agent: str = ""
    customer_note: str = ""
    billing: Address = field(default_factory=Address)
    shipping: Address = field(default_factory=Address)
    payment_method: str = ""
    payment_method_title: str = ""
    transaction_id: str = ""
    cart_hash: str = ""

    discount_total: Decimal = Decimal(0)
    discount_tax: Decimal = Decimal(0)
    shipping_total: Decimal = Decimal(0)
    shipping_tax: Decimal = Decimal(0)
    cart_tax: Decimal = Decimal(0)
    total: Decimal = Decimal(0)

    date_created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    date_modified: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    date_paid: datetime | None = None
    date_completed: datetime | None = None

    meta_data: list[MetaData] = field(default_factory=list)
    items: list[LineGroup] = field(default_factory=list)
    refunds: list[Refund] = field(default_factory=list)

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    @property
    def number(self) -> str:
        """Get the public order number."""
        return str(self.id)

    @property
    def total_tax(self) -> Decimal:
        """Get the sum of cart and shipping taxes."""
        return self.cart_tax + self.shipping_tax

    @property
    def subtotal(self) -> Decimal:
        """Get line item subtotals plus fee totals, before discounts."""
        line_subtotal = sum((i.subtotal for i in self.line_items), Decimal(0))
        fee_total = sum((f.total for f in self.fee_lines), Decimal(0))
        return line_subtotal + fee_total

    def get_items(self, line_type: LineType) -> list[LineGroup]:
        """Get line groups of one variant.

        Args:
            line_type: Variant to select.

        Returns:
            Matching line groups in insertion order.
        """
        return [item for item in self.items if item.type is line_type]

    @property
    def line_items(self) -> list[LineItem]:
        return self.get_items(LineType.LINE_ITEM)  # type: ignore[return-value]

    @property
    def tax_lines(self) -> list[TaxLine]:
        return self.get_items(LineType.TAX)  # type: ignore[return-value]

    @property
    def shipping_lines(self) -> list[ShippingLine]:
        return self.get_items(LineType.SHIPPING)  # type: ignore[return-value]

    @property
    def fee_lines(self) -> list[FeeLine]:
        return self.get_items(LineType.FEE)  # type: ignore[return-value]

    @property
    def coupon_lines(self) -> list[CouponLine]:
        return self.get_items(LineType.COUPON)  # type: ignore[return-value]

    def get_item(self, item_id: int, line_type: LineType | None = None) -> LineGroup | None:
        """Get a line group by id.

        Args:
            item_id: Line group id.
            line_type: Optional variant the item must be.

        Returns:
            The line group, or None if not part of this order.
        """
        for item in self.items:
            if item.id == item_id and (line_type is None or item.type is line_type):
                return item
        return None

    def needs_payment(self) -> bool:
        """Check if the order is still awaiting a payment."""
        return self.status.needs_payment() and self.total > 0

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add_item(self, item: LineGroup) -> LineGroup:
        """Attach a line group, assigning an id unique within the order.

        Args:
            item: Line group to add.

        Returns:
            The added line group.
        """
        item.id = max((i.id for i in self.items), default=0) + 1
        item.order_id = self.id
        self.items.append(item)
        return item

    def remove_item(self, item_id: int) -> LineGroup | None:
        """Detach a line group.

        Args:
            item_id: Id of the line group to remove.

        Returns:
            The removed line group, or None if not found.
        """
        item = self.get_item(item_id)
        if item is not None:
            self.items.remove(item)
        return item

    def remove_items(self, line_type: LineType) -> None:
        """Detach every line group of one variant."""
        self.items = [item for item in self.items if item.type is not line_type]

    def assign_id(self, order_id: int) -> None:
        """Set the order id once persisted and relink line groups."""
        self.id = order_id
        for item in self.items:
            item.order_id = order_id

    def set_status(self, status: OrderStatus) -> OrderStatus:
        """Move the order to a new status, stamping payment dates.

        Moving to processing or completed records the paid date if unset;
        moving to completed records the completed date if unset.

        Args:
            status: New status.

        Returns:
            The previous status.
        """
        previous = self.status
        self.status = status
        now = datetime.now(timezone.utc)
        if status.is_paid() and self.date_paid is None:
            self.date_paid = now
        if status is OrderStatus.COMPLETED and self.date_completed is None:
            self.date_completed = now
        return previous

    def touch(self) -> None:
        """Update the modification timestamp."""
        self.date_modified = datetime.now(timezone.utc)
