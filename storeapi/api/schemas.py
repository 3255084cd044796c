"""API schemas for the store API.

Pydantic models validating request bodies. Responses are rendered by the
response builders so ``_fields`` and ``dp`` can shape them.
"""

from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, Field


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(default=None, description="Field that caused the error")
    message: str = Field(..., description="Error message")


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | list[ErrorDetail] = Field(
        default_factory=dict, description="Additional error details"
    )
    request_id: str | None = Field(default=None, description="Request ID for correlation")


class PaginatedResponse(BaseModel):
    """Base paginated response."""

    items: list[dict[str, Any]] = Field(..., description="Rendered resources")
    total: int = Field(..., description="Total number of items")
    total_pages: int = Field(..., description="Total number of pages")
    page: int = Field(..., description="Current page number")
    per_page: int = Field(..., description="Items per page")
    has_more: bool = Field(..., description="Whether there are more pages")


class MetaDataSchema(BaseModel):
    """Metadata entry; an id targets an existing entry."""

    id: int | None = Field(default=None, description="Metadata entry ID")
    key: str = Field(..., min_length=1, description="Metadata key")
    value: Any = Field(default=None, description="Metadata value")


class AddressSchema(BaseModel):
    """Billing or shipping address; omitted fields are left unchanged."""

    first_name: str | None = None
    last_name: str | None = None
    company: str | None = None
    address_1: str | None = None
    address_2: str | None = None
    city: str | None = None
    state: str | None = None
    postcode: str | None = None
    country: str | None = None
    email: str | None = None
    phone: str | None = None


# ============================================================================
# Order Schemas
# ============================================================================


class TaxSchema(BaseModel):
    """Tax charged for one rate."""

    id: int = Field(..., ge=1, description="Tax rate ID")
    total: Decimal = Field(default=Decimal(0), description="Tax total")
    subtotal: Decimal | None = Field(default=None, description="Tax subtotal, before discounts")


class LineItemSchema(BaseModel):
    """Line item write model."""

    id: int | None = Field(default=None, description="Existing item ID")
    name: str | None = None
    product_id: int | None = Field(default=None, ge=0)
    variation_id: int | None = Field(default=None, ge=0)
    quantity: int | None = Field(default=None, ge=0, description="0 removes an existing item")
    tax_class: str | None = None
    subtotal: Decimal | None = None
    total: Decimal | None = None
    taxes: list[TaxSchema] | None = None
    meta_data: list[MetaDataSchema] | None = None


class ShippingLineSchema(BaseModel):
    """Shipping line write model."""

    id: int | None = None
    method_title: str | None = None
    method_id: str | None = None
    instance_id: str | None = None
    total: Decimal | None = None
    taxes: list[TaxSchema] | None = None
    meta_data: list[MetaDataSchema] | None = None


class FeeLineSchema(BaseModel):
    """Fee line write model."""

    id: int | None = None
    name: str | None = None
    tax_class: str | None = None
    tax_status: Literal["taxable", "none"] | None = None
    amount: Decimal | None = None
    total: Decimal | None = None
    taxes: list[TaxSchema] | None = None
    meta_data: list[MetaDataSchema] | None = None


class CouponLineSchema(BaseModel):
    """Coupon line write model."""

    id: int | None = None
    code: str | None = None
    meta_data: list[MetaDataSchema] | None = None


class OrderWriteRequest(BaseModel):
    """Request to create or update an order. Every field is optional."""

    parent_id: int | None = Field(default=None, ge=0)
    status: str | None = Field(default=None, description="Order status, prefixed or not")
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    customer_id: int | None = Field(default=None, ge=0, description="0 for guests")
    customer_note: str | None = None
    billing: AddressSchema | None = None
    shipping: AddressSchema | None = None
    payment_method: str | None = None
    payment_method_title: str | None = None
    transaction_id: str | None = None
    meta_data: list[MetaDataSchema] | None = None
    line_items: list[LineItemSchema] | None = None
    shipping_lines: list[ShippingLineSchema] | None = None
    fee_lines: list[FeeLineSchema] | None = None
    coupon_lines: list[CouponLineSchema] | None = None
    set_paid: bool = Field(default=False, description="Complete payment after saving")

    def to_payload(self) -> dict[str, Any]:
        """Get the request as a plain payload, without null values."""
        return self.model_dump(exclude_none=True)


# ============================================================================
# Coupon Schemas
# ============================================================================


class CouponWriteRequest(BaseModel):
    """Request to create or update a coupon."""

    code: str | None = Field(default=None, description="Coupon code, required on create")
    amount: Decimal | None = Field(default=None, ge=0)
    discount_type: Literal["percent", "fixed_cart", "fixed_product"] | None = None
    description: str | None = None
    date_expires: str | None = Field(default=None, description="ISO-8601 expiry, site time")
    individual_use: bool | None = None
    product_ids: list[int] | None = None
    excluded_product_ids: list[int] | None = None
    usage_limit: int | None = Field(default=None, ge=0)
    usage_limit_per_user: int | None = Field(default=None, ge=0)
    free_shipping: bool | None = None
    minimum_amount: Decimal | None = Field(default=None, ge=0)
    maximum_amount: Decimal | None = Field(default=None, ge=0)
    email_restrictions: list[str] | None = None
    meta_data: list[MetaDataSchema] | None = None

    def to_payload(self) -> dict[str, Any]:
        """Get the request as a plain payload, without null values."""
        return self.model_dump(exclude_none=True)


# ============================================================================
# Customer Schemas
# ============================================================================


class CustomerWriteRequest(BaseModel):
    """Request to create or update a customer."""

    id: int | None = Field(default=None, description="Rejected on create")
    email: str | None = Field(default=None, description="Email, required on create")
    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None
    password: str | None = Field(default=None, description="Accepted and not stored")
    billing: AddressSchema | None = None
    shipping: AddressSchema | None = None
    meta_data: list[MetaDataSchema] | None = None

    def to_payload(self) -> dict[str, Any]:
        """Get the request as a plain payload, without null values or password."""
        return self.model_dump(exclude_none=True, exclude={"password"})
