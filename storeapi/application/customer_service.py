"""Customer application service.

CRUD for customer accounts. Emails are unique; customers cannot be
trashed, so deleting requires ``force``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import structlog

from storeapi.application.order_request import parse_int
from storeapi.application.paging import Page, paginate
from storeapi.application.store_config import StoreConfig
from storeapi.domain.customer import Customer
from storeapi.domain.exceptions import (
    ConflictError,
    NotFoundError,
    TrashNotSupportedError,
    ValidationError,
)
from storeapi.domain.formatting import parse_datetime
from storeapi.infrastructure.memory_store import InMemoryCustomerRepository
from storeapi.infrastructure.stores import get_customer_repository

logger = structlog.get_logger()

ALL_ROLES = "all"

CUSTOMER_ORDERBY = ("id", "include", "name", "registered_date")

PROFILE_FIELDS = ("first_name", "last_name", "username")


@dataclass
class CustomerFilters:
    """REST collection parameters for customers."""

    email: str | None = None
    search: str | None = None
    role: str = "customer"
    created_since: datetime | str | None = None
    created_before: datetime | str | None = None
    include: list[int] = field(default_factory=list)
    exclude: list[int] = field(default_factory=list)
    page: int = 1
    per_page: int = 10
    offset: int | None = None
    order: str = "asc"
    orderby: str = "name"


def _normalize_email(value: Any) -> str:
    email = str(value).strip()
    local, _, domain = email.partition("@")
    if not local or "." not in domain:
        raise ValidationError(
            f"Invalid email address: {email}", field="email", code="invalid_email"
        )
    return email


class CustomerService:
    """Application service for the customer resource."""

    def __init__(
        self,
        repo: InMemoryCustomerRepository,
        config: StoreConfig | None = None,
        request_id: str | None = None,
    ) -> None:
        """Initialize service.

        Args:
            repo: Customer repository.
            config: Store configuration snapshot.
            request_id: Request ID for correlation.
        """
        self.repo = repo
        self.config = config or StoreConfig()
        self.request_id = request_id

    async def create_customer(self, payload: dict[str, Any]) -> Customer:
        """Create a customer.

        Raises:
            ValidationError: If an id is supplied or the email is missing.
            ConflictError: If the email is already registered.
        """
        if payload.get("id"):
            raise ValidationError(
                "Cannot create existing resource.", field="id", code="customer_exists"
            )
        if not str(payload.get("email") or "").strip():
            raise ValidationError(
                "Missing parameter(s): email", field="email", code="rest_missing_callback_param"
            )

        customer = Customer()
        self._apply(customer, payload)
        if not customer.username:
            customer.username = customer.email.partition("@")[0]
        self.repo.save(customer)

        logger.info("Customer created", customer_id=customer.id, request_id=self.request_id)
        return customer

    async def get_customer(self, customer_id: int) -> Customer:
        """Get a customer by ID.

        Raises:
            NotFoundError: If the customer does not exist.
        """
        customer = self.repo.get(customer_id)
        if customer is None:
            raise NotFoundError("customer", customer_id)
        return customer

    async def update_customer(self, customer_id: int, payload: dict[str, Any]) -> Customer:
        """Apply a partial update to a customer.

        Raises:
            NotFoundError: If the customer does not exist.
            ConflictError: If the new email is already registered.
        """
        customer = await self.get_customer(customer_id)
        self._apply(customer, payload)
        customer.touch()
        self.repo.save(customer)

        logger.info("Customer updated", customer_id=customer.id, request_id=self.request_id)
        return customer

    async def delete_customer(self, customer_id: int, force: bool = False) -> Customer:
        """Delete a customer permanently.

        Args:
            customer_id: Customer identifier.
            force: Must be true; customers do not support trashing.

        Returns:
            The customer as it was before deletion.

        Raises:
            TrashNotSupportedError: If force is false.
            NotFoundError: If the customer does not exist.
        """
        if not force:
            raise TrashNotSupportedError("Customers")
        customer = await self.get_customer(customer_id)
        self.repo.delete(customer_id)

        logger.info("Customer deleted", customer_id=customer_id, request_id=self.request_id)
        return customer

    async def list_customers(self, filters: CustomerFilters) -> Page[Customer]:
        """List customers matching collection filters.

        Raises:
            ValidationError: If a date filter or ordering value is invalid.
        """
        if filters.orderby not in CUSTOMER_ORDERBY:
            raise ValidationError(f"Invalid orderby value: {filters.orderby}", field="orderby")

        tz = self.config.tzinfo
        created_after = parse_datetime(filters.created_since, tz, "created_since")
        created_before = parse_datetime(filters.created_before, tz, "created_before")
        email = filters.email.strip().lower() if filters.email else None
        search = filters.search.strip().lower() if filters.search else None

        def matches(customer: Customer) -> bool:
            if filters.role != ALL_ROLES and customer.role != filters.role:
                return False
            if email is not None and customer.email.lower() != email:
                return False
            if search:
                haystack = " ".join(
                    [customer.email, customer.username, customer.first_name, customer.last_name]
                ).lower()
                if search not in haystack:
                    return False
            if filters.include and customer.id not in filters.include:
                return False
            if customer.id in filters.exclude:
                return False
            if created_after and not customer.date_created > created_after:
                return False
            if created_before and not customer.date_created < created_before:
                return False
            return True

        customers = [c for c in self.repo.list_all() if matches(c)]
        if filters.orderby == "include" and filters.include:
            position = {cid: index for index, cid in enumerate(filters.include)}
            customers.sort(key=lambda c: position.get(c.id, len(position)))
        else:
            keys = {
                "id": lambda c: c.id,
                "name": lambda c: (c.display_name.lower(), c.id),
                "registered_date": lambda c: (c.date_created, c.id),
            }
            customers.sort(
                key=keys.get(filters.orderby, keys["id"]),
                reverse=filters.order.lower() == "desc",
            )

        return Page(
            items=paginate(customers, filters.page, filters.per_page, filters.offset),
            total=len(customers),
            page=filters.page,
            per_page=filters.per_page,
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _apply(self, customer: Customer, payload: dict[str, Any]) -> None:
        if payload.get("email") is not None:
            email = _normalize_email(payload["email"])
            existing = self.repo.find_by_email(email)
            if existing is not None and existing.id != customer.id:
                raise ConflictError(
                    "An account is already registered with your email address.",
                    code="customer_email_exists",
                    details={"email": email},
                )
            customer.email = email

        for name in PROFILE_FIELDS:
            if payload.get(name) is not None:
                setattr(customer, name, str(payload[name]))

        if isinstance(payload.get("billing"), dict):
            customer.billing.merge(payload["billing"])
        if isinstance(payload.get("shipping"), dict):
            customer.shipping.merge(payload["shipping"])

        for index, entry in enumerate(payload.get("meta_data") or []):
            if not isinstance(entry, dict) or not entry.get("key"):
                raise ValidationError(
                    f"meta_data[{index}] requires a key.", field=f"meta_data[{index}].key"
                )
            meta_id = parse_int(entry["id"], f"meta_data[{index}].id") if entry.get("id") else None
            customer.update_meta_data(str(entry["key"]), entry.get("value"), meta_id)


# ============================================================================
# Service Factory
# ============================================================================


def get_customer_service(
    request_id: str | None = None, config: StoreConfig | None = None
) -> CustomerService:
    """Get customer service instance.

    Args:
        request_id: Request ID for correlation.
        config: Configuration snapshot, captured from settings when omitted.

    Returns:
        CustomerService instance.
    """
    return CustomerService(
        repo=get_customer_repository(),
        config=config or StoreConfig.from_settings(),
        request_id=request_id,
    )
