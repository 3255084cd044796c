"""Tests for the customer service."""

import pytest

from storeapi.application.customer_service import CustomerFilters, CustomerService
from storeapi.domain.exceptions import (
    ConflictError,
    NotFoundError,
    TrashNotSupportedError,
    ValidationError,
)
from storeapi.infrastructure.memory_store import InMemoryCustomerRepository


@pytest.fixture
def service() -> CustomerService:
    """Customer service over an empty repository."""
    return CustomerService(InMemoryCustomerRepository())


class TestCustomerWrites:
    """Tests for customer create, update and delete."""

    @pytest.mark.asyncio
    async def test_create(self, service: CustomerService) -> None:
        """Username defaults to the local part of the email."""
        customer = await service.create_customer(
            {
                "email": "ada@example.com",
                "first_name": "Ada",
                "billing": {"city": "London", "phone": "555"},
            }
        )

        assert customer.id == 1
        assert customer.username == "ada"
        assert customer.billing.city == "London"
        assert customer.role == "customer"

    @pytest.mark.asyncio
    async def test_create_with_id(self, service: CustomerService) -> None:
        """Ids cannot be chosen by the client."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_customer({"id": 3, "email": "ada@example.com"})
        assert exc_info.value.code == "customer_exists"

    @pytest.mark.asyncio
    async def test_create_requires_email(self, service: CustomerService) -> None:
        """Email is mandatory."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_customer({"first_name": "Ada"})
        assert exc_info.value.code == "rest_missing_callback_param"

    @pytest.mark.asyncio
    async def test_invalid_email(self, service: CustomerService) -> None:
        """Malformed emails are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            await service.create_customer({"email": "ada@localhost"})
        assert exc_info.value.code == "invalid_email"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, service: CustomerService) -> None:
        """Emails are unique case-insensitively."""
        await service.create_customer({"email": "ada@example.com"})
        with pytest.raises(ConflictError) as exc_info:
            await service.create_customer({"email": "ADA@example.com"})
        assert exc_info.value.code == "customer_email_exists"

    @pytest.mark.asyncio
    async def test_update(self, service: CustomerService) -> None:
        """Profile fields and addresses merge."""
        customer = await service.create_customer(
            {"email": "ada@example.com", "shipping": {"city": "London"}}
        )
        updated = await service.update_customer(
            customer.id, {"last_name": "Lovelace", "shipping": {"postcode": "W1"}}
        )

        assert updated.last_name == "Lovelace"
        assert (updated.shipping.city, updated.shipping.postcode) == ("London", "W1")

    @pytest.mark.asyncio
    async def test_delete_requires_force(self, service: CustomerService) -> None:
        """Customers cannot be trashed."""
        customer = await service.create_customer({"email": "ada@example.com"})
        with pytest.raises(TrashNotSupportedError) as exc_info:
            await service.delete_customer(customer.id)
        assert exc_info.value.status == 501

        removed = await service.delete_customer(customer.id, force=True)
        assert removed.email == "ada@example.com"
        with pytest.raises(NotFoundError):
            await service.get_customer(customer.id)


class TestCustomerListing:
    """Tests for customer listing."""

    @pytest.mark.asyncio
    async def test_sorted_by_name(self, service: CustomerService) -> None:
        """Default order is by display name, ascending."""
        await service.create_customer({"email": "z@example.com", "first_name": "Zoe"})
        await service.create_customer({"email": "a@example.com", "first_name": "Ada"})

        page = await service.list_customers(CustomerFilters())
        assert [c.first_name for c in page.items] == ["Ada", "Zoe"]

    @pytest.mark.asyncio
    async def test_filters(self, service: CustomerService) -> None:
        """Email, search and role filters."""
        await service.create_customer({"email": "ada@example.com", "last_name": "Lovelace"})
        await service.create_customer({"email": "bob@example.com"})

        page = await service.list_customers(CustomerFilters(search="love"))
        assert [c.email for c in page.items] == ["ada@example.com"]
        page = await service.list_customers(CustomerFilters(email="BOB@example.com"))
        assert [c.email for c in page.items] == ["bob@example.com"]
        page = await service.list_customers(CustomerFilters(role="administrator"))
        assert page.total == 0
        page = await service.list_customers(CustomerFilters(role="all"))
        assert page.total == 2

    @pytest.mark.asyncio
    async def test_include_order(self, service: CustomerService) -> None:
        """orderby=include follows the include list."""
        for name in ("a", "b", "c"):
            await service.create_customer({"email": f"{name}@example.com"})

        page = await service.list_customers(CustomerFilters(include=[3, 1], orderby="include"))
        assert [c.id for c in page.items] == [3, 1]
