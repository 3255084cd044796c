"""Customer API endpoints.

Provides endpoints for the customer resource:
- GET /customers - list customers (paginated)
- POST /customers - create a customer
- GET /customers/{id} - customer details
- PUT|PATCH /customers/{id} - update a customer
- DELETE /customers/{id}?force=true - delete a customer
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request, Response, status

from storeapi.api.collections import page_response, split_ids
from storeapi.api.schemas import CustomerWriteRequest, ErrorResponse, PaginatedResponse
from storeapi.application.customer_service import (
    CustomerFilters,
    CustomerService,
    get_customer_service,
)
from storeapi.domain.customer import Customer
from storeapi.domain.formatting import format_datetime
from storeapi.infrastructure.config import settings

router = APIRouter(prefix="/customers", tags=["Customers"])


def get_service(request: Request) -> CustomerService:
    """Get customer service with request ID."""
    request_id = getattr(request.state, "request_id", None)
    return get_customer_service(request_id=request_id)


ServiceDep = Annotated[CustomerService, Depends(get_service)]


def customer_to_response(customer: Customer, service: CustomerService) -> dict[str, Any]:
    """Convert a Customer to its response body."""
    tz = service.config.tzinfo
    date_created, date_created_gmt = format_datetime(customer.date_created, tz)
    date_modified, date_modified_gmt = format_datetime(customer.date_modified, tz)
    return {
        "id": customer.id,
        "date_created": date_created,
        "date_created_gmt": date_created_gmt,
        "date_modified": date_modified,
        "date_modified_gmt": date_modified_gmt,
        "email": customer.email,
        "first_name": customer.first_name,
        "last_name": customer.last_name,
        "role": customer.role,
        "username": customer.username,
        "billing": customer.billing.to_dict(include_contact=True),
        "shipping": customer.shipping.to_dict(include_contact=False),
        "is_paying_customer": customer.is_paying_customer,
        "meta_data": [entry.to_dict() for entry in customer.meta_data],
    }


@router.get(
    "",
    response_model=PaginatedResponse,
    responses={400: {"model": ErrorResponse}},
    summary="List customers",
)
async def list_customers(
    service: ServiceDep,
    response: Response,
    email: Annotated[str | None, Query(description="Exact email")] = None,
    search: Annotated[str | None, Query(description="Partial name, username or email")] = None,
    role: Annotated[str, Query(description="Role, 'all' for every role")] = "customer",
    created_since: Annotated[str | None, Query()] = None,
    created_before: Annotated[str | None, Query()] = None,
    include: Annotated[list[str] | None, Query()] = None,
    exclude: Annotated[list[str] | None, Query()] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int, Query(ge=-1, le=settings.max_per_page)] = settings.default_per_page,
    offset: Annotated[int | None, Query(ge=0)] = None,
    order: Annotated[str, Query(pattern="^(asc|desc)$")] = "asc",
    orderby: Annotated[str, Query(description="id, include, name or registered_date")] = "name",
) -> PaginatedResponse:
    """List customers."""
    filters = CustomerFilters(
        email=email,
        search=search,
        role=role,
        created_since=created_since,
        created_before=created_before,
        include=split_ids(include, "include"),
        exclude=split_ids(exclude, "exclude"),
        page=page,
        per_page=per_page,
        offset=offset,
        order=order,
        orderby=orderby,
    )
    result = await service.list_customers(filters)
    items = [customer_to_response(c, service) for c in result.items]
    return page_response(response, result, items)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Create customer",
)
async def create_customer(body: CustomerWriteRequest, service: ServiceDep) -> dict[str, Any]:
    """Create a customer."""
    customer = await service.create_customer(body.to_payload())
    return customer_to_response(customer, service)


@router.get(
    "/{customer_id}",
    responses={404: {"model": ErrorResponse}},
    summary="Get customer",
)
async def get_customer(customer_id: int, service: ServiceDep) -> dict[str, Any]:
    """Get customer by ID."""
    customer = await service.get_customer(customer_id)
    return customer_to_response(customer, service)


@router.api_route(
    "/{customer_id}",
    methods=["PUT", "PATCH"],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Update customer",
)
async def update_customer(
    customer_id: int, body: CustomerWriteRequest, service: ServiceDep
) -> dict[str, Any]:
    """Update a customer."""
    customer = await service.update_customer(customer_id, body.to_payload())
    return customer_to_response(customer, service)


@router.delete(
    "/{customer_id}",
    responses={404: {"model": ErrorResponse}, 501: {"model": ErrorResponse}},
    summary="Delete customer",
    description="Customers do not support trashing; force=true is required.",
)
async def delete_customer(
    customer_id: int,
    service: ServiceDep,
    force: Annotated[bool, Query(description="Required, customers cannot be trashed")] = False,
) -> dict[str, Any]:
    """Delete a customer."""
    customer = await service.delete_customer(customer_id, force=force)
    return customer_to_response(customer, service)
