"""Order API endpoints.

Provides endpoints for the order resource:
- GET /orders - list orders (paginated, filterable)
- POST /orders - create an order
- GET /orders/{id} - order details
- PUT|PATCH /orders/{id} - update an order
- DELETE /orders/{id} - trash or permanently delete an order
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request, Response, status

from storeapi.api.collections import page_response, parse_fields, split_ids, split_values
from storeapi.api.schemas import ErrorResponse, OrderWriteRequest, PaginatedResponse
from storeapi.application.order_response import OrderResponseBuilder
from storeapi.application.order_service import OrderService, get_order_service
from storeapi.application.query_builder import OrderFilters
from storeapi.infrastructure.config import settings
from storeapi.infrastructure.stores import get_product_catalog

router = APIRouter(prefix="/orders", tags=["Orders"])


# ============================================================================
# Dependencies
# ============================================================================


def get_service(request: Request) -> OrderService:
    """Get order service with request ID and registered extension hooks."""
    request_id = getattr(request.state, "request_id", None)
    return get_order_service(
        request_id=request_id,
        transformers=getattr(request.app.state, "order_transformers", None),
        observers=getattr(request.app.state, "order_observers", None),
    )


ServiceDep = Annotated[OrderService, Depends(get_service)]
ContextParam = Annotated[str, Query(description="Request context: view or edit")]
PrecisionParam = Annotated[
    int | None, Query(ge=0, le=10, description="Decimal places for monetary values")
]
FieldsParam = Annotated[
    str | None, Query(alias="_fields", description="Comma-separated fields to return")
]


# ============================================================================
# Converters
# ============================================================================


def get_builder(service: OrderService, dp: int | None) -> OrderResponseBuilder:
    """Get a response builder for the request precision."""
    return OrderResponseBuilder(
        service.config.with_precision(dp),
        get_product_catalog().sku_for,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "",
    response_model=PaginatedResponse,
    responses={400: {"model": ErrorResponse}},
    summary="List orders",
    description="List orders with filters, ordering and pagination.",
)
async def list_orders(
    service: ServiceDep,
    response: Response,
    status_filter: Annotated[
        list[str], Query(alias="status", description="Statuses, 'any' for all")
    ] = ["any"],
    customer: Annotated[int | None, Query(ge=0, description="Customer ID")] = None,
    product: Annotated[int | None, Query(ge=0, description="Product ID")] = None,
    search: Annotated[str | None, Query(description="Free-text search")] = None,
    s: Annotated[str | None, Query(description="Free-text search, overridden by search")] = None,
    number: Annotated[str | None, Query(description="Partial order number")] = None,
    created_since: Annotated[str | None, Query()] = None,
    created_before: Annotated[str | None, Query()] = None,
    updated_since: Annotated[str | None, Query()] = None,
    updated_before: Annotated[str | None, Query()] = None,
    include: Annotated[list[str] | None, Query()] = None,
    exclude: Annotated[list[str] | None, Query()] = None,
    parent: Annotated[list[str] | None, Query()] = None,
    parent_exclude: Annotated[list[str] | None, Query()] = None,
    page: Annotated[int, Query(ge=1, description="Page number")] = 1,
    per_page: Annotated[
        int, Query(ge=-1, le=settings.max_per_page, description="Items per page, -1 for all")
    ] = settings.default_per_page,
    offset: Annotated[int | None, Query(ge=0)] = None,
    order: Annotated[str, Query(pattern="^(asc|desc)$")] = "desc",
    orderby: Annotated[str, Query(description="date, id, modified or include")] = "date",
    context: ContextParam = "view",
    dp: PrecisionParam = None,
    fields: FieldsParam = None,
) -> PaginatedResponse:
    """List orders."""
    filters = OrderFilters(
        status=split_values(status_filter) or ["any"],
        customer=customer,
        product=product,
        search=search,
        s=s,
        number=number,
        created_since=created_since,
        created_before=created_before,
        updated_since=updated_since,
        updated_before=updated_before,
        include=split_ids(include, "include"),
        exclude=split_ids(exclude, "exclude"),
        parent=split_ids(parent, "parent"),
        parent_exclude=split_ids(parent_exclude, "parent_exclude"),
        page=page,
        per_page=per_page,
        offset=offset,
        order=order,
        orderby=orderby,
    )
    result = await service.list_orders(filters)
    builder = get_builder(service, dp)
    selected = parse_fields(fields)
    items = [builder.prepare(o, context, selected) for o in result.items]
    return page_response(response, result, items)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Create order",
    description="Create an order; totals are recomputed and set_paid completes payment.",
)
async def create_order(
    body: OrderWriteRequest,
    service: ServiceDep,
    context: ContextParam = "view",
    dp: PrecisionParam = None,
    fields: FieldsParam = None,
) -> dict[str, Any]:
    """Create an order."""
    order = await service.create_order(body.to_payload())
    return get_builder(service, dp).prepare(order, context, parse_fields(fields))


@router.get(
    "/{order_id}",
    responses={404: {"model": ErrorResponse}},
    summary="Get order",
    description="Get a single order.",
)
async def get_order(
    order_id: int,
    service: ServiceDep,
    context: ContextParam = "view",
    dp: PrecisionParam = None,
    fields: FieldsParam = None,
) -> dict[str, Any]:
    """Get order by ID."""
    order = await service.get_order(order_id)
    return get_builder(service, dp).prepare(order, context, parse_fields(fields))


@router.api_route(
    "/{order_id}",
    methods=["PUT", "PATCH"],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Update order",
    description="Apply a partial update; totals are recomputed when addresses or lines change.",
)
async def update_order(
    order_id: int,
    body: OrderWriteRequest,
    service: ServiceDep,
    context: ContextParam = "view",
    dp: PrecisionParam = None,
    fields: FieldsParam = None,
) -> dict[str, Any]:
    """Update an order."""
    order = await service.update_order(order_id, body.to_payload())
    return get_builder(service, dp).prepare(order, context, parse_fields(fields))


@router.delete(
    "/{order_id}",
    responses={404: {"model": ErrorResponse}, 410: {"model": ErrorResponse}},
    summary="Delete order",
    description="Move an order to the trash, or delete it permanently with force=true.",
)
async def delete_order(
    order_id: int,
    service: ServiceDep,
    force: Annotated[bool, Query(description="Bypass the trash")] = False,
    context: ContextParam = "view",
    dp: PrecisionParam = None,
    fields: FieldsParam = None,
) -> dict[str, Any]:
    """Delete an order."""
    order = await service.delete_order(order_id, force=force)
    return get_builder(service, dp).prepare(order, context, parse_fields(fields))
