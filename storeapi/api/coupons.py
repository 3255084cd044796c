"""Coupon API endpoints.

Provides endpoints for the coupon resource:
- GET /coupons - list coupons (paginated)
- POST /coupons - create a coupon
- GET /coupons/{id} - coupon details
- PUT|PATCH /coupons/{id} - update a coupon
- DELETE /coupons/{id} - trash or permanently delete a coupon
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request, Response, status

from storeapi.api.collections import page_response, split_ids
from storeapi.api.schemas import CouponWriteRequest, ErrorResponse, PaginatedResponse
from storeapi.application.coupon_service import CouponFilters, CouponService, get_coupon_service
from storeapi.domain.coupon import Coupon
from storeapi.domain.formatting import format_datetime, format_decimal
from storeapi.infrastructure.config import settings

router = APIRouter(prefix="/coupons", tags=["Coupons"])


# ============================================================================
# Dependencies
# ============================================================================


def get_service(request: Request) -> CouponService:
    """Get coupon service with request ID."""
    request_id = getattr(request.state, "request_id", None)
    return get_coupon_service(request_id=request_id)


ServiceDep = Annotated[CouponService, Depends(get_service)]


# ============================================================================
# Converters
# ============================================================================


def coupon_to_response(coupon: Coupon, service: CouponService) -> dict[str, Any]:
    """Convert a Coupon to its response body."""
    precision = service.config.price_decimals
    tz = service.config.tzinfo
    date_created, date_created_gmt = format_datetime(coupon.date_created, tz)
    date_modified, date_modified_gmt = format_datetime(coupon.date_modified, tz)
    date_expires, date_expires_gmt = format_datetime(coupon.date_expires, tz)
    return {
        "id": coupon.id,
        "code": coupon.code,
        "amount": format_decimal(coupon.amount, precision),
        "status": coupon.status.value,
        "date_created": date_created,
        "date_created_gmt": date_created_gmt,
        "date_modified": date_modified,
        "date_modified_gmt": date_modified_gmt,
        "discount_type": coupon.discount_type.value,
        "description": coupon.description,
        "date_expires": date_expires,
        "date_expires_gmt": date_expires_gmt,
        "usage_count": coupon.usage_count,
        "individual_use": coupon.individual_use,
        "product_ids": coupon.product_ids,
        "excluded_product_ids": coupon.excluded_product_ids,
        "usage_limit": coupon.usage_limit or None,
        "usage_limit_per_user": coupon.usage_limit_per_user or None,
        "free_shipping": coupon.free_shipping,
        "minimum_amount": format_decimal(coupon.minimum_amount, precision),
        "maximum_amount": format_decimal(coupon.maximum_amount, precision),
        "email_restrictions": coupon.email_restrictions,
        "used_by": coupon.used_by,
        "meta_data": [entry.to_dict() for entry in coupon.meta_data],
    }


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "",
    response_model=PaginatedResponse,
    responses={400: {"model": ErrorResponse}},
    summary="List coupons",
)
async def list_coupons(
    service: ServiceDep,
    response: Response,
    code: Annotated[str | None, Query(description="Exact coupon code")] = None,
    search: Annotated[str | None, Query(description="Partial coupon code")] = None,
    created_since: Annotated[str | None, Query()] = None,
    created_before: Annotated[str | None, Query()] = None,
    updated_since: Annotated[str | None, Query()] = None,
    updated_before: Annotated[str | None, Query()] = None,
    include: Annotated[list[str] | None, Query()] = None,
    exclude: Annotated[list[str] | None, Query()] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int, Query(ge=-1, le=settings.max_per_page)] = settings.default_per_page,
    offset: Annotated[int | None, Query(ge=0)] = None,
    order: Annotated[str, Query(pattern="^(asc|desc)$")] = "desc",
    orderby: Annotated[str, Query(description="date, id, code, modified or include")] = "date",
) -> PaginatedResponse:
    """List published coupons."""
    filters = CouponFilters(
        code=code,
        search=search,
        created_since=created_since,
        created_before=created_before,
        updated_since=updated_since,
        updated_before=updated_before,
        include=split_ids(include, "include"),
        exclude=split_ids(exclude, "exclude"),
        page=page,
        per_page=per_page,
        offset=offset,
        order=order,
        orderby=orderby,
    )
    result = await service.list_coupons(filters)
    items = [coupon_to_response(c, service) for c in result.items]
    return page_response(response, result, items)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Create coupon",
)
async def create_coupon(body: CouponWriteRequest, service: ServiceDep) -> dict[str, Any]:
    """Create a coupon."""
    coupon = await service.create_coupon(body.to_payload())
    return coupon_to_response(coupon, service)


@router.get(
    "/{coupon_id}",
    responses={404: {"model": ErrorResponse}},
    summary="Get coupon",
)
async def get_coupon(coupon_id: int, service: ServiceDep) -> dict[str, Any]:
    """Get coupon by ID."""
    coupon = await service.get_coupon(coupon_id)
    return coupon_to_response(coupon, service)


@router.api_route(
    "/{coupon_id}",
    methods=["PUT", "PATCH"],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Update coupon",
)
async def update_coupon(
    coupon_id: int, body: CouponWriteRequest, service: ServiceDep
) -> dict[str, Any]:
    """Update a coupon."""
    coupon = await service.update_coupon(coupon_id, body.to_payload())
    return coupon_to_response(coupon, service)


@router.delete(
    "/{coupon_id}",
    responses={404: {"model": ErrorResponse}, 410: {"model": ErrorResponse}},
    summary="Delete coupon",
)
async def delete_coupon(
    coupon_id: int,
    service: ServiceDep,
    force: Annotated[bool, Query(description="Bypass the trash")] = False,
) -> dict[str, Any]:
    """Delete a coupon."""
    coupon = await service.delete_coupon(coupon_id, force=force)
    return coupon_to_response(coupon, service)
