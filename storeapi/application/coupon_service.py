"""Coupon application service.

CRUD for coupons. Codes are unique among published coupons and stored
lower-cased; deleting without force moves a coupon to the trash.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import structlog

from storeapi.application.order_request import parse_amount, parse_int
from storeapi.application.paging import Page, paginate
from storeapi.application.store_config import StoreConfig
from storeapi.domain.coupon import Coupon, CouponStatus, DiscountType, format_coupon_code
from storeapi.domain.exceptions import (
    AlreadyTrashedError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from storeapi.domain.formatting import parse_datetime
from storeapi.infrastructure.memory_store import InMemoryCouponRepository
from storeapi.infrastructure.stores import get_coupon_repository

logger = structlog.get_logger()

COUPON_ORDERBY = ("date", "id", "code", "modified", "include")


@dataclass
class CouponFilters:
    """REST collection parameters for coupons."""

    code: str | None = None
    search: str | None = None
    created_since: datetime | str | None = None
    created_before: datetime | str | None = None
    updated_since: datetime | str | None = None
    updated_before: datetime | str | None = None
    include: list[int] = field(default_factory=list)
    exclude: list[int] = field(default_factory=list)
    page: int = 1
    per_page: int = 10
    offset: int | None = None
    order: str = "desc"
    orderby: str = "date"


def _string_list(value: Any, name: str) -> list[str]:
    if not isinstance(value, list):
        raise ValidationError(f"{name} is not of type array.", field=name)
    return [str(v) for v in value]


def _int_list(value: Any, name: str) -> list[int]:
    if not isinstance(value, list):
        raise ValidationError(f"{name} is not of type array.", field=name)
    return [parse_int(v, f"{name}[{i}]") for i, v in enumerate(value)]


def _discount_type(value: Any, name: str) -> DiscountType:
    try:
        return DiscountType(value)
    except ValueError as e:
        raise ValidationError(f"Invalid discount type: {value}", field=name) from e


class CouponService:
    """Application service for the coupon resource."""

    def __init__(
        self,
        repo: InMemoryCouponRepository,
        config: StoreConfig | None = None,
        request_id: str | None = None,
    ) -> None:
        """Initialize service.

        Args:
            repo: Coupon repository.
            config: Store configuration snapshot.
            request_id: Request ID for correlation.
        """
        self.repo = repo
        self.config = config or StoreConfig()
        self.request_id = request_id

    async def create_coupon(self, payload: dict[str, Any]) -> Coupon:
        """Create a coupon.

        Raises:
            ValidationError: If the code is missing or a field is invalid.
            ConflictError: If the code is already used.
        """
        if not str(payload.get("code") or "").strip():
            raise ValidationError(
                "The coupon code cannot be empty.", field="code", code="empty_coupon_code"
            )
        coupon = Coupon()
        self._apply(coupon, payload)
        self.repo.save(coupon)

        logger.info(
            "Coupon created",
            coupon_id=coupon.id,
            code=coupon.code,
            request_id=self.request_id,
        )
        return coupon

    async def get_coupon(self, coupon_id: int) -> Coupon:
        """Get a coupon by ID.

        Raises:
            NotFoundError: If the coupon does not exist.
        """
        coupon = self.repo.get(coupon_id)
        if coupon is None:
            raise NotFoundError("coupon", coupon_id)
        return coupon

    async def update_coupon(self, coupon_id: int, payload: dict[str, Any]) -> Coupon:
        """Apply a partial update to a coupon.

        Raises:
            NotFoundError: If the coupon does not exist.
            ValidationError: If a field is invalid.
            ConflictError: If the new code is already used.
        """
        coupon = await self.get_coupon(coupon_id)
        if "code" in payload and not str(payload.get("code") or "").strip():
            raise ValidationError(
                "The coupon code cannot be empty.", field="code", code="empty_coupon_code"
            )
        self._apply(coupon, payload)
        coupon.touch()
        self.repo.save(coupon)

        logger.info("Coupon updated", coupon_id=coupon.id, request_id=self.request_id)
        return coupon

    async def delete_coupon(self, coupon_id: int, force: bool = False) -> Coupon:
        """Delete a coupon.

        Args:
            coupon_id: Coupon identifier.
            force: Remove permanently instead of moving to the trash.

        Returns:
            The coupon before a permanent delete, or the trashed coupon.

        Raises:
            NotFoundError: If the coupon does not exist.
            AlreadyTrashedError: If trashing a coupon already in the trash.
        """
        coupon = await self.get_coupon(coupon_id)
        if force:
            self.repo.delete(coupon_id)
        else:
            if coupon.status is CouponStatus.TRASH:
                raise AlreadyTrashedError("coupon", coupon_id)
            coupon.status = CouponStatus.TRASH
            coupon.touch()
            self.repo.save(coupon)

        logger.info(
            "Coupon deleted",
            coupon_id=coupon_id,
            force=force,
            request_id=self.request_id,
        )
        return coupon

    async def list_coupons(self, filters: CouponFilters) -> Page[Coupon]:
        """List published coupons matching collection filters.

        Raises:
            ValidationError: If a date filter or ordering value is invalid.
        """
        if filters.orderby not in COUPON_ORDERBY:
            raise ValidationError(f"Invalid orderby value: {filters.orderby}", field="orderby")

        tz = self.config.tzinfo
        created_after = parse_datetime(filters.created_since, tz, "created_since")
        created_before = parse_datetime(filters.created_before, tz, "created_before")
        modified_after = parse_datetime(filters.updated_since, tz, "updated_since")
        modified_before = parse_datetime(filters.updated_before, tz, "updated_before")
        code = format_coupon_code(filters.code) if filters.code else None
        search = filters.search.strip().lower() if filters.search else None

        def matches(coupon: Coupon) -> bool:
            if coupon.status is CouponStatus.TRASH:
                return False
            if code is not None and coupon.code != code:
                return False
            if search and search not in coupon.code:
                return False
            if filters.include and coupon.id not in filters.include:
                return False
            if coupon.id in filters.exclude:
                return False
            if created_after and not coupon.date_created > created_after:
                return False
            if created_before and not coupon.date_created < created_before:
                return False
            if modified_after and not coupon.date_modified > modified_after:
                return False
            if modified_before and not coupon.date_modified < modified_before:
                return False
            return True

        coupons = [c for c in self.repo.list_all() if matches(c)]
        self._sort(coupons, filters)
        return Page(
            items=paginate(coupons, filters.page, filters.per_page, filters.offset),
            total=len(coupons),
            page=filters.page,
            per_page=filters.per_page,
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _apply(self, coupon: Coupon, payload: dict[str, Any]) -> None:
        converters: dict[str, Callable[[Any, str], Any]] = {
            "code": lambda v, _: format_coupon_code(str(v)),
            "amount": parse_amount,
            "discount_type": _discount_type,
            "description": lambda v, _: str(v),
            "date_expires": lambda v, name: parse_datetime(v, self.config.tzinfo, name),
            "individual_use": lambda v, _: bool(v),
            "free_shipping": lambda v, _: bool(v),
            "product_ids": _int_list,
            "excluded_product_ids": _int_list,
            "usage_limit": parse_int,
            "usage_limit_per_user": parse_int,
            "minimum_amount": parse_amount,
            "maximum_amount": parse_amount,
            "email_restrictions": _string_list,
        }
        for name, convert in converters.items():
            if payload.get(name) is None:
                continue
            setattr(coupon, name, convert(payload[name], name))

        if payload.get("code") is not None:
            existing = self.repo.find_by_code(coupon.code)
            if existing is not None and existing.id != coupon.id:
                raise ConflictError(
                    "The coupon code already exists.",
                    code="coupon_code_already_exists",
                    details={"code": coupon.code},
                )

        for index, entry in enumerate(payload.get("meta_data") or []):
            if not isinstance(entry, dict) or not entry.get("key"):
                raise ValidationError(
                    f"meta_data[{index}] requires a key.", field=f"meta_data[{index}].key"
                )
            meta_id = parse_int(entry["id"], f"meta_data[{index}].id") if entry.get("id") else None
            coupon.update_meta_data(str(entry["key"]), entry.get("value"), meta_id)

    @staticmethod
    def _sort(coupons: list[Coupon], filters: CouponFilters) -> None:
        if filters.orderby == "include" and filters.include:
            position = {cid: index for index, cid in enumerate(filters.include)}
            coupons.sort(key=lambda c: position.get(c.id, len(position)))
            return
        keys: dict[str, Callable[[Coupon], Any]] = {
            "id": lambda c: c.id,
            "code": lambda c: (c.code, c.id),
            "modified": lambda c: (c.date_modified, c.id),
        }
        coupons.sort(
            key=keys.get(filters.orderby, lambda c: (c.date_created, c.id)),
            reverse=filters.order.lower() != "asc",
        )


# ============================================================================
# Service Factory
# ============================================================================


def get_coupon_service(
    request_id: str | None = None, config: StoreConfig | None = None
) -> CouponService:
    """Get coupon service instance.

    Args:
        request_id: Request ID for correlation.
        config: Configuration snapshot, captured from settings when omitted.

    Returns:
        CouponService instance.
    """
    return CouponService(
        repo=get_coupon_repository(),
        config=config or StoreConfig.from_settings(),
        request_id=request_id,
    )
