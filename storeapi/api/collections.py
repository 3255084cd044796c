"""Helpers shared by the collection endpoints."""

from typing import Any

from fastapi import Response

from storeapi.api.schemas import PaginatedResponse
from storeapi.application.paging import Page
from storeapi.domain.exceptions import ValidationError

TOTAL_HEADER = "X-WP-Total"
TOTAL_PAGES_HEADER = "X-WP-TotalPages"


def split_values(values: list[str] | None) -> list[str]:
    """Flatten repeated and comma-separated query values."""
    result: list[str] = []
    for value in values or []:
        result.extend(part.strip() for part in value.split(",") if part.strip())
    return result


def split_ids(values: list[str] | None, name: str) -> list[int]:
    """Flatten query values into a list of ids.

    Raises:
        ValidationError: If a value is not a non-negative integer.
    """
    ids = []
    for value in split_values(values):
        if not value.isdigit():
            raise ValidationError(f"{name} must contain integer ids.", field=name)
        ids.append(int(value))
    return ids


def parse_fields(value: str | None) -> list[str] | None:
    """Parse the ``_fields`` parameter."""
    fields = split_values([value] if value else None)
    return fields or None


def page_response(
    response: Response, page: Page[Any], items: list[dict[str, Any]]
) -> PaginatedResponse:
    """Build a collection body and set the total headers.

    Args:
        response: Outgoing response receiving the headers.
        page: Listing result.
        items: Rendered resources of the page.
    """
    response.headers[TOTAL_HEADER] = str(page.total)
    response.headers[TOTAL_PAGES_HEADER] = str(page.total_pages)
    return PaginatedResponse(
        items=items,
        total=page.total,
        total_pages=page.total_pages,
        page=page.page,
        per_page=page.per_page,
        has_more=page.has_more,
    )
