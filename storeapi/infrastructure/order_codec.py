"""Order document codec.

Converts the order aggregate to and from the JSON document stored in the
``orders.document`` column. Decimals travel as strings and timestamps as
ISO-8601 so no precision is lost.
"""

import types
from dataclasses import fields, is_dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Union, get_args, get_origin

from storeapi.domain.order import LINE_TYPES, LineGroup, LineType, Order

DOCUMENT_VERSION = 1


def _encode(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: _encode(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _encode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_encode(v) for v in value]
    return value


def _decode(annotation: Any, value: Any) -> Any:
    if value is None:
        return None

    origin = get_origin(annotation)
    if origin in (Union, types.UnionType):
        args = [a for a in get_args(annotation) if a is not type(None)]
        return _decode(args[0], value) if args else value
    if origin is list:
        (item_type,) = get_args(annotation)
        return [_decode(item_type, v) for v in value]
    if origin is dict:
        key_type, value_type = get_args(annotation)
        return {_decode(key_type, k): _decode(value_type, v) for k, v in value.items()}

    if annotation is Decimal:
        return Decimal(str(value))
    if annotation is datetime:
        return datetime.fromisoformat(value)
    if annotation is int:
        return int(value)
    if isinstance(annotation, type) and issubclass(annotation, Enum):
        return annotation(value)
    if is_dataclass(annotation):
        return annotation(**_decode_fields(annotation, value))
    return value


def _decode_fields(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    return {f.name: _decode(f.type, data[f.name]) for f in fields(cls) if f.name in data}


def encode_line_group(item: LineGroup) -> dict[str, Any]:
    """Encode a line group with its type discriminant."""
    return {**_encode(item), "type": item.type.value}


def decode_line_group(record: dict[str, Any]) -> LineGroup:
    """Decode a line group from its tagged record."""
    cls = LINE_TYPES[LineType(record["type"])]
    return cls(**_decode_fields(cls, record))


def order_to_document(order: Order) -> dict[str, Any]:
    """Encode an order into a JSON-safe document.

    Args:
        order: Order aggregate.

    Returns:
        Document with every order field and tagged line groups.
    """
    document = {f.name: _encode(getattr(order, f.name)) for f in fields(order) if f.name != "items"}
    document["items"] = [encode_line_group(item) for item in order.items]
    document["version"] = DOCUMENT_VERSION
    return document


def order_from_document(document: dict[str, Any]) -> Order:
    """Decode an order from its stored document.

    Args:
        document: Document produced by ``order_to_document``.

    Returns:
        Order aggregate.
    """
    data = {k: v for k, v in document.items() if k not in ("items", "version")}
    order = Order(**_decode_fields(Order, data))
    order.items = [decode_line_group(record) for record in document.get("items", [])]
    return order


def order_search_text(order: Order) -> str:
    """Build the lower-cased text free-text search runs against.

    Covers billing and shipping address fields and line item names.
    """
    parts = [
        *order.billing.to_dict().values(),
        *order.shipping.to_dict().values(),
        *(item.name for item in order.line_items),
    ]
    return " ".join(str(p) for p in parts if p).lower()
