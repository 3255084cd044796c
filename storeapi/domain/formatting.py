"""Monetary and date-time formatting.

Amounts are rendered as fixed-point decimal strings and timestamps as
site-local/UTC pairs. Both functions are total: bad input never raises.
"""

from datetime import datetime, timezone, tzinfo
from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation
from typing import Any

from storeapi.domain.exceptions import ValidationError

DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


def to_decimal(value: Any) -> Decimal:
    """Coerce a value to Decimal, falling back to zero.

    Floats go through their shortest repr so 0.1 stays 0.1.

    Args:
        value: Number, numeric string, or anything else.

    Returns:
        Finite Decimal, zero when the value is not numeric.
    """
    if isinstance(value, bool) or value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return Decimal(0)
    if not amount.is_finite():
        return Decimal(0)
    return amount


def round_decimal(value: Any, precision: int) -> Decimal:
    """Round a value half-up to a number of fractional digits.

    Args:
        value: Amount to round.
        precision: Fractional digits, negative values are treated as zero.

    Returns:
        Rounded Decimal.
    """
    amount = to_decimal(value)
    places = max(int(precision), 0)
    quantum = Decimal(1).scaleb(-places)
    context = Context(prec=max(28, amount.adjusted() + places + 2))
    rounded = amount.quantize(quantum, rounding=ROUND_HALF_UP, context=context)
    if rounded.is_zero():
        rounded = abs(rounded)
    return rounded


def format_decimal(value: Any, precision: int = 2) -> str:
    """Render an amount with exactly ``precision`` fractional digits.

    Uses half-up rounding and never scientific notation. Non-numeric
    input renders as zero.

    Args:
        value: Amount to render.
        precision: Number of fractional digits.

    Returns:
        Fixed-point decimal string.
    """
    return f"{round_decimal(value, precision):f}"


def format_datetime(
    value: datetime | None, tz: tzinfo = timezone.utc
) -> tuple[str | None, str | None]:
    """Render a timestamp as a (site-local, UTC) pair.

    Args:
        value: Timestamp; naive values are taken to be UTC. None means never.
        tz: Site timezone.

    Returns:
        Pair of ISO-8601 strings without offset, or (None, None).
    """
    if value is None:
        return None, None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    local = value.astimezone(tz)
    utc = value.astimezone(timezone.utc)
    return local.strftime(DATETIME_FORMAT), utc.strftime(DATETIME_FORMAT)


def parse_datetime(
    value: datetime | str | None, tz: tzinfo = timezone.utc, field: str = "date"
) -> datetime | None:
    """Parse a filter timestamp into an aware UTC datetime.

    Naive values are interpreted in the site timezone.

    Args:
        value: ISO-8601 string or datetime. Empty values mean "no value".
        tz: Site timezone.
        field: Field name reported on failure.

    Returns:
        Aware UTC datetime, or None for empty input.

    Raises:
        ValidationError: If the value is not a valid date-time.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValidationError(
                f"Invalid date-time for {field}: {value}",
                field=field,
                code="rest_invalid_param",
            ) from e
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz)
    return value.astimezone(timezone.utc)
