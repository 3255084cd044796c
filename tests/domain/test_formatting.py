"""Tests for monetary and date-time formatting."""

from datetime import datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from storeapi.domain.exceptions import ValidationError
from storeapi.domain.formatting import (
    format_datetime,
    format_decimal,
    parse_datetime,
    round_decimal,
    to_decimal,
)


class TestFormatDecimal:
    """Tests for format_decimal."""

    def test_pads_to_precision(self) -> None:
        """Integers get exactly the requested fractional digits."""
        assert format_decimal(5, 2) == "5.00"
        assert format_decimal("7", 3) == "7.000"

    def test_rounds_half_up(self) -> None:
        """Ties round away from zero."""
        assert format_decimal("1.005", 2) == "1.01"
        assert format_decimal("2.5", 0) == "3"
        assert format_decimal("-2.5", 0) == "-3"

    def test_floats_keep_their_short_repr(self) -> None:
        """0.1 + 0.2 style floats do not leak binary noise."""
        assert format_decimal(0.1, 2) == "0.10"
        assert format_decimal(19.99, 2) == "19.99"

    def test_never_scientific(self) -> None:
        """Exponent inputs render in fixed-point."""
        assert format_decimal(Decimal("1E+3"), 2) == "1000.00"
        assert format_decimal("1e-7", 2) == "0.00"

    @pytest.mark.parametrize("value", [None, "", "abc", True, float("nan"), object()])
    def test_non_numeric_is_zero(self, value: object) -> None:
        """Non-numeric input renders as zero."""
        assert format_decimal(value, 2) == "0.00"

    def test_negative_zero_is_plain_zero(self) -> None:
        """Tiny negatives do not render as -0.00."""
        assert format_decimal("-0.001", 2) == "0.00"

    @pytest.mark.parametrize("precision", [0, 1, 2, 4, 6])
    @pytest.mark.parametrize("value", ["0", "1.23456789", "-98.765", "123456789.5", "0.0049"])
    def test_fixed_digits_and_idempotent(self, value: str, precision: int) -> None:
        """Output has exactly p digits and re-formatting is a no-op."""
        result = format_decimal(value, precision)
        if precision == 0:
            assert "." not in result
        else:
            assert len(result.split(".")[1]) == precision
        assert format_decimal(result, precision) == result
        assert Decimal(result) == round_decimal(value, precision)


class TestToDecimal:
    """Tests for to_decimal."""

    def test_strips_whitespace(self) -> None:
        """Numeric strings may carry surrounding spaces."""
        assert to_decimal(" 4.20 ") == Decimal("4.20")

    def test_infinity_is_zero(self) -> None:
        """Infinite values fall back to zero."""
        assert to_decimal("Infinity") == Decimal(0)


class TestFormatDatetime:
    """Tests for format_datetime."""

    def test_unset_is_null_pair(self) -> None:
        """None means never."""
        assert format_datetime(None) == (None, None)

    def test_local_and_utc_pair(self) -> None:
        """The pair holds site-local and UTC renderings."""
        moment = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
        local, utc = format_datetime(moment, ZoneInfo("America/New_York"))
        assert local == "2024-01-15T07:00:00"
        assert utc == "2024-01-15T12:00:00"

    def test_naive_is_utc(self) -> None:
        """Naive timestamps are taken to be UTC."""
        assert format_datetime(datetime(2024, 6, 1, 8, 30)) == (
            "2024-06-01T08:30:00",
            "2024-06-01T08:30:00",
        )


class TestParseDatetime:
    """Tests for parse_datetime."""

    def test_empty_is_none(self) -> None:
        """Empty filter values are no-ops."""
        assert parse_datetime("") is None
        assert parse_datetime(None) is None

    def test_naive_uses_site_timezone(self) -> None:
        """Naive strings are read in the site timezone."""
        parsed = parse_datetime("2024-01-15T10:00:00", ZoneInfo("Europe/Berlin"))
        assert parsed == datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)

    def test_zulu_suffix(self) -> None:
        """A trailing Z means UTC."""
        parsed = parse_datetime("2024-01-15T10:00:00Z", ZoneInfo("Europe/Berlin"))
        assert parsed == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)

    def test_invalid_raises(self) -> None:
        """Garbage is a validation error naming the field."""
        with pytest.raises(ValidationError) as exc_info:
            parse_datetime("yesterday", field="after")
        assert exc_info.value.field == "after"
        assert exc_info.value.status == 400
