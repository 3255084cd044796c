"""Per-request store configuration snapshot."""

from dataclasses import dataclass
from datetime import timezone, tzinfo
from zoneinfo import ZoneInfo

from storeapi.infrastructure.config import Settings, settings


@dataclass(frozen=True)
class StoreConfig:
    """Store configuration captured once when a request enters.

    Attributes:
        price_decimals: Decimal places for monetary values.
        prices_include_tax: Whether new orders are priced tax-inclusive.
        currency: Default currency for new orders.
        timezone: Site timezone name.
    """

    price_decimals: int = 2
    prices_include_tax: bool = False
    currency: str = "USD"
    timezone: str = "UTC"

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "StoreConfig":
        """Capture a snapshot of the current settings."""
        source = source or settings
        return cls(
            price_decimals=source.price_decimals,
            prices_include_tax=source.prices_include_tax,
            currency=source.currency,
            timezone=source.timezone,
        )

    @property
    def tzinfo(self) -> tzinfo:
        """Get the site timezone."""
        if self.timezone.upper() == "UTC":
            return timezone.utc
        return ZoneInfo(self.timezone)

    def with_precision(self, precision: int | None) -> "StoreConfig":
        """Get a copy with a request-specific precision."""
        if precision is None:
            return self
        return StoreConfig(
            price_decimals=max(int(precision), 0),
            prices_include_tax=self.prices_include_tax,
            currency=self.currency,
            timezone=self.timezone,
        )
