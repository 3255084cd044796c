"""Customer entity."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from storeapi.domain.order import Address, MetaData, MetaDataMixin


@dataclass(kw_only=True)
class Customer(MetaDataMixin):
    """A registered customer account."""

    id: int = 0
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    username: str = ""
    role: str = "customer"
    billing: Address = field(default_factory=Address)
    shipping: Address = field(default_factory=Address)
    is_paying_customer: bool = False
    meta_data: list[MetaData] = field(default_factory=list)
    date_created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    date_modified: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def display_name(self) -> str:
        """Get the name shown for the customer."""
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.username

    def touch(self) -> None:
        """Update the modification timestamp."""
        self.date_modified = datetime.now(timezone.utc)
