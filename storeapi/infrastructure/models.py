"""SQLAlchemy models for database tables.

Orders are stored as a JSON document next to the columns the query
builder filters and sorts on. Line items and metadata are projected into
their own tables for product and meta lookups.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from storeapi.infrastructure.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere
DocumentType = JSON().with_variant(JSONB(), "postgresql")


# ============================================================================
# Order Models
# ============================================================================


class OrderModel(Base):
    """Order model for database persistence.

    The ``document`` column holds the full aggregate; the other columns
    are projections kept in sync on every save.
    """

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    parent_id = Column(Integer, nullable=False, default=0, index=True)
    status = Column(String(20), nullable=False, default="wc-pending", index=True)
    customer_id = Column(Integer, nullable=False, default=0, index=True)
    currency = Column(String(3), nullable=False, default="USD")
    total = Column(Numeric(19, 6), nullable=False, default=0)
    billing_email = Column(String(255), nullable=True)
    search_text = Column(Text, nullable=False, default="")
    document = Column(DocumentType, nullable=False)

    # Timestamps
    date_created = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    date_modified = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    # Relationships
    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
    )
    meta = relationship(
        "OrderMetaModel",
        back_populates="order",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "parent_id": self.parent_id,
            "status": self.status,
            "customer_id": self.customer_id,
            "currency": self.currency,
            "total": str(self.total) if self.total is not None else None,
            "date_created": self.date_created.isoformat() if self.date_created else None,
            "date_modified": self.date_modified.isoformat() if self.date_modified else None,
        }


class OrderItemModel(Base):
    """Line-group projection used by product lookups."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_id = Column(Integer, nullable=False)
    item_type = Column(String(20), nullable=False, index=True)
    name = Column(Text, nullable=False, default="")
    product_id = Column(Integer, nullable=False, default=0, index=True)
    variation_id = Column(Integer, nullable=False, default=0, index=True)

    # Relationships
    order = relationship("OrderModel", back_populates="items")


class OrderMetaModel(Base):
    """Order metadata projection used by meta filters."""

    __tablename__ = "order_meta"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    meta_key = Column(String(255), nullable=False, index=True)
    meta_value = Column(Text, nullable=True)

    # Relationships
    order = relationship("OrderModel", back_populates="meta")
