"""Create orders, order_items and order_meta tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create orders, order_items and order_meta tables."""
    op.create_table(
        "orders",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("parent_id", sa.Integer, nullable=False, server_default="0", index=True),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default="wc-pending",
            index=True,
        ),
        sa.Column("customer_id", sa.Integer, nullable=False, server_default="0", index=True),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("total", sa.Numeric(19, 6), nullable=False, server_default="0"),
        sa.Column("billing_email", sa.String(255), nullable=True),
        sa.Column("search_text", sa.Text, nullable=False, server_default=""),
        # Full aggregate
        sa.Column("document", postgresql.JSONB, nullable=False),
        # Timestamps
        sa.Column(
            "date_created",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            index=True,
        ),
        sa.Column(
            "date_modified",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            index=True,
        ),
    )

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "order_id",
            sa.Integer,
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("item_id", sa.Integer, nullable=False),
        sa.Column("item_type", sa.String(20), nullable=False, index=True),
        sa.Column("name", sa.Text, nullable=False, server_default=""),
        sa.Column("product_id", sa.Integer, nullable=False, server_default="0", index=True),
        sa.Column("variation_id", sa.Integer, nullable=False, server_default="0", index=True),
    )

    op.create_table(
        "order_meta",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "order_id",
            sa.Integer,
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("meta_key", sa.String(255), nullable=False, index=True),
        sa.Column("meta_value", sa.Text, nullable=True),
    )


def downgrade() -> None:
    """Drop order_meta, order_items and orders tables."""
    op.drop_table("order_meta")
    op.drop_table("order_items")
    op.drop_table("orders")
