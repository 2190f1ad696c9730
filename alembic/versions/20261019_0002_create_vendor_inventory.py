"""create vendor_inventory table

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 15:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "vendor_inventory",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("vendor_code", sa.String(length=32), nullable=False),
        sa.Column("vendor_sku", sa.String(length=128), nullable=False),
        sa.Column(
            "warehouse",
            sa.String(length=128),
            nullable=False,
            comment="Warehouse or region label as the portal reports it",
        ),
        sa.Column("qty_on_hand", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("qty_in_transit", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("qty_on_hand_sqft", sa.Numeric(precision=14, scale=2), nullable=False, server_default="0"),
        sa.Column("qty_in_transit_sqft", sa.Numeric(precision=14, scale=2), nullable=False, server_default="0"),
        sa.Column("snapshot_time", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("fresh_until", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "vendor_code",
            "vendor_sku",
            "warehouse",
            name="uq_vendor_inventory_sku_warehouse",
        ),
    )
    op.create_index("ix_vendor_inventory_vendor_code", "vendor_inventory", ["vendor_code"], unique=False)
    op.alter_column(
        "scrape_jobs",
        "mode",
        existing_type=sa.String(length=16),
        existing_nullable=False,
        comment="extract, discover, inventory",
        existing_comment="extract, discover",
    )


def downgrade() -> None:
    op.alter_column(
        "scrape_jobs",
        "mode",
        existing_type=sa.String(length=16),
        existing_nullable=False,
        comment="extract, discover",
        existing_comment="extract, discover, inventory",
    )
    op.drop_index("ix_vendor_inventory_vendor_code", table_name="vendor_inventory")
    op.drop_table("vendor_inventory")
