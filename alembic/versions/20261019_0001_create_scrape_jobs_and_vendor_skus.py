"""create scrape_jobs and vendor_skus tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "scrape_jobs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("portal", sa.String(length=64), nullable=False),
        sa.Column("mode", sa.String(length=16), nullable=False, comment="extract, discover"),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("log", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "errors",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
            comment="Sampled per-item errors, capped by the job's error budget",
        ),
        sa.Column("processed_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("matched_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_scrape_jobs_created_at", "scrape_jobs", ["created_at"], unique=False)
    op.create_index("ix_scrape_jobs_portal", "scrape_jobs", ["portal"], unique=False)
    op.create_index("ix_scrape_jobs_status", "scrape_jobs", ["status"], unique=False)

    op.create_table(
        "vendor_skus",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("vendor_code", sa.String(length=32), nullable=False),
        sa.Column("vendor_sku", sa.String(length=128), nullable=False),
        sa.Column("category_hint", sa.String(length=64), nullable=True),
        sa.Column("cost", sa.Numeric(precision=12, scale=4), nullable=True),
        sa.Column("list_price", sa.Numeric(precision=12, scale=4), nullable=True),
        sa.Column("price_basis", sa.String(length=16), nullable=False, server_default="per_sqft"),
        sa.Column(
            "coverage",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Packaging figures such as sqft_per_box, pieces_per_box",
        ),
        sa.Column("priced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("vendor_code", "vendor_sku", name="uq_vendor_skus_vendor_sku"),
    )
    op.create_index("ix_vendor_skus_vendor_code", "vendor_skus", ["vendor_code"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_vendor_skus_vendor_code", table_name="vendor_skus")
    op.drop_table("vendor_skus")
    op.drop_index("ix_scrape_jobs_status", table_name="scrape_jobs")
    op.drop_index("ix_scrape_jobs_portal", table_name="scrape_jobs")
    op.drop_index("ix_scrape_jobs_created_at", table_name="scrape_jobs")
    op.drop_table("scrape_jobs")
