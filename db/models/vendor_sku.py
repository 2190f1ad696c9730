"""
db/models/vendor_sku.py

Vendor SKU catalog rows with the dealer pricing the extractors maintain.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Numeric, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class PriceBasis:
    PER_SQFT = "per_sqft"
    PER_UNIT = "per_unit"


class VendorSku(Base, TimestampMixin):
    __tablename__ = "vendor_skus"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    vendor_code: Mapped[str] = mapped_column(String(32), nullable=False)
    vendor_sku: Mapped[str] = mapped_column(String(128), nullable=False)
    category_hint: Mapped[str | None] = mapped_column(String(64), nullable=True)
    cost: Mapped[float | None] = mapped_column(Numeric(12, 4), nullable=True)
    list_price: Mapped[float | None] = mapped_column(Numeric(12, 4), nullable=True)
    price_basis: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=PriceBasis.PER_SQFT,
    )
    coverage: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Packaging figures such as sqft_per_box, pieces_per_box",
    )
    priced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("vendor_code", "vendor_sku", name="uq_vendor_skus_vendor_sku"),
        Index("ix_vendor_skus_vendor_code", "vendor_code"),
    )
