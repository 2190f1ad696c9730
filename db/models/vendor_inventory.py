"""
db/models/vendor_inventory.py

Latest stock level per vendor SKU and warehouse, refreshed by inventory jobs.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, Numeric, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class VendorInventory(Base):
    __tablename__ = "vendor_inventory"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    vendor_code: Mapped[str] = mapped_column(String(32), nullable=False)
    vendor_sku: Mapped[str] = mapped_column(String(128), nullable=False)
    warehouse: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="Warehouse or region label as the portal reports it",
    )
    qty_on_hand: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    qty_in_transit: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    qty_on_hand_sqft: Mapped[float] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    qty_in_transit_sqft: Mapped[float] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    snapshot_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    fresh_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("vendor_code", "vendor_sku", "warehouse", name="uq_vendor_inventory_sku_warehouse"),
        Index("ix_vendor_inventory_vendor_code", "vendor_code"),
    )
