"""
Repository for per-warehouse stock snapshot upserts.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from db.models.vendor_inventory import VendorInventory

_UPSERT_CONSTRAINT = "uq_vendor_inventory_sku_warehouse"


class VendorInventoryRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def upsert_snapshot(
        self,
        *,
        vendor_code: str,
        vendor_sku: str,
        warehouse: str,
        qty_on_hand: int = 0,
        qty_in_transit: int = 0,
        qty_on_hand_sqft: float = 0.0,
        qty_in_transit_sqft: float = 0.0,
        fresh_for: timedelta = timedelta(hours=24),
    ) -> uuid.UUID:
        """
        Replace the stock level for one SKU at one warehouse.
        """
        now = datetime.now(timezone.utc)
        stmt = insert(VendorInventory).values(
            id=uuid.uuid4(),
            vendor_code=vendor_code,
            vendor_sku=vendor_sku,
            warehouse=warehouse,
            qty_on_hand=qty_on_hand,
            qty_in_transit=qty_in_transit,
            qty_on_hand_sqft=qty_on_hand_sqft,
            qty_in_transit_sqft=qty_in_transit_sqft,
            snapshot_time=now,
            fresh_until=now + fresh_for,
        )
        stmt = stmt.on_conflict_do_update(
            constraint=_UPSERT_CONSTRAINT,
            set_={
                "qty_on_hand": stmt.excluded.qty_on_hand,
                "qty_in_transit": stmt.excluded.qty_in_transit,
                "qty_on_hand_sqft": stmt.excluded.qty_on_hand_sqft,
                "qty_in_transit_sqft": stmt.excluded.qty_in_transit_sqft,
                "snapshot_time": now,
                "fresh_until": stmt.excluded.fresh_until,
            },
        ).returning(VendorInventory.id)
        return self._session.scalars(stmt).one()
