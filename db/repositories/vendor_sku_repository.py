"""
Repository for vendor SKU work lists and dealer pricing upserts.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from db.models.vendor_sku import PriceBasis, VendorSku

_UPSERT_CONSTRAINT = "uq_vendor_skus_vendor_sku"


class VendorSkuRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def list_missing_pricing(
        self,
        *,
        vendor_code: str,
        limit: int | None = None,
    ) -> list[VendorSku]:
        """
        SKUs for one vendor that have never been priced, oldest first.
        """
        stmt = (
            select(VendorSku)
            .where(VendorSku.vendor_code == vendor_code)
            .where(or_(VendorSku.cost.is_(None), VendorSku.cost == 0))
            .order_by(VendorSku.created_at.asc(), VendorSku.vendor_sku.asc())
        )
        if limit is not None:
            stmt = stmt.limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def list_vendor_skus(
        self,
        *,
        vendor_code: str,
        limit: int | None = None,
    ) -> list[VendorSku]:
        """
        Every SKU for one vendor, in catalog order.
        """
        stmt = (
            select(VendorSku)
            .where(VendorSku.vendor_code == vendor_code)
            .order_by(VendorSku.vendor_sku.asc())
        )
        if limit is not None:
            stmt = stmt.limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def upsert_pricing(
        self,
        *,
        vendor_code: str,
        vendor_sku: str,
        cost: float | None,
        price_basis: str = PriceBasis.PER_SQFT,
        list_price: float | None = None,
        coverage: dict[str, Any] | None = None,
        category_hint: str | None = None,
    ) -> uuid.UUID:
        """
        Insert or update pricing for one vendor SKU.

        Existing list price, coverage and category are kept when the new
        extraction has nothing for them.
        """
        now = datetime.now(timezone.utc)
        stmt = insert(VendorSku).values(
            id=uuid.uuid4(),
            vendor_code=vendor_code,
            vendor_sku=vendor_sku,
            category_hint=category_hint,
            cost=cost,
            list_price=list_price,
            price_basis=price_basis,
            coverage=coverage or None,
            priced_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            constraint=_UPSERT_CONSTRAINT,
            set_={
                "cost": stmt.excluded.cost,
                "price_basis": stmt.excluded.price_basis,
                "list_price": func.coalesce(stmt.excluded.list_price, VendorSku.list_price),
                "coverage": func.coalesce(stmt.excluded.coverage, VendorSku.coverage),
                "category_hint": func.coalesce(stmt.excluded.category_hint, VendorSku.category_hint),
                "priced_at": now,
                "updated_at": now,
            },
        ).returning(VendorSku.id)
        return self._session.scalars(stmt).one()

