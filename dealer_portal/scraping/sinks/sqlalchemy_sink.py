"""
SQLAlchemy-backed job sink plus pricing and inventory stores.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.repositories.scrape_job_repository import ScrapeJobRepository
from db.repositories.vendor_inventory_repository import VendorInventoryRepository
from db.repositories.vendor_sku_repository import VendorSkuRepository
from dealer_portal.scraping.sinks.base import ProgressSink, RecordStore
from dealer_portal.scraping.types import ExtractionResult, InventoryResult, WorkItem


def format_log_line(text: str, *, now: datetime | None = None) -> str:
    stamp = (now or datetime.now(timezone.utc)).strftime("%H:%M:%S")
    return f"[{stamp}] {text}\n"


class SQLAlchemyJobSink(ProgressSink):
    """
    Appends progress lines and sampled errors to one scrape_jobs row.
    """

    def __init__(self, *, session: Session, job_id: uuid.UUID) -> None:
        self._session = session
        self._job_id = job_id

    def append_line(self, text: str, counters: dict[str, int] | None = None) -> None:
        repository = ScrapeJobRepository(self._session)
        try:
            repository.append_log(job_id=self._job_id, line=format_log_line(text), counters=counters)
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise

    def record_error(self, text: str) -> None:
        repository = ScrapeJobRepository(self._session)
        now = datetime.now(timezone.utc)
        try:
            repository.add_error(
                job_id=self._job_id,
                entry={"message": text, "time": now.isoformat()},
            )
            repository.append_log(job_id=self._job_id, line=format_log_line(f"ERROR {text}", now=now))
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise


class SQLAlchemyPricingStore(RecordStore):
    """
    Upserts extracted pricing onto vendor_skus keyed by (vendor_code, vendor_sku).
    """

    def __init__(self, *, session: Session, vendor_code: str) -> None:
        self._session = session
        self._vendor_code = vendor_code

    def upsert(self, item: WorkItem, result: ExtractionResult) -> None:
        repository = VendorSkuRepository(self._session)
        try:
            repository.upsert_pricing(
                vendor_code=self._vendor_code,
                vendor_sku=item.code,
                cost=result.cost,
                price_basis=result.price_basis,
                list_price=result.list_price,
                coverage=dict(result.coverage) or None,
                category_hint=item.category_hint,
            )
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise


class SQLAlchemyInventoryStore(RecordStore):
    """
    Upserts one vendor_inventory row per warehouse reported for an item.
    """

    def __init__(self, *, session: Session, vendor_code: str, fresh_for: timedelta = timedelta(hours=24)) -> None:
        self._session = session
        self._vendor_code = vendor_code
        self._fresh_for = fresh_for

    def upsert(self, item: WorkItem, result: InventoryResult) -> None:
        repository = VendorInventoryRepository(self._session)
        try:
            for stock in result.warehouses:
                repository.upsert_snapshot(
                    vendor_code=self._vendor_code,
                    vendor_sku=item.code,
                    warehouse=stock.warehouse,
                    qty_on_hand=stock.qty_on_hand,
                    qty_in_transit=stock.qty_in_transit,
                    qty_on_hand_sqft=stock.qty_on_hand_sqft,
                    qty_in_transit_sqft=stock.qty_in_transit_sqft,
                    fresh_for=self._fresh_for,
                )
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise
