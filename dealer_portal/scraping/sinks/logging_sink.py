"""
Logging-only sink and store used by dry runs and tests.
"""

from __future__ import annotations

import logging

from dealer_portal.scraping.logging_utils import log_event
from dealer_portal.scraping.sinks.base import ProgressSink, RecordStore
from dealer_portal.scraping.types import ExtractionResult, InventoryResult, WorkItem

logger = logging.getLogger(__name__)


class LoggingProgressSink(ProgressSink):
    def __init__(self, *, portal: str) -> None:
        self._portal = portal
        self.lines: list[str] = []
        self.errors: list[str] = []
        self.counters: dict[str, int] = {}

    def append_line(self, text: str, counters: dict[str, int] | None = None) -> None:
        self.lines.append(text)
        if counters:
            self.counters = dict(counters)
        log_event(logger, logging.INFO, "job_progress", portal=self._portal, line=text, **(counters or {}))

    def record_error(self, text: str) -> None:
        self.errors.append(text)
        log_event(logger, logging.WARNING, "job_error", portal=self._portal, error=text)


class LoggingRecordStore(RecordStore):
    def __init__(self, *, vendor_code: str) -> None:
        self._vendor_code = vendor_code
        self.records: dict[str, ExtractionResult] = {}

    def upsert(self, item: WorkItem, result: ExtractionResult) -> None:
        self.records[item.code] = result
        log_event(
            logger,
            logging.INFO,
            "record_extracted",
            vendor=self._vendor_code,
            item_code=item.code,
            cost=result.cost,
            price_basis=result.price_basis,
            list_price=result.list_price,
        )


class LoggingInventoryStore(RecordStore):
    def __init__(self, *, vendor_code: str) -> None:
        self._vendor_code = vendor_code
        self.records: dict[str, InventoryResult] = {}

    def upsert(self, item: WorkItem, result: InventoryResult) -> None:
        self.records[item.code] = result
        for stock in result.warehouses:
            log_event(
                logger,
                logging.INFO,
                "inventory_extracted",
                vendor=self._vendor_code,
                item_code=item.code,
                warehouse=stock.warehouse,
                qty_on_hand=stock.qty_on_hand,
                qty_on_hand_sqft=stock.qty_on_hand_sqft,
                qty_in_transit_sqft=stock.qty_in_transit_sqft,
            )
