"""
Sink and store exports.
"""

from dealer_portal.scraping.sinks.base import ProgressSink, RecordStore, SafeProgressSink
from dealer_portal.scraping.sinks.logging_sink import LoggingInventoryStore, LoggingProgressSink, LoggingRecordStore
from dealer_portal.scraping.sinks.sqlalchemy_sink import (
    SQLAlchemyInventoryStore,
    SQLAlchemyJobSink,
    SQLAlchemyPricingStore,
)

__all__ = [
    "LoggingInventoryStore",
    "LoggingProgressSink",
    "LoggingRecordStore",
    "ProgressSink",
    "RecordStore",
    "SafeProgressSink",
    "SQLAlchemyInventoryStore",
    "SQLAlchemyJobSink",
    "SQLAlchemyPricingStore",
]
