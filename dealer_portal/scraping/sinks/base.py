"""
Collaborator interfaces for job progress reporting and record persistence.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from dealer_portal.scraping.logging_utils import log_event
from dealer_portal.scraping.types import ItemResult, WorkItem

logger = logging.getLogger(__name__)


class ProgressSink(ABC):
    """
    Operator-facing job log. Implementations may fail; callers must tolerate it.
    """

    @abstractmethod
    def append_line(self, text: str, counters: dict[str, int] | None = None) -> None:
        """
        Append one progress line and optionally publish the current counters.
        """

    @abstractmethod
    def record_error(self, text: str) -> None:
        """
        Record one sampled per-item error.
        """


class RecordStore(ABC):
    """
    Idempotent destination for extracted records.
    """

    @abstractmethod
    def upsert(self, item: WorkItem, result: ItemResult) -> None:
        """
        Insert or update the record keyed by the item identifier.
        """


class SafeProgressSink(ProgressSink):
    """
    Wraps a sink so its failures are logged and never reach the caller.
    """

    def __init__(self, inner: ProgressSink | None, *, portal: str | None = None) -> None:
        self._inner = inner
        self._portal = portal

    def append_line(self, text: str, counters: dict[str, int] | None = None) -> None:
        if self._inner is None:
            return
        try:
            self._inner.append_line(text, counters)
        except Exception as exc:
            log_event(logger, logging.WARNING, "sink_append_failed", portal=self._portal, error=str(exc))

    def record_error(self, text: str) -> None:
        if self._inner is None:
            return
        try:
            self._inner.record_error(text)
        except Exception as exc:
            log_event(logger, logging.WARNING, "sink_record_error_failed", portal=self._portal, error=str(exc))
