"""
Batch extraction engine: error-budgeted item loop with session recovery.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from dealer_portal.scraping.adapters.base import SiteAdapter
from dealer_portal.scraping.config.models import PortalScrapingSettings
from dealer_portal.scraping.errors import ConfigError, PortalScrapeError, SessionExpired
from dealer_portal.scraping.logging_utils import clip, log_event
from dealer_portal.scraping.sinks.base import ProgressSink, RecordStore, SafeProgressSink
from dealer_portal.scraping.strategies import ExtractionStrategy, StrategyProbe
from dealer_portal.scraping.types import (
    ConsecutiveFailureCounter,
    ErrorBudget,
    ExtractionSummary,
    ItemResult,
    Session,
    WorkItem,
)

logger = logging.getLogger(__name__)


class _AbortJob(Exception):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass
class _JobState:
    adapter: SiteAdapter
    session: Session
    strategy: ExtractionStrategy
    summary: ExtractionSummary
    budget: ErrorBudget
    failures: ConsecutiveFailureCounter
    sink: ProgressSink


def describe_error(exc: BaseException) -> str:
    if isinstance(exc, PortalScrapeError):
        return exc.message
    text = str(exc).strip()
    return text or type(exc).__name__


class BatchExtractionEngine:
    """
    Runs one job's work list sequentially against a single session.

    Items that yield no data count as processed only. Per-item failures
    are counted and sampled into the sink up to the logged-error cap. A run
    of consecutive failures, or a detected session expiry, triggers
    re-authentication through the injected callable; if that fails the
    remaining work list is abandoned and the summary so far is returned.
    """

    def __init__(
        self,
        *,
        settings: PortalScrapingSettings,
        sink: ProgressSink | None,
        store: RecordStore,
        reauthenticate: Callable[[], Session],
        probe: StrategyProbe | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings
        self._sink = sink
        self._store = store
        self._reauthenticate = reauthenticate
        self._probe = probe
        self._sleep = sleep

    def run(
        self,
        work_items: Sequence[WorkItem],
        session: Session,
        adapter: SiteAdapter,
        *,
        strategy: ExtractionStrategy | None = None,
    ) -> ExtractionSummary:
        items = tuple(work_items)
        total = len(items)
        sink = SafeProgressSink(self._sink, portal=adapter.name)

        if strategy is None:
            if self._probe is None:
                raise ConfigError("No extraction strategy or probe supplied.", portal=adapter.name, stage="strategy")
            strategy = self._probe.select(adapter=adapter, session=session, sample=items)

        state = _JobState(
            adapter=adapter,
            session=session,
            strategy=strategy,
            summary=ExtractionSummary(strategy=strategy.name),
            budget=ErrorBudget(max_logged=self._settings.max_logged_errors),
            failures=ConsecutiveFailureCounter(threshold=self._settings.consecutive_failure_threshold),
            sink=sink,
        )
        delay = self._item_delay(adapter)
        interval = max(1, self._settings.checkpoint_interval)

        sink.append_line(f"Extracting {total} items via {strategy.name} strategy")
        log_event(logger, logging.INFO, "extraction_started", portal=adapter.name, items=total, strategy=strategy.name)

        for position, item in enumerate(items, start=1):
            try:
                self._run_item(state, item)
            except _AbortJob as abort:
                self._abort(state, abort.reason)
                break

            if position % interval == 0 or position == total:
                self._checkpoint(state, position, total)
            if position < total and delay > 0:
                self._sleep(delay)

        summary = state.summary
        sink.append_line(
            f"Extraction complete. Processed: {summary.processed}, Matched: {summary.matched}, "
            f"Updated: {summary.updated}, Errors: {summary.errors}",
            summary.checkpoint().as_counters(),
        )
        log_event(
            logger,
            logging.INFO,
            "extraction_completed",
            portal=adapter.name,
            processed=summary.processed,
            matched=summary.matched,
            updated=summary.updated,
            errors=summary.errors,
            reauth_attempts=summary.reauth_attempts,
            aborted=summary.aborted,
        )
        return summary

    def _run_item(self, state: _JobState, item: WorkItem) -> None:
        try:
            result = self._extract(state, item)
        except _AbortJob:
            raise
        except Exception as exc:
            state.summary.processed += 1
            self._item_failed(state, item, exc)
            return

        state.summary.processed += 1
        if result is None:
            state.failures.reset()
            return

        state.summary.matched += 1
        try:
            self._store.upsert(item, result)
        except Exception as exc:
            self._item_failed(state, item, exc)
            return
        state.summary.updated += 1
        state.failures.reset()

    def _extract(self, state: _JobState, item: WorkItem) -> ItemResult | None:
        try:
            state.strategy.prepare(item, state.session)
            return state.strategy.extract(item, state.session)
        except SessionExpired as exc:
            log_event(
                logger,
                logging.WARNING,
                "session_expired",
                portal=state.adapter.name,
                item_code=item.code,
                error=describe_error(exc),
            )
            state.sink.append_line(f"Session expired at {item.code}, re-authenticating...")
            self._reauthenticate_session(state, reason="session_expired")
            state.failures.reset()

        # One retry on the fresh session; a second expiry is an ordinary item error.
        state.strategy.prepare(item, state.session)
        return state.strategy.extract(item, state.session)

    def _item_failed(self, state: _JobState, item: WorkItem, exc: Exception) -> None:
        state.summary.errors += 1
        message = f"{item.code}: {clip(describe_error(exc))}"
        logged = state.budget.record()
        if logged:
            state.sink.record_error(message)
        log_event(
            logger,
            logging.WARNING if logged else logging.DEBUG,
            "item_failed",
            portal=state.adapter.name,
            item_code=item.code,
            error_type=type(exc).__name__,
            error=describe_error(exc),
            error_count=state.budget.error_count,
            logged=logged,
        )

        if not state.failures.record_failure():
            return

        consecutive = state.failures.count
        state.sink.append_line(f"{consecutive} consecutive errors, forcing re-login...")
        try:
            self._reauthenticate_session(state, reason="consecutive_failures")
        finally:
            state.failures.reset()
        state.sink.append_line("Re-authenticated, resuming extraction")

    def _reauthenticate_session(self, state: _JobState, *, reason: str) -> None:
        state.summary.reauth_attempts += 1
        log_event(
            logger,
            logging.INFO,
            "reauth_attempt",
            portal=state.adapter.name,
            reason=reason,
            attempt=state.summary.reauth_attempts,
        )
        try:
            session = self._reauthenticate()
        except Exception as exc:
            raise _AbortJob(describe_error(exc)) from exc

        state.session = session
        log_event(logger, logging.INFO, "reauth_succeeded", portal=state.adapter.name, cookies=len(session))
        try:
            state.strategy.reset(session)
        except Exception as exc:
            log_event(logger, logging.WARNING, "strategy_reset_failed", portal=state.adapter.name, error=str(exc))

    def _abort(self, state: _JobState, reason: str) -> None:
        state.summary.aborted = True
        state.summary.abort_reason = reason
        state.sink.append_line(
            f"Re-authentication failed: {reason}. Aborting.",
            state.summary.checkpoint().as_counters(),
        )
        log_event(logger, logging.ERROR, "extraction_aborted", portal=state.adapter.name, reason=reason)

    def _checkpoint(self, state: _JobState, position: int, total: int) -> None:
        checkpoint = state.summary.checkpoint()
        state.sink.append_line(
            f"Progress: {position}/{total}, matched {checkpoint.matched}, "
            f"updated {checkpoint.updated}, errors {checkpoint.errors}",
            checkpoint.as_counters(),
        )

    def _item_delay(self, adapter: SiteAdapter) -> float:
        override = adapter.portal.item_delay_seconds
        if override is not None:
            return max(0.0, override)
        return self._settings.item_delay_seconds
