"""
Per-item extraction strategies and the once-per-job strategy probe.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from dealer_portal.scraping.adapters.base import SiteAdapter
from dealer_portal.scraping.browser import looks_like_login_url, wait_for_settle
from dealer_portal.scraping.config.models import STRATEGY_BROWSER, STRATEGY_FETCH, PortalScrapingSettings
from dealer_portal.scraping.errors import ConfigError, ItemError, SessionExpired
from dealer_portal.scraping.fetch_client import AuthenticatedFetchClient
from dealer_portal.scraping.logging_utils import log_event
from dealer_portal.scraping.sinks.base import ProgressSink, SafeProgressSink
from dealer_portal.scraping.types import ExtractionResult, InventoryResult, ItemResult, Session, WorkItem

logger = logging.getLogger(__name__)

INVENTORY_STRATEGY = "inventory"


class ExtractionStrategy(ABC):
    name: str = ""

    def prepare(self, item: WorkItem, session: Session) -> None:
        """
        Check preconditions before extracting `item`; raise SessionExpired if lost.
        """

    @abstractmethod
    def extract(self, item: WorkItem, session: Session) -> ItemResult | None:
        """
        Extract one item; None means the portal has no data for it.
        """

    def reset(self, session: Session) -> None:
        """
        Re-establish any per-job state after a fresh session was obtained.
        """


class FetchExtractionStrategy(ExtractionStrategy):
    """
    Plain authenticated HTTP requests against the adapter's detail endpoints.
    """

    name = STRATEGY_FETCH

    def __init__(self, *, adapter: SiteAdapter, client: AuthenticatedFetchClient) -> None:
        self._adapter = adapter
        self._client = client

    def extract(self, item: WorkItem, session: Session) -> ExtractionResult | None:
        paths = self._adapter.detail_paths(item)
        if not paths:
            raise ItemError(f"Portal '{self._adapter.name}' has no detail endpoint configured.", stage="extract")
        for path in paths:
            response = self._client.request(path, session)
            result = self._adapter.parse_detail_page(response.text, item)
            if result is not None:
                return result
        return None


class BrowserExtractionStrategy(ExtractionStrategy):
    """
    Drives the job's single page through the adapter's search and detail flow.
    """

    name = STRATEGY_BROWSER

    def __init__(self, *, adapter: SiteAdapter, page: Any, settings: PortalScrapingSettings) -> None:
        if not adapter.search_control_selector:
            raise ConfigError(
                "Browser extraction needs a search_input selector.",
                portal=adapter.name,
                stage="strategy",
            )
        self._adapter = adapter
        self._page = page
        self._settings = settings

    def prepare(self, item: WorkItem, session: Session) -> None:
        if self._search_control_present():
            return
        if looks_like_login_url(self._page.url):
            raise SessionExpired(
                f"Search control missing and page is a login page ({self._page.url})",
                stage="extract",
            )
        self._open_entry_page()
        if not self._search_control_present():
            raise SessionExpired(
                f"Search control still missing after reloading {self._adapter.portal.entry_url}",
                stage="extract",
            )

    def extract(self, item: WorkItem, session: Session) -> ExtractionResult | None:
        return self._adapter.extract_with_browser(self._page, item, self._settings)

    def reset(self, session: Session) -> None:
        self._open_entry_page()

    def _open_entry_page(self) -> None:
        timeout_ms = self._settings.navigation_timeout_ms
        self._page.goto(self._adapter.portal.entry_url, wait_until="domcontentloaded", timeout=timeout_ms)
        wait_for_settle(self._page, timeout_ms=timeout_ms, reason="entry_page")

    def _search_control_present(self) -> bool:
        selector = self._adapter.search_control_selector
        return selector is not None and self._page.query_selector(selector) is not None


class InventoryExtractionStrategy(ExtractionStrategy):
    """
    Stock levels over plain HTTP from the adapter's inventory endpoint.
    """

    name = INVENTORY_STRATEGY

    def __init__(self, *, adapter: SiteAdapter, client: AuthenticatedFetchClient) -> None:
        if not adapter.supports_inventory:
            raise ConfigError(
                "Inventory extraction needs an 'inventory' endpoint.",
                portal=adapter.name,
                stage="strategy",
            )
        self._adapter = adapter
        self._client = client

    def extract(self, item: WorkItem, session: Session) -> InventoryResult | None:
        for path in self._adapter.inventory_paths(item):
            response = self._client.request(path, session)
            result = self._adapter.parse_inventory_page(response.text, item)
            if result is not None:
                return result
        return None


class StrategyProbe:
    """
    Chooses fetch or browser extraction once per job.

    On `auto`, a few sample items are requested unauthenticated from the
    public endpoint and authenticated from the detail endpoints; if an
    authenticated body carries data markers the public one lacks, plain
    HTTP is used for the whole job.
    """

    def __init__(
        self,
        *,
        settings: PortalScrapingSettings,
        client: AuthenticatedFetchClient,
        page: Any = None,
        sink: ProgressSink | None = None,
    ) -> None:
        self._settings = settings
        self._client = client
        self._page = page
        self._sink = sink

    def select(
        self,
        *,
        adapter: SiteAdapter,
        session: Session,
        sample: Sequence[WorkItem],
    ) -> ExtractionStrategy:
        sink = SafeProgressSink(self._sink, portal=adapter.name)
        forced = adapter.portal.strategy
        if forced == STRATEGY_FETCH:
            return self._log_choice(sink, adapter, self._fetch(adapter), reason="configured")
        if forced == STRATEGY_BROWSER:
            return self._log_choice(sink, adapter, self._browser(adapter), reason="configured")

        items = list(sample)[: self._settings.probe_sample_size]
        if not items:
            return self._log_choice(sink, adapter, self._fetch(adapter), reason="empty_work_list")

        sink.append_line("Testing whether authenticated requests return pricing data...")
        if self.authenticated_fetch_has_data(adapter=adapter, session=session, items=items, sink=sink):
            return self._log_choice(sink, adapter, self._fetch(adapter), reason="probe")
        return self._log_choice(sink, adapter, self._browser(adapter), reason="probe")

    def authenticated_fetch_has_data(
        self,
        *,
        adapter: SiteAdapter,
        session: Session,
        items: Sequence[WorkItem],
        sink: ProgressSink,
    ) -> bool:
        found = False
        for item in items:
            public_url = adapter.public_detail_url(item)
            public_body = self._client.fetch_text(public_url, None) if public_url else None
            public_has_data = adapter.has_data_markers(public_body)

            auth_sizes: list[str] = []
            for path in adapter.detail_paths(item):
                auth_body = self._client.fetch_text(path, session)
                auth_has_data = adapter.has_data_markers(auth_body)
                auth_sizes.append(f"{len(auth_body or '')}b(data:{str(auth_has_data).lower()})")
                if auth_has_data and not public_has_data:
                    found = True

            sink.append_line(
                f"  {item.code}: public={len(public_body or '')}b(data:{str(public_has_data).lower()}) "
                f"auth={' '.join(auth_sizes) or 'none'}"
            )
            log_event(
                logger,
                logging.INFO,
                "strategy_probe_sample",
                portal=adapter.name,
                item_code=item.code,
                public_bytes=len(public_body or ""),
                public_has_data=public_has_data,
                authenticated=auth_sizes,
            )
        return found

    def _fetch(self, adapter: SiteAdapter) -> FetchExtractionStrategy:
        return FetchExtractionStrategy(adapter=adapter, client=self._client)

    def _browser(self, adapter: SiteAdapter) -> BrowserExtractionStrategy:
        if not adapter.supports_browser_extraction:
            raise ConfigError(
                f"Adapter '{adapter.portal.adapter_type}' has no browser extraction; use strategy 'fetch'.",
                portal=adapter.name,
                stage="strategy",
            )
        if self._page is None:
            raise ConfigError("Browser extraction needs a browser page.", portal=adapter.name, stage="strategy")
        return BrowserExtractionStrategy(adapter=adapter, page=self._page, settings=self._settings)

    @staticmethod
    def _log_choice(
        sink: ProgressSink,
        adapter: SiteAdapter,
        strategy: ExtractionStrategy,
        *,
        reason: str,
    ) -> ExtractionStrategy:
        if reason != "probe":
            sink.append_line(f"Using {strategy.name} extraction ({reason}).")
        elif strategy.name == STRATEGY_FETCH:
            sink.append_line("Authenticated requests return data, using fetch extraction.")
        else:
            sink.append_line("Authenticated requests lack data, falling back to browser extraction.")
        log_event(logger, logging.INFO, "strategy_selected", portal=adapter.name, strategy=strategy.name, reason=reason)
        return strategy
