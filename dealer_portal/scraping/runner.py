"""
One extraction or discovery job for one portal: credentials, browser, session, engine.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from contextlib import AbstractContextManager
from typing import Any

import requests

from dealer_portal.scraping.adapters.base import SiteAdapter
from dealer_portal.scraping.authenticator import SessionAuthenticator
from dealer_portal.scraping.browser import BrowserRunner, ScreenshotRecorder
from dealer_portal.scraping.config.loader import load_cookie_source, load_credentials
from dealer_portal.scraping.config.models import PortalConfig, PortalScrapingSettings
from dealer_portal.scraping.cookie_import import import_session
from dealer_portal.scraping.discovery import DiscoveryRunner
from dealer_portal.scraping.engine import BatchExtractionEngine
from dealer_portal.scraping.errors import AuthError, ConfigError, PortalScrapeError
from dealer_portal.scraping.fetch_client import AuthenticatedFetchClient
from dealer_portal.scraping.logging_utils import log_event
from dealer_portal.scraping.registry import AdapterRegistry
from dealer_portal.scraping.sinks.base import ProgressSink, RecordStore, SafeProgressSink
from dealer_portal.scraping.strategies import InventoryExtractionStrategy, StrategyProbe
from dealer_portal.scraping.types import Credentials, DiagnosticDump, ExtractionSummary, Session, WorkItem

logger = logging.getLogger(__name__)

BrowserFactory = Callable[[], AbstractContextManager[Any]]


class PortalJobRunner:
    """
    Owns the browser for one job and wires authentication into the engine.
    """

    def __init__(
        self,
        *,
        settings: PortalScrapingSettings,
        portal: PortalConfig,
        store: RecordStore,
        sink: ProgressSink | None = None,
        adapter: SiteAdapter | None = None,
        registry: AdapterRegistry | None = None,
        browser_factory: BrowserFactory | None = None,
        http: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings
        self._portal = portal
        self._store = store
        self._raw_sink = sink
        self._sink = SafeProgressSink(sink, portal=portal.name)
        self._adapter = adapter or (registry or AdapterRegistry()).create_adapter(portal=portal)
        self._browser_factory = browser_factory or self._default_browser
        self._http = http
        self._sleep = sleep

    @property
    def adapter(self) -> SiteAdapter:
        return self._adapter

    def run(self, work_items: Sequence[WorkItem], *, inventory: bool = False) -> ExtractionSummary:
        """
        Extract pricing for `work_items`, or stock levels when `inventory` is set.
        """

        stage = "config"
        try:
            if inventory and not self._adapter.supports_inventory:
                raise ConfigError(
                    "Inventory extraction needs an 'inventory' endpoint.",
                    portal=self._portal.name,
                    stage="config",
                )
            credentials, cookie_source = self._read_auth_inputs()
            job_kind = "inventory" if inventory else "extraction"
            self._sink.append_line(f"Launching browser for {self._portal.name} {job_kind}...")
            stage = "login"
            with self._browser_factory() as browser:
                page = browser.page
                authenticator = self._authenticator()
                session = self._establish_session(browser, authenticator, credentials, cookie_source)

                stage = "extract"
                client = AuthenticatedFetchClient(
                    settings=self._settings,
                    base_url=self._portal.base_url,
                    http=self._http,
                    headers=self._portal.headers,
                    user_agent=self._portal.user_agent,
                    sleep=self._sleep,
                )
                engine = BatchExtractionEngine(
                    settings=self._settings,
                    sink=self._raw_sink,
                    store=self._store,
                    reauthenticate=lambda: self._reauthenticate(page, authenticator, credentials),
                    probe=StrategyProbe(settings=self._settings, client=client, page=page, sink=self._raw_sink),
                    sleep=self._sleep,
                )
                strategy = InventoryExtractionStrategy(adapter=self._adapter, client=client) if inventory else None
                return engine.run(work_items, session, self._adapter, strategy=strategy)
        except PortalScrapeError as exc:
            self._report_fatal(exc, stage=stage)
            raise

    def discover(self, term: str | None = None) -> DiagnosticDump:
        stage = "config"
        try:
            credentials, cookie_source = self._read_auth_inputs()
            stage = "login"
            with self._browser_factory() as browser:
                session = self._establish_session(browser, self._authenticator(), credentials, cookie_source)
                stage = "discover"
                runner = DiscoveryRunner(
                    adapter=self._adapter,
                    settings=self._settings,
                    screenshots=self._screenshots(),
                    sink=self._raw_sink,
                )
                return runner.discover(browser.page, session, term=term)
        except PortalScrapeError as exc:
            self._report_fatal(exc, stage=stage)
            raise

    def _read_auth_inputs(self) -> tuple[Credentials | None, str | None]:
        credentials = load_credentials(self._portal)
        cookie_source = load_cookie_source(self._portal)
        if credentials is None and cookie_source is None:
            raise ConfigError(
                f"Missing portal credentials: set {self._portal.username_env} and "
                f"{self._portal.password_env} (or {self._portal.cookies_env} for imported cookies).",
                portal=self._portal.name,
                stage="config",
            )
        return credentials, cookie_source

    def _establish_session(
        self,
        browser: Any,
        authenticator: SessionAuthenticator,
        credentials: Credentials | None,
        cookie_source: str | None,
    ) -> Session:
        if credentials is None:
            self._sink.append_line("No credentials configured, using imported cookies")
            session = import_session(cookie_source, portal=self._portal.name)
        else:
            try:
                session = authenticator.authenticate(browser.page, credentials)
            except AuthError as exc:
                if cookie_source is None:
                    raise
                self._sink.append_line(f"Browser login failed: {exc.message}, trying cookie fallback...")
                log_event(logger, logging.WARNING, "login_cookie_fallback", portal=self._portal.name, error=exc.message)
                session = import_session(cookie_source, portal=self._portal.name)

        if session.source == "import":
            browser.context.add_cookies(session.browser_cookies(self._portal.base_url))
            self._sink.append_line(f"Using {len(session)} imported cookies")
        return session

    def _reauthenticate(
        self,
        page: Any,
        authenticator: SessionAuthenticator,
        credentials: Credentials | None,
    ) -> Session:
        if credentials is None:
            raise AuthError(
                "No credentials configured; imported cookies cannot be refreshed",
                portal=self._portal.name,
                stage="reauth",
            )
        return authenticator.authenticate(page, credentials)

    def _authenticator(self) -> SessionAuthenticator:
        return SessionAuthenticator(
            adapter=self._adapter,
            settings=self._settings,
            screenshots=self._screenshots(),
            sink=self._raw_sink,
            sleep=self._sleep,
        )

    def _screenshots(self) -> ScreenshotRecorder:
        return ScreenshotRecorder(uploads_path=self._settings.uploads_path, prefix=self._portal.name)

    def _default_browser(self) -> BrowserRunner:
        return BrowserRunner(settings=self._settings, user_agent=self._portal.user_agent)

    def _report_fatal(self, exc: PortalScrapeError, *, stage: str) -> None:
        exc.with_context(portal=self._portal.name, stage=stage)
        self._sink.record_error(exc.describe())
        self._sink.append_line(f"Aborted {exc.describe()}")
        log_event(
            logger,
            logging.ERROR,
            "portal_job_failed",
            portal=exc.portal,
            stage=exc.stage,
            error_type=type(exc).__name__,
            error=exc.message,
        )
