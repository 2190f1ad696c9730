"""
Headless browser lifetime and diagnostic screenshot helpers.
"""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from playwright.sync_api import Browser, BrowserContext, Page, Playwright, sync_playwright
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from dealer_portal.scraping.config.models import PortalScrapingSettings
from dealer_portal.scraping.logging_utils import log_event

logger = logging.getLogger(__name__)

_LOGIN_PATH_MARKERS = ("login", "signin", "sign-in", "logon", "customer-portal")
_LABEL_CLEANUP = re.compile(r"[^a-z0-9_-]+")


def looks_like_login_url(url: str | None) -> bool:
    """
    True when the URL path or query reads like a login page.
    """

    if not url:
        return False
    parsed = urlparse(url)
    haystack = f"{parsed.path}?{parsed.query}".lower()
    return any(marker in haystack for marker in _LOGIN_PATH_MARKERS)


class BrowserRunner:
    """
    One Chromium instance, one context and one page, released on every exit path.
    """

    def __init__(
        self,
        *,
        settings: PortalScrapingSettings,
        user_agent: str | None = None,
        viewport: dict[str, int] | None = None,
    ) -> None:
        self._settings = settings
        self._user_agent = user_agent or settings.default_user_agent
        self._viewport = viewport or {"width": 1366, "height": 900}
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("BrowserRunner is not started.")
        return self._page

    @property
    def context(self) -> BrowserContext:
        if self._context is None:
            raise RuntimeError("BrowserRunner is not started.")
        return self._context

    def __enter__(self) -> "BrowserRunner":
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(headless=self._settings.headless)
            self._context = self._browser.new_context(
                user_agent=self._user_agent,
                viewport=self._viewport,
            )
            self._context.set_default_navigation_timeout(self._settings.navigation_timeout_ms)
            self._page = self._context.new_page()
        except Exception:
            self.close()
            raise
        log_event(logger, logging.INFO, "browser_started", headless=self._settings.headless)
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def close(self) -> None:
        for label, resource in (
            ("page", self._page),
            ("context", self._context),
            ("browser", self._browser),
        ):
            if resource is None:
                continue
            try:
                resource.close()
            except Exception as close_exc:
                log_event(logger, logging.WARNING, "browser_close_failed", resource=label, error=str(close_exc))
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except Exception as stop_exc:
                log_event(logger, logging.WARNING, "browser_close_failed", resource="playwright", error=str(stop_exc))
        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None


class ScreenshotRecorder:
    """
    Writes full-page screenshots to the uploads directory; never raises.
    """

    def __init__(self, *, uploads_path: str, prefix: str) -> None:
        self._uploads_path = Path(uploads_path)
        self._prefix = prefix

    def capture(self, page: Any, label: str) -> str | None:
        safe_label = _LABEL_CLEANUP.sub("-", label.lower()).strip("-") or "page"
        filename = f"{self._prefix}-{safe_label}-{int(time.time() * 1000)}.png"
        target = self._uploads_path / filename
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            page.screenshot(path=str(target), full_page=True)
        except Exception as exc:
            log_event(
                logger,
                logging.WARNING,
                "screenshot_failed",
                portal=self._prefix,
                label=safe_label,
                error=str(exc),
            )
            return None
        log_event(logger, logging.INFO, "screenshot_saved", portal=self._prefix, path=str(target))
        return str(target)


def wait_for_settle(page: Any, *, timeout_ms: float, reason: str) -> bool:
    """
    Wait for network idle; a timeout is logged and reported, never raised.
    """

    try:
        page.wait_for_load_state("networkidle", timeout=timeout_ms)
    except PlaywrightTimeoutError:
        log_event(logger, logging.INFO, "navigation_settle_timeout", reason=reason, url=getattr(page, "url", None))
        return False
    return True
