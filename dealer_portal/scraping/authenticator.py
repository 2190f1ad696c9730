"""
Browser-driven portal login producing a reusable cookie session.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from playwright.sync_api import Error as PlaywrightError

from dealer_portal.scraping.adapters.base import LoginOutcome, SiteAdapter
from dealer_portal.scraping.browser import ScreenshotRecorder, wait_for_settle
from dealer_portal.scraping.config.models import PortalScrapingSettings
from dealer_portal.scraping.errors import AuthError, ConfigError
from dealer_portal.scraping.logging_utils import clip, log_event
from dealer_portal.scraping.sinks.base import ProgressSink, SafeProgressSink
from dealer_portal.scraping.types import Credentials, Session

logger = logging.getLogger(__name__)

CONSENT_BUTTON_TEXTS = ("continue", "accept", "accept all", "got it")
SUBMIT_BUTTON_TEXTS = ("sign in", "login", "log in", "submit")

_DISMISS_CONSENT_JS = """
(texts) => {
  const buttons = Array.from(document.querySelectorAll('button, a'));
  const consent = buttons.find(b => texts.includes((b.textContent || '').trim().toLowerCase()));
  if (consent) { consent.click(); return true; }
  return false;
}
"""

_CLICK_SUBMIT_BY_TEXT_JS = """
(texts) => {
  const elements = Array.from(document.querySelectorAll('button, a, input[type="button"], input[type="submit"]'));
  const button = elements.find(el => texts.includes((el.textContent || el.value || '').trim().toLowerCase()));
  if (button) { button.click(); return 'button'; }
  const form = document.querySelector('form');
  if (form) { form.submit(); return 'form'; }
  return null;
}
"""

_BODY_TEXT_JS = "() => (document.body && document.body.innerText || '').slice(0, 1000)"


def first_match(context: Any, candidates: Sequence[str]) -> str | None:
    """
    Return the first selector in `candidates` that matches an element.
    """

    for selector in candidates:
        try:
            if context.query_selector(selector) is not None:
                return selector
        except PlaywrightError:
            continue
    return None


class SessionAuthenticator:
    """
    Logs into a portal with a site adapter's selector candidates.
    """

    def __init__(
        self,
        *,
        adapter: SiteAdapter,
        settings: PortalScrapingSettings,
        screenshots: ScreenshotRecorder,
        sink: ProgressSink | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._adapter = adapter
        self._settings = settings
        self._screenshots = screenshots
        self._sink = SafeProgressSink(sink, portal=adapter.name)
        self._sleep = sleep

    def authenticate(self, page: Any, credentials: Credentials | None) -> Session:
        portal = self._adapter.name
        if credentials is None or not credentials.is_complete():
            raise ConfigError(
                "Missing portal credentials: username and password are both required.",
                portal=portal,
                stage="login",
            )

        try:
            return self._login(page, credentials)
        except PlaywrightError as exc:
            self._screenshots.capture(page, "login-browser-error")
            log_event(logger, logging.WARNING, "portal_login_browser_error", portal=portal, error=str(exc))
            raise AuthError(f"Login failed: browser error: {clip(exc, 200)}", portal=portal, stage="login") from exc

    def _login(self, page: Any, credentials: Credentials) -> Session:
        portal = self._adapter.name
        timeout_ms = self._settings.navigation_timeout_ms
        login_url = self._adapter.portal.login_url
        self._note(f"Navigating to login page {login_url}")
        page.goto(login_url, wait_until="domcontentloaded", timeout=timeout_ms)
        wait_for_settle(page, timeout_ms=timeout_ms, reason="login_page")
        self._dismiss_consent(page)

        context, context_label = self._locate_login_context(page)
        self._note(f"Found login form in {context_label}")

        username_selector = first_match(context, self._adapter.username_selectors)
        if username_selector is None:
            self._screenshots.capture(page, "login-no-username")
            raise AuthError("Login failed: no email field found", portal=portal, stage="login")

        password_selector = first_match(context, self._adapter.password_selectors)
        if password_selector is None:
            self._screenshots.capture(page, "login-no-password")
            raise AuthError("Login failed: no password field found", portal=portal, stage="login")

        self._type_into(context, username_selector, credentials.username)
        self._type_into(context, password_selector, credentials.password)
        self._note("Credentials filled, submitting...")

        method = self._submit(page, context, password_selector)
        log_event(logger, logging.INFO, "portal_login_submitted", portal=portal, method=method)

        if self._settings.login_settle_seconds > 0:
            self._sleep(self._settings.login_settle_seconds)

        outcome = self._read_outcome(page, context)
        self._note(f"Post-login URL: {outcome.current_url}")
        if self._adapter.login_failed(outcome):
            self._screenshots.capture(page, "login-failed")
            log_event(
                logger,
                logging.WARNING,
                "portal_login_failed",
                portal=portal,
                policy=self._adapter.verification_policy,
                url=outcome.current_url,
                password_field_present=outcome.password_field_present,
                page_text=clip(outcome.page_text, 200),
            )
            raise AuthError(
                "Login failed: invalid credentials or portal error",
                portal=portal,
                stage="login",
            )

        cookies = page.context.cookies()
        if not cookies:
            raise AuthError("Login failed: no cookies received", portal=portal, stage="login")

        self._note(f"Login successful, {len(cookies)} cookies extracted")
        log_event(logger, logging.INFO, "portal_login_succeeded", portal=portal, cookies=len(cookies))
        return Session(cookies=tuple(dict(cookie) for cookie in cookies), source="login", origin_url=page.url)

    def _dismiss_consent(self, page: Any) -> None:
        try:
            dismissed = page.evaluate(_DISMISS_CONSENT_JS, list(CONSENT_BUTTON_TEXTS))
        except PlaywrightError as exc:
            log_event(logger, logging.DEBUG, "consent_dismiss_failed", portal=self._adapter.name, error=str(exc))
            return
        if dismissed:
            log_event(logger, logging.INFO, "consent_dismissed", portal=self._adapter.name)

    def _locate_login_context(self, page: Any) -> tuple[Any, str]:
        if self._adapter.expects_login_frame:
            try:
                page.wait_for_selector("iframe", timeout=self._settings.navigation_timeout_ms)
            except PlaywrightError:
                log_event(logger, logging.INFO, "login_frame_not_found", portal=self._adapter.name)

        probe = self._adapter.login_input_probe
        for frame in page.frames:
            if frame is page.main_frame:
                continue
            frame_url = frame.url or ""
            if not frame_url or frame_url == "about:blank":
                continue
            try:
                has_login_input = frame.query_selector(probe) is not None
            except PlaywrightError:
                continue
            if has_login_input:
                log_event(logger, logging.INFO, "login_frame_selected", portal=self._adapter.name, url=frame_url)
                return frame, f"iframe {frame_url}"
        return page, "main page"

    @staticmethod
    def _type_into(context: Any, selector: str, value: str) -> None:
        context.fill(selector, "")
        context.type(selector, value, delay=50)

    def _submit(self, page: Any, context: Any, password_selector: str) -> str:
        timeout_ms = self._settings.navigation_timeout_ms

        submit_selector = first_match(context, self._adapter.submit_selectors)
        if submit_selector is not None:
            context.click(submit_selector)
            wait_for_settle(page, timeout_ms=timeout_ms, reason="login_submit")
            return "submit_control"

        try:
            clicked = context.evaluate(_CLICK_SUBMIT_BY_TEXT_JS, list(SUBMIT_BUTTON_TEXTS))
        except PlaywrightError as exc:
            log_event(logger, logging.INFO, "login_text_submit_failed", portal=self._adapter.name, error=str(exc))
            clicked = None
        if clicked:
            self._note("Clicked sign-in button by text match" if clicked == "button" else "Submitted login form")
            wait_for_settle(page, timeout_ms=timeout_ms, reason="login_submit")
            return f"text_{clicked}"

        context.focus(password_selector)
        page.keyboard.press("Enter")
        wait_for_settle(page, timeout_ms=timeout_ms, reason="login_submit")
        return "enter_key"

    def _read_outcome(self, page: Any, context: Any) -> LoginOutcome:
        password_present = False
        for candidate in (page, context):
            try:
                if candidate.query_selector('input[type="password"]') is not None:
                    password_present = True
                    break
            except PlaywrightError:
                continue
        try:
            page_text = page.evaluate(_BODY_TEXT_JS) or ""
        except PlaywrightError:
            page_text = ""
        return LoginOutcome(
            current_url=page.url,
            password_field_present=password_present,
            page_text=str(page_text),
        )

    def _note(self, text: str) -> None:
        self._sink.append_line(text)
