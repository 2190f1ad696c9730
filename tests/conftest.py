"""
tests/conftest.py

Shared fixtures and in-memory fakes for the Playwright page surface the
scraping package touches. No browser, database or network is used.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from dealer_portal.scraping.config.models import PortalConfig, PortalScrapingSettings
from dealer_portal.scraping.sinks.base import ProgressSink, RecordStore
from dealer_portal.scraping.types import ExtractionResult, WorkItem


class FakeElement:
    def __init__(self, selector: str) -> None:
        self.selector = selector


class FakeFrame:
    """
    Minimal Frame: selector presence, form input recording and scripted evaluate.
    """

    def __init__(self, *, url: str = "", selectors: set[str] | None = None) -> None:
        self.url = url
        self.selectors: set[str] = set(selectors or set())
        self.filled: dict[str, str] = {}
        self.typed: dict[str, str] = {}
        self.clicks: list[str] = []
        self.focused: list[str] = []
        self.pressed: list[tuple[str, str]] = []
        self.on_click: dict[str, Callable[[], None]] = {}
        self.script_results: dict[str, Any] = {}
        self.evaluations: list[str] = []

    def query_selector(self, selector: str) -> FakeElement | None:
        if any(part.strip() in self.selectors for part in selector.split(",")):
            return FakeElement(selector)
        return None

    def fill(self, selector: str, value: str) -> None:
        self.filled[selector] = value
        self.typed[selector] = value

    def type(self, selector: str, value: str, delay: float | None = None) -> None:
        self.typed[selector] = self.typed.get(selector, "") + value

    def click(self, selector: str) -> None:
        self.clicks.append(selector)
        callback = self.on_click.get(selector)
        if callback is not None:
            callback()

    def press(self, selector: str, key: str) -> None:
        self.pressed.append((selector, key))

    def focus(self, selector: str) -> None:
        self.focused.append(selector)

    def evaluate(self, script: str, arg: Any = None) -> Any:
        self.evaluations.append(script)
        for marker, value in self.script_results.items():
            if marker in script:
                return value(arg) if callable(value) else value
        return None


class FakeKeyboard:
    def __init__(self, page: "FakePage") -> None:
        self._page = page
        self.presses: list[str] = []

    def press(self, key: str) -> None:
        self.presses.append(key)
        if self._page.on_enter is not None:
            self._page.on_enter()


class FakeContext:
    def __init__(self, cookies: list[dict[str, Any]] | None = None) -> None:
        self._cookies = list(cookies or [])
        self.added: list[dict[str, Any]] = []

    def cookies(self) -> list[dict[str, Any]]:
        return list(self._cookies)

    def add_cookies(self, cookies: list[dict[str, Any]]) -> None:
        self.added.extend(cookies)
        self._cookies.extend(cookies)


class FakePage(FakeFrame):
    """
    Main page plus child frames, navigation history and screenshot capture.
    """

    def __init__(
        self,
        *,
        url: str = "about:blank",
        selectors: set[str] | None = None,
        cookies: list[dict[str, Any]] | None = None,
        body_text: str = "",
    ) -> None:
        super().__init__(url=url, selectors=selectors)
        self.main_frame = self
        self.child_frames: list[FakeFrame] = []
        self.context = FakeContext(cookies)
        self.keyboard = FakeKeyboard(self)
        self.body_text = body_text
        self.html = ""
        self.visited: list[str] = []
        self.screenshots: list[str] = []
        self.on_enter: Callable[[], None] | None = None
        self.on_goto: Callable[[str], None] | None = None

    @property
    def frames(self) -> list[FakeFrame]:
        return [self, *self.child_frames]

    def goto(self, url: str, wait_until: str | None = None, timeout: float | None = None) -> None:
        self.visited.append(url)
        self.url = url
        if self.on_goto is not None:
            self.on_goto(url)

    def wait_for_load_state(self, state: str = "load", timeout: float | None = None) -> None:
        return None

    def wait_for_selector(self, selector: str, timeout: float | None = None) -> FakeElement | None:
        return self.query_selector(selector)

    def evaluate(self, script: str, arg: Any = None) -> Any:
        result = super().evaluate(script, arg)
        if result is None and "innerText" in script:
            return self.body_text
        return result

    def screenshot(self, path: str, full_page: bool = False) -> None:
        self.screenshots.append(path)

    def content(self) -> str:
        return self.html

    def inner_text(self, selector: str) -> str:
        return self.body_text


class FakeBrowser:
    """
    Stands in for BrowserRunner: context manager exposing page and context.
    """

    def __init__(self, page: FakePage) -> None:
        self.page = page
        self.context = page.context
        self.entered = False
        self.closed = False

    def __enter__(self) -> "FakeBrowser":
        self.entered = True
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.closed = True


class RecordingSink(ProgressSink):
    def __init__(self) -> None:
        self.lines: list[str] = []
        self.errors: list[str] = []
        self.counters: list[dict[str, int]] = []

    def append_line(self, text: str, counters: dict[str, int] | None = None) -> None:
        self.lines.append(text)
        if counters is not None:
            self.counters.append(dict(counters))

    def record_error(self, text: str) -> None:
        self.errors.append(text)


class RecordingStore(RecordStore):
    def __init__(self) -> None:
        self.records: dict[str, ExtractionResult] = {}

    def upsert(self, item: WorkItem, result: ExtractionResult) -> None:
        self.records[item.code] = result


@pytest.fixture()
def settings(tmp_path: Path) -> PortalScrapingSettings:
    return PortalScrapingSettings(
        config_path=str(tmp_path / "portals.json"),
        default_user_agent="test-agent/1.0",
        navigation_timeout_seconds=5.0,
        request_timeout_seconds=5.0,
        max_retries=2,
        backoff_initial_seconds=0.5,
        backoff_multiplier=2.0,
        max_redirects=5,
        item_delay_seconds=0.0,
        consecutive_failure_threshold=10,
        max_logged_errors=30,
        checkpoint_interval=25,
        probe_sample_size=3,
        login_settle_seconds=0.0,
        uploads_path=str(tmp_path / "uploads"),
    )


def make_portal(**overrides: Any) -> PortalConfig:
    values: dict[str, Any] = {
        "name": "triwest",
        "adapter_type": "dnav",
        "base_url": "https://dealer.example.com/d24",
        "login_url": "https://dealer.example.com/d24",
        "entry_url": "https://dealer.example.com/d24",
        "endpoints": {
            "detail": "https://dealer.example.com/d24/iteminquiry?item={code}",
            "public_detail": "https://dealer.example.com/d24/iteminquiry?item={code}&guest=1",
        },
        "username_env": "TEST_PORTAL_USERNAME",
        "password_env": "TEST_PORTAL_PASSWORD",
        "cookies_env": "TEST_PORTAL_COOKIES",
        "strategy": "fetch",
        "item_delay_seconds": None,
        "vendor_code": "TRIWEST",
    }
    values.update(overrides)
    return PortalConfig(**values)


def make_msi_portal(**overrides: Any) -> PortalConfig:
    values: dict[str, Any] = {
        "name": "msi",
        "adapter_type": "msi_b2b",
        "base_url": "https://b2b.example.com",
        "login_url": "https://www.example.com/customer-portal/",
        "entry_url": "https://b2b.example.com/B2BTiles/NonSlabSelector.aspx",
        "endpoints": {
            "detail": "https://b2b.example.com/inventory/tiledetails/?ItemId={code}",
            "public_detail": "https://www.example.com/inventory/tiledetails/?ItemId={code}",
        },
        "strategy": "auto",
        "vendor_code": "MSI",
    }
    values.update(overrides)
    return make_portal(**values)


@pytest.fixture()
def portal() -> PortalConfig:
    return make_portal()


@pytest.fixture()
def msi_portal() -> PortalConfig:
    return make_msi_portal()


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture(autouse=True)
def _isolated_portal_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("TEST_PORTAL_USERNAME", "TEST_PORTAL_PASSWORD", "TEST_PORTAL_COOKIES"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def portal_factory() -> Callable[..., PortalConfig]:
    return make_portal


@pytest.fixture()
def msi_portal_factory() -> Callable[..., PortalConfig]:
    return make_msi_portal


@pytest.fixture()
def page_factory() -> Callable[..., FakePage]:
    return FakePage


@pytest.fixture()
def frame_factory() -> Callable[..., FakeFrame]:
    return FakeFrame


@pytest.fixture()
def browser_factory() -> Callable[[FakePage], FakeBrowser]:
    return FakeBrowser
