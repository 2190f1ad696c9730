"""
tests/test_runner.py

Pytest unit tests for PortalJobRunner session establishment.

Coverage
--------
- Missing credentials and cookie source fails before any browser launch
- Failed login without a cookie source aborts with nothing stored
- Failed login with a cookie source falls back to imported cookies
- Browser timeouts during login take the same fallback or abort path
- Cookie-only configuration skips browser login entirely
- Inventory runs use the inventory endpoint and need one configured
"""

from __future__ import annotations

from unittest.mock import Mock

import pytest
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from dealer_portal.scraping.errors import AuthError, ConfigError
from dealer_portal.scraping.runner import PortalJobRunner
from dealer_portal.scraping.types import InventoryResult, WorkItem

PRICE_TABLE = """
<table>
  <tr><th>Item</th><th>Description</th><th>Dealer</th><th>List</th><th>U/M</th></tr>
  <tr><td>TWL-40021</td><td>Porcelain 12x24</td><td>$3.15</td><td>$5.40</td><td>SF</td></tr>
</table>
"""

STOCK_PAGE = """
<div>Warehouse: TW Santa Fe Springs, CA</div>
<table>
  <tr><th>Item</th><th>Description</th><th>Available</th></tr>
  <tr><td>TWL-40021</td><td>Porcelain 12x24</td><td>1,250.00 SF</td></tr>
</table>
"""


def _http(text: str = PRICE_TABLE) -> Mock:
    response = Mock()
    response.status_code = 200
    response.text = text
    response.headers = {}
    http = Mock()
    http.request.return_value = response
    return http


def _timeout(_url: str) -> None:
    raise PlaywrightTimeoutError("page.goto: Timeout 30000ms exceeded.")


def _runner(settings, portal, store, sink, browser, http=None) -> tuple[PortalJobRunner, list[int]]:
    launches: list[int] = []

    def factory():
        launches.append(1)
        return browser

    runner = PortalJobRunner(
        settings=settings,
        portal=portal,
        store=store,
        sink=sink,
        browser_factory=factory,
        http=http or _http(),
        sleep=lambda _seconds: None,
    )
    return runner, launches


class TestSessionInputs:
    def test_missing_credentials_and_cookies(self, settings, portal, store, sink, page_factory, browser_factory) -> None:
        runner, launches = _runner(settings, portal, store, sink, browser_factory(page_factory()))

        with pytest.raises(ConfigError, match="TEST_PORTAL_USERNAME") as excinfo:
            runner.run([WorkItem(code="TWL-40021")])

        assert launches == []
        assert excinfo.value.stage == "config"
        assert sink.lines[-1].startswith("Aborted [triwest/config] Missing portal credentials")


class TestLoginFailure:
    def test_missing_login_fields_aborts_job(
        self, settings, portal, store, sink, page_factory, browser_factory, monkeypatch
    ) -> None:
        monkeypatch.setenv("TEST_PORTAL_USERNAME", "buyer")
        monkeypatch.setenv("TEST_PORTAL_PASSWORD", "pw")
        browser = browser_factory(page_factory())
        runner, _launches = _runner(settings, portal, store, sink, browser)

        with pytest.raises(AuthError):
            runner.run([WorkItem(code="TWL-40021")])

        assert "Aborted [triwest/login] Login failed: no email field found" in sink.lines
        assert sink.errors == ["[triwest/login] Login failed: no email field found"]
        assert store.records == {}
        assert browser.closed is True

    def test_cookie_fallback_after_failed_login(
        self, settings, portal, store, sink, page_factory, browser_factory, monkeypatch
    ) -> None:
        monkeypatch.setenv("TEST_PORTAL_USERNAME", "buyer")
        monkeypatch.setenv("TEST_PORTAL_PASSWORD", "pw")
        monkeypatch.setenv("TEST_PORTAL_COOKIES", "sid=abc")
        browser = browser_factory(page_factory())
        http = _http()
        runner, _launches = _runner(settings, portal, store, sink, browser, http)

        summary = runner.run([WorkItem(code="TWL-40021")])

        assert browser.context.added == [{"name": "sid", "value": "abc", "url": "https://dealer.example.com/d24"}]
        assert any(line.startswith("Browser login failed: Login failed: no email field found") for line in sink.lines)
        assert "Using 1 imported cookies" in sink.lines
        assert summary.strategy == "fetch"
        assert summary.matched == 1
        assert store.records["TWL-40021"].cost == 3.15
        assert http.request.call_args.kwargs["headers"]["Cookie"] == "sid=abc"

    def test_login_timeout_falls_back_to_cookies(
        self, settings, portal, store, sink, page_factory, browser_factory, monkeypatch
    ) -> None:
        monkeypatch.setenv("TEST_PORTAL_USERNAME", "buyer")
        monkeypatch.setenv("TEST_PORTAL_PASSWORD", "pw")
        monkeypatch.setenv("TEST_PORTAL_COOKIES", "sid=abc")
        page = page_factory()
        page.on_goto = _timeout
        runner, _launches = _runner(settings, portal, store, sink, browser_factory(page))

        summary = runner.run([WorkItem(code="TWL-40021")])

        assert any(line.startswith("Browser login failed: Login failed: browser error") for line in sink.lines)
        assert summary.matched == 1
        assert store.records["TWL-40021"].cost == 3.15

    def test_login_timeout_without_cookies_aborts(
        self, settings, portal, store, sink, page_factory, browser_factory, monkeypatch
    ) -> None:
        monkeypatch.setenv("TEST_PORTAL_USERNAME", "buyer")
        monkeypatch.setenv("TEST_PORTAL_PASSWORD", "pw")
        page = page_factory()
        page.on_goto = _timeout
        runner, _launches = _runner(settings, portal, store, sink, browser_factory(page))

        with pytest.raises(AuthError):
            runner.run([WorkItem(code="TWL-40021")])

        assert any(line.startswith("Aborted [triwest/login] Login failed: browser error") for line in sink.lines)
        assert store.records == {}


class TestCookieOnly:
    def test_imported_cookies_skip_login(self, settings, portal, store, sink, page_factory, browser_factory, monkeypatch) -> None:
        monkeypatch.setenv("TEST_PORTAL_COOKIES", "sid=abc; lang=en")
        page = page_factory()
        runner, launches = _runner(settings, portal, store, sink, browser_factory(page))

        summary = runner.run([WorkItem(code="TWL-40021")])

        assert launches == [1]
        assert page.visited == []
        assert "No credentials configured, using imported cookies" in sink.lines
        assert "Using 2 imported cookies" in sink.lines
        assert summary.processed == 1
        assert summary.errors == 0


class TestInventoryRuns:
    def test_inventory_run_uses_inventory_endpoint(
        self, settings, portal_factory, store, sink, page_factory, browser_factory, monkeypatch
    ) -> None:
        monkeypatch.setenv("TEST_PORTAL_COOKIES", "sid=abc")
        portal = portal_factory(
            endpoints={
                "detail": "https://dealer.example.com/d24/iteminquiry?item={code}",
                "inventory": "https://dealer.example.com/d24/iteminquiry?item={code}&view=stock",
            }
        )
        http = _http(STOCK_PAGE)
        runner, _launches = _runner(settings, portal, store, sink, browser_factory(page_factory()), http)

        summary = runner.run([WorkItem(code="TWL-40021")], inventory=True)

        assert "Launching browser for triwest inventory..." in sink.lines
        assert summary.strategy == "inventory"
        assert summary.matched == 1
        assert http.request.call_args.args[1] == "https://dealer.example.com/d24/iteminquiry?item=TWL-40021&view=stock"
        result = store.records["TWL-40021"]
        assert isinstance(result, InventoryResult)
        assert result.warehouses[0].warehouse == "TW Santa Fe Springs, CA"
        assert result.warehouses[0].qty_on_hand_sqft == 1250.0

    def test_inventory_without_endpoint_fails_before_launch(
        self, settings, portal, store, sink, page_factory, browser_factory, monkeypatch
    ) -> None:
        monkeypatch.setenv("TEST_PORTAL_COOKIES", "sid=abc")
        runner, launches = _runner(settings, portal, store, sink, browser_factory(page_factory()))

        with pytest.raises(ConfigError, match="inventory") as excinfo:
            runner.run([WorkItem(code="TWL-40021")], inventory=True)

        assert launches == []
        assert excinfo.value.stage == "config"
        assert store.records == {}
