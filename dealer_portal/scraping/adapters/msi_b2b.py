"""
Adapter for the MSI B2B portal: iframe login, ASP.NET search and postback pages.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from dealer_portal.scraping.adapters.base import POLICY_PASSWORD_FIELD, SiteAdapter
from dealer_portal.scraping.browser import wait_for_settle
from dealer_portal.scraping.config.models import PortalScrapingSettings
from dealer_portal.scraping.logging_utils import log_event
from dealer_portal.scraping.parsing.price_parsers import (
    extract_dealer_price,
    extract_packaging,
    extract_unit_prices,
    infer_price_basis,
    visible_text,
)
from dealer_portal.scraping.types import ExtractionResult, InventoryResult, WorkItem

logger = logging.getLogger(__name__)

NO_RECORDS_MARKER = "No Records"

# Returns the text of the clicked item link, preferring an exact code match,
# then a postback link containing the code, then the first item-grid link.
_CLICK_ITEM_LINK_JS = """
(code) => {
  const sku = /^[A-Z0-9][A-Z0-9\\-_]+$/;
  const links = Array.from(document.querySelectorAll('a'));
  const postback = (a) => (a.getAttribute('href') || '').includes('__doPostBack');
  const pick = links.find(a => a.textContent.trim() === code && postback(a))
    || links.find(a => {
      const text = a.textContent.trim();
      const href = a.getAttribute('href') || '';
      return postback(a) && href.includes('ContentPlaceHolder') && text.length > 5
        && sku.test(text) && text.includes(code);
    })
    || links.find(a => {
      const text = a.textContent.trim();
      const href = a.getAttribute('href') || '';
      return postback(a) && href.includes('gvItemInfo') && text.length > 5 && sku.test(text);
    });
  if (!pick) return null;
  pick.click();
  return pick.textContent.trim();
}
"""


class MSIB2BPortalAdapter(SiteAdapter):
    """
    Login form lives in a cross-origin iframe; pricing needs browser navigation.
    """

    DEFAULT_SELECTORS: dict[str, list[str]] = {
        "username": [
            'input[type="email"]',
            'input[name*="email"]',
            'input[name*="user"]',
            'input[name*="login"]',
            'input[type="text"]',
        ],
        "password": [
            'input[type="password"]',
            'input[name*="password"]',
            'input[name*="pass"]',
        ],
        "submit": [
            'button[type="submit"]',
            'input[type="submit"]',
        ],
        "search_input": ["#ctl00_ContentPlaceHolder1_txtItemID"],
        "search_submit": ["#ctl00_ContentPlaceHolder1_btnSearch"],
    }
    DEFAULT_VERIFICATION_POLICY = POLICY_PASSWORD_FIELD
    LOGIN_INPUT_PROBE = (
        'input[type="email"], input[type="text"], input[name*="email"], '
        'input[name*="user"], input[name*="username"]'
    )
    EXPECTS_LOGIN_FRAME = True
    SUPPORTS_BROWSER_EXTRACTION = True
    DATA_MARKERS = ("price", "$")

    def detail_paths(self, item: WorkItem) -> list[str]:
        paths = super().detail_paths(item)
        public = self.public_detail_url(item)
        if public and public not in paths:
            # Public endpoint, requested with the session cookies.
            paths.append(public)
        return paths

    def parse_detail_page(self, html: str, item: WorkItem) -> ExtractionResult | None:
        if not html or NO_RECORDS_MARKER in html:
            return None
        cost = extract_dealer_price(html)
        if cost is None:
            return None
        text = visible_text(html)
        return ExtractionResult(
            item_code=item.code,
            cost=cost,
            price_basis=infer_price_basis(html),
            coverage=extract_packaging(text),
            source="msi_inventory_api",
        )

    def parse_inventory_page(self, html: str, item: WorkItem) -> InventoryResult | None:
        result = super().parse_inventory_page(html, item)
        if result is None:
            return None
        return replace(result, source="msi_inventory_api")

    def parse_listing_page(self, html: str, item: WorkItem) -> str | None:
        soup = BeautifulSoup(html, "html.parser")
        link = soup.select_one('a[href*="TileDetails.aspx"]')
        if link is None:
            return None
        href = str(link.get("href") or "").strip()
        if not href:
            return None
        return urljoin(self.portal.entry_url, href)

    def extract_with_browser(
        self,
        page: Any,
        item: WorkItem,
        settings: PortalScrapingSettings,
    ) -> ExtractionResult | None:
        timeout_ms = settings.navigation_timeout_ms
        search_input = self.search_control_selector
        if not search_input:
            raise ValueError(f"Portal '{self.name}' has no search_input selector.")

        page.fill(search_input, "")
        page.type(search_input, item.code, delay=20)
        submit = self.selectors_for("search_submit")
        if submit:
            page.click(submit[0])
        else:
            page.press(search_input, "Enter")
        wait_for_settle(page, timeout_ms=timeout_ms, reason="search")

        detail_url = self.parse_listing_page(page.content(), item)
        if detail_url is None:
            return None

        page.goto(detail_url, wait_until="domcontentloaded", timeout=timeout_ms)
        wait_for_settle(page, timeout_ms=timeout_ms, reason="tile_detail")

        clicked = page.evaluate(_CLICK_ITEM_LINK_JS, item.code)
        if not clicked:
            log_event(logger, logging.INFO, "item_link_not_found", portal=self.name, item_code=item.code)
            return None
        wait_for_settle(page, timeout_ms=timeout_ms, reason="item_postback")

        text = page.inner_text("body")
        price_sqft, price_each = extract_unit_prices(text)
        if price_sqft is None and price_each is None:
            return None

        result = ExtractionResult(
            item_code=item.code,
            cost=price_sqft if price_sqft is not None else price_each,
            price_basis="per_sqft" if price_sqft is not None else "per_unit",
            list_price=None,
            coverage=extract_packaging(text),
            source=f"msi_item_detail:{clicked}",
        )
        page.goto(self.portal.entry_url, wait_until="domcontentloaded", timeout=timeout_ms)
        return result
