"""
Site adapter abstraction: per-vendor selectors, login verification and parsers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from dealer_portal.scraping.browser import looks_like_login_url
from dealer_portal.scraping.config.models import PortalConfig, PortalScrapingSettings
from dealer_portal.scraping.parsing.inventory_parsers import parse_warehouse_table
from dealer_portal.scraping.types import ExtractionResult, InventoryResult, WorkItem

LOGIN_ERROR_PHRASES = (
    "invalid",
    "incorrect",
    "try again",
    "wrong password",
    "authentication failed",
)

POLICY_PASSWORD_FIELD = "password_field"
POLICY_ERROR_TEXT_ON_LOGIN_URL = "error_text_on_login_url"

DEFAULT_DATA_MARKERS = ("price", "$")


@dataclass(frozen=True)
class LoginOutcome:
    """
    What the page looked like after the login form was submitted.
    """

    current_url: str
    password_field_present: bool
    page_text: str

    def has_error_text(self) -> bool:
        lowered = self.page_text.lower()
        return any(phrase in lowered for phrase in LOGIN_ERROR_PHRASES)


def password_field_policy(outcome: LoginOutcome) -> bool:
    """
    A lingering password field is enough to call the login failed.
    """

    return outcome.password_field_present or outcome.has_error_text()


def error_text_on_login_url_policy(outcome: LoginOutcome) -> bool:
    """
    Failure requires error text while still sitting on a login-looking URL.
    """

    return outcome.has_error_text() and looks_like_login_url(outcome.current_url)


VERIFICATION_POLICIES = {
    POLICY_PASSWORD_FIELD: password_field_policy,
    POLICY_ERROR_TEXT_ON_LOGIN_URL: error_text_on_login_url_policy,
}


class SiteAdapter(ABC):
    """
    Vendor-specific knowledge the authenticator and engine consume.

    Configured selectors are always tried before the class defaults.
    """

    DEFAULT_SELECTORS: dict[str, list[str]] = {
        "username": [
            'input[type="email"]',
            'input[name="username"]',
            'input[name*="email"]',
            'input[name*="user"]',
            "#username",
        ],
        "password": [
            'input[type="password"]',
            'input[name="password"]',
            'input[name*="pass"]',
            "#password",
        ],
        "submit": [
            'button[type="submit"]',
            'input[type="submit"]',
        ],
        "search_input": [],
        "search_submit": [],
    }
    DEFAULT_VERIFICATION_POLICY = POLICY_PASSWORD_FIELD
    LOGIN_INPUT_PROBE = 'input[type="email"], input[type="text"], input[name*="email"], input[name*="user"]'
    EXPECTS_LOGIN_FRAME = False
    SUPPORTS_BROWSER_EXTRACTION = False
    DATA_MARKERS: tuple[str, ...] = DEFAULT_DATA_MARKERS

    def __init__(self, *, portal: PortalConfig) -> None:
        self.portal = portal

    @property
    def name(self) -> str:
        return self.portal.name

    def selectors_for(self, kind: str) -> list[str]:
        normalized_kind = kind.strip().lower()
        configured = self.portal.selectors.get(normalized_kind, [])
        fallback = self.DEFAULT_SELECTORS.get(normalized_kind, [])
        return list(dict.fromkeys([*configured, *fallback]))

    @property
    def username_selectors(self) -> list[str]:
        return self.selectors_for("username")

    @property
    def password_selectors(self) -> list[str]:
        return self.selectors_for("password")

    @property
    def submit_selectors(self) -> list[str]:
        return self.selectors_for("submit")

    @property
    def login_input_probe(self) -> str:
        return self.LOGIN_INPUT_PROBE

    @property
    def expects_login_frame(self) -> bool:
        return self.EXPECTS_LOGIN_FRAME

    @property
    def supports_browser_extraction(self) -> bool:
        return self.SUPPORTS_BROWSER_EXTRACTION

    @property
    def supports_inventory(self) -> bool:
        return bool(self.portal.endpoints.get("inventory"))

    @property
    def search_control_selector(self) -> str | None:
        candidates = self.selectors_for("search_input")
        return candidates[0] if candidates else None

    @property
    def verification_policy(self) -> str:
        policy = self.portal.verification_policy or self.DEFAULT_VERIFICATION_POLICY
        if policy not in VERIFICATION_POLICIES:
            return self.DEFAULT_VERIFICATION_POLICY
        return policy

    def login_failed(self, outcome: LoginOutcome) -> bool:
        return VERIFICATION_POLICIES[self.verification_policy](outcome)

    def detail_paths(self, item: WorkItem) -> list[str]:
        """
        Authenticated endpoints to try, in order, for one item.
        """

        template = self.portal.endpoints.get("detail")
        if not template:
            return []
        return [self._format_endpoint(template, item)]

    def public_detail_url(self, item: WorkItem) -> str | None:
        template = self.portal.endpoints.get("public_detail")
        if not template:
            return None
        return self._format_endpoint(template, item)

    def has_data_markers(self, html: str | None) -> bool:
        if not html:
            return False
        lowered = html.lower()
        return any(marker.lower() in lowered for marker in self.DATA_MARKERS)

    @abstractmethod
    def parse_detail_page(self, html: str, item: WorkItem) -> ExtractionResult | None:
        """
        Parse an item detail response; None means no data for this item.
        """

    def parse_listing_page(self, html: str, item: WorkItem) -> str | None:
        """
        Return the detail link for `item` from a search/listing page, if any.
        """

        return None

    def inventory_paths(self, item: WorkItem) -> list[str]:
        template = self.portal.endpoints.get("inventory")
        if not template:
            return []
        return [self._format_endpoint(template, item)]

    def parse_inventory_page(self, html: str, item: WorkItem) -> InventoryResult | None:
        """
        Parse a stock-level response; None means the portal lists no stock for this item.

        The default reads a per-region `tblwhse` warehouse table.
        """

        stocks = parse_warehouse_table(html)
        if not stocks:
            return None
        return InventoryResult(item_code=item.code, warehouses=tuple(stocks), source="warehouse_table")

    def extract_with_browser(
        self,
        page: Any,
        item: WorkItem,
        settings: PortalScrapingSettings,
    ) -> ExtractionResult | None:
        raise NotImplementedError(f"Adapter '{self.portal.adapter_type}' has no browser extraction.")

    def run_discovery_search(self, page: Any, term: str, settings: PortalScrapingSettings) -> None:
        """
        Perform one representative search so the result page can be inspected.
        """

        selector = self.search_control_selector
        if not selector or not term:
            return
        page.fill(selector, "")
        page.type(selector, term, delay=20)
        submit = self.selectors_for("search_submit")
        if submit:
            page.click(submit[0])
        else:
            page.press(selector, "Enter")

    @staticmethod
    def _format_endpoint(template: str, item: WorkItem) -> str:
        return template.replace("{code}", quote(item.code, safe=""))
