"""
Shared portal extraction runtime data models.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

_LOOKUP_KEY_STRIP = re.compile(r"[-\s.]")


@dataclass(frozen=True)
class Credentials:
    """
    Portal login credentials read from process configuration.
    """

    username: str
    password: str

    def is_complete(self) -> bool:
        return bool(self.username and self.username.strip() and self.password)


@dataclass(frozen=True)
class Session:
    """
    Authenticated cookie state reused across one job's requests.
    """

    cookies: tuple[dict[str, Any], ...]
    source: str = "login"
    obtained_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    origin_url: str | None = None

    def cookie_header(self) -> str:
        return "; ".join(
            f"{cookie['name']}={cookie.get('value', '')}"
            for cookie in self.cookies
            if cookie.get("name")
        )

    def browser_cookies(self, default_url: str) -> list[dict[str, Any]]:
        """
        Cookies in the shape accepted by Playwright's ``BrowserContext.add_cookies``.
        """

        converted: list[dict[str, Any]] = []
        for cookie in self.cookies:
            name = cookie.get("name")
            if not name:
                continue
            entry: dict[str, Any] = {"name": name, "value": str(cookie.get("value", ""))}
            domain = cookie.get("domain")
            if domain:
                entry["domain"] = domain
                entry["path"] = cookie.get("path") or "/"
            else:
                entry["url"] = default_url
            expires = cookie.get("expires")
            if isinstance(expires, (int, float)) and expires > 0:
                entry["expires"] = float(expires)
            if "secure" in cookie:
                entry["secure"] = bool(cookie["secure"])
            if "httpOnly" in cookie:
                entry["httpOnly"] = bool(cookie["httpOnly"])
            converted.append(entry)
        return converted

    def __len__(self) -> int:
        return len(self.cookies)


@dataclass(frozen=True)
class WorkItem:
    """
    One item identifier the engine extracts data for.
    """

    code: str
    category_hint: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def lookup_key(self) -> str:
        return _LOOKUP_KEY_STRIP.sub("", self.code).upper()


@dataclass(frozen=True)
class ExtractionResult:
    """
    Structured per-item output from a site adapter.
    """

    item_code: str
    cost: float | None
    price_basis: str = "per_sqft"
    list_price: float | None = None
    coverage: dict[str, float] = field(default_factory=dict)
    source: str = ""


@dataclass(frozen=True)
class WarehouseStock:
    warehouse: str
    qty_on_hand: int = 0
    qty_in_transit: int = 0
    qty_on_hand_sqft: float = 0.0
    qty_in_transit_sqft: float = 0.0


@dataclass(frozen=True)
class InventoryResult:
    """
    Stock levels for one item, one entry per warehouse or region.
    """

    item_code: str
    warehouses: tuple[WarehouseStock, ...]
    source: str = ""

    @property
    def total_on_hand_sqft(self) -> float:
        return sum(stock.qty_on_hand_sqft for stock in self.warehouses)


ItemResult = ExtractionResult | InventoryResult


@dataclass
class ErrorBudget:
    """
    Counts every error but bounds how many are logged.
    """

    max_logged: int
    error_count: int = 0
    logged_count: int = 0

    def record(self) -> bool:
        """
        Count one error and return whether it may still be logged.
        """

        self.error_count += 1
        if self.logged_count < self.max_logged:
            self.logged_count += 1
            return True
        return False


@dataclass
class ConsecutiveFailureCounter:
    threshold: int
    count: int = 0

    def record_failure(self) -> bool:
        """
        Count one failure and return True once the threshold is reached.
        """

        self.count += 1
        return self.count >= self.threshold

    def reset(self) -> None:
        self.count = 0


@dataclass(frozen=True)
class Checkpoint:
    processed: int
    matched: int
    updated: int
    errors: int

    def as_counters(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "matched": self.matched,
            "updated": self.updated,
            "errors": self.errors,
        }


@dataclass
class ExtractionSummary:
    """
    Counters accumulated by one batch extraction run.
    """

    processed: int = 0
    matched: int = 0
    updated: int = 0
    errors: int = 0
    reauth_attempts: int = 0
    strategy: str | None = None
    aborted: bool = False
    abort_reason: str | None = None

    def checkpoint(self) -> Checkpoint:
        return Checkpoint(
            processed=self.processed,
            matched=self.matched,
            updated=self.updated,
            errors=self.errors,
        )


@dataclass(frozen=True)
class CandidateCard:
    """
    A page element that looks like a product card title.
    """

    text: str
    element_tag: str = ""
    element_id: str = ""
    element_class: str = ""
    element_html: str = ""
    clickable_tag: str | None = None
    clickable_href: str | None = None
    container_tag: str | None = None
    container_class: str = ""
    container_html: str = ""
    image_src: str = ""


@dataclass
class DiagnosticDump:
    """
    Page structure captured by discovery mode for hand-authoring an adapter.
    """

    portal: str
    url: str = ""
    title: str = ""
    forms: list[dict[str, Any]] = field(default_factory=list)
    inputs: list[dict[str, Any]] = field(default_factory=list)
    cards: list[CandidateCard] = field(default_factory=list)
    screenshot_path: str | None = None
