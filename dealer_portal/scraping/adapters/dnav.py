"""
Adapter for DNav (Decor 24) dealer portals reached over authenticated HTTP.
"""

from __future__ import annotations

from dealer_portal.scraping.adapters.base import POLICY_ERROR_TEXT_ON_LOGIN_URL, SiteAdapter
from dealer_portal.scraping.parsing.inventory_parsers import extract_warehouse, parse_stock_table
from dealer_portal.scraping.parsing.price_parsers import (
    extract_dealer_price,
    infer_price_basis,
    parse_price_table,
    visible_text,
)
from dealer_portal.scraping.types import ExtractionResult, InventoryResult, WarehouseStock, WorkItem

DEFAULT_WAREHOUSE = "main"


class DNavPortalAdapter(SiteAdapter):
    """
    Text-field login on the main page; item inquiry pages carry a price table.
    """

    DEFAULT_SELECTORS: dict[str, list[str]] = {
        "username": [
            'input[name="username"]',
            'input[name="userid"]',
            'input[name="user"]',
            'input[name="login"]',
            'input[name*="user"]',
            'input[name*="User"]',
            'input[type="text"]:first-of-type',
            "#username",
            "#userid",
            "#user",
        ],
        "password": [
            'input[type="password"]',
            'input[name="password"]',
            'input[name="passwd"]',
            'input[name*="pass"]',
            "#password",
        ],
        "submit": [
            'button[type="submit"]',
            'input[type="submit"]',
            'input[type="button"][value*="Login"]',
            'input[type="button"][value*="Sign"]',
            "button.btn-primary",
            "#loginButton",
            "#login-btn",
        ],
        "search_input": [],
        "search_submit": [],
    }
    DEFAULT_VERIFICATION_POLICY = POLICY_ERROR_TEXT_ON_LOGIN_URL
    DATA_MARKERS = ("dealer", "price", "cost", "$")

    def parse_detail_page(self, html: str, item: WorkItem) -> ExtractionResult | None:
        wanted = item.lookup_key()
        for row in parse_price_table(html):
            if WorkItem(code=row.item_number).lookup_key() != wanted:
                continue
            return ExtractionResult(
                item_code=item.code,
                cost=row.dealer_cost,
                price_basis=row.price_basis,
                list_price=row.list_price,
                source="dnav_table",
            )

        cost = extract_dealer_price(html)
        if cost is None:
            return None
        return ExtractionResult(
            item_code=item.code,
            cost=cost,
            price_basis=infer_price_basis(visible_text(html)),
            source="dnav_text",
        )

    def parse_inventory_page(self, html: str, item: WorkItem) -> InventoryResult | None:
        wanted = item.lookup_key()
        for row in parse_stock_table(html):
            if WorkItem(code=row.item_number).lookup_key() != wanted:
                continue
            warehouse = extract_warehouse(visible_text(html)) or self.portal.warehouse or DEFAULT_WAREHOUSE
            return InventoryResult(
                item_code=item.code,
                warehouses=(WarehouseStock(warehouse=warehouse, qty_on_hand_sqft=row.qty_on_hand_sqft),),
                source="dnav_stock_table",
            )
        return None
