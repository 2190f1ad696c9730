"""
tests/test_price_parsers.py

Pytest unit tests for dealer price parsing and the built-in adapters' page parsers.
"""

from __future__ import annotations

import pytest

from dealer_portal.scraping.adapters.dnav import DNavPortalAdapter
from dealer_portal.scraping.adapters.msi_b2b import MSIB2BPortalAdapter
from dealer_portal.scraping.parsing.price_parsers import (
    extract_dealer_price,
    extract_packaging,
    extract_unit_prices,
    infer_price_basis,
    parse_price_table,
)
from dealer_portal.scraping.types import WorkItem

DNAV_TABLE = """
<html><body>
<table id="results">
  <tr><th>Item #</th><th>Description</th><th>Your Cost</th><th>Retail</th><th>U/M</th></tr>
  <tr><td>TWL-40021</td><td>Porcelain Ash 12x24</td><td>$3.15</td><td>$5.40</td><td>SF</td></tr>
  <tr><td>TWB-99107</td><td>Bullnose Trim</td><td>$7.80</td><td></td><td>PCS</td></tr>
  <tr><td>TWM-30050</td><td>Mosaic Sheet</td><td>12.50</td><td>18.00</td></tr>
</table>
</body></html>
"""

MSI_DETAIL_TEXT = """
Item ID NTRIWHT1224
Price/Sqft $3.49
Price/Each $8.38
Sqft Per Pc 2.00
Sqft Per Box 15.50
Each in Box 8
Approx Weight Per Pc 9.2
"""


class TestDealerPrice:
    @pytest.mark.parametrize(
        ("html", "expected"),
        [
            ("<span>Dealer Price: $12.34</span>", 12.34),
            ("<p>Your cost $1,234.50</p>", 1234.50),
            ("<b>$4.99 / sq ft</b>", 4.99),
            ("<td>Price</td><td class='v'>$6.25</td>", 6.25),
        ],
    )
    def test_patterns(self, html: str, expected: float) -> None:
        assert extract_dealer_price(html) == expected

    def test_implausible_prices_are_rejected(self) -> None:
        assert extract_dealer_price("Dealer Price: $0.00") is None
        assert extract_dealer_price("Dealer Price: $25000.00") is None

    def test_empty_input(self) -> None:
        assert extract_dealer_price(None) is None
        assert extract_dealer_price("") is None

    def test_price_basis(self) -> None:
        assert infer_price_basis("Price $5.00 each") == "per_unit"
        assert infer_price_basis("Price $5.00 / sq ft") == "per_sqft"


class TestUnitPricesAndPackaging:
    def test_unit_prices(self) -> None:
        assert extract_unit_prices(MSI_DETAIL_TEXT) == (3.49, 8.38)

    def test_each_only(self) -> None:
        assert extract_unit_prices("Price/Each $42.00") == (None, 42.0)

    def test_packaging(self) -> None:
        assert extract_packaging(MSI_DETAIL_TEXT) == {
            "sqft_per_piece": 2.0,
            "sqft_per_box": 15.5,
            "pieces_per_box": 8.0,
            "weight_per_piece": 9.2,
        }

    def test_packaging_missing(self) -> None:
        assert extract_packaging("nothing here") == {}


class TestPriceTable:
    def test_rows_with_units(self) -> None:
        rows = {row.item_number: row for row in parse_price_table(DNAV_TABLE)}

        assert set(rows) == {"TWL-40021", "TWB-99107", "TWM-30050"}
        assert rows["TWL-40021"].dealer_cost == 3.15
        assert rows["TWL-40021"].list_price == 5.40
        assert rows["TWL-40021"].price_basis == "per_sqft"
        assert rows["TWB-99107"].list_price is None
        assert rows["TWB-99107"].price_basis == "per_unit"

    def test_bare_numbers_and_default_unit(self) -> None:
        row = next(row for row in parse_price_table(DNAV_TABLE) if row.item_number == "TWM-30050")
        assert (row.dealer_cost, row.list_price) == (12.5, 18.0)
        assert row.unit == "PCS"


class TestDNavAdapter:
    def test_matches_row_by_lookup_key(self, portal_factory) -> None:
        adapter = DNavPortalAdapter(portal=portal_factory())

        result = adapter.parse_detail_page(DNAV_TABLE, WorkItem(code="twb 99107"))

        assert result is not None
        assert result.cost == 7.80
        assert result.price_basis == "per_unit"
        assert result.source == "dnav_table"

    def test_text_fallback(self, portal_factory) -> None:
        adapter = DNavPortalAdapter(portal=portal_factory())

        result = adapter.parse_detail_page("<div>Dealer Price: $2.10 each</div>", WorkItem(code="ABC-123"))

        assert result is not None
        assert result.cost == 2.10
        assert result.price_basis == "per_unit"
        assert result.source == "dnav_text"

    def test_no_price(self, portal_factory) -> None:
        adapter = DNavPortalAdapter(portal=portal_factory())
        assert adapter.parse_detail_page("<div>Item not found</div>", WorkItem(code="X")) is None

    def test_detail_paths_quote_the_code(self, portal_factory) -> None:
        adapter = DNavPortalAdapter(portal=portal_factory())
        assert adapter.detail_paths(WorkItem(code="A B/1")) == [
            "https://dealer.example.com/d24/iteminquiry?item=A%20B%2F1"
        ]


class TestMSIAdapter:
    def test_no_records(self, msi_portal) -> None:
        adapter = MSIB2BPortalAdapter(portal=msi_portal)
        assert adapter.parse_detail_page("<div>No Records Found</div>", WorkItem(code="X")) is None

    def test_detail_page_with_packaging(self, msi_portal) -> None:
        adapter = MSIB2BPortalAdapter(portal=msi_portal)
        html = "<div><span>Price</span>: $3.49 / sqft</div><div>Sqft Per Box 15.5</div>"

        result = adapter.parse_detail_page(html, WorkItem(code="NTRIWHT1224"))

        assert result is not None
        assert result.cost == 3.49
        assert result.coverage == {"sqft_per_box": 15.5}

    def test_listing_link_is_absolute(self, msi_portal) -> None:
        adapter = MSIB2BPortalAdapter(portal=msi_portal)
        html = '<a href="TileDetails.aspx?ProductId=77">Calacatta</a>'

        assert adapter.parse_listing_page(html, WorkItem(code="X")) == (
            "https://b2b.example.com/B2BTiles/TileDetails.aspx?ProductId=77"
        )
        assert adapter.parse_listing_page("<p>none</p>", WorkItem(code="X")) is None

    def test_browser_flow(self, settings, msi_portal, page_factory) -> None:
        adapter = MSIB2BPortalAdapter(portal=msi_portal)
        page = page_factory(url=msi_portal.entry_url, body_text=MSI_DETAIL_TEXT)
        page.html = '<a href="/B2BTiles/TileDetails.aspx?ProductId=5">Tile</a>'
        page.script_results["__doPostBack"] = lambda code: code

        result = adapter.extract_with_browser(page, WorkItem(code="NTRIWHT1224"), settings)

        assert result is not None
        assert result.cost == 3.49
        assert result.price_basis == "per_sqft"
        assert result.coverage["pieces_per_box"] == 8.0
        assert result.source == "msi_item_detail:NTRIWHT1224"
        assert page.typed["#ctl00_ContentPlaceHolder1_txtItemID"] == "NTRIWHT1224"
        assert page.clicks == ["#ctl00_ContentPlaceHolder1_btnSearch"]
        assert page.visited == [
            "https://b2b.example.com/B2BTiles/TileDetails.aspx?ProductId=5",
            msi_portal.entry_url,
        ]

    def test_browser_flow_without_listing_link(self, settings, msi_portal, page_factory) -> None:
        adapter = MSIB2BPortalAdapter(portal=msi_portal)
        page = page_factory(url=msi_portal.entry_url)
        page.html = "<p>No Records</p>"

        assert adapter.extract_with_browser(page, WorkItem(code="NONE"), settings) is None
