"""
BeautifulSoup + regex parsing for dealer stock-level pages.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

from dealer_portal.scraping.parsing.price_parsers import ITEM_NUMBER_REGEX
from dealer_portal.scraping.types import WarehouseStock

WAREHOUSE_TABLE_CLASS = "tblwhse"
WAREHOUSE_HEADER_MARKER = "GEOGRAPHY"
NO_RECORDS_MARKER = "No Records"

STOCK_QTY_REGEX = re.compile(r"([\d,]+\.?\d*)\s*(?:SF|sqft|sq\s*ft|pcs|units)\b", re.IGNORECASE)
WAREHOUSE_LABEL_REGEX = re.compile(r"(?:warehouse|location|ship to)[:\s]+(.+?)(?:\n|$)", re.IGNORECASE)


@dataclass(frozen=True)
class StockTableRow:
    item_number: str
    qty_on_hand_sqft: float


def parse_quantity(raw: str | None) -> float:
    cleaned = (raw or "").replace(",", "").strip()
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def parse_warehouse_table(html: str | None) -> list[WarehouseStock]:
    """
    Regions from a `tblwhse` inventory table.

    Each data row is geography, pieces in warehouse, pieces in transit,
    sqft in warehouse, sqft in transit. Header rows and rows without a
    geography are skipped.
    """

    if not html or NO_RECORDS_MARKER in html or WAREHOUSE_TABLE_CLASS not in html:
        return []

    soup = BeautifulSoup(html, "html.parser")
    stocks: list[WarehouseStock] = []
    for table in soup.find_all("table", class_=WAREHOUSE_TABLE_CLASS):
        for tr in table.find_all("tr"):
            cells = [cell.get_text(" ", strip=True) for cell in tr.find_all("td")]
            if len(cells) < 5:
                continue
            geography = cells[0]
            if not geography or WAREHOUSE_HEADER_MARKER in geography.upper():
                continue
            stocks.append(
                WarehouseStock(
                    warehouse=geography,
                    qty_on_hand=int(parse_quantity(cells[1])),
                    qty_in_transit=int(parse_quantity(cells[2])),
                    qty_on_hand_sqft=parse_quantity(cells[3]),
                    qty_in_transit_sqft=parse_quantity(cells[4]),
                )
            )
    return stocks


def parse_stock_table(html: str | None) -> list[StockTableRow]:
    """
    Rows of every HTML table that carry an item number; quantity defaults to 0.
    """

    if not html:
        return []

    soup = BeautifulSoup(html, "html.parser")
    rows: list[StockTableRow] = []
    for table in soup.find_all("table"):
        for tr in table.find_all("tr"):
            cells = [cell.get_text(" ", strip=True) for cell in tr.find_all("td")]
            if len(cells) < 2:
                continue
            row_text = " ".join(cells)
            item_match = ITEM_NUMBER_REGEX.search(row_text)
            if item_match is None:
                continue
            qty_match = STOCK_QTY_REGEX.search(row_text)
            rows.append(
                StockTableRow(
                    item_number=item_match.group(1),
                    qty_on_hand_sqft=parse_quantity(qty_match.group(1)) if qty_match else 0.0,
                )
            )
    return rows


def extract_warehouse(text: str | None) -> str | None:
    """
    Warehouse named by a `Warehouse:`, `Location:` or `Ship To:` label on the page.
    """

    if not text:
        return None
    match = WAREHOUSE_LABEL_REGEX.search(text)
    if match is None:
        return None
    return match.group(1).strip() or None
