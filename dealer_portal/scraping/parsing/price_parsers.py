"""
BeautifulSoup + regex parsing for dealer price pages.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

MAX_PLAUSIBLE_PRICE = 10000.0

DEALER_PRICE_PATTERNS = (
    re.compile(r"(?:dealer|cost|price|unit)\s*(?:price)?[:\s]*\$?\s*([\d,]+\.?\d{0,2})", re.IGNORECASE),
    re.compile(r"\$\s*([\d,]+\.\d{2})\s*(?:/?\s*(?:sq\.?\s*ft|sf|each|pc|unit))", re.IGNORECASE),
    re.compile(r"Price[^<]*?</td>\s*<td[^>]*>\s*\$?\s*([\d,]+\.?\d{0,2})", re.IGNORECASE),
)
PER_UNIT_MARKERS = ("each", "per unit", "/pc")

PRICE_EACH_REGEX = re.compile(r"Price/Each\s*\$?([\d,]+\.?\d{0,2})", re.IGNORECASE)
PRICE_SQFT_REGEX = re.compile(r"Price/Sqft\s*\$?([\d,]+\.?\d{0,2})", re.IGNORECASE)

PACKAGING_PATTERNS = {
    "sqft_per_piece": re.compile(r"Sqft\s*Per\s*Pc\s*(\d+\.?\d*)", re.IGNORECASE),
    "sqft_per_box": re.compile(r"Sqft\s*Per\s*Box\s*(\d+\.?\d*)", re.IGNORECASE),
    "pieces_per_box": re.compile(r"Each\s*in\s*Box\s*(\d+)", re.IGNORECASE),
    "weight_per_piece": re.compile(r"Approx\s*Weight\s*Per\s*Pc\s*([\d.]+)", re.IGNORECASE),
}

ITEM_NUMBER_REGEX = re.compile(r"\b([A-Z]{2,5}[-.]?[A-Z0-9]{3,}[-.]?[A-Z0-9]*)\b")
MONEY_REGEX = re.compile(r"\$\s*([\d,]+\.?\d{0,2})")
BARE_NUMBER_REGEX = re.compile(r"^\s*([\d,]+\.\d{2})\s*$")
PER_UNIT_UNITS = frozenset({"PCS", "EA", "PC", "EACH"})


@dataclass(frozen=True)
class PriceTableRow:
    item_number: str
    dealer_cost: float
    list_price: float | None
    unit: str

    @property
    def price_basis(self) -> str:
        return "per_unit" if self.unit in PER_UNIT_UNITS else "per_sqft"


def parse_money(raw: str | None) -> float | None:
    if raw is None:
        return None
    try:
        return float(raw.replace(",", "").strip())
    except ValueError:
        return None


def _plausible(price: float | None) -> float | None:
    if price is None or not 0 < price < MAX_PLAUSIBLE_PRICE:
        return None
    return price


def extract_dealer_price(html: str | None) -> float | None:
    """
    First plausible dealer price found by the ordered pattern list.
    """

    if not html:
        return None
    for pattern in DEALER_PRICE_PATTERNS:
        match = pattern.search(html)
        if match is None:
            continue
        price = _plausible(parse_money(match.group(1)))
        if price is not None:
            return price
    return None


def infer_price_basis(text: str | None) -> str:
    lowered = (text or "").lower()
    if any(marker in lowered for marker in PER_UNIT_MARKERS):
        return "per_unit"
    return "per_sqft"


def extract_unit_prices(text: str | None) -> tuple[float | None, float | None]:
    """
    Return (price per sqft, price each) from an item detail text dump.
    """

    if not text:
        return None, None
    sqft_match = PRICE_SQFT_REGEX.search(text)
    each_match = PRICE_EACH_REGEX.search(text)
    price_sqft = _plausible(parse_money(sqft_match.group(1))) if sqft_match else None
    price_each = _plausible(parse_money(each_match.group(1))) if each_match else None
    return price_sqft, price_each


def extract_packaging(text: str | None) -> dict[str, float]:
    if not text:
        return {}
    coverage: dict[str, float] = {}
    for key, pattern in PACKAGING_PATTERNS.items():
        match = pattern.search(text)
        if match is None:
            continue
        value = parse_money(match.group(1))
        if value is not None:
            coverage[key] = value
    return coverage


def visible_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for node in soup(["script", "style", "noscript"]):
        node.decompose()
    return soup.get_text("\n", strip=True)


def parse_price_table(html: str) -> list[PriceTableRow]:
    """
    Rows of every HTML table that carry an item number and a price.

    Header rows (th-only) and rows with fewer than two cells are skipped.
    The first price-looking cell is the dealer cost, the second (if any)
    the list price.
    """

    soup = BeautifulSoup(html, "html.parser")
    rows: list[PriceTableRow] = []
    for table in soup.find_all("table"):
        for tr in table.find_all("tr"):
            cells = [cell.get_text(" ", strip=True) for cell in tr.find_all("td")]
            if len(cells) < 2:
                continue
            row_text = " ".join(cells)
            item_match = ITEM_NUMBER_REGEX.search(row_text)
            if item_match is None:
                continue

            prices: list[float] = []
            for cell in cells:
                match = MONEY_REGEX.search(cell) or BARE_NUMBER_REGEX.match(cell)
                if match is None or cell.strip() == item_match.group(1):
                    continue
                price = _plausible(parse_money(match.group(1)))
                if price is not None:
                    prices.append(price)
            if not prices:
                continue

            rows.append(
                PriceTableRow(
                    item_number=item_match.group(1),
                    dealer_cost=prices[0],
                    list_price=prices[1] if len(prices) > 1 else None,
                    unit=_row_unit(cells),
                )
            )
    return rows


def _row_unit(cells: list[str]) -> str:
    # DNav price lists only mark square-foot rows; everything else sells by the piece.
    for cell in cells:
        token = cell.strip().upper()
        if token in PER_UNIT_UNITS:
            return token
        if token in {"SF", "SQFT"}:
            return "SF"
    row_text = " ".join(cells).upper()
    if "/SF" in row_text or "S/F" in row_text:
        return "SF"
    return "PCS"
