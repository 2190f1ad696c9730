"""
Parsing helpers for dealer portal pages.
"""

from dealer_portal.scraping.parsing.inventory_parsers import (
    StockTableRow,
    extract_warehouse,
    parse_stock_table,
    parse_warehouse_table,
)
from dealer_portal.scraping.parsing.price_parsers import (
    PriceTableRow,
    extract_dealer_price,
    extract_packaging,
    extract_unit_prices,
    infer_price_basis,
    parse_price_table,
    visible_text,
)

__all__ = [
    "PriceTableRow",
    "StockTableRow",
    "extract_dealer_price",
    "extract_packaging",
    "extract_unit_prices",
    "extract_warehouse",
    "infer_price_basis",
    "parse_price_table",
    "parse_stock_table",
    "parse_warehouse_table",
    "visible_text",
]
