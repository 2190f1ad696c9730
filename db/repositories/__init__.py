"""
Repository layer exports.
"""

from db.repositories.scrape_job_repository import ScrapeJobRepository
from db.repositories.vendor_inventory_repository import VendorInventoryRepository
from db.repositories.vendor_sku_repository import VendorSkuRepository

__all__ = [
    "ScrapeJobRepository",
    "VendorInventoryRepository",
    "VendorSkuRepository",
]
