"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.scrape_job import ScrapeJob, ScrapeJobMode, ScrapeJobStatus
from db.models.vendor_inventory import VendorInventory
from db.models.vendor_sku import PriceBasis, VendorSku

__all__ = [
    "PriceBasis",
    "ScrapeJob",
    "ScrapeJobMode",
    "ScrapeJobStatus",
    "VendorInventory",
    "VendorSku",
]
