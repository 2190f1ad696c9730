"""
Built-in site adapters.
"""

from dealer_portal.scraping.adapters.base import LoginOutcome, SiteAdapter
from dealer_portal.scraping.adapters.dnav import DNavPortalAdapter
from dealer_portal.scraping.adapters.msi_b2b import MSIB2BPortalAdapter

__all__ = ["DNavPortalAdapter", "LoginOutcome", "MSIB2BPortalAdapter", "SiteAdapter"]
