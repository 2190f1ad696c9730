"""
Config helpers for dealer portal extraction.
"""

from dealer_portal.scraping.config.loader import (
    get_portal_config,
    get_portal_scraping_settings,
    load_cookie_source,
    load_credentials,
    load_portal_configs,
)
from dealer_portal.scraping.config.models import PortalConfig, PortalScrapingSettings

__all__ = [
    "PortalConfig",
    "PortalScrapingSettings",
    "get_portal_config",
    "get_portal_scraping_settings",
    "load_cookie_source",
    "load_credentials",
    "load_portal_configs",
]
