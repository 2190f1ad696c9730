"""
Service layer exports.
"""

from dealer_portal.services.portal_extraction_service import (
    PortalExtractionService,
    get_portal_extraction_service,
)

__all__ = ["PortalExtractionService", "get_portal_extraction_service"]
