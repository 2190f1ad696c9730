"""
dealer_portal/api/routers package marker.
"""

from dealer_portal.api.routers.portal_extraction import router as portal_extraction_router

__all__ = ["portal_extraction_router"]
