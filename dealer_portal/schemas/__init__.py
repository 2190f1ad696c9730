"""
API schema exports.
"""

from dealer_portal.schemas.portal_extraction import HealthResponse, PortalJobResponse

__all__ = ["HealthResponse", "PortalJobResponse"]
