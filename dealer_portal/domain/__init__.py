"""
Domain models for dealer portal extraction.
"""

from dealer_portal.domain.portal_extraction import PortalJobSummary

__all__ = ["PortalJobSummary"]
