"""
Error taxonomy for portal authentication and batch extraction.
"""

from __future__ import annotations


class PortalScrapeError(Exception):
    """
    Base error carrying the portal name and job stage for operator context.
    """

    def __init__(self, message: str, *, portal: str | None = None, stage: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.portal = portal
        self.stage = stage

    def with_context(self, *, portal: str | None = None, stage: str | None = None) -> "PortalScrapeError":
        if self.portal is None:
            self.portal = portal
        if self.stage is None:
            self.stage = stage
        return self

    def describe(self) -> str:
        context = "/".join(part for part in (self.portal, self.stage) if part)
        if not context:
            return self.message
        return f"[{context}] {self.message}"


class ConfigError(PortalScrapeError):
    """
    Missing credentials, cookie source, or portal configuration.
    """


class AuthError(PortalScrapeError):
    """
    Login could not be completed or verified.
    """


class SessionExpired(PortalScrapeError):
    """
    The portal signalled that the current session is no longer valid.
    """


class ItemError(PortalScrapeError):
    """
    Per-item extraction failure; recoverable at the item level.
    """
