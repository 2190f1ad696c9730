"""
dealer_portal/schemas/portal_extraction.py

Response schemas for portal extraction operations.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class PortalJobResponse(BaseModel):
    """
    API response model for one portal extraction or discovery job.
    """

    job_id: str | None = None
    portal: str
    mode: str
    status: str
    processed: int = Field(default=0, ge=0)
    matched: int = Field(default=0, ge=0)
    updated: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)
    reauth_attempts: int = Field(default=0, ge=0)
    strategy: str | None = None
    aborted: bool = False
    abort_reason: str | None = None
    discovery: dict[str, Any] | None = None
    error_samples: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    portals: list[str] = Field(default_factory=list)
