"""
dealer_portal/domain/portal_extraction.py

Domain models for portal extraction job orchestration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class PortalJobSummary:
    """
    Outcome of one extraction or discovery job.
    """

    portal: str
    mode: str
    status: str
    job_id: str | None = None
    processed: int = 0
    matched: int = 0
    updated: int = 0
    errors: int = 0
    reauth_attempts: int = 0
    strategy: str | None = None
    aborted: bool = False
    abort_reason: str | None = None
    discovery: dict[str, Any] | None = None
    error_samples: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "portal": self.portal,
            "mode": self.mode,
            "status": self.status,
            "processed": self.processed,
            "matched": self.matched,
            "updated": self.updated,
            "errors": self.errors,
            "reauth_attempts": self.reauth_attempts,
            "strategy": self.strategy,
            "aborted": self.aborted,
            "abort_reason": self.abort_reason,
            "discovery": self.discovery,
            "error_samples": list(self.error_samples),
        }
