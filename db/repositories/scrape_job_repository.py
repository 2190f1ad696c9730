"""
Repository for scrape job lifecycle, progress log and error sampling.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from db.models.scrape_job import ScrapeJob, ScrapeJobMode, ScrapeJobStatus

_COUNTER_COLUMNS = {
    "processed": "processed_count",
    "matched": "matched_count",
    "updated": "updated_count",
    "errors": "error_count",
}


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class ScrapeJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(self, *, portal: str, mode: str = ScrapeJobMode.EXTRACT) -> ScrapeJob:
        job = ScrapeJob(
            portal=portal,
            mode=mode,
            status=ScrapeJobStatus.PENDING,
            log="",
            errors=[],
        )
        self._session.add(job)
        self._session.flush()
        self._session.refresh(job)
        return job

    def get_job(self, job_id: uuid.UUID) -> ScrapeJob | None:
        return self._session.get(ScrapeJob, job_id)

    def list_jobs(
        self,
        *,
        limit: int = 50,
        portal: str | None = None,
        status: str | None = None,
    ) -> list[ScrapeJob]:
        stmt: Select[tuple[ScrapeJob]] = select(ScrapeJob)
        if portal:
            stmt = stmt.where(ScrapeJob.portal == portal)
        if status:
            stmt = stmt.where(ScrapeJob.status == status)
        stmt = stmt.order_by(ScrapeJob.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def mark_running(self, *, job_id: uuid.UUID) -> ScrapeJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = ScrapeJobStatus.RUNNING
        job.started_at = _now_utc()
        job.completed_at = None
        job.error_message = None
        return job

    def mark_finished(
        self,
        *,
        job_id: uuid.UUID,
        status: str = ScrapeJobStatus.COMPLETED,
        error_message: str | None = None,
    ) -> ScrapeJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = status
        job.completed_at = _now_utc()
        job.error_message = error_message
        return job

    def append_log(
        self,
        *,
        job_id: uuid.UUID,
        line: str,
        counters: dict[str, int] | None = None,
    ) -> ScrapeJob | None:
        """
        Append one preformatted log line and optionally overwrite counters.
        """
        job = self.get_job(job_id)
        if job is None:
            return None
        job.log = (job.log or "") + line
        for key, value in (counters or {}).items():
            column = _COUNTER_COLUMNS.get(key)
            if column is not None:
                setattr(job, column, int(value))
        return job

    def add_error(self, *, job_id: uuid.UUID, entry: dict[str, Any]) -> ScrapeJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        # Reassign so the JSONB column is flagged dirty.
        job.errors = [*(job.errors or []), entry]
        return job
