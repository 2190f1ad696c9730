"""
dealer_portal/services/portal_extraction_service.py

Service orchestration for dealer portal extraction, inventory and discovery jobs.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Sequence
from dataclasses import asdict
from datetime import timedelta
from functools import lru_cache
from typing import Any

from sqlalchemy.orm import Session

from db.models.scrape_job import ScrapeJob, ScrapeJobMode, ScrapeJobStatus
from db.repositories.scrape_job_repository import ScrapeJobRepository
from db.repositories.vendor_sku_repository import VendorSkuRepository
from dealer_portal.domain.portal_extraction import PortalJobSummary
from dealer_portal.scraping.config import (
    PortalConfig,
    PortalScrapingSettings,
    get_portal_config,
    get_portal_scraping_settings,
)
from dealer_portal.scraping.errors import PortalScrapeError
from dealer_portal.scraping.logging_utils import log_event
from dealer_portal.scraping.registry import AdapterRegistry
from dealer_portal.scraping.runner import PortalJobRunner
from dealer_portal.scraping.sinks import (
    RecordStore,
    SQLAlchemyInventoryStore,
    SQLAlchemyJobSink,
    SQLAlchemyPricingStore,
)
from dealer_portal.scraping.types import DiagnosticDump, ExtractionSummary, WorkItem

logger = logging.getLogger(__name__)

RunnerFactory = Callable[..., PortalJobRunner]


def vendor_code_for(portal: PortalConfig) -> str:
    return portal.vendor_code or portal.name.upper()


def discovery_payload(dump: DiagnosticDump) -> dict[str, Any]:
    return {
        "url": dump.url,
        "title": dump.title,
        "screenshot_path": dump.screenshot_path,
        "forms": list(dump.forms),
        "inputs": list(dump.inputs),
        "cards": [asdict(card) for card in dump.cards],
    }


class PortalExtractionService:
    """
    Runs one portal job against the catalog database and records it in scrape_jobs.
    """

    def __init__(
        self,
        *,
        settings: PortalScrapingSettings | None = None,
        registry: AdapterRegistry | None = None,
        runner_factory: RunnerFactory = PortalJobRunner,
    ) -> None:
        self._settings = settings or get_portal_scraping_settings()
        self._registry = registry or AdapterRegistry()
        self._runner_factory = runner_factory

    def extract(
        self,
        *,
        db: Session,
        portal: str,
        limit: int | None = None,
        items: Sequence[str] | None = None,
    ) -> PortalJobSummary:
        """
        Extract pricing for explicit item codes, or for every unpriced SKU of the portal's vendor.
        """

        config = get_portal_config(portal, config_path=self._settings.config_path)
        vendor_code = vendor_code_for(config)
        work_items = self._work_items(db, vendor_code=vendor_code, limit=limit, items=items)
        store = SQLAlchemyPricingStore(session=db, vendor_code=vendor_code)
        return self._run_batch(db, config=config, mode=ScrapeJobMode.EXTRACT, work_items=work_items, store=store)

    def inventory(
        self,
        *,
        db: Session,
        portal: str,
        limit: int | None = None,
        items: Sequence[str] | None = None,
    ) -> PortalJobSummary:
        """
        Refresh per-warehouse stock levels for explicit item codes, or for every SKU of the portal's vendor.
        """

        config = get_portal_config(portal, config_path=self._settings.config_path)
        vendor_code = vendor_code_for(config)
        if items:
            work_items = self._work_items(db, vendor_code=vendor_code, limit=limit, items=items)
        else:
            rows = VendorSkuRepository(db).list_vendor_skus(vendor_code=vendor_code, limit=limit)
            work_items = [WorkItem(code=row.vendor_sku, category_hint=row.category_hint) for row in rows]
        store = SQLAlchemyInventoryStore(
            session=db,
            vendor_code=vendor_code,
            fresh_for=timedelta(hours=self._settings.inventory_freshness_hours),
        )
        return self._run_batch(db, config=config, mode=ScrapeJobMode.INVENTORY, work_items=work_items, store=store)

    def discover(
        self,
        *,
        db: Session,
        portal: str,
        term: str | None = None,
    ) -> PortalJobSummary:
        """
        Log in, run one search and record the page structure for adapter authoring.
        """

        config = get_portal_config(portal, config_path=self._settings.config_path)
        job = self._start_job(db, portal=config.name, mode=ScrapeJobMode.DISCOVER)
        runner = self._runner_factory(
            settings=self._settings,
            portal=config,
            store=SQLAlchemyPricingStore(session=db, vendor_code=vendor_code_for(config)),
            sink=SQLAlchemyJobSink(session=db, job_id=job.id),
            registry=self._registry,
        )
        try:
            dump = runner.discover(term=term)
        except Exception as exc:
            self._fail_job(db, job_id=job.id, exc=exc)
            raise

        job = self._finish_job(db, job_id=job.id, status=ScrapeJobStatus.COMPLETED)
        return PortalJobSummary(
            job_id=str(job.id),
            portal=job.portal,
            mode=job.mode,
            status=job.status,
            discovery=discovery_payload(dump),
        )

    def list_jobs(
        self,
        *,
        db: Session,
        portal: str | None = None,
        limit: int = 20,
    ) -> list[PortalJobSummary]:
        jobs = ScrapeJobRepository(db).list_jobs(limit=limit, portal=portal)
        return [self._summary(job) for job in jobs]

    def _work_items(
        self,
        db: Session,
        *,
        vendor_code: str,
        limit: int | None,
        items: Sequence[str] | None,
    ) -> list[WorkItem]:
        if items:
            codes = list(dict.fromkeys(code.strip() for code in items if code and code.strip()))
            if limit is not None:
                codes = codes[: max(1, limit)]
            return [WorkItem(code=code) for code in codes]

        rows = VendorSkuRepository(db).list_missing_pricing(vendor_code=vendor_code, limit=limit)
        return [WorkItem(code=row.vendor_sku, category_hint=row.category_hint) for row in rows]

    def _run_batch(
        self,
        db: Session,
        *,
        config: PortalConfig,
        mode: str,
        work_items: list[WorkItem],
        store: RecordStore,
    ) -> PortalJobSummary:
        job = self._start_job(db, portal=config.name, mode=mode)
        log_event(
            logger,
            logging.INFO,
            "portal_job_started",
            job_id=str(job.id),
            portal=config.name,
            mode=mode,
            items=len(work_items),
        )

        runner = self._runner_factory(
            settings=self._settings,
            portal=config,
            store=store,
            sink=SQLAlchemyJobSink(session=db, job_id=job.id),
            registry=self._registry,
        )
        try:
            if mode == ScrapeJobMode.INVENTORY:
                summary = runner.run(work_items, inventory=True)
            else:
                summary = runner.run(work_items)
        except Exception as exc:
            self._fail_job(db, job_id=job.id, exc=exc)
            raise

        status = ScrapeJobStatus.ABORTED if summary.aborted else ScrapeJobStatus.COMPLETED
        job = self._finish_job(db, job_id=job.id, status=status, error_message=summary.abort_reason)
        return self._summary(job, summary)

    def _start_job(self, db: Session, *, portal: str, mode: str) -> ScrapeJob:
        repository = ScrapeJobRepository(db)
        job = repository.create_job(portal=portal, mode=mode)
        repository.mark_running(job_id=job.id)
        db.commit()
        return job

    def _finish_job(
        self,
        db: Session,
        *,
        job_id: uuid.UUID,
        status: str,
        error_message: str | None = None,
    ) -> ScrapeJob:
        job = ScrapeJobRepository(db).mark_finished(job_id=job_id, status=status, error_message=error_message)
        db.commit()
        log_event(logger, logging.INFO, "portal_job_finished", job_id=str(job_id), status=status)
        return job

    def _fail_job(self, db: Session, *, job_id: uuid.UUID, exc: Exception) -> None:
        db.rollback()
        message = exc.describe() if isinstance(exc, PortalScrapeError) else str(exc)
        ScrapeJobRepository(db).mark_finished(
            job_id=job_id,
            status=ScrapeJobStatus.FAILED,
            error_message=message,
        )
        db.commit()
        log_event(logger, logging.ERROR, "portal_job_finished", job_id=str(job_id), status="failed", error=message)

    @staticmethod
    def _summary(job: ScrapeJob, run: ExtractionSummary | None = None) -> PortalJobSummary:
        samples = [str(entry.get("message", "")) for entry in (job.errors or []) if isinstance(entry, dict)]
        return PortalJobSummary(
            job_id=str(job.id),
            portal=job.portal,
            mode=job.mode,
            status=job.status,
            processed=run.processed if run else job.processed_count,
            matched=run.matched if run else job.matched_count,
            updated=run.updated if run else job.updated_count,
            errors=run.errors if run else job.error_count,
            reauth_attempts=run.reauth_attempts if run else 0,
            strategy=run.strategy if run else None,
            aborted=run.aborted if run else job.status == ScrapeJobStatus.ABORTED,
            abort_reason=run.abort_reason if run else job.error_message,
            error_samples=samples,
        )


@lru_cache(maxsize=1)
def get_portal_extraction_service() -> PortalExtractionService:
    """
    Build and cache the portal extraction service.
    """

    return PortalExtractionService()
