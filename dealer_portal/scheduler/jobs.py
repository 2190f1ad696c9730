"""
dealer_portal/scheduler/jobs.py

APScheduler-based scheduler for periodic portal extraction and inventory.

Every enabled portal with a ``schedule`` or ``inventory_schedule`` cron
expression in the portal config gets one job per expression. Jobs run on
a single worker thread so that two portals never drive browsers at the
same time, and a job that is still running when its next fire time
arrives is skipped rather than stacked.

Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from db.session import SessionLocal
from dealer_portal.domain.portal_extraction import PortalJobSummary
from dealer_portal.scraping.config import get_portal_scraping_settings, load_portal_configs
from dealer_portal.scraping.errors import PortalScrapeError
from dealer_portal.services.portal_extraction_service import get_portal_extraction_service

logger = logging.getLogger(__name__)


@contextmanager
def _session_scope() -> Iterator[Session]:
    """Yield a fresh session and ensure it is closed on exit."""
    session: Session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def run_scheduled_extraction(portal: str) -> None:
    """
    Run one extraction job for `portal` over all of its unpriced SKUs.
    """
    _run_scheduled(
        "portal_extraction",
        portal,
        lambda db: get_portal_extraction_service().extract(db=db, portal=portal),
    )


def run_scheduled_inventory(portal: str) -> None:
    """
    Refresh stock levels for every SKU of `portal`'s vendor.
    """
    _run_scheduled(
        "portal_inventory",
        portal,
        lambda db: get_portal_extraction_service().inventory(db=db, portal=portal),
    )


def _run_scheduled(job_name: str, portal: str, run: Callable[[Session], PortalJobSummary]) -> None:
    logger.info("Scheduler: %s starting portal=%r", job_name, portal)
    with _session_scope() as db:
        try:
            summary = run(db)
        except PortalScrapeError as exc:
            logger.warning("Scheduler: %s failed portal=%r: %s", job_name, portal, exc.describe())
            return
        except Exception as exc:  # noqa: BLE001
            logger.warning("Scheduler: %s failed portal=%r: %s", job_name, portal, exc)
            return

    logger.info(
        "Scheduler: %s complete portal=%r status=%s processed=%d updated=%d errors=%d",
        job_name,
        portal,
        summary.status,
        summary.processed,
        summary.updated,
        summary.errors,
    )


def _cron_trigger(portal: str, expression: str) -> CronTrigger | None:
    try:
        return CronTrigger.from_crontab(expression, timezone="UTC")
    except ValueError as exc:
        logger.warning(
            "Scheduler: skipping portal=%r, invalid schedule %r: %s",
            portal,
            expression,
            exc,
        )
        return None


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register the cron jobs of every scheduled portal.

    A portal may declare ``schedule`` (pricing extraction) and
    ``inventory_schedule`` (stock levels); each gets its own job.
    Returns a configured but *not yet started* ``BackgroundScheduler``.
    Invalid cron expressions are logged and skipped.
    """
    scheduler = BackgroundScheduler(
        timezone="UTC",
        executors={"default": ThreadPoolExecutor(1)},
        job_defaults={"coalesce": True, "max_instances": 1},
    )

    settings = get_portal_scraping_settings()
    try:
        portals = load_portal_configs(config_path=settings.config_path)
    except (FileNotFoundError, ValueError) as exc:
        logger.warning("Scheduler: portal config unavailable, no extraction jobs registered: %s", exc)
        return scheduler

    for portal in portals:
        if not portal.enabled:
            continue
        schedules = (
            ("portal_extraction", "Portal extraction", run_scheduled_extraction, portal.schedule),
            ("portal_inventory", "Portal inventory", run_scheduled_inventory, portal.inventory_schedule),
        )
        for job_prefix, label, func, expression in schedules:
            if not expression:
                continue
            trigger = _cron_trigger(portal.name, expression)
            if trigger is None:
                continue
            scheduler.add_job(
                func,
                trigger=trigger,
                args=[portal.name],
                id=f"{job_prefix}_{portal.name}",
                name=f"{label} ({portal.name})",
                replace_existing=True,
                misfire_grace_time=3600,
            )

    return scheduler
