"""
dealer_portal/api/routers/portal_extraction.py

Portal extraction, inventory and discovery endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from db.session import get_db
from dealer_portal.domain.portal_extraction import PortalJobSummary
from dealer_portal.schemas.portal_extraction import PortalJobResponse
from dealer_portal.scraping.errors import ConfigError, PortalScrapeError
from dealer_portal.services.portal_extraction_service import (
    PortalExtractionService,
    get_portal_extraction_service,
)

router = APIRouter(prefix="/portal-jobs", tags=["portal-extraction"])


def _to_response(summary: PortalJobSummary) -> PortalJobResponse:
    return PortalJobResponse(**summary.as_dict())


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, ConfigError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.describe())
    if isinstance(exc, PortalScrapeError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.describe())
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("", response_model=list[PortalJobResponse])
def list_portal_jobs(
    portal: str | None = Query(default=None, description="Optional portal name filter"),
    limit: int = Query(default=20, ge=1, le=200),
    db: Session = Depends(get_db),
    extraction_service: PortalExtractionService = Depends(get_portal_extraction_service),
) -> list[PortalJobResponse]:
    return [_to_response(summary) for summary in extraction_service.list_jobs(db=db, portal=portal, limit=limit)]


@router.post("/{portal}/extract", response_model=PortalJobResponse)
def extract_portal_pricing(
    portal: str,
    limit: int | None = Query(default=None, ge=1, description="Maximum number of unpriced SKUs to process"),
    item: list[str] | None = Query(default=None, description="Explicit item codes; repeat the parameter"),
    db: Session = Depends(get_db),
    extraction_service: PortalExtractionService = Depends(get_portal_extraction_service),
) -> PortalJobResponse:
    """
    Run a blocking extraction job for one configured portal.
    """

    try:
        summary = extraction_service.extract(db=db, portal=portal, limit=limit, items=item)
    except (PortalScrapeError, ValueError, FileNotFoundError) as exc:
        raise _http_error(exc) from exc
    return _to_response(summary)


@router.post("/{portal}/inventory", response_model=PortalJobResponse)
def refresh_portal_inventory(
    portal: str,
    limit: int | None = Query(default=None, ge=1, description="Maximum number of vendor SKUs to check"),
    item: list[str] | None = Query(default=None, description="Explicit item codes; repeat the parameter"),
    db: Session = Depends(get_db),
    extraction_service: PortalExtractionService = Depends(get_portal_extraction_service),
) -> PortalJobResponse:
    """
    Run a blocking stock-level job for one configured portal.
    """

    try:
        summary = extraction_service.inventory(db=db, portal=portal, limit=limit, items=item)
    except (PortalScrapeError, ValueError, FileNotFoundError) as exc:
        raise _http_error(exc) from exc
    return _to_response(summary)


@router.post("/{portal}/discover", response_model=PortalJobResponse)
def discover_portal_structure(
    portal: str,
    term: str | None = Query(default=None, description="Search term; defaults to the portal's discovery_term"),
    db: Session = Depends(get_db),
    extraction_service: PortalExtractionService = Depends(get_portal_extraction_service),
) -> PortalJobResponse:
    """
    Log in, search once and return candidate product cards plus a screenshot path.
    """

    try:
        summary = extraction_service.discover(db=db, portal=portal, term=term)
    except (PortalScrapeError, ValueError, FileNotFoundError) as exc:
        raise _http_error(exc) from exc
    return _to_response(summary)
