"""REST routes for sites, crawls and crawl logs.

Every body is wrapped in a `{"data": ...}` envelope; errors are rendered as
`{"error": ...}` by the handlers registered in `jobcrawler.api.app`.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status

from jobcrawler.api.dependencies import get_crawl_service, get_site_service
from jobcrawler.services.crawls import DEFAULT_LOG_LIMIT, CrawlService
from jobcrawler.services.sites import SiteService

router = APIRouter(prefix='/api/v1/sites', tags=['sites'])


def _parse_limit(raw: str | None) -> int:
    try:
        limit = int(raw) if raw is not None else DEFAULT_LOG_LIMIT
    except ValueError:
        return DEFAULT_LOG_LIMIT
    return limit if limit > 0 else DEFAULT_LOG_LIMIT


# =============================================================================
# SITES
# =============================================================================


@router.get('')
def list_sites(sites: SiteService = Depends(get_site_service)) -> dict[str, Any]:
    return {'data': [site.model_dump(mode='json') for site in sites.list_sites()]}


@router.post('', status_code=status.HTTP_201_CREATED)
def create_site(
    payload: dict[str, Any] = Body(...),
    sites: SiteService = Depends(get_site_service),
) -> dict[str, Any]:
    """Create a site; the body is validated by SiteValidator, not by FastAPI."""
    site = sites.create_site(payload)
    return {'data': site.model_dump(mode='json')}


@router.get('/{site_id}')
def get_site(site_id: str, sites: SiteService = Depends(get_site_service)) -> dict[str, Any]:
    return {'data': sites.get_site(site_id).model_dump(mode='json')}


@router.put('/{site_id}')
def update_site(
    site_id: str,
    payload: dict[str, Any] = Body(...),
    sites: SiteService = Depends(get_site_service),
) -> dict[str, Any]:
    site = sites.update_site(site_id, payload)
    return {'data': site.model_dump(mode='json')}


@router.delete('/{site_id}')
def delete_site(site_id: str, sites: SiteService = Depends(get_site_service)) -> dict[str, Any]:
    sites.delete_site(site_id)
    return {'data': None, 'message': 'Site deleted successfully'}


# =============================================================================
# CRAWLS AND LOGS
# =============================================================================


@router.post('/{site_id}/crawl')
def crawl_site(site_id: str, crawls: CrawlService = Depends(get_crawl_service)) -> dict[str, Any]:
    """Run a crawl synchronously and return its counters."""
    result = crawls.execute(site_id)
    return {'data': result.model_dump(mode='json')}


@router.get('/{site_id}/logs')
def get_logs(
    site_id: str,
    limit: str | None = Query(None),
    crawls: CrawlService = Depends(get_crawl_service),
) -> dict[str, Any]:
    logs = crawls.get_logs(site_id, limit=_parse_limit(limit))
    return {'data': [log.model_dump(mode='json') for log in logs]}


@router.get('/{site_id}/logs/latest')
def get_latest_log(site_id: str, crawls: CrawlService = Depends(get_crawl_service)) -> dict[str, Any]:
    return {'data': crawls.get_latest_log(site_id).model_dump(mode='json')}
