"""Site management: create, read, update and delete crawl sites."""

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

import logfire

from jobcrawler.exceptions import SiteNotFoundError
from jobcrawler.models.results import new_id
from jobcrawler.models.site import (
    DEFAULT_REQUEST_DELAY,
    DEFAULT_USER_AGENT,
    CrawlSite,
    CreateSiteInput,
    UpdateSiteInput,
    utcnow,
)
from jobcrawler.scheduler import CrawlScheduler, next_fire_time
from jobcrawler.storage.persistence import CrawlLogRepository, SiteRepository
from jobcrawler.validation import SiteValidator

logger = logging.getLogger(__name__)

# identity fields are stored without surrounding whitespace
TRIMMED_FIELDS = ('name', 'base_url', 'backend_startup_id', 'schedule')


class SiteService:
    """Validates, stores and (re)schedules crawl sites.

    Attributes:
        site_repo: Site repository
        validator: Validator applied to every create and update
        scheduler: Scheduler kept in step with site changes, if one is running
        log_repo: Crawl log repository, cleaned up when a site is deleted

    """

    def __init__(
        self,
        site_repo: SiteRepository,
        validator: SiteValidator | None = None,
        scheduler: CrawlScheduler | None = None,
        log_repo: CrawlLogRepository | None = None,
    ):
        self.site_repo = site_repo
        self.validator = validator or SiteValidator()
        self.scheduler = scheduler
        self.log_repo = log_repo

    def list_sites(self) -> list[CrawlSite]:
        return sorted(self.site_repo.all(), key=lambda site: site.created_at)

    def get_site(self, site_id: str) -> CrawlSite:
        """Return a site.

        Raises:
            SiteNotFoundError: If no site has this id

        """
        site = self.site_repo.get(site_id)
        if site is None:
            raise SiteNotFoundError(site_id)
        return site

    def create_site(self, data: CreateSiteInput | Mapping[str, Any]) -> CrawlSite:
        """Validate and store a new site, then schedule it.

        Args:
            data: Creation input, as a model or a raw mapping

        Returns:
            The stored site.

        Raises:
            SiteValidationError: If the input is rejected

        """
        payload = self.validator.validate_create(data)
        now = utcnow()

        site = CrawlSite(
            id=new_id(),
            name=payload.name.strip(),
            base_url=payload.base_url.strip(),
            backend_startup_id=payload.backend_startup_id.strip(),
            active=True,
            schedule=payload.schedule.strip(),
            crawl_interval=payload.crawl_interval,
            pagination_config=payload.pagination_config,
            extraction_rules=payload.extraction_rules,
            deduplication_key=payload.deduplication_key or 'url',
            request_delay=DEFAULT_REQUEST_DELAY if payload.request_delay is None else payload.request_delay,
            user_agent=payload.user_agent or DEFAULT_USER_AGENT,
            created_at=now,
            updated_at=now,
        )
        self.validator.validate_site(site)
        site.next_crawl_at = self._schedule(site)

        self.site_repo.add(site)
        logfire.info('Site created', site_id=site.id, site_name=site.name)
        return site

    def update_site(self, site_id: str, data: UpdateSiteInput | Mapping[str, Any]) -> CrawlSite:
        """Apply a partial update to a site and reschedule it.

        Args:
            site_id: Site to update
            data: Fields to change, as a model or a raw mapping

        Returns:
            The updated site.

        Raises:
            SiteNotFoundError: If no site has this id
            SiteValidationError: If the changes or the resulting site are rejected

        """
        changes = self.validator.validate_update(data).changes()
        for name in TRIMMED_FIELDS:
            if name in changes:
                changes[name] = changes[name].strip()
        site = self.get_site(site_id)

        merged = site.model_copy(update={**changes, 'updated_at': utcnow()})
        self.validator.validate_site(merged)
        merged.next_crawl_at = self._schedule(merged)

        self.site_repo.update(merged)
        logfire.info('Site updated', site_id=site_id, fields=sorted(changes))
        return merged

    def delete_site(self, site_id: str) -> None:
        """Unschedule and remove a site along with its crawl logs.

        Raises:
            SiteNotFoundError: If no site has this id

        """
        if self.scheduler is not None:
            self.scheduler.unschedule_site(site_id)
        self.site_repo.delete(site_id)
        if self.log_repo is not None:
            self.log_repo.delete_by_site_id(site_id)
        logfire.info('Site deleted', site_id=site_id)

    def _schedule(self, site: CrawlSite) -> datetime | None:
        if self.scheduler is not None:
            return self.scheduler.schedule_site(site)
        return next_fire_time(site.schedule) if site.active else None
