"""Crawl execution with logging, and access to crawl logs."""

import logging

import logfire

from jobcrawler.core.engine import CrawlEngine
from jobcrawler.exceptions import LogNotFoundError, SiteNotFoundError, StorageError
from jobcrawler.models.results import CrawlLog, CrawlResult
from jobcrawler.models.site import utcnow
from jobcrawler.scheduler import next_fire_time
from jobcrawler.storage.persistence import CrawlLogRepository, SiteRepository

logger = logging.getLogger(__name__)

DEFAULT_LOG_LIMIT = 50


class CrawlService:
    """Runs crawls and records each run in a crawl log.

    Attributes:
        engine: Crawl engine
        site_repo: Site repository
        log_repo: Crawl log repository

    """

    def __init__(self, engine: CrawlEngine, site_repo: SiteRepository, log_repo: CrawlLogRepository):
        self.engine = engine
        self.site_repo = site_repo
        self.log_repo = log_repo

    def execute(self, site_id: str) -> CrawlResult:
        """Crawl a site now.

        A running log is stored before the crawl starts and finalized when it ends.

        Args:
            site_id: Site to crawl

        Returns:
            Counters and errors of the crawl.

        Raises:
            SiteNotFoundError: If no site has this id
            JobCrawlerError: If the crawl itself fails; the log is marked failed first

        """
        site = self.site_repo.get(site_id)
        if site is None:
            raise SiteNotFoundError(site_id)

        log = CrawlLog(site_id=site_id)
        log.add_log('info', f'Starting crawl for site: {site.name}')
        log.add_log('info', f'Base URL: {site.base_url}')
        try:
            self.log_repo.add(log)
        except StorageError as e:
            logger.warning('Failed to create crawl log: %s', e)
            log.add_log('warning', f'Failed to create crawl log: {e}')

        log.add_log('info', 'Fetching pages...')
        with logfire.span('execute_crawl', site_id=site_id, site_name=site.name):
            try:
                result = self.engine.crawl(site)
            except Exception as e:
                logger.error('Crawl of %s failed: %s', site.name, e)
                log.fail(e)
                self._save_log(log)
                raise

        log.pages_crawled = result.pages_crawled
        log.jobs_found = result.jobs_found
        log.jobs_saved = result.jobs_saved
        log.jobs_skipped = result.jobs_skipped
        for error in result.errors:
            log.add_error(error)

        log.complete()
        log.add_log(
            'info',
            f'Crawl completed: {result.jobs_found} jobs found, {result.jobs_saved} saved, '
            f'{result.jobs_skipped} skipped',
        )
        self._save_log(log)

        self.site_repo.update_crawl_times(site_id, utcnow(), next_fire_time(site.schedule) if site.active else None)
        logger.info(
            'Crawl of %s completed: %d found, %d saved, %d skipped',
            site.name,
            result.jobs_found,
            result.jobs_saved,
            result.jobs_skipped,
        )
        return result

    def get_logs(self, site_id: str, limit: int | None = DEFAULT_LOG_LIMIT) -> list[CrawlLog]:
        """Return a site's crawl logs, newest first.

        Args:
            site_id: Site whose logs are listed
            limit: Maximum number of logs. Missing or non-positive values mean 50.

        """
        if not limit or limit <= 0:
            limit = DEFAULT_LOG_LIMIT
        return self.log_repo.find_by_site_id(site_id, limit=limit)

    def get_latest_log(self, site_id: str) -> CrawlLog:
        """Return the most recent crawl log of a site.

        Raises:
            LogNotFoundError: If the site has never been crawled

        """
        log = self.log_repo.find_latest(site_id)
        if log is None:
            raise LogNotFoundError(site_id)
        return log

    def _save_log(self, log: CrawlLog) -> None:
        try:
            if not self.log_repo.replace(log):
                self.log_repo.add(log)
        except StorageError as e:
            logger.error('Failed to save crawl log %s: %s', log.id, e)
