"""Crawl engine: walks a site's pages, extracts jobs and stores the new ones."""

import logging
import time
from collections import deque
from collections.abc import Callable

import logfire
from bs4 import BeautifulSoup

from jobcrawler.core.extractor import JobExtractor
from jobcrawler.core.fetcher import PageFetcher
from jobcrawler.core.paginator import Paginator
from jobcrawler.exceptions import FetchError, StorageError
from jobcrawler.models.results import CrawledJob, CrawlResult
from jobcrawler.models.site import CrawlSite, utcnow
from jobcrawler.storage.persistence import DedupIndex, JobRepository

logger = logging.getLogger(__name__)


class CrawlEngine:
    """Runs one crawl of a site.

    Attributes:
        job_repo: Where new jobs are stored and duplicates are looked up
        fetcher: Page fetcher
        sleep: Function used to wait between requests

    """

    def __init__(
        self,
        job_repo: JobRepository,
        fetcher: PageFetcher | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the engine.

        Args:
            job_repo: Job repository
            fetcher: Page fetcher. A default one is created when None.
            sleep: Replacement for time.sleep, mainly for tests

        """
        self.job_repo = job_repo
        self.fetcher = fetcher or PageFetcher()
        self.sleep = sleep

    def crawl(self, site: CrawlSite) -> CrawlResult:
        """Crawl a site and store the jobs that are not known yet.

        Fetch and extraction failures are recorded in the result and the crawl moves
        on to the next page.

        Args:
            site: Site to crawl

        Returns:
            Counters and errors of the crawl.

        Raises:
            ExtractionError: If the site's extraction rules are unusable
            StorageError: If the stored jobs cannot be read

        """
        extractor = JobExtractor(site.extraction_rules)
        paginator = Paginator(site.pagination_config)
        result = CrawlResult()

        queue = deque(paginator.page_urls(site.base_url))
        visited: set[str] = set()

        with logfire.span('crawl_site', site_id=site.id, site_name=site.name):
            index = self.job_repo.dedup_index()
            while queue and result.pages_crawled < paginator.max_pages:
                page_url = queue.popleft()
                if page_url in visited:
                    continue
                visited.add(page_url)

                if result.pages_crawled > 0 and site.request_delay > 0:
                    self.sleep(site.request_delay)
                result.pages_crawled += 1

                try:
                    page = self.fetcher.fetch(page_url, site.user_agent)
                except FetchError as e:
                    logger.warning(str(e))
                    result.errors.append(str(e))
                    continue

                try:
                    soup = BeautifulSoup(page.html or '', 'lxml')
                    containers = extractor.containers(soup)
                    jobs = []
                    for container in containers:
                        job = extractor.extract_job(container, page.page_url)
                        if job is not None:
                            jobs.append(job)
                except Exception as e:
                    message = f'failed to extract jobs from {page_url}: {e}'
                    logger.warning(message)
                    result.errors.append(message)
                    continue

                if not containers and paginator.generates_pages:
                    logger.info('No job listings on %s, stopping pagination', page_url)
                    break

                result.jobs_found += len(jobs)
                self._store_page(jobs, site, index, result)

                if paginator.follows_links:
                    next_url = paginator.next_page_url(soup, page.page_url)
                    if next_url and next_url not in visited:
                        queue.append(next_url)

            logfire.info(
                'Crawl finished',
                site_id=site.id,
                pages_crawled=result.pages_crawled,
                jobs_found=result.jobs_found,
                jobs_saved=result.jobs_saved,
                jobs_skipped=result.jobs_skipped,
                errors=len(result.errors),
            )

        return result

    def preview(self, site: CrawlSite) -> list[CrawledJob]:
        """Extract the jobs of the first page without storing anything.

        Raises:
            FetchError: If the first page cannot be fetched
            ExtractionError: If the site's extraction rules are unusable

        """
        extractor = JobExtractor(site.extraction_rules)
        first_url = Paginator(site.pagination_config).page_urls(site.base_url)[0]
        page = self.fetcher.fetch(first_url, site.user_agent)
        jobs = extractor.extract_jobs(page.html or '', page.page_url)
        for job in jobs:
            job.site_id = site.id
            job.deduplication_hash = job.compute_hash(site.deduplication_key)
        return jobs

    def is_duplicate(self, job: CrawledJob, strategy: str, index: DedupIndex | None = None) -> bool:
        """Check whether a job is already stored under the site's deduplication strategy.

        Args:
            job: Job with its deduplication hash computed
            strategy: Site deduplication key
            index: Preloaded keys. The repository is queried when None.

        """
        if index is not None:
            return index.contains(job, strategy)
        if strategy == 'composite':
            return self.job_repo.exists_by_hash(job.deduplication_hash)
        if strategy == 'external_id':
            return bool(job.external_id) and self.job_repo.exists_by_external_id(job.external_id)
        return self.job_repo.exists_by_url(job.detail_url)

    def _store_page(self, jobs: list[CrawledJob], site: CrawlSite, index: DedupIndex, result: CrawlResult) -> None:
        new_jobs = []
        now = utcnow()
        for job in jobs:
            job.site_id = site.id
            job.deduplication_hash = job.compute_hash(site.deduplication_key)
            if self.is_duplicate(job, site.deduplication_key, index):
                logger.debug('Skipping duplicate job %s', job.detail_url)
                result.jobs_skipped += 1
                continue
            job.created_at = now
            job.updated_at = now
            job.synced = False
            index.add(job)
            new_jobs.append(job)

        if not new_jobs:
            return
        try:
            self.job_repo.add_many(new_jobs)
        except StorageError as e:
            for job in new_jobs:
                index.discard(job)
            result.errors.append(f'failed to save jobs: {e}')
            result.jobs_skipped += len(new_jobs)
            return
        result.jobs_saved += len(new_jobs)
