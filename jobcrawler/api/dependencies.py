"""Wiring of repositories and services shared by the API and the CLI."""

from dataclasses import dataclass

from fastapi import Request

from jobcrawler.config import CrawlerConfig
from jobcrawler.core.engine import CrawlEngine
from jobcrawler.core.fetcher import PageFetcher
from jobcrawler.scheduler import CrawlScheduler
from jobcrawler.services.crawls import CrawlService
from jobcrawler.services.sites import SiteService
from jobcrawler.storage.persistence import CrawlLogRepository, JobRepository, SiteRepository
from jobcrawler.sync import JobSyncService


@dataclass
class ServiceContainer:
    """Everything a request handler or command needs."""

    config: CrawlerConfig
    site_repo: SiteRepository
    job_repo: JobRepository
    log_repo: CrawlLogRepository
    engine: CrawlEngine
    sites: SiteService
    crawls: CrawlService
    scheduler: CrawlScheduler
    sync: JobSyncService | None = None


def build_container(config: CrawlerConfig) -> ServiceContainer:
    """Create repositories and services from configuration.

    The scheduler is created but not started.

    Args:
        config: Runtime configuration

    Returns:
        The wired services.

    """
    site_repo = SiteRepository(config.data_dir)
    job_repo = JobRepository(config.data_dir)
    log_repo = CrawlLogRepository(config.data_dir)

    fetcher = PageFetcher(timeout=config.request_timeout, max_attempts=config.fetch_retries)
    engine = CrawlEngine(job_repo, fetcher=fetcher)
    crawls = CrawlService(engine, site_repo, log_repo)

    sync = None
    if config.sync_enabled:
        sync = JobSyncService(
            config.backend_url,
            config.backend_token,
            job_repo,
            site_repo,
            timeout=config.request_timeout,
        )

    scheduler = CrawlScheduler(
        site_repo,
        crawl_runner=crawls.execute,
        sync_runner=sync.sync_jobs if sync else None,
        sync_interval_minutes=config.sync_interval_minutes,
    )
    sites = SiteService(site_repo, scheduler=scheduler, log_repo=log_repo)

    return ServiceContainer(
        config=config,
        site_repo=site_repo,
        job_repo=job_repo,
        log_repo=log_repo,
        engine=engine,
        sites=sites,
        crawls=crawls,
        scheduler=scheduler,
        sync=sync,
    )


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_site_service(request: Request) -> SiteService:
    return get_container(request).sites


def get_crawl_service(request: Request) -> CrawlService:
    return get_container(request).crawls
