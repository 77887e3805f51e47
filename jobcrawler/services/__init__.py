"""Application services for sites and crawls."""

from jobcrawler.services.crawls import CrawlService
from jobcrawler.services.sites import SiteService

__all__ = ['CrawlService', 'SiteService']
