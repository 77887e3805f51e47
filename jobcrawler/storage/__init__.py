"""JSON file persistence for sites, jobs and crawl logs."""

from jobcrawler.storage.persistence import (
    CrawlLogRepository,
    DedupIndex,
    JobRepository,
    JsonCollection,
    SiteRepository,
)

__all__ = ['JsonCollection', 'SiteRepository', 'JobRepository', 'DedupIndex', 'CrawlLogRepository']
