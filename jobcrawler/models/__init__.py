"""Pydantic models for site configuration, crawled jobs and crawl logs."""

from jobcrawler.models.results import (
    CrawledJob,
    CrawlLog,
    CrawlResult,
    FetchResult,
    LogEntry,
    SyncResult,
)
from jobcrawler.models.site import (
    APIPagination,
    APIPaginationConfig,
    CrawlSite,
    CreateSiteInput,
    ExtractionRules,
    FieldRule,
    JobURLRule,
    LinkFollowPagination,
    PaginationConfig,
    QueryParamPagination,
    UpdateSiteInput,
    URLPatternPagination,
    dump_pagination,
    parse_pagination,
)

__all__ = [
    # Site configuration
    'CrawlSite',
    'CreateSiteInput',
    'UpdateSiteInput',
    'ExtractionRules',
    'FieldRule',
    'JobURLRule',
    # Pagination
    'PaginationConfig',
    'QueryParamPagination',
    'URLPatternPagination',
    'LinkFollowPagination',
    'APIPagination',
    'APIPaginationConfig',
    'parse_pagination',
    'dump_pagination',
    # Results
    'FetchResult',
    'CrawledJob',
    'CrawlLog',
    'LogEntry',
    'CrawlResult',
    'SyncResult',
]
