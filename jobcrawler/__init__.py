"""jobcrawler - configurable job-board crawler.

Describe a careers page once (pagination, CSS/regex extraction rules, schedule),
then crawl it on a cron schedule and push new jobs to the job board.
"""

__version__ = '0.1.0'

from jobcrawler.config import CrawlerConfig, load_config  # noqa: E402
from jobcrawler.exceptions import (  # noqa: E402
    ApiError,
    AuthenticationError,
    JobCrawlerError,
    SiteNotFoundError,
    SiteValidationError,
    StorageError,
    SyncError,
)
from jobcrawler.models import (  # noqa: E402
    CrawledJob,
    CrawlLog,
    CrawlResult,
    CrawlSite,
    CreateSiteInput,
    ExtractionRules,
    FieldRule,
    PaginationConfig,
    UpdateSiteInput,
)
from jobcrawler.utils import init_jobcrawler  # noqa: E402
from jobcrawler.validation import SiteValidator  # noqa: E402

__all__ = [
    '__version__',
    # Configuration
    'CrawlerConfig',
    'load_config',
    # Validation
    'SiteValidator',
    # Models
    'CrawlSite',
    'CreateSiteInput',
    'UpdateSiteInput',
    'ExtractionRules',
    'FieldRule',
    'PaginationConfig',
    'CrawledJob',
    'CrawlLog',
    'CrawlResult',
    # Errors
    'JobCrawlerError',
    'SiteValidationError',
    'SiteNotFoundError',
    'ApiError',
    'AuthenticationError',
    'StorageError',
    'SyncError',
    # Utilities
    'init_jobcrawler',
]
