"""Models for crawled jobs, crawl logs and crawl outcomes."""

import hashlib
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from jobcrawler.models.site import DeduplicationKey, utcnow

CrawlStatus = Literal['running', 'completed', 'failed']
LogLevel = Literal['info', 'warning', 'error']


def new_id() -> str:
    """Return a fresh random identifier."""
    return str(uuid.uuid4())


@dataclass
class FetchResult:
    """Result of an HTML fetch operation.

    Attributes:
        url: URL that was requested
        html: Response body
        status_code: HTTP status code of the response
        final_url: URL after redirects, used to resolve relative links
        fetch_time: Seconds spent on the request

    """

    url: str
    html: str | None = None
    status_code: int | None = None
    final_url: str | None = None
    fetch_time: float = 0.0

    @property
    def success(self) -> bool:
        """Whether the fetch returned a body."""
        return self.html is not None

    @property
    def page_url(self) -> str:
        """URL to resolve relative links against."""
        return self.final_url or self.url


# =============================================================================
# JOBS
# =============================================================================


class CrawledJob(BaseModel):
    """A job record extracted from a listing page."""

    id: str = Field(default_factory=new_id)
    site_id: str = ''
    external_id: str | None = None
    detail_url: str = ''
    title: str = ''
    description: str = ''
    requirements: str = ''
    company: str = ''
    location: str = ''
    city: str = ''
    country: str = ''
    job_type: str = ''
    location_type: str = ''
    salary_min: int | None = None
    salary_max: int | None = None
    currency: str = ''
    application_url: str = ''
    application_email: str | None = None
    expires_at: datetime | None = None
    extra: dict[str, str] = Field(default_factory=dict)
    raw_html: str = ''
    deduplication_hash: str = ''
    synced: bool = False
    synced_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def compute_hash(self, strategy: DeduplicationKey | str) -> str:
        """Compute the value identifying this job under a deduplication strategy.

        Args:
            strategy: 'url', 'composite' or 'external_id'. Anything else falls back to 'url'.

        Returns:
            Detail URL, SHA-256 hex digest of title|company|location, or external id.

        """
        if strategy == 'composite':
            key = f'{self.title}|{self.company}|{self.location}'
            return hashlib.sha256(key.encode('utf-8')).hexdigest()
        if strategy == 'external_id':
            return self.external_id or ''
        return self.detail_url


# =============================================================================
# CRAWL LOGS
# =============================================================================


class LogEntry(BaseModel):
    """One line of a crawl log."""

    timestamp: datetime = Field(default_factory=utcnow)
    level: LogLevel = 'info'
    message: str


class CrawlLog(BaseModel):
    """Record of a single crawl run.

    Created in the running state when a crawl starts, appended to while it runs and
    finalized with `complete` or `fail`.
    """

    id: str = Field(default_factory=new_id)
    site_id: str
    status: CrawlStatus = 'running'
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None
    duration_ms: int | None = None
    pages_crawled: int = 0
    jobs_found: int = 0
    jobs_saved: int = 0
    jobs_skipped: int = 0
    errors: list[str] = Field(default_factory=list)
    logs: list[LogEntry] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)

    def add_log(self, level: LogLevel, message: str) -> None:
        self.logs.append(LogEntry(level=level, message=message))

    def add_error(self, message: str) -> None:
        """Record an error and mirror it as an error line."""
        self.errors.append(message)
        self.add_log('error', message)

    def _finish(self, status: CrawlStatus) -> None:
        now = utcnow()
        self.status = status
        self.completed_at = now
        self.duration_ms = int((now - self.started_at).total_seconds() * 1000)

    def complete(self) -> None:
        self._finish('completed')

    def fail(self, error: Exception | str) -> None:
        """Mark the run failed and record the cause."""
        self.add_error(str(error))
        self._finish('failed')


# =============================================================================
# OUTCOMES
# =============================================================================


class CrawlResult(BaseModel):
    """Counters reported by one crawl."""

    jobs_found: int = 0
    jobs_saved: int = 0
    jobs_skipped: int = 0
    pages_crawled: int = 0
    errors: list[str] = Field(default_factory=list)


@dataclass
class SyncResult:
    """Outcome of pushing jobs to the job-board backend."""

    success_count: int = 0
    failure_count: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {'success_count': self.success_count, 'failure_count': self.failure_count, 'errors': self.errors}
