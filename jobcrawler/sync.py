"""Pushes crawled jobs to the job-board backend."""

import logging
from typing import Any

import logfire
import requests

from jobcrawler.core.fetcher import get_retryer
from jobcrawler.exceptions import SyncError
from jobcrawler.models.results import CrawledJob, SyncResult
from jobcrawler.models.site import CrawlSite
from jobcrawler.storage.persistence import JobRepository, SiteRepository

logger = logging.getLogger(__name__)

JOBS_ENDPOINT = '/api/v1/token/jobs'
BATCH_SIZE = 50

JOB_TYPES = {
    'full-time': 'full_time',
    'fulltime': 'full_time',
    'full_time': 'full_time',
    'part-time': 'part_time',
    'parttime': 'part_time',
    'part_time': 'part_time',
    'contract': 'contract',
    'internship': 'internship',
    'freelance': 'contract',
}

LOCATION_TYPES = {
    'remote': 'remote',
    'hybrid': 'hybrid',
    'onsite': 'onsite',
    'on-site': 'onsite',
    'office': 'onsite',
}


def normalize_job_type(value: str) -> str:
    """Map a scraped job type onto the backend's vocabulary; full_time when unknown."""
    return JOB_TYPES.get(value.strip().lower(), 'full_time')


def normalize_location_type(value: str) -> str:
    """Map a scraped location type onto the backend's vocabulary; remote when unknown."""
    return LOCATION_TYPES.get(value.strip().lower(), 'remote')


def normalize_currency(value: str) -> str:
    """Keep three-letter currency codes; USD otherwise."""
    value = value.strip()
    return value.upper() if len(value) == 3 and value.isalpha() else 'USD'


def to_backend_payload(job: CrawledJob, startup_id: str) -> dict[str, Any]:
    """Build the backend's job creation body for a crawled job.

    Args:
        job: Job to push
        startup_id: Backend startup the job is published under

    Returns:
        JSON-compatible payload. Optional fields are omitted when unknown.

    """
    payload: dict[str, Any] = {
        'startup_id': startup_id,
        'title': job.title,
        'description': job.description,
        'requirements': job.requirements,
        'job_type': normalize_job_type(job.job_type),
        'location_type': normalize_location_type(job.location_type),
        'city': job.city,
        'country': job.country,
        'currency': normalize_currency(job.currency),
        'application_url': job.application_url or job.detail_url,
    }
    if job.salary_min is not None:
        payload['salary_min'] = job.salary_min
    if job.salary_max is not None:
        payload['salary_max'] = job.salary_max
    if job.application_email:
        payload['application_email'] = job.application_email
    if job.expires_at is not None:
        payload['expires_at'] = job.expires_at.isoformat()
    return payload


class JobSyncService:
    """Sends unsynced jobs to the backend and marks them as synced.

    Attributes:
        backend_url: Base URL of the job-board backend
        api_token: Bearer token accepted by the backend's token endpoints
        batch_size: Jobs handled per batch
        timeout: Request timeout in seconds

    """

    def __init__(
        self,
        backend_url: str,
        api_token: str,
        job_repo: JobRepository,
        site_repo: SiteRepository,
        batch_size: int = BATCH_SIZE,
        timeout: float = 30.0,
        session: requests.Session | None = None,
        max_attempts: int = 3,
    ):
        """Initialize the sync service.

        Args:
            backend_url: Base URL of the job-board backend
            api_token: Bearer token for the backend
            job_repo: Job repository
            site_repo: Site repository, used to find each job's startup
            batch_size: Jobs handled per batch
            timeout: Request timeout in seconds
            session: Session to use. A new one is created when None.
            max_attempts: Attempts per job on connection failures

        """
        self.backend_url = backend_url.rstrip('/')
        self.api_token = api_token
        self.job_repo = job_repo
        self.site_repo = site_repo
        self.batch_size = batch_size
        self.timeout = timeout
        self.session = session or requests.Session()
        self.max_attempts = max_attempts

    def sync_jobs(self) -> SyncResult:
        """Push every unsynced job, batch by batch.

        Jobs pushed in a batch are marked as synced with one write once the batch
        is done.

        Returns:
            Success and failure counts with one error message per failed job.

        """
        result = SyncResult()
        jobs = self.job_repo.find_unsynced()
        if not jobs:
            return result
        sites = {site.id: site for site in self.site_repo.all()}

        with logfire.span('sync_jobs', jobs=len(jobs)):
            for start in range(0, len(jobs), self.batch_size):
                pushed = []
                for job in jobs[start : start + self.batch_size]:
                    try:
                        self.push_job(job, sites.get(job.site_id))
                    except (SyncError, requests.RequestException) as e:
                        result.errors.append(f'job {job.id}: {e}')
                        result.failure_count += 1
                        continue
                    pushed.append(job.id)
                self.job_repo.mark_as_synced(pushed)
                result.success_count += len(pushed)

            logfire.info('Sync finished', success=result.success_count, failed=result.failure_count)

        if result.failure_count:
            logger.warning('Sync finished with %d failures', result.failure_count)
        return result

    def sync_job(self, job: CrawledJob) -> None:
        """Push one job and mark it as synced.

        Raises:
            SyncError: If the job's site is gone or the backend rejects the job
            requests.RequestException: If the backend cannot be reached

        """
        self.push_job(job, self.site_repo.get(job.site_id))
        self.job_repo.mark_as_synced([job.id])

    def push_job(self, job: CrawledJob, site: CrawlSite | None) -> None:
        if site is None:
            raise SyncError(f'failed to get site: {job.site_id}')

        retryer = get_retryer(
            max_attempts=self.max_attempts,
            retry_on=lambda e: isinstance(e, (requests.ConnectionError, requests.Timeout)),
        )
        response = retryer(
            self.session.post,
            f'{self.backend_url}{JOBS_ENDPOINT}',
            json=to_backend_payload(job, site.backend_startup_id),
            headers={'Authorization': f'Bearer {self.api_token}'},
            timeout=self.timeout,
        )
        if response.status_code not in (200, 201):
            raise SyncError(f'backend API error: {response.status_code} - {response.text}')
