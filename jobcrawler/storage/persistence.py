"""JSON file repositories for sites, crawled jobs and crawl logs."""

import json
import logging
import os
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from jobcrawler.exceptions import SiteNotFoundError, StorageError
from jobcrawler.models.results import CrawledJob, CrawlLog
from jobcrawler.models.site import CrawlSite, utcnow
from jobcrawler.utils.files import init_jobcrawler

logger = logging.getLogger(__name__)

ModelT = TypeVar('ModelT', bound=BaseModel)


class JsonCollection(Generic[ModelT]):
    """A list of models persisted as one JSON array.

    Every operation reads the file, applies the change and writes it back under
    a lock, so a collection can be shared by the API and the scheduler threads.

    Attributes:
        model: Model class stored in the collection
        filename: Name of the file inside the data directory
        path: Full path of the JSON file

    """

    model: type[ModelT]
    filename: str

    def __init__(self, data_dir: Path | str | None = None):
        """Initialize the collection.

        Args:
            data_dir: Data directory. Defaults to .jobcrawler in the project root.

        """
        self.path = init_jobcrawler(data_dir) / self.filename
        self._adapter = TypeAdapter(list[self.model])
        self._lock = threading.RLock()

    def _load(self) -> list[ModelT]:
        if not self.path.exists():
            return []
        try:
            raw = self.path.read_text(encoding='utf-8')
            return self._adapter.validate_json(raw) if raw.strip() else []
        except (OSError, ValidationError) as e:
            raise StorageError(f'cannot read {self.path}: {e}') from e

    def _save(self, items: list[ModelT]) -> None:
        tmp_path = self.path.with_suffix('.tmp')
        try:
            data = self._adapter.dump_python(items, mode='json')
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f'cannot write {self.path}: {e}') from e

    def all(self) -> list[ModelT]:
        with self._lock:
            return self._load()

    def find(self, predicate: Callable[[ModelT], bool]) -> list[ModelT]:
        with self._lock:
            return [item for item in self._load() if predicate(item)]

    def get(self, item_id: str) -> ModelT | None:
        with self._lock:
            return next((item for item in self._load() if item.id == item_id), None)

    def add(self, item: ModelT) -> ModelT:
        with self._lock:
            items = self._load()
            items.append(item)
            self._save(items)
        return item

    def add_many(self, new_items: list[ModelT]) -> list[ModelT]:
        """Append several items with a single read and write."""
        if not new_items:
            return new_items
        with self._lock:
            items = self._load()
            items.extend(new_items)
            self._save(items)
        return new_items

    def replace(self, item: ModelT) -> bool:
        """Overwrite the stored item with the same id.

        Returns:
            False if no item has that id.

        """
        with self._lock:
            items = self._load()
            for index, existing in enumerate(items):
                if existing.id == item.id:
                    items[index] = item
                    self._save(items)
                    return True
        return False

    def remove(self, item_id: str) -> bool:
        with self._lock:
            items = self._load()
            kept = [item for item in items if item.id != item_id]
            if len(kept) == len(items):
                return False
            self._save(kept)
        return True


# =============================================================================
# SITES
# =============================================================================


class SiteRepository(JsonCollection[CrawlSite]):
    """Stores crawl sites in sites.json."""

    model = CrawlSite
    filename = 'sites.json'

    def find_active(self) -> list[CrawlSite]:
        return self.find(lambda site: site.active)

    def update(self, site: CrawlSite) -> CrawlSite:
        """Persist a modified site.

        Raises:
            SiteNotFoundError: If the site is not stored

        """
        if not self.replace(site):
            raise SiteNotFoundError(site.id)
        return site

    def delete(self, site_id: str) -> None:
        if not self.remove(site_id):
            raise SiteNotFoundError(site_id)

    def update_crawl_times(self, site_id: str, crawled_at: datetime, next_crawl_at: datetime | None) -> None:
        """Record when a site was last crawled and when it runs next."""
        with self._lock:
            site = self.get(site_id)
            if site is None:
                raise SiteNotFoundError(site_id)
            site.last_crawled_at = crawled_at
            site.next_crawl_at = next_crawl_at
            self.replace(site)

    def update_next_crawl(self, site_id: str, next_crawl_at: datetime | None) -> None:
        with self._lock:
            site = self.get(site_id)
            if site is not None and site.next_crawl_at != next_crawl_at:
                site.next_crawl_at = next_crawl_at
                self.replace(site)


# =============================================================================
# JOBS
# =============================================================================


@dataclass
class DedupIndex:
    """Deduplication keys of stored jobs, loaded once per crawl.

    Attributes:
        urls: Detail URLs
        hashes: Deduplication hashes
        external_ids: Non-empty external ids

    """

    urls: set[str] = field(default_factory=set)
    hashes: set[str] = field(default_factory=set)
    external_ids: set[str] = field(default_factory=set)

    def contains(self, job: CrawledJob, strategy: str) -> bool:
        if strategy == 'composite':
            return bool(job.deduplication_hash) and job.deduplication_hash in self.hashes
        if strategy == 'external_id':
            return bool(job.external_id) and job.external_id in self.external_ids
        return bool(job.detail_url) and job.detail_url in self.urls

    def add(self, job: CrawledJob) -> None:
        if job.detail_url:
            self.urls.add(job.detail_url)
        if job.deduplication_hash:
            self.hashes.add(job.deduplication_hash)
        if job.external_id:
            self.external_ids.add(job.external_id)

    def discard(self, job: CrawledJob) -> None:
        self.urls.discard(job.detail_url)
        self.hashes.discard(job.deduplication_hash)
        if job.external_id:
            self.external_ids.discard(job.external_id)


class JobRepository(JsonCollection[CrawledJob]):
    """Stores crawled jobs in jobs.json."""

    model = CrawledJob
    filename = 'jobs.json'

    def dedup_index(self) -> DedupIndex:
        index = DedupIndex()
        for job in self.all():
            index.add(job)
        return index

    def exists_by_url(self, url: str) -> bool:
        return bool(url) and bool(self.find(lambda job: job.detail_url == url))

    def exists_by_hash(self, value: str) -> bool:
        return bool(value) and bool(self.find(lambda job: job.deduplication_hash == value))

    def exists_by_external_id(self, external_id: str) -> bool:
        return bool(external_id) and bool(self.find(lambda job: job.external_id == external_id))

    def find_by_site_id(self, site_id: str) -> list[CrawledJob]:
        return self.find(lambda job: job.site_id == site_id)

    def find_unsynced(self, limit: int | None = None) -> list[CrawledJob]:
        """Return jobs not yet pushed to the backend, oldest first."""
        jobs = sorted(self.find(lambda job: not job.synced), key=lambda job: job.created_at)
        return jobs[:limit] if limit else jobs

    def mark_as_synced(self, job_ids: Iterable[str]) -> int:
        """Flag jobs as synced.

        Returns:
            Number of jobs that were updated.

        """
        ids = set(job_ids)
        if not ids:
            return 0
        now = utcnow()
        with self._lock:
            jobs = self._load()
            updated = 0
            for job in jobs:
                if job.id in ids and not job.synced:
                    job.synced = True
                    job.synced_at = now
                    job.updated_at = now
                    updated += 1
            if updated:
                self._save(jobs)
        logger.debug('Marked %d jobs as synced', updated)
        return updated


# =============================================================================
# CRAWL LOGS
# =============================================================================


class CrawlLogRepository(JsonCollection[CrawlLog]):
    """Stores crawl logs in crawl_logs.json."""

    model = CrawlLog
    filename = 'crawl_logs.json'

    def update(self, log: CrawlLog) -> CrawlLog:
        if not self.replace(log):
            raise StorageError(f'crawl log not found: {log.id}')
        return log

    def find_by_site_id(self, site_id: str, limit: int | None = None) -> list[CrawlLog]:
        """Return a site's logs, newest first."""
        logs = sorted(self.find(lambda log: log.site_id == site_id), key=lambda log: log.started_at, reverse=True)
        return logs[:limit] if limit else logs

    def find_latest(self, site_id: str) -> CrawlLog | None:
        logs = self.find_by_site_id(site_id, limit=1)
        return logs[0] if logs else None

    def delete_by_site_id(self, site_id: str) -> int:
        with self._lock:
            logs = self._load()
            kept = [log for log in logs if log.site_id != site_id]
            if len(kept) != len(logs):
                self._save(kept)
        return len(logs) - len(kept)
