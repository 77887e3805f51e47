"""Cron scheduling of site crawls and of the periodic job sync."""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import logfire
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from jobcrawler.models.site import CrawlSite
from jobcrawler.storage.persistence import SiteRepository

logger = logging.getLogger(__name__)

SYNC_JOB_ID = 'sync-jobs'

DESCRIPTORS = {
    '@yearly': '0 0 1 1 *',
    '@annually': '0 0 1 1 *',
    '@monthly': '0 0 1 * *',
    '@weekly': '0 0 * * 0',
    '@daily': '0 0 * * *',
    '@midnight': '0 0 * * *',
    '@hourly': '0 * * * *',
}

# crontab numbers Sunday as 0 (or 7); APScheduler numbers Monday as 0
_DAY_NAMES = ('sun', 'mon', 'tue', 'wed', 'thu', 'fri', 'sat')


def _crontab_day(value: str) -> int:
    if value in _DAY_NAMES:
        return _DAY_NAMES.index(value)
    if not value.isdigit() or int(value) > 7:
        raise ValueError(f'invalid day of week {value!r}')
    return int(value)


def _crontab_day_of_week(field: str) -> str:
    """Expand a crontab day-of-week field into APScheduler day names.

    Ranges and steps are resolved against crontab numbering, so '0-4' is Sunday
    to Thursday and '*/2' is Sunday, Tuesday, Thursday and Saturday.
    """
    field = field.lower()
    if field in ('*', '?'):
        return '*'

    days: set[int] = set()
    for part in field.split(','):
        body, has_step, step = part.partition('/')
        step_size = int(step) if step.isdigit() else 0
        if has_step and step_size < 1:
            raise ValueError(f'invalid day of week step {part!r}')

        if body in ('*', '?'):
            first, last = 0, 6
        elif '-' in body:
            low, high = body.split('-', 1)
            first, last = _crontab_day(low), _crontab_day(high)
        else:
            first = _crontab_day(body)
            last = 6 if has_step else first
        if first > last:
            raise ValueError(f'invalid day of week range {part!r}')

        days.update(day % 7 for day in range(first, last + 1, step_size or 1))

    # APScheduler weeks start on Monday
    return ','.join(_DAY_NAMES[day] for day in sorted(days, key=lambda day: (day + 6) % 7))


def build_trigger(schedule: str) -> CronTrigger:
    """Parse a cron schedule into an APScheduler trigger.

    Accepts standard 5-field expressions, 6-field expressions with a leading
    seconds field, and the @hourly/@daily/@weekly/@monthly/@yearly descriptors.
    Times are interpreted in UTC.

    Args:
        schedule: Cron expression

    Returns:
        The matching cron trigger.

    Raises:
        ValueError: If the expression cannot be parsed

    """
    expression = DESCRIPTORS.get(schedule.strip().lower(), schedule.strip())
    fields = expression.split()

    if len(fields) == 5:
        second = '0'
        minute, hour, day, month, day_of_week = fields
    elif len(fields) == 6:
        second, minute, hour, day, month, day_of_week = fields
    else:
        raise ValueError(f'invalid cron expression {schedule!r}: expected 5 or 6 fields, got {len(fields)}')

    return CronTrigger(
        second=second,
        minute=minute,
        hour=hour,
        day=day,
        month=month,
        day_of_week=_crontab_day_of_week(day_of_week),
        timezone=timezone.utc,
    )


def next_fire_time(schedule: str, now: datetime | None = None) -> datetime | None:
    """Return the next time a schedule fires, or None if it is invalid or never fires."""
    try:
        trigger = build_trigger(schedule)
    except ValueError:
        return None
    return trigger.get_next_fire_time(None, now or datetime.now(timezone.utc))


class CrawlScheduler:
    """Runs active sites on their cron schedules.

    Each active site gets one cron job. A periodic sync job is added when a sync
    runner is provided.

    Attributes:
        site_repo: Source of the sites to schedule
        crawl_runner: Called with a site id when a site is due
        sync_runner: Called periodically to push jobs to the backend
        sync_interval_minutes: Minutes between two sync runs
        scheduler: Underlying APScheduler instance

    """

    def __init__(
        self,
        site_repo: SiteRepository,
        crawl_runner: Callable[[str], Any],
        sync_runner: Callable[[], Any] | None = None,
        sync_interval_minutes: int = 5,
        scheduler: BaseScheduler | None = None,
    ):
        """Initialize the scheduler; nothing runs until `start`.

        Args:
            site_repo: Site repository
            crawl_runner: Function executing a crawl for a site id
            sync_runner: Function pushing unsynced jobs. Sync is not scheduled when None.
            sync_interval_minutes: Minutes between two sync runs
            scheduler: APScheduler instance. A UTC BackgroundScheduler is created when None.

        """
        self.site_repo = site_repo
        self.crawl_runner = crawl_runner
        self.sync_runner = sync_runner
        self.sync_interval_minutes = sync_interval_minutes
        self.scheduler = scheduler or BackgroundScheduler(timezone=timezone.utc)
        self.scheduler.add_listener(self._job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)
        self._triggers: dict[str, CronTrigger] = {}

    @staticmethod
    def job_id(site_id: str) -> str:
        return f'crawl:{site_id}'

    @property
    def running(self) -> bool:
        return bool(self.scheduler.running)

    def start(self) -> int:
        """Schedule every active site and start the scheduler.

        Returns:
            Number of sites scheduled.

        """
        scheduled = 0
        for site in self.site_repo.find_active():
            if self.schedule_site(site) is not None:
                scheduled += 1

        if self.sync_runner is not None:
            self.scheduler.add_job(
                self.sync_runner,
                trigger=IntervalTrigger(minutes=self.sync_interval_minutes, timezone=timezone.utc),
                id=SYNC_JOB_ID,
                name='Sync crawled jobs',
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )

        self.scheduler.start()
        logfire.info('Scheduler started', sites=scheduled, sync=self.sync_runner is not None)
        return scheduled

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info('Scheduler stopped')

    def schedule_site(self, site: CrawlSite) -> datetime | None:
        """Add or replace the cron job of a site.

        Inactive sites are unscheduled. A site whose schedule cannot be parsed is
        logged and left unscheduled.

        Args:
            site: Site to schedule

        Returns:
            Next run time, or None if the site is not scheduled.

        """
        if not site.active:
            self.unschedule_site(site.id)
            return None

        try:
            trigger = build_trigger(site.schedule)
        except ValueError as e:
            logger.error('Cannot schedule site %s (%s): %s', site.name, site.id, e)
            self.unschedule_site(site.id)
            return None

        if site.id in self._triggers and not self.running:
            # jobs added before start are queued, not replaced
            self.scheduler.remove_job(self.job_id(site.id))

        self.scheduler.add_job(
            self.crawl_runner,
            trigger=trigger,
            args=[site.id],
            id=self.job_id(site.id),
            name=f'Crawl {site.name}',
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._triggers[site.id] = trigger

        next_run = self.next_run_time(site.id)
        logger.info('Scheduled site %s with schedule %r, next run %s', site.name, site.schedule, next_run)
        return next_run

    def unschedule_site(self, site_id: str) -> None:
        if self._triggers.pop(site_id, None) is not None:
            self.scheduler.remove_job(self.job_id(site_id))
            logger.info('Unscheduled site %s', site_id)

    def reload_site(self, site_id: str) -> datetime | None:
        """Re-read a site and reschedule or unschedule it.

        Returns:
            Next run time, or None if the site is gone, inactive or unschedulable.

        """
        site = self.site_repo.get(site_id)
        if site is None:
            self.unschedule_site(site_id)
            return None
        return self.schedule_site(site)

    def is_scheduled(self, site_id: str) -> bool:
        return site_id in self._triggers

    def next_run_time(self, site_id: str) -> datetime | None:
        trigger = self._triggers.get(site_id)
        if trigger is None:
            return None
        return trigger.get_next_fire_time(None, datetime.now(timezone.utc))

    def _job_listener(self, event: Any) -> None:
        if getattr(event, 'exception', None):
            logger.error('Scheduled job %s failed: %s', event.job_id, event.exception)
        else:
            logger.debug('Scheduled job executed: %s', event.job_id)
