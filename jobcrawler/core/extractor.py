"""Extracts job records from listing pages using a site's extraction rules."""

import logging
import re
from datetime import datetime
from typing import ClassVar
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag
from dateutil import parser as date_parser

from jobcrawler.core.transforms import apply_transformations, parse_leading_int
from jobcrawler.exceptions import ExtractionError
from jobcrawler.models.results import CrawledJob
from jobcrawler.models.site import ExtractionRules, FieldRule

logger = logging.getLogger(__name__)


def _attr(element: Tag, name: str) -> str:
    """Read an attribute as a string; multi-valued attributes are space-joined."""
    value = element.get(name)
    if value is None:
        return ''
    if isinstance(value, list):
        return ' '.join(value)
    return str(value)


def _inner_html(element: Tag) -> str:
    return ''.join(str(child) for child in element.contents).strip()


def parse_expiry(value: str) -> datetime | None:
    """Parse a free-form date, returning None when it is not a date."""
    if not value:
        return None
    try:
        return date_parser.parse(value)
    except (ValueError, OverflowError):
        return None


class JobExtractor:
    """Applies extraction rules to listing pages.

    Attributes:
        rules: Extraction rules of the site being crawled
        TEXT_FIELDS: Field names copied verbatim onto the job record
        INTEGER_FIELDS: Field names parsed as integers

    """

    TEXT_FIELDS: ClassVar[tuple[str, ...]] = (
        'title',
        'description',
        'requirements',
        'company',
        'location',
        'city',
        'country',
        'job_type',
        'location_type',
        'currency',
        'application_url',
    )
    INTEGER_FIELDS: ClassVar[tuple[str, ...]] = ('salary_min', 'salary_max')

    def __init__(self, rules: ExtractionRules):
        """Initialize the extractor.

        Args:
            rules: Extraction rules of the site being crawled

        Raises:
            ExtractionError: If the rules have no job list selector

        """
        if not rules.job_list_selector.strip():
            raise ExtractionError('invalid extraction rules: job_list_selector is required')
        self.rules = rules

    def containers(self, html: str | BeautifulSoup) -> list[Tag]:
        """Return the job containers of a page."""
        soup = html if isinstance(html, BeautifulSoup) else BeautifulSoup(html, 'lxml')
        return soup.select(self.rules.job_list_selector)

    def extract_jobs(self, html: str | BeautifulSoup, page_url: str) -> list[CrawledJob]:
        """Extract every job on a listing page.

        Containers without a detail URL, and jobs missing a required field, are dropped.

        Args:
            html: Page markup, or an already parsed document
            page_url: URL of the page, used to resolve relative detail links

        Returns:
            Jobs in page order.

        """
        jobs = []
        for container in self.containers(html):
            job = self.extract_job(container, page_url)
            if job is not None:
                jobs.append(job)
        return jobs

    def extract_job(self, container: Tag, page_url: str) -> CrawledJob | None:
        """Build one job from its container, or None if it has to be dropped."""
        detail_url = self.extract_detail_url(container, page_url)
        if not detail_url:
            logger.debug('Skipping job container without detail URL on %s', page_url)
            return None

        job = CrawledJob(detail_url=detail_url, raw_html=str(container))

        for field_name, rule in self.rules.fields.items():
            value = apply_transformations(self.extract_field(container, rule), rule.transformations)
            if rule.required and not value.strip():
                logger.debug('Skipping %s: required field %r is empty', detail_url, field_name)
                return None
            self._assign(job, field_name, value)

        return job

    def extract_detail_url(self, container: Tag, page_url: str) -> str:
        """Resolve the link to a job's detail page.

        Args:
            container: Job container element
            page_url: URL of the listing page

        Returns:
            The detail URL, or an empty string if the container has none.

        """
        rule = self.rules.job_detail_url
        link = container.select_one(rule.selector) if rule.selector else container
        if link is None:
            return ''

        url = _attr(link, rule.attribute or 'href').strip()
        if url and rule.type == 'relative' and not url.startswith('http'):
            url = urljoin(rule.base_url or page_url, url)
        return url

    def extract_field(self, container: Tag, rule: FieldRule) -> str:
        """Extract one raw field value, before transformations.

        Args:
            container: Job container element
            rule: Rule of the field

        Returns:
            The extracted value, or the rule's default when the element is missing
            or the value is empty.

        """
        default = rule.default_value or ''
        element = container.select_one(rule.selector) if rule.selector else container
        if element is None:
            return default

        if rule.type == 'html':
            value = _inner_html(element)
        elif rule.type == 'attribute':
            value = _attr(element, rule.attribute) if rule.attribute else ''
        elif rule.type == 'regex':
            value = ''
            if rule.regex_pattern:
                match = re.search(rule.regex_pattern, element.get_text())
                if match:
                    value = match.group(1) if match.re.groups else match.group(0)
        else:
            value = element.get_text().strip()

        return value or default

    def _assign(self, job: CrawledJob, field_name: str, value: str) -> None:
        if field_name in self.TEXT_FIELDS:
            setattr(job, field_name, value)
        elif field_name in self.INTEGER_FIELDS:
            setattr(job, field_name, parse_leading_int(value))
        elif field_name == 'external_id':
            job.external_id = value or None
        elif field_name == 'application_email':
            job.application_email = value or None
        elif field_name == 'expires_at':
            job.expires_at = parse_expiry(value)
        else:
            job.extra[field_name] = value
