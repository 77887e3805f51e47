"""Pydantic models for crawl site configuration.

A site bundles where to crawl (base URL, pagination strategy), what to pull out of
each listing page (extraction rules) and when to do it (cron schedule).
"""

import re
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationInfo, field_validator

CrawlInterval = Literal['daily', 'weekly', 'custom']
DeduplicationKey = Literal['url', 'composite', 'external_id']
FieldType = Literal['text', 'html', 'attribute', 'regex']
URLResolution = Literal['relative', 'absolute', 'attribute']

DEFAULT_USER_AGENT = 'Mozilla/5.0 (compatible; JobCrawler/1.0)'
DEFAULT_REQUEST_DELAY = 2
DEFAULT_MAX_PAGES = 100


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# =============================================================================
# PAGINATION - tagged union over `type`
# =============================================================================


class _PaginationVariant(BaseModel):
    """Shared behaviour of the pagination variants.

    Fields that belong to other variants are dropped on input instead of being
    rejected, so switching a site from one strategy to another never fails on
    leftovers from the previous one.
    """

    model_config = ConfigDict(extra='ignore')

    @field_validator('increment', 'max_pages', mode='before', check_fields=False)
    @classmethod
    def zero_means_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or value == 0:
            return cls.model_fields[info.field_name].default
        return value


class QueryParamPagination(_PaginationVariant):
    """Pages addressed by a query parameter, e.g. ``/jobs?page=3``.

    ``start_page`` 0 is a real page number and is requested as ``page=0``; it does
    not fall back to the default. The same holds for the URL pattern and API
    variants.
    """

    type: Literal['query_param'] = 'query_param'
    param_name: str = 'page'
    start_page: int = Field(default=1, ge=0)
    increment: int = Field(default=1, ge=1)
    max_pages: int = Field(default=DEFAULT_MAX_PAGES, ge=1)


class URLPatternPagination(_PaginationVariant):
    """Pages addressed by a path template containing ``{page}``."""

    type: Literal['url_pattern'] = 'url_pattern'
    url_pattern: str = Field(description='Template with a {page} placeholder')
    start_page: int = Field(default=1, ge=0)
    increment: int = Field(default=1, ge=1)
    max_pages: int = Field(default=DEFAULT_MAX_PAGES, ge=1)


class LinkFollowPagination(_PaginationVariant):
    """Pages discovered by following a "next page" link until it disappears."""

    type: Literal['link_follow'] = 'link_follow'
    next_page_selector: str = Field(description='CSS selector of the next page link')
    max_pages: int = Field(default=DEFAULT_MAX_PAGES, ge=1)


class APIPaginationConfig(BaseModel):
    """Endpoint description for sites that expose listings through an API."""

    model_config = ConfigDict(extra='ignore')

    endpoint: str
    page_param: str = 'page'
    page_size: int = Field(default=0, ge=0)
    max_pages: int = Field(default=DEFAULT_MAX_PAGES, ge=1)

    @field_validator('max_pages', mode='before')
    @classmethod
    def zero_means_default(cls, value: Any) -> Any:
        return DEFAULT_MAX_PAGES if value is None or value == 0 else value


class APIPagination(_PaginationVariant):
    """Pages fetched from a paginated API endpoint instead of the HTML site."""

    type: Literal['api_pagination'] = 'api_pagination'
    api_config: APIPaginationConfig
    start_page: int = Field(default=1, ge=0)
    increment: int = Field(default=1, ge=1)


PaginationConfig = Annotated[
    Union[QueryParamPagination, URLPatternPagination, LinkFollowPagination, APIPagination],
    Field(discriminator='type'),
]

_pagination_adapter: TypeAdapter[PaginationConfig] = TypeAdapter(PaginationConfig)


def parse_pagination(data: Any) -> PaginationConfig:
    """Validate a raw mapping into the matching pagination variant.

    Args:
        data: Mapping with a ``type`` key, or an already-built variant

    Returns:
        The pagination variant selected by ``type``.

    """
    return _pagination_adapter.validate_python(data)


def dump_pagination(config: PaginationConfig) -> dict[str, Any]:
    """Serialize a pagination variant to a JSON-compatible dict."""
    return _pagination_adapter.dump_python(config, mode='json')


# =============================================================================
# EXTRACTION RULES
# =============================================================================


class JobURLRule(BaseModel):
    """How to find the link to a job's detail page inside its container.

    Attributes:
        type: 'relative' resolves the value against base_url (or the page URL),
              'absolute' and 'attribute' take the attribute value as-is
        selector: CSS selector of the link, relative to the job container.
                  Empty means the container itself.
        attribute: Attribute holding the URL. Defaults to href when unset.
        base_url: Explicit base for relative links

    """

    type: URLResolution = 'relative'
    selector: str = 'a'
    attribute: str | None = None
    base_url: str | None = None


class FieldRule(BaseModel):
    """How to extract one logical field from a job container."""

    selector: str = ''
    type: FieldType = 'text'
    attribute: str | None = None
    regex_pattern: str | None = None
    required: bool = False
    default_value: str | None = None
    transformations: list[str] = Field(default_factory=list)

    @field_validator('regex_pattern')
    @classmethod
    def pattern_must_compile(cls, value: str | None) -> str | None:
        if value:
            try:
                re.compile(value)
            except re.error as e:
                raise ValueError(f'invalid regex pattern: {e}') from e
        return value


class ExtractionRules(BaseModel):
    """Rules turning one listing page into job records."""

    job_list_selector: str = ''
    job_detail_url: JobURLRule = Field(default_factory=JobURLRule)
    fields: dict[str, FieldRule] = Field(default_factory=dict)


# =============================================================================
# SITE
# =============================================================================


class CrawlSite(BaseModel):
    """A configured scraping target."""

    id: str
    name: str
    base_url: str
    backend_startup_id: str = ''
    active: bool = True
    schedule: str = ''
    last_crawled_at: datetime | None = None
    next_crawl_at: datetime | None = None
    crawl_interval: CrawlInterval = 'custom'
    pagination_config: PaginationConfig | None = None
    extraction_rules: ExtractionRules = Field(default_factory=ExtractionRules)
    deduplication_key: DeduplicationKey = 'url'
    request_delay: int = Field(default=DEFAULT_REQUEST_DELAY, ge=0, le=60)
    user_agent: str = DEFAULT_USER_AGENT
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class CreateSiteInput(BaseModel):
    """Candidate configuration for a new site.

    Identity fields default to empty strings so that a half-filled form reaches
    the validator and gets a precise message instead of a schema error.
    """

    name: str = ''
    base_url: str = ''
    backend_startup_id: str = ''
    schedule: str = ''
    crawl_interval: CrawlInterval = 'custom'
    pagination_config: PaginationConfig | None = None
    extraction_rules: ExtractionRules = Field(default_factory=ExtractionRules)
    deduplication_key: DeduplicationKey | None = None
    request_delay: int | None = Field(default=None, ge=0, le=60)
    user_agent: str | None = None


class UpdateSiteInput(BaseModel):
    """Partial update; only fields that are present (and not null) are applied."""

    name: str | None = None
    base_url: str | None = None
    backend_startup_id: str | None = None
    active: bool | None = None
    schedule: str | None = None
    crawl_interval: CrawlInterval | None = None
    pagination_config: PaginationConfig | None = None
    extraction_rules: ExtractionRules | None = None
    deduplication_key: DeduplicationKey | None = None
    request_delay: int | None = Field(default=None, ge=0, le=60)
    user_agent: str | None = None

    def changes(self) -> dict[str, Any]:
        """Return the provided fields as attribute name -> value."""
        return {name: getattr(self, name) for name in self.model_fields_set if getattr(self, name) is not None}
