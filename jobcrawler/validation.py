"""Validation of crawl site configurations before they are submitted or persisted."""

import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ValidationError

from jobcrawler.exceptions import SiteValidationError
from jobcrawler.models.site import CrawlSite, CreateSiteInput, UpdateSiteInput

logger = logging.getLogger(__name__)

NAME_REQUIRED = 'Site name is required'
BASE_URL_REQUIRED = 'Valid base URL is required'
STARTUP_REQUIRED = 'Backend startup ID is required'
SCHEDULE_REQUIRED = 'Schedule is required'
INVALID_BASE_URL = 'Invalid base URL'


def is_valid_url(value: Any) -> bool:
    """Check that a value is an absolute URL with both a scheme and a host.

    Args:
        value: Candidate URL

    Returns:
        True if the value parses with a scheme and a network location

    """
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        parsed = urlparse(value.strip())
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _describe(error: ValidationError) -> tuple[str, str | None]:
    """Turn the first pydantic error into a readable message and field name."""
    first = error.errors()[0]
    location = '.'.join(str(part) for part in first.get('loc', ()))
    message = first.get('msg', 'invalid value')
    if location:
        return f'{location}: {message}', str(first['loc'][0])
    return message, None


class SiteValidator:
    """Checks site configurations and returns them as typed models.

    Every method is all-or-nothing: it either returns the parsed model or raises
    `SiteValidationError` with the first problem found.
    """

    def validate_create(self, data: CreateSiteInput | Mapping[str, Any]) -> CreateSiteInput:
        """Validate the input of a site creation.

        Args:
            data: Candidate configuration, as a model or a raw mapping

        Returns:
            The parsed creation input.

        Raises:
            SiteValidationError: If a required field is missing or the structure is invalid

        """
        values = self._raw(data)

        if _is_blank(values.get('name')):
            raise SiteValidationError(NAME_REQUIRED, field='name')
        if not is_valid_url(values.get('base_url')):
            raise SiteValidationError(BASE_URL_REQUIRED, field='base_url')
        if _is_blank(values.get('backend_startup_id')):
            raise SiteValidationError(STARTUP_REQUIRED, field='backend_startup_id')
        if _is_blank(values.get('schedule')):
            raise SiteValidationError(SCHEDULE_REQUIRED, field='schedule')

        return self._parse(CreateSiteInput, data)

    def validate_update(self, data: UpdateSiteInput | Mapping[str, Any]) -> UpdateSiteInput:
        """Validate a partial site update.

        Only fields that are present are checked.

        Args:
            data: Candidate changes, as a model or a raw mapping

        Returns:
            The parsed update input.

        Raises:
            SiteValidationError: If a present field is invalid

        """
        values = self._raw(data)

        base_url = values.get('base_url')
        if base_url is not None and not is_valid_url(base_url):
            raise SiteValidationError(INVALID_BASE_URL, field='base_url')

        return self._parse(UpdateSiteInput, data)

    def validate_site(self, site: CrawlSite) -> None:
        """Check a complete site, e.g. after merging an update into it.

        Args:
            site: Site about to be persisted

        Raises:
            SiteValidationError: If name, base URL or schedule is unusable

        """
        if _is_blank(site.name):
            raise SiteValidationError(NAME_REQUIRED, field='name')
        if not is_valid_url(site.base_url):
            raise SiteValidationError(BASE_URL_REQUIRED, field='base_url')
        if _is_blank(site.schedule):
            raise SiteValidationError(SCHEDULE_REQUIRED, field='schedule')

    @staticmethod
    def _raw(data: BaseModel | Mapping[str, Any]) -> Mapping[str, Any]:
        if isinstance(data, BaseModel):
            return data.model_dump(exclude_unset=isinstance(data, UpdateSiteInput))
        if isinstance(data, Mapping):
            return data
        raise SiteValidationError(f'expected a mapping, got {type(data).__name__}')

    @staticmethod
    def _parse(model: type[BaseModel], data: BaseModel | Mapping[str, Any]) -> Any:
        if isinstance(data, model):
            return data
        try:
            return model.model_validate(data)
        except ValidationError as e:
            message, field = _describe(e)
            logger.debug('Rejected site configuration: %s', message)
            raise SiteValidationError(message, field=field) from e
