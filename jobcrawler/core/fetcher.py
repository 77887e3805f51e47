"""HTTP fetching of listing pages with retries."""

import logging
import time
from collections.abc import Callable
from typing import Any

import logfire
import requests
from tenacity import (
    BaseRetrying,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from jobcrawler.exceptions import FetchError
from jobcrawler.models.results import FetchResult
from jobcrawler.models.site import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

ACCEPT_HEADER = 'text/html,application/xhtml+xml,application/xml;q=0.9,application/json;q=0.8,*/*;q=0.7'


class _ServerError(Exception):
    """Internal marker for 5xx responses that are worth retrying."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f'unexpected status code: {status_code}')


def is_transient(error: BaseException) -> bool:
    """Whether a failed request may succeed if tried again."""
    return isinstance(error, (requests.ConnectionError, requests.Timeout, _ServerError))


def log_retry(retry_state: Any) -> None:
    """Before-sleep callback reporting a retried fetch to logfire."""
    exception = retry_state.outcome.exception()
    logfire.warn(
        'Retrying fetch',
        attempt=retry_state.attempt_number,
        error=str(exception) if exception else 'Unknown error',
    )


def get_retryer(
    max_attempts: int = 3,
    wait_min: float = 1.0,
    wait_max: float = 10.0,
    retry_on: Callable[[BaseException], bool] = is_transient,
    log_callback: Callable[[Any], None] | None = log_retry,
) -> BaseRetrying:
    """Create the tenacity Retrying object used for outgoing requests.

    Args:
        max_attempts: Attempts including the first one.
        wait_min: Minimum wait between attempts in seconds.
        wait_max: Maximum wait between attempts in seconds.
        retry_on: Predicate deciding whether an exception is retried.
        log_callback: Called before sleeping between attempts.

    Returns:
        A configured tenacity.Retrying object that re-raises the last error.

    """
    return Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1.0, min=wait_min, max=wait_max),
        retry=retry_if_exception(retry_on),
        before_sleep=log_callback,
        reraise=True,
    )


class PageFetcher:
    """Fetches pages over a shared requests session.

    Attributes:
        timeout: Request timeout in seconds
        max_attempts: Attempts per URL before giving up
        session: Session reused for connection pooling

    """

    def __init__(
        self,
        timeout: float = 30.0,
        max_attempts: int = 3,
        session: requests.Session | None = None,
        wait_min: float = 1.0,
        wait_max: float = 10.0,
    ):
        """Initialize the fetcher.

        Args:
            timeout: Request timeout in seconds
            max_attempts: Attempts per URL, including the first one
            session: Session to use. A new one is created when None.
            wait_min: Minimum backoff between attempts
            wait_max: Maximum backoff between attempts

        """
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.session = session or requests.Session()
        self.wait_min = wait_min
        self.wait_max = wait_max

    def fetch(self, url: str, user_agent: str | None = None) -> FetchResult:
        """Fetch a page, retrying transient failures.

        Args:
            url: Page to fetch
            user_agent: User-Agent header. The crawler default is used when empty.

        Returns:
            The fetched page.

        Raises:
            FetchError: If the page cannot be fetched or the status is not 200

        """
        headers = {'User-Agent': user_agent or DEFAULT_USER_AGENT, 'Accept': ACCEPT_HEADER}
        retryer = get_retryer(max_attempts=self.max_attempts, wait_min=self.wait_min, wait_max=self.wait_max)
        start_time = time.time()

        try:
            response = retryer(self._get, url, headers)
        except _ServerError as e:
            raise FetchError(url, str(e), status_code=e.status_code) from e
        except requests.RequestException as e:
            raise FetchError(url, str(e)) from e

        if response.status_code != 200:
            raise FetchError(url, f'unexpected status code: {response.status_code}', status_code=response.status_code)

        elapsed = time.time() - start_time
        logger.debug('Fetched %s (%d chars) in %.2fs', url, len(response.text), elapsed)
        return FetchResult(
            url=url,
            html=response.text,
            status_code=response.status_code,
            final_url=response.url or url,
            fetch_time=elapsed,
        )

    def _get(self, url: str, headers: dict[str, str]) -> requests.Response:
        response = self.session.get(url, headers=headers, timeout=self.timeout, allow_redirects=True)
        if response.status_code >= 500:
            raise _ServerError(response.status_code)
        return response

    def close(self) -> None:
        self.session.close()
