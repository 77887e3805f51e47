"""Custom exceptions for jobcrawler."""


class JobCrawlerError(Exception):
    """Base class for all jobcrawler exceptions."""

    pass


class SiteValidationError(JobCrawlerError):
    """Raised when a site configuration is rejected before submission or persistence."""

    def __init__(self, message: str, field: str | None = None):
        """Initialize validation error.

        Args:
            message: Human readable reason, surfaced as-is to the caller
            field: Name of the offending field, if a single one is responsible

        """
        self.message = message
        self.field = field
        super().__init__(message)


class SiteNotFoundError(JobCrawlerError):
    """Raised when a crawl site does not exist."""

    def __init__(self, site_id: str):
        """Initialize not-found error.

        Args:
            site_id: Identifier that was looked up

        """
        self.site_id = site_id
        super().__init__(f'site not found: {site_id}')


class LogNotFoundError(JobCrawlerError):
    """Raised when a site has no crawl log yet."""

    def __init__(self, site_id: str):
        """Initialize not-found error.

        Args:
            site_id: Site whose latest log was requested

        """
        self.site_id = site_id
        super().__init__(f'no crawl log found for site: {site_id}')


class FetchError(JobCrawlerError):
    """Raised when a page cannot be fetched."""

    def __init__(self, url: str, reason: str, status_code: int | None = None):
        """Initialize fetch error.

        Args:
            url: URL that failed
            reason: Why the fetch failed
            status_code: HTTP status code received, if any

        """
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f'failed to fetch {url}: {reason}')


class ExtractionError(JobCrawlerError):
    """Raised when extraction rules cannot be applied to a site."""

    pass


class ApiError(JobCrawlerError):
    """Raised when the crawler API answers with an error."""

    def __init__(self, message: str, status_code: int | None = None):
        """Initialize API error.

        Args:
            message: Error message taken from the response envelope
            status_code: HTTP status code of the response

        """
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class AuthenticationError(ApiError):
    """Raised when credentials are missing, expired and could not be refreshed."""

    def __init__(self, message: str = 'Session expired, please log in again'):
        """Initialize authentication error.

        Args:
            message: Error message shown to the user

        """
        super().__init__(message, status_code=401)


class StorageError(JobCrawlerError):
    """Raised when a data file cannot be read or written."""

    pass


class SyncError(JobCrawlerError):
    """Raised when a job cannot be pushed to the job-board backend."""

    pass
