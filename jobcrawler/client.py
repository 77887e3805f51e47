"""HTTP client for the crawler API.

Bodies travel in a `{"data": ..., "error": ...}` envelope. Requests carry the
stored bearer token; a 401 triggers one token refresh and one retry.
"""

import json
import logging
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import requests
from pydantic import TypeAdapter

from jobcrawler.config import DEFAULT_API_URL
from jobcrawler.exceptions import ApiError, AuthenticationError
from jobcrawler.models.results import CrawlLog, CrawlResult
from jobcrawler.models.site import CrawlSite, CreateSiteInput, UpdateSiteInput
from jobcrawler.validation import SiteValidator

logger = logging.getLogger(__name__)

_sites_adapter = TypeAdapter(list[CrawlSite])
_logs_adapter = TypeAdapter(list[CrawlLog])


class TokenStore:
    """Access and refresh tokens, optionally persisted to a JSON file.

    Attributes:
        path: File the tokens are written to. Tokens live in memory only when None.

    """

    def __init__(self, path: Path | str | None = None):
        """Load tokens from the file, if there is one."""
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._tokens: dict[str, str] = {}
        if self.path and self.path.exists():
            try:
                self._tokens = json.loads(self.path.read_text(encoding='utf-8')) or {}
            except (OSError, ValueError) as e:
                logger.warning('Ignoring unreadable token file %s: %s', self.path, e)

    @property
    def access_token(self) -> str | None:
        return self._tokens.get('access_token')

    @property
    def refresh_token(self) -> str | None:
        return self._tokens.get('refresh_token')

    def save(self, access_token: str, refresh_token: str | None = None) -> None:
        with self._lock:
            self._tokens['access_token'] = access_token
            if refresh_token is not None:
                self._tokens['refresh_token'] = refresh_token
            self._write()

    def clear(self) -> None:
        with self._lock:
            self._tokens = {}
            if self.path and self.path.exists():
                self.path.unlink()

    def _write(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._tokens), encoding='utf-8')


class CrawlerApiClient:
    """Typed access to the crawler API.

    Attributes:
        base_url: Crawler API base URL
        auth_url: Base URL of the service issuing tokens
        token_store: Where tokens are read from and saved to
        validator: Applied to site inputs before they are sent
        timeout: Request timeout in seconds

    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        token_store: TokenStore | None = None,
        session: requests.Session | None = None,
        timeout: float = 30.0,
        auth_url: str | None = None,
        validator: SiteValidator | None = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.auth_url = (auth_url or base_url).rstrip('/')
        self.token_store = token_store or TokenStore()
        self.session = session or requests.Session()
        self.timeout = timeout
        self.validator = validator or SiteValidator()

    # =========================================================================
    # SITES
    # =========================================================================

    def list_sites(self) -> list[CrawlSite]:
        return _sites_adapter.validate_python(self._request('GET', '/api/v1/sites') or [])

    def get_site(self, site_id: str) -> CrawlSite:
        return CrawlSite.model_validate(self._request('GET', f'/api/v1/sites/{site_id}'))

    def create_site(self, data: CreateSiteInput | Mapping[str, Any]) -> CrawlSite:
        """Validate a new site locally, then create it.

        Raises:
            SiteValidationError: If the input is rejected; nothing is sent
            ApiError: If the server rejects the request

        """
        payload = self.validator.validate_create(data)
        body = payload.model_dump(mode='json', exclude_none=True)
        return CrawlSite.model_validate(self._request('POST', '/api/v1/sites', body=body))

    def update_site(self, site_id: str, data: UpdateSiteInput | Mapping[str, Any]) -> CrawlSite:
        """Validate a partial update locally, then apply it.

        Raises:
            SiteValidationError: If the changes are rejected; nothing is sent
            ApiError: If the server rejects the request

        """
        payload = self.validator.validate_update(data)
        body = payload.model_dump(mode='json', exclude_unset=True, exclude_none=True)
        return CrawlSite.model_validate(self._request('PUT', f'/api/v1/sites/{site_id}', body=body))

    def delete_site(self, site_id: str) -> None:
        self._request('DELETE', f'/api/v1/sites/{site_id}')

    # =========================================================================
    # CRAWLS
    # =========================================================================

    def execute_crawl(self, site_id: str) -> CrawlResult:
        return CrawlResult.model_validate(self._request('POST', f'/api/v1/sites/{site_id}/crawl'))

    def get_crawl_logs(self, site_id: str, limit: int | None = None) -> list[CrawlLog]:
        params = {'limit': limit} if limit else None
        data = self._request('GET', f'/api/v1/sites/{site_id}/logs', params=params)
        return _logs_adapter.validate_python(data or [])

    def get_latest_crawl_log(self, site_id: str) -> CrawlLog:
        return CrawlLog.model_validate(self._request('GET', f'/api/v1/sites/{site_id}/logs/latest'))

    def health(self) -> dict[str, Any]:
        return self._request('GET', '/health')

    # =========================================================================
    # AUTH
    # =========================================================================

    def login(self, email: str, password: str) -> None:
        """Log in and store the returned tokens.

        Raises:
            AuthenticationError: If the credentials are rejected

        """
        try:
            response = self.session.post(
                f'{self.auth_url}/api/v1/auth/login',
                json={'email': email, 'password': password},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ApiError(f'login request failed: {e}') from e

        try:
            data = self._unwrap(response)
        except ApiError as e:
            if e.status_code in (400, 401):
                raise AuthenticationError(e.message) from e
            raise

        if not isinstance(data, dict) or not data.get('access_token'):
            raise AuthenticationError('Login response did not contain an access token')
        self.token_store.save(data['access_token'], data.get('refresh_token'))

    def logout(self) -> None:
        self.token_store.clear()

    def _refresh_access_token(self) -> bool:
        refresh_token = self.token_store.refresh_token
        if not refresh_token:
            return False
        try:
            response = self.session.post(
                f'{self.auth_url}/api/v1/auth/refresh',
                json={'refresh_token': refresh_token},
                timeout=self.timeout,
            )
            data = self._unwrap(response)
        except (requests.RequestException, ApiError) as e:
            logger.info('Token refresh failed: %s', e)
            return False

        access_token = data.get('access_token') if isinstance(data, dict) else None
        if not access_token:
            return False
        self.token_store.save(access_token, data.get('refresh_token'))
        return True

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def _request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
        retry_on_unauthorized: bool = True,
    ) -> Any:
        headers = {'Accept': 'application/json'}
        if self.token_store.access_token:
            headers['Authorization'] = f'Bearer {self.token_store.access_token}'

        try:
            response = self.session.request(
                method, f'{self.base_url}{path}', json=body, params=params, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise ApiError(f'request to {path} failed: {e}') from e

        if response.status_code == 401:
            if retry_on_unauthorized and self._refresh_access_token():
                return self._request(method, path, body=body, params=params, retry_on_unauthorized=False)
            self.token_store.clear()
            raise AuthenticationError()

        return self._unwrap(response)

    @staticmethod
    def _unwrap(response: requests.Response) -> Any:
        try:
            body = response.json() if response.content else None
        except ValueError:
            body = None

        if not response.ok:
            message = None
            if isinstance(body, dict):
                message = body.get('error')
            raise ApiError(message or f'HTTP error! status: {response.status_code}', status_code=response.status_code)

        if isinstance(body, dict) and 'data' in body:
            return body['data']
        return body
