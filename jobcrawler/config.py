"""Runtime configuration for the crawler server, scheduler, sync job and client.

Values come from environment variables, optionally loaded from a `.env` file.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_API_URL = 'http://localhost:8081'
DEFAULT_BACKEND_URL = 'http://localhost:8080'


# ============================================================================
# CONFIG DATACLASS
# ============================================================================


@dataclass
class CrawlerConfig:
    """Settings shared by every entry point.

    Attributes:
        api_url: Base URL of the crawler API, used by the client
        host: Interface the API server binds to
        port: Port the API server listens on
        data_dir: Directory holding the JSON stores. None means `.jobcrawler` in the project root.
        backend_url: Base URL of the job-board backend that receives synced jobs
        backend_token: API token for the backend. Sync is disabled when empty.
        sync_interval_minutes: Minutes between two sync runs
        request_timeout: Seconds before an outgoing HTTP request is abandoned
        fetch_retries: Attempts per page fetch, including the first one
        log_level: Level for the file log
        logfire_token: Logfire write token. Logfire stays unconfigured when empty.
        environment: Deployment environment label
        cors_origins: Origins allowed to call the API from a browser
    """

    api_url: str = DEFAULT_API_URL
    host: str = '0.0.0.0'
    port: int = 8081
    data_dir: Path | None = None
    backend_url: str = DEFAULT_BACKEND_URL
    backend_token: str = ''
    sync_interval_minutes: int = 5
    request_timeout: float = 30.0
    fetch_retries: int = 3
    log_level: str = 'INFO'
    logfire_token: str = ''
    environment: str = 'development'
    cors_origins: list[str] = field(default_factory=lambda: ['*'])

    def __post_init__(self) -> None:
        """Validate configuration after initialization.

        Raises:
            ValueError: If a numeric setting is out of range.
        """
        if not 0 < self.port < 65536:
            raise ValueError(f'port must be between 1 and 65535, got {self.port}')
        if self.sync_interval_minutes < 1:
            raise ValueError('sync_interval_minutes must be at least 1')
        if self.request_timeout <= 0:
            raise ValueError('request_timeout must be positive')
        if self.fetch_retries < 1:
            raise ValueError('fetch_retries must be at least 1')
        self.api_url = self.api_url.rstrip('/')
        self.backend_url = self.backend_url.rstrip('/')

    @property
    def sync_enabled(self) -> bool:
        return bool(self.backend_token)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f'{name} must be an integer, got {raw!r}') from e


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f'{name} must be a number, got {raw!r}') from e


def load_config(env_file: str | Path | None = None) -> CrawlerConfig:
    """Build a CrawlerConfig from the environment.

    Args:
        env_file: Optional path of a dotenv file. The default lookup is used when None.

    Returns:
        The populated configuration.

    Raises:
        ValueError: If a variable holds an invalid value.

    """
    load_dotenv(env_file)

    data_dir = os.getenv('JOBCRAWLER_DATA_DIR')
    origins = os.getenv('CORS_ORIGINS', '*')

    return CrawlerConfig(
        api_url=os.getenv('CRAWLER_API_URL', DEFAULT_API_URL),
        host=os.getenv('HOST', '0.0.0.0'),
        port=_int_env('PORT', 8081),
        data_dir=Path(data_dir) if data_dir else None,
        backend_url=os.getenv('BACKEND_URL', DEFAULT_BACKEND_URL),
        backend_token=os.getenv('BACKEND_TOKEN', ''),
        sync_interval_minutes=_int_env('SYNC_INTERVAL_MINUTES', 5),
        request_timeout=_float_env('REQUEST_TIMEOUT', 30.0),
        fetch_retries=_int_env('FETCH_RETRIES', 3),
        log_level=os.getenv('LOG_LEVEL', 'INFO'),
        logfire_token=os.getenv('LOGFIRE_TOKEN', ''),
        environment=os.getenv('ENVIRONMENT', 'development'),
        cors_origins=[origin.strip() for origin in origins.split(',') if origin.strip()],
    )
