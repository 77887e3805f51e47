"""FastAPI application for the crawler API."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jobcrawler import __version__
from jobcrawler.api.dependencies import ServiceContainer, build_container
from jobcrawler.api.routes import router
from jobcrawler.config import CrawlerConfig, load_config
from jobcrawler.exceptions import JobCrawlerError, LogNotFoundError, SiteNotFoundError, SiteValidationError

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'error': message})


def register_exception_handlers(app: FastAPI) -> None:
    """Map jobcrawler exceptions onto status codes and `{"error": ...}` bodies."""

    @app.exception_handler(SiteValidationError)
    async def validation_error_handler(request: Request, exc: SiteValidationError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = errors[0].get('msg', 'invalid request') if errors else 'invalid request'
        return _error(status.HTTP_400_BAD_REQUEST, message)

    @app.exception_handler(SiteNotFoundError)
    async def site_not_found_handler(request: Request, exc: SiteNotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(LogNotFoundError)
    async def log_not_found_handler(request: Request, exc: LogNotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(JobCrawlerError)
    async def crawler_error_handler(request: Request, exc: JobCrawlerError) -> JSONResponse:
        logger.error('Request %s %s failed: %s', request.method, request.url.path, exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception('Unhandled error on %s %s', request.method, request.url.path)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


def create_app(
    config: CrawlerConfig | None = None,
    container: ServiceContainer | None = None,
    start_scheduler: bool = True,
) -> FastAPI:
    """Build the API application.

    Args:
        config: Runtime configuration. Loaded from the environment when None.
        container: Pre-built services, mainly for tests. Built from config when None.
        start_scheduler: Whether the crawl scheduler runs for the app's lifetime

    Returns:
        The FastAPI application.

    """
    config = config or (container.config if container else load_config())
    container = container or build_container(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if start_scheduler:
            container.scheduler.start()
        try:
            yield
        finally:
            container.scheduler.stop()

    app = FastAPI(title='jobcrawler', version=__version__, lifespan=lifespan)
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials='*' not in config.cors_origins,
        allow_methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS'],
        allow_headers=['Origin', 'Content-Type', 'Accept', 'Authorization'],
    )
    register_exception_handlers(app)

    @app.get('/health')
    def health() -> dict[str, str]:
        return {'status': 'ok'}

    app.include_router(router)
    return app
