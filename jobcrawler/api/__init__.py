"""REST API serving site management, crawls and crawl logs."""

from jobcrawler.api.app import create_app
from jobcrawler.api.dependencies import ServiceContainer, build_container

__all__ = ['ServiceContainer', 'build_container', 'create_app']
