"""Crawl engine components: fetching, pagination, extraction and transformations."""

from jobcrawler.core.engine import CrawlEngine
from jobcrawler.core.extractor import JobExtractor
from jobcrawler.core.fetcher import PageFetcher, get_retryer
from jobcrawler.core.paginator import Paginator
from jobcrawler.core.transforms import TransformationRegistry, apply_transformations, transformation

__all__ = [
    'CrawlEngine',
    'JobExtractor',
    'PageFetcher',
    'Paginator',
    'TransformationRegistry',
    'apply_transformations',
    'get_retryer',
    'transformation',
]
