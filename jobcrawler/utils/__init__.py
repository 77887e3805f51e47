"""Utility helpers for files and logging."""

from jobcrawler.utils.files import get_data_dir, get_project_root, init_jobcrawler
from jobcrawler.utils.logging import setup_local_logging, setup_logfire

__all__ = [
    'get_data_dir',
    'get_project_root',
    'init_jobcrawler',
    'setup_local_logging',
    'setup_logfire',
]
