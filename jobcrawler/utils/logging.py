"""Logging configuration for jobcrawler."""

import logging
from datetime import datetime
from pathlib import Path

import logfire

from jobcrawler.utils.files import get_logs_path


def setup_local_logging(level: str = 'INFO', data_dir: Path | str | None = None) -> Path:
    """Set up local file-based logging.

    Creates a log file in .jobcrawler/logs/ and configures the root logger
    to write to it. Console output is left to the CLI, which uses rich.

    Args:
        level: Logging level (e.g., 'DEBUG', 'INFO'). 'ALL' logs everything.
        data_dir: Data directory override. Defaults to .jobcrawler in the project root.

    Returns:
        Path: The path to the created log file.

    """
    logs_dir = get_logs_path(data_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    log_file = logs_dir / f'run_{timestamp}.log'

    if level.upper() == 'ALL':
        numeric_level = logging.NOTSET
    else:
        numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(numeric_level)
    file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    root_logger.addHandler(file_handler)

    return log_file


def setup_logfire(token: str, environment: str = 'development') -> bool:
    """Configure logfire, exporting to the Logfire service when a token is available.

    Args:
        token: Logfire write token
        environment: Deployment environment reported with every span

    Without a token spans and events are still created but never exported.

    Returns:
        True if logfire exports to the Logfire service.

    """
    if not token:
        logfire.configure(send_to_logfire=False, console=False)
        return False
    logfire.configure(token=token, service_name='jobcrawler', environment=environment)
    return True
