"""Locating and initializing the jobcrawler data directory."""

from pathlib import Path

DATA_DIR_NAME = '.jobcrawler'
ROOT_MARKERS = ('.git', 'pyproject.toml', DATA_DIR_NAME, 'requirements.txt')


def get_project_root(start: Path | None = None) -> Path:
    """Find the project root by searching upwards from a directory.

    Stops at the first directory containing a marker file. Falls back to the
    starting directory when no marker is found.

    Args:
        start: Directory to start from. Defaults to the current working directory.

    """
    current_path = (start or Path.cwd()).resolve()

    for parent in [current_path, *current_path.parents]:
        if any((parent / marker).exists() for marker in ROOT_MARKERS):
            return parent

    return current_path


def get_data_dir(override: Path | str | None = None) -> Path:
    """Return the data directory: the override when given, else `.jobcrawler` in the project root."""
    if override:
        return Path(override)
    return get_project_root() / DATA_DIR_NAME


def get_logs_path(data_dir: Path | str | None = None) -> Path:
    return get_data_dir(data_dir) / 'logs'


def init_jobcrawler(data_dir: Path | str | None = None) -> Path:
    """Create the data directory layout and return the data directory.

    The directory gets a `.gitignore` so stored sites, jobs and logs stay out
    of source control.
    """
    root = get_data_dir(data_dir)
    root.mkdir(parents=True, exist_ok=True)
    (root / 'logs').mkdir(exist_ok=True)

    gitignore = root / '.gitignore'
    if not gitignore.exists():
        gitignore.write_text('# Automatically created by jobcrawler\n*\n')

    return root
