from pathlib import Path

from jobcrawler.utils.files import get_data_dir, get_logs_path, get_project_root, init_jobcrawler


def test_get_project_root(monkeypatch, tmp_path):
    # Create a dummy project structure
    project_root = tmp_path / 'project'
    project_root.mkdir()
    (project_root / 'pyproject.toml').touch()

    sub_dir = project_root / 'src' / 'deep' / 'dir'
    sub_dir.mkdir(parents=True)

    # Mock Path.cwd() to simulate being in the sub_dir
    monkeypatch.setattr(Path, 'cwd', lambda: sub_dir)

    root = get_project_root()
    assert root == project_root


def test_get_project_root_from_start(tmp_path):
    project_root = tmp_path / 'project'
    (project_root / 'a' / 'b').mkdir(parents=True)
    (project_root / '.git').mkdir()

    assert get_project_root(project_root / 'a' / 'b') == project_root


def test_get_data_dir_override(tmp_path):
    assert get_data_dir(tmp_path / 'custom') == tmp_path / 'custom'
    assert get_logs_path(str(tmp_path / 'custom')) == tmp_path / 'custom' / 'logs'


def test_get_data_dir_default(monkeypatch, tmp_path):
    project_root = tmp_path / 'project'
    project_root.mkdir()
    (project_root / 'pyproject.toml').touch()
    monkeypatch.setattr(Path, 'cwd', lambda: project_root)

    assert get_data_dir() == project_root / '.jobcrawler'


def test_init_jobcrawler(tmp_path):
    data_dir = init_jobcrawler(tmp_path / 'data')

    assert data_dir.is_dir()
    assert (data_dir / 'logs').is_dir()
    assert (data_dir / '.gitignore').read_text() == '# Automatically created by jobcrawler\n*\n'

    # initializing again keeps the existing layout
    assert init_jobcrawler(tmp_path / 'data') == data_dir
