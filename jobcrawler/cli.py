"""Command line interface for jobcrawler.

Commands work on the local data directory by default. With --api-url they go
through a running crawler API instead.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich.theme import Theme

from jobcrawler.api.dependencies import ServiceContainer, build_container
from jobcrawler.client import CrawlerApiClient, TokenStore
from jobcrawler.config import CrawlerConfig, load_config
from jobcrawler.exceptions import JobCrawlerError
from jobcrawler.models.results import CrawledJob, CrawlLog, CrawlResult
from jobcrawler.models.site import DEFAULT_USER_AGENT, CrawlSite
from jobcrawler.utils.files import get_data_dir
from jobcrawler.utils.logging import setup_local_logging, setup_logfire

THEME = Theme(
    {
        'info': 'dim cyan',
        'warning': 'magenta',
        'danger': 'bold red',
        'success': 'bold green',
        'step': 'bold blue',
    }
)


class LocalGateway:
    """Runs commands against the local services, with the client's method names."""

    def __init__(self, container: ServiceContainer):
        self.container = container

    def list_sites(self) -> list[CrawlSite]:
        return self.container.sites.list_sites()

    def get_site(self, site_id: str) -> CrawlSite:
        return self.container.sites.get_site(site_id)

    def create_site(self, data: dict[str, Any]) -> CrawlSite:
        return self.container.sites.create_site(data)

    def update_site(self, site_id: str, data: dict[str, Any]) -> CrawlSite:
        return self.container.sites.update_site(site_id, data)

    def delete_site(self, site_id: str) -> None:
        self.container.sites.delete_site(site_id)

    def execute_crawl(self, site_id: str) -> CrawlResult:
        return self.container.crawls.execute(site_id)

    def get_crawl_logs(self, site_id: str, limit: int | None = None) -> list[CrawlLog]:
        return self.container.crawls.get_logs(site_id, limit=limit)

    def get_latest_crawl_log(self, site_id: str) -> CrawlLog:
        return self.container.crawls.get_latest_log(site_id)


def load_site_file(path: str) -> dict[str, Any]:
    """Read a site definition from a JSON file.

    Raises:
        JobCrawlerError: If the file is missing or is not a JSON object

    """
    file_path = Path(path)
    if not file_path.exists():
        raise JobCrawlerError(f'File not found: {path}')
    try:
        data = json.loads(file_path.read_text(encoding='utf-8'))
    except ValueError as e:
        raise JobCrawlerError(f'{path} is not valid JSON: {e}') from e
    if not isinstance(data, dict):
        raise JobCrawlerError(f'{path} must contain a JSON object')
    return data


class JobCrawlerCLI:
    """Implements the commands and renders their output with rich."""

    def __init__(self, config: CrawlerConfig, api_url: str | None = None, console: Console | None = None):
        self.config = config
        self.console = console or Console(theme=THEME)
        self.api_url = api_url
        self._container: ServiceContainer | None = None
        self._gateway: Any = None

    @property
    def container(self) -> ServiceContainer:
        if self._container is None:
            self._container = build_container(self.config)
        return self._container

    @property
    def gateway(self) -> Any:
        if self._gateway is None:
            if self.api_url:
                self._gateway = self.make_client()
            else:
                self._gateway = LocalGateway(self.container)
        return self._gateway

    def make_client(self) -> CrawlerApiClient:
        token_path = get_data_dir(self.config.data_dir) / 'token.json'
        return CrawlerApiClient(
            self.api_url or self.config.api_url,
            token_store=TokenStore(token_path),
            timeout=self.config.request_timeout,
        )

    # =========================================================================
    # SITES
    # =========================================================================

    def list_sites(self) -> None:
        sites = self.gateway.list_sites()
        if not sites:
            self.console.print('[warning]No sites configured[/warning]')
            return

        table = Table(title='Crawl Sites')
        table.add_column('ID', style='cyan', no_wrap=True)
        table.add_column('Name', style='bold')
        table.add_column('Base URL')
        table.add_column('Schedule')
        table.add_column('Active')
        table.add_column('Last crawled')
        table.add_column('Next crawl')

        for site in sites:
            table.add_row(
                site.id,
                site.name,
                site.base_url,
                site.schedule,
                '[success]yes[/success]' if site.active else '[warning]no[/warning]',
                _when(site.last_crawled_at),
                _when(site.next_crawl_at),
            )
        self.console.print(table)

    def show_site(self, site_id: str) -> None:
        site = self.gateway.get_site(site_id)
        self.console.print(Panel(f'[bold]{site.name}[/bold]\n{site.base_url}', border_style='blue'))
        self.console.print_json(site.model_dump_json())

    def create_site(self, path: str) -> None:
        site = self.gateway.create_site(load_site_file(path))
        self.console.print(f'[success]✓ Created site {site.name} ({site.id})[/success]')

    def update_site(self, site_id: str, path: str) -> None:
        site = self.gateway.update_site(site_id, load_site_file(path))
        self.console.print(f'[success]✓ Updated site {site.name}[/success]')

    def delete_site(self, site_id: str) -> None:
        self.gateway.delete_site(site_id)
        self.console.print('[success]✓ Site deleted successfully[/success]')

    # =========================================================================
    # CRAWLS
    # =========================================================================

    def crawl(self, site_id: str) -> None:
        self.console.print(f'[step]Crawling site {site_id}...[/step]')
        result = self.gateway.execute_crawl(site_id)
        self.console.print(
            f'[success]✓ {result.pages_crawled} pages, {result.jobs_found} jobs found, '
            f'{result.jobs_saved} saved, {result.jobs_skipped} skipped[/success]'
        )
        for error in result.errors:
            self.console.print(f'  [danger]✗ {error}[/danger]')

    def logs(self, site_id: str, limit: int | None = None, latest: bool = False) -> None:
        if latest:
            self._print_log(self.gateway.get_latest_crawl_log(site_id))
            return

        logs = self.gateway.get_crawl_logs(site_id, limit=limit)
        if not logs:
            self.console.print('[warning]No crawl logs yet[/warning]')
            return

        table = Table(title=f'Crawl Logs for {site_id}')
        table.add_column('Started', style='cyan')
        table.add_column('Status')
        table.add_column('Pages', justify='right')
        table.add_column('Found', justify='right')
        table.add_column('Saved', justify='right')
        table.add_column('Skipped', justify='right')
        table.add_column('Errors', justify='right')
        table.add_column('Duration', justify='right')

        for log in logs:
            table.add_row(
                _when(log.started_at),
                _status(log.status),
                str(log.pages_crawled),
                str(log.jobs_found),
                str(log.jobs_saved),
                str(log.jobs_skipped),
                str(len(log.errors)),
                f'{log.duration_ms} ms' if log.duration_ms is not None else '-',
            )
        self.console.print(table)

    def preview(self, path: str) -> None:
        """Validate a site file and show what its first page yields, without saving."""
        payload = self.container.sites.validator.validate_create(load_site_file(path))
        site = CrawlSite(
            id='preview',
            name=payload.name,
            base_url=payload.base_url,
            backend_startup_id=payload.backend_startup_id,
            schedule=payload.schedule,
            pagination_config=payload.pagination_config,
            extraction_rules=payload.extraction_rules,
            deduplication_key=payload.deduplication_key or 'url',
            user_agent=payload.user_agent or DEFAULT_USER_AGENT,
        )
        self.console.print('[success]✓ Configuration is valid[/success]')
        self.console.print(f'[step]Fetching first page of {site.base_url}...[/step]')

        jobs = self.container.engine.preview(site)
        self._print_jobs(jobs)

    def sync(self) -> None:
        if self.container.sync is None:
            raise JobCrawlerError('BACKEND_TOKEN is not set - sync is disabled')
        result = self.container.sync.sync_jobs()
        style = 'success' if not result.failure_count else 'warning'
        self.console.print(f'[{style}]Synced {result.success_count} jobs, {result.failure_count} failed[/{style}]')
        for error in result.errors:
            self.console.print(f'  [danger]✗ {error}[/danger]')

    def login(self, email: str, password: str | None = None) -> None:
        client = self.make_client()
        client.login(email, password or Prompt.ask('Password', password=True, console=self.console))
        self.console.print('[success]✓ Logged in[/success]')

    def serve(self, host: str | None = None, port: int | None = None, scheduler: bool = True) -> None:
        import uvicorn

        from jobcrawler.api.app import create_app

        app = create_app(self.config, container=self.container, start_scheduler=scheduler)
        uvicorn.run(app, host=host or self.config.host, port=port or self.config.port)

    def _print_log(self, log: CrawlLog) -> None:
        self.console.print(
            Panel(
                f'Status: {_status(log.status)}\n'
                f'Pages: {log.pages_crawled}  Found: {log.jobs_found}  Saved: {log.jobs_saved}  '
                f'Skipped: {log.jobs_skipped}',
                title=f'Crawl {log.id}',
                border_style='blue',
            )
        )
        styles = {'info': 'info', 'warning': 'warning', 'error': 'danger'}
        for entry in log.logs:
            style = styles.get(entry.level, 'info')
            self.console.print(f'[{style}]{_when(entry.timestamp)} {entry.level.upper():7} {entry.message}[/{style}]')

    def _print_jobs(self, jobs: list[CrawledJob]) -> None:
        if not jobs:
            self.console.print('[warning]No jobs extracted from the first page[/warning]')
            return

        table = Table(title=f'{len(jobs)} jobs on the first page')
        table.add_column('Title', style='bold')
        table.add_column('Company')
        table.add_column('Location')
        table.add_column('Salary')
        table.add_column('Detail URL', style='cyan')
        for job in jobs:
            salary = '-'
            if job.salary_min is not None or job.salary_max is not None:
                salary = f'{job.salary_min or "?"}-{job.salary_max or "?"} {job.currency}'.strip()
            table.add_row(job.title, job.company, job.location, salary, job.detail_url)
        self.console.print(table)


def _when(value: Any) -> str:
    return value.strftime('%Y-%m-%d %H:%M') if value else '-'


def _status(status: str) -> str:
    styles = {'completed': 'success', 'failed': 'danger', 'running': 'step'}
    style = styles.get(status, 'info')
    return f'[{style}]{status}[/{style}]'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='jobcrawler', description='Configure, crawl and sync job-board sites')
    parser.add_argument('--api-url', type=str, help='Use a running crawler API instead of the local data directory')
    parser.add_argument('--env-file', type=str, help='Load environment variables from this file')
    parser.add_argument('--log-level', type=str, help='File log level (default: LOG_LEVEL or INFO)')

    commands = parser.add_subparsers(dest='command', required=True)

    serve = commands.add_parser('serve', help='Run the API server and the scheduler')
    serve.add_argument('--host', type=str, help='Interface to bind')
    serve.add_argument('--port', type=int, help='Port to listen on')
    serve.add_argument('--no-scheduler', action='store_true', help='Do not run scheduled crawls')

    sites = commands.add_parser('sites', help='Manage crawl sites')
    site_commands = sites.add_subparsers(dest='sites_command', required=True)
    site_commands.add_parser('list', help='List sites')
    show = site_commands.add_parser('show', help='Show one site')
    show.add_argument('site_id')
    create = site_commands.add_parser('create', help='Create a site from a JSON file')
    create.add_argument('file')
    update = site_commands.add_parser('update', help='Update a site from a JSON file of changes')
    update.add_argument('site_id')
    update.add_argument('file')
    delete = site_commands.add_parser('delete', help='Delete a site')
    delete.add_argument('site_id')

    crawl = commands.add_parser('crawl', help='Crawl a site now')
    crawl.add_argument('site_id')

    logs = commands.add_parser('logs', help='Show crawl logs of a site')
    logs.add_argument('site_id')
    logs.add_argument('--limit', type=int, help='Number of logs to show (default: 50)')
    logs.add_argument('--latest', action='store_true', help='Show the latest log in detail')

    preview = commands.add_parser('preview', help='Validate a site file and preview its first page')
    preview.add_argument('file')

    commands.add_parser('sync', help='Push unsynced jobs to the job-board backend')

    login = commands.add_parser('login', help='Log in to the crawler API')
    login.add_argument('email')
    login.add_argument('--password', type=str, help='Password (prompted when omitted)')

    return parser


def run(args: argparse.Namespace, cli: JobCrawlerCLI) -> None:
    if args.command == 'serve':
        cli.serve(host=args.host, port=args.port, scheduler=not args.no_scheduler)
    elif args.command == 'sites':
        if args.sites_command == 'list':
            cli.list_sites()
        elif args.sites_command == 'show':
            cli.show_site(args.site_id)
        elif args.sites_command == 'create':
            cli.create_site(args.file)
        elif args.sites_command == 'update':
            cli.update_site(args.site_id, args.file)
        elif args.sites_command == 'delete':
            cli.delete_site(args.site_id)
    elif args.command == 'crawl':
        cli.crawl(args.site_id)
    elif args.command == 'logs':
        cli.logs(args.site_id, limit=args.limit, latest=args.latest)
    elif args.command == 'preview':
        cli.preview(args.file)
    elif args.command == 'sync':
        cli.sync()
    elif args.command == 'login':
        cli.login(args.email, args.password)


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    console = Console(theme=THEME)

    try:
        config = load_config(args.env_file)
    except ValueError as e:
        console.print(f'[danger]Invalid configuration: {e}[/danger]')
        sys.exit(1)

    setup_local_logging(args.log_level or config.log_level, config.data_dir)
    setup_logfire(config.logfire_token, config.environment)

    cli = JobCrawlerCLI(config, api_url=args.api_url, console=console)
    try:
        run(args, cli)
    except JobCrawlerError as e:
        console.print(f'[danger]✗ {e}[/danger]')
        sys.exit(1)


if __name__ == '__main__':
    main()
