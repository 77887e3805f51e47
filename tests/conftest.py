import logfire
import pytest

from jobcrawler.models import CrawlSite, ExtractionRules, FieldRule, JobURLRule
from jobcrawler.storage import CrawlLogRepository, JobRepository, SiteRepository


@pytest.fixture(scope='session', autouse=True)
def local_logfire():
    logfire.configure(send_to_logfire=False, console=False)


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / 'data'


@pytest.fixture
def site_repo(data_dir):
    return SiteRepository(data_dir)


@pytest.fixture
def job_repo(data_dir):
    return JobRepository(data_dir)


@pytest.fixture
def log_repo(data_dir):
    return CrawlLogRepository(data_dir)


@pytest.fixture
def listing_html():
    return """
    <!DOCTYPE html>
    <html>
    <body>
        <ul class="jobs">
            <li class="job">
                <a class="title" href="/jobs/1">Backend Engineer</a>
                <span class="company">Acme</span>
                <span class="location">Berlin</span>
                <span class="salary">$120,000 - $150,000</span>
                <span class="type">Full-Time</span>
            </li>
            <li class="job">
                <a class="title" href="/jobs/2">Data Scientist</a>
                <span class="company">Globex</span>
                <span class="location">Remote</span>
                <span class="type">Contract</span>
            </li>
            <li class="job">
                <span class="company">No Link Inc</span>
            </li>
        </ul>
        <a class="next" href="/jobs?page=2">Next</a>
    </body>
    </html>
    """


@pytest.fixture
def extraction_rules():
    return ExtractionRules(
        job_list_selector='li.job',
        job_detail_url=JobURLRule(type='relative', selector='a.title'),
        fields={
            'title': FieldRule(selector='a.title', required=True),
            'company': FieldRule(selector='.company'),
            'location': FieldRule(selector='.location'),
            'salary_min': FieldRule(selector='.salary', type='regex', regex_pattern=r'\$([\d,]+)'),
            'job_type': FieldRule(selector='.type', transformations=['lowercase']),
        },
    )


@pytest.fixture
def site_payload():
    return {
        'name': 'Example Jobs',
        'base_url': 'https://jobs.example.com/jobs',
        'backend_startup_id': 'startup-1',
        'schedule': '0 */6 * * *',
        'extraction_rules': {
            'job_list_selector': 'li.job',
            'job_detail_url': {'type': 'relative', 'selector': 'a.title'},
            'fields': {'title': {'selector': 'a.title', 'type': 'text', 'required': True}},
        },
    }


@pytest.fixture
def make_site(extraction_rules):
    def factory(**overrides):
        values = {
            'id': 'site-1',
            'name': 'Example Jobs',
            'base_url': 'https://jobs.example.com/jobs',
            'backend_startup_id': 'startup-1',
            'schedule': '0 */6 * * *',
            'extraction_rules': extraction_rules,
            'request_delay': 0,
        }
        values.update(overrides)
        return CrawlSite(**values)

    return factory


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line('markers', 'integration: marks tests as integration tests')
    config.addinivalue_line('markers', 'unit: marks tests as unit tests')


def pytest_collection_modifyitems(config, items):
    """Apply directory-based marks to collected test items."""

    for item in items:
        if hasattr(item, 'fspath'):
            file_path = str(item.fspath)

            # Add marks based on directory
            if '/tests/integration/' in file_path:
                item.add_marker(pytest.mark.integration)
            elif '/tests/unit/' in file_path:
                item.add_marker(pytest.mark.unit)
