import pytest

from jobcrawler.exceptions import ExtractionError, LogNotFoundError, SiteNotFoundError
from jobcrawler.models import CrawlLog, CrawlResult
from jobcrawler.services import CrawlService


@pytest.fixture
def engine(mocker):
    return mocker.Mock()


@pytest.fixture
def service(engine, site_repo, log_repo):
    return CrawlService(engine, site_repo, log_repo)


def test_execute_records_completed_log(engine, service, site_repo, log_repo, make_site):
    site_repo.add(make_site())
    engine.crawl.return_value = CrawlResult(
        jobs_found=3, jobs_saved=2, jobs_skipped=1, pages_crawled=2, errors=['failed to fetch x: timeout']
    )

    result = service.execute('site-1')

    assert result.jobs_saved == 2
    log = log_repo.find_latest('site-1')
    assert log.status == 'completed'
    assert log.completed_at is not None
    assert log.duration_ms is not None
    assert (log.pages_crawled, log.jobs_found, log.jobs_saved, log.jobs_skipped) == (2, 3, 2, 1)
    assert log.errors == ['failed to fetch x: timeout']
    messages = [entry.message for entry in log.logs]
    assert messages[0] == 'Starting crawl for site: Example Jobs'
    assert messages[1] == 'Base URL: https://jobs.example.com/jobs'
    assert messages[-1] == 'Crawl completed: 3 jobs found, 2 saved, 1 skipped'
    assert 'failed to fetch x: timeout' in messages


def test_execute_updates_crawl_times(engine, service, site_repo, make_site):
    site_repo.add(make_site())
    engine.crawl.return_value = CrawlResult()

    service.execute('site-1')

    site = site_repo.get('site-1')
    assert site.last_crawled_at is not None
    assert site.next_crawl_at > site.last_crawled_at


def test_execute_inactive_site_has_no_next_crawl(engine, service, site_repo, make_site):
    site_repo.add(make_site(active=False))
    engine.crawl.return_value = CrawlResult()

    service.execute('site-1')

    assert site_repo.get('site-1').next_crawl_at is None


def test_execute_failure_marks_log_failed(engine, service, site_repo, log_repo, make_site):
    site_repo.add(make_site())
    engine.crawl.side_effect = ExtractionError('invalid extraction rules: job_list_selector is required')

    with pytest.raises(ExtractionError):
        service.execute('site-1')

    log = log_repo.find_latest('site-1')
    assert log.status == 'failed'
    assert log.errors == ['invalid extraction rules: job_list_selector is required']
    assert site_repo.get('site-1').last_crawled_at is None


def test_execute_unknown_site(service, log_repo):
    with pytest.raises(SiteNotFoundError):
        service.execute('ghost')

    assert log_repo.all() == []


@pytest.mark.parametrize('limit,expected', [(None, 50), (0, 50), (-1, 50), (2, 2)])
def test_get_logs_limit(mocker, service, log_repo, limit, expected):
    find = mocker.patch.object(log_repo, 'find_by_site_id', return_value=[])

    service.get_logs('site-1', limit=limit)

    find.assert_called_once_with('site-1', limit=expected)


def test_get_latest_log(service, log_repo):
    with pytest.raises(LogNotFoundError, match='no crawl log found for site: site-1'):
        service.get_latest_log('site-1')

    log = log_repo.add(CrawlLog(site_id='site-1'))

    assert service.get_latest_log('site-1').id == log.id
