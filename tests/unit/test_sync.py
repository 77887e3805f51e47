from datetime import datetime, timezone

import pytest
import requests

from jobcrawler.exceptions import SyncError
from jobcrawler.models import CrawledJob
from jobcrawler.sync import (
    JOBS_ENDPOINT,
    JobSyncService,
    normalize_currency,
    normalize_job_type,
    normalize_location_type,
    to_backend_payload,
)


@pytest.mark.parametrize(
    'value,expected',
    [('Full-Time', 'full_time'), ('part time', 'full_time'), ('PART-TIME', 'part_time'), ('freelance', 'contract')],
)
def test_normalize_job_type(value, expected):
    assert normalize_job_type(value) == expected


@pytest.mark.parametrize('value,expected', [('On-site', 'onsite'), ('Hybrid', 'hybrid'), ('', 'remote')])
def test_normalize_location_type(value, expected):
    assert normalize_location_type(value) == expected


@pytest.mark.parametrize('value,expected', [('eur', 'EUR'), (' gbp ', 'GBP'), ('$', 'USD'), ('euro', 'USD')])
def test_normalize_currency(value, expected):
    assert normalize_currency(value) == expected


def test_to_backend_payload():
    job = CrawledJob(
        site_id='site-1',
        detail_url='https://example.com/jobs/1',
        title='Engineer',
        job_type='Contract',
        location_type='office',
        salary_min=100,
        expires_at=datetime(2030, 1, 31, tzinfo=timezone.utc),
    )

    payload = to_backend_payload(job, 'startup-1')

    assert payload['startup_id'] == 'startup-1'
    assert payload['job_type'] == 'contract'
    assert payload['location_type'] == 'onsite'
    assert payload['currency'] == 'USD'
    assert payload['application_url'] == 'https://example.com/jobs/1'
    assert payload['salary_min'] == 100
    assert 'salary_max' not in payload
    assert 'application_email' not in payload
    assert payload['expires_at'] == '2030-01-31T00:00:00+00:00'


@pytest.fixture
def session(mocker):
    return mocker.Mock(spec=requests.Session)


@pytest.fixture
def service(session, job_repo, site_repo):
    return JobSyncService(
        'http://backend.local/',
        'secret-token',
        job_repo,
        site_repo,
        batch_size=1,
        session=session,
        max_attempts=2,
    )


def test_sync_jobs_pushes_and_marks(mocker, service, session, job_repo, site_repo, make_site):
    site_repo.add(make_site())
    job = job_repo.add(CrawledJob(site_id='site-1', detail_url='https://example.com/jobs/1', title='Engineer'))
    session.post.return_value = mocker.Mock(status_code=201, text='')

    result = service.sync_jobs()

    assert result.success_count == 1
    assert result.failure_count == 0
    assert job_repo.get(job.id).synced
    url = session.post.call_args.args[0]
    assert url == f'http://backend.local{JOBS_ENDPOINT}'
    assert session.post.call_args.kwargs['headers'] == {'Authorization': 'Bearer secret-token'}
    assert session.post.call_args.kwargs['json']['startup_id'] == 'startup-1'


def test_sync_jobs_records_failures(mocker, service, session, job_repo, site_repo, make_site):
    site_repo.add(make_site())
    rejected = job_repo.add(CrawledJob(site_id='site-1', detail_url='https://example.com/jobs/1'))
    orphan = job_repo.add(CrawledJob(site_id='deleted-site', detail_url='https://example.com/jobs/2'))
    session.post.return_value = mocker.Mock(status_code=422, text='title is required')

    result = service.sync_jobs()

    assert result.success_count == 0
    assert result.failure_count == 2
    assert f'job {rejected.id}: backend API error: 422 - title is required' in result.errors
    assert f'job {orphan.id}: failed to get site: deleted-site' in result.errors
    assert not job_repo.get(rejected.id).synced
    assert result.to_dict()['failure_count'] == 2


def test_sync_retries_connection_errors(mocker, service, session, job_repo, site_repo, make_site):
    mocker.patch('tenacity.nap.time.sleep')
    site_repo.add(make_site())
    job_repo.add(CrawledJob(site_id='site-1', detail_url='https://example.com/jobs/1'))
    session.post.side_effect = [requests.ConnectionError('reset'), mocker.Mock(status_code=200, text='')]

    result = service.sync_jobs()

    assert result.success_count == 1
    assert session.post.call_count == 2


def test_sync_without_jobs(service, session):
    result = service.sync_jobs()

    assert result.success_count == 0
    session.post.assert_not_called()


def test_sync_marks_each_batch_once(mocker, session, job_repo, site_repo, make_site):
    site_repo.add(make_site())
    job_repo.add_many([CrawledJob(site_id='site-1', detail_url=f'https://example.com/jobs/{n}') for n in range(5)])
    session.post.return_value = mocker.Mock(status_code=201, text='')
    mark = mocker.spy(job_repo, 'mark_as_synced')
    service = JobSyncService('http://backend.local', 'secret-token', job_repo, site_repo, batch_size=2, session=session)

    result = service.sync_jobs()

    assert result.success_count == 5
    assert [len(call.args[0]) for call in mark.call_args_list] == [2, 2, 1]
    assert job_repo.find_unsynced() == []


def test_sync_job_raises_sync_error(mocker, service, session, job_repo, site_repo, make_site):
    site_repo.add(make_site())
    job = job_repo.add(CrawledJob(site_id='site-1', detail_url='https://example.com/jobs/1'))
    session.post.return_value = mocker.Mock(status_code=500, text='boom')

    with pytest.raises(SyncError, match='backend API error: 500 - boom'):
        service.sync_job(job)
    with pytest.raises(SyncError, match='failed to get site: gone'):
        service.sync_job(CrawledJob(site_id='gone', detail_url='https://example.com/jobs/2'))
    assert not job_repo.get(job.id).synced
