import hashlib
from datetime import timedelta

import pytest
from pydantic import ValidationError

from jobcrawler.models import (
    APIPagination,
    CrawledJob,
    CrawlLog,
    FieldRule,
    LinkFollowPagination,
    QueryParamPagination,
    UpdateSiteInput,
    URLPatternPagination,
    dump_pagination,
    parse_pagination,
)
from jobcrawler.models.site import DEFAULT_MAX_PAGES
from jobcrawler.storage import SiteRepository


def test_parse_pagination_selects_variant_by_type():
    config = parse_pagination({'type': 'url_pattern', 'url_pattern': '/page/{page}', 'max_pages': 5})

    assert isinstance(config, URLPatternPagination)
    assert config.url_pattern == '/page/{page}'
    assert config.start_page == 1
    assert config.max_pages == 5


def test_parse_pagination_ignores_fields_of_other_variants():
    config = parse_pagination({'type': 'link_follow', 'next_page_selector': 'a.next', 'param_name': 'p'})

    assert isinstance(config, LinkFollowPagination)
    assert not hasattr(config, 'param_name')


def test_parse_pagination_rejects_unknown_type():
    with pytest.raises(ValidationError):
        parse_pagination({'type': 'infinite_scroll'})


def test_zero_increment_and_max_pages_fall_back_to_defaults():
    config = parse_pagination(
        {'type': 'query_param', 'param_name': 'p', 'start_page': 0, 'increment': 0, 'max_pages': 0}
    )

    assert isinstance(config, QueryParamPagination)
    assert config.start_page == 0
    assert config.increment == 1
    assert config.max_pages == DEFAULT_MAX_PAGES


def test_api_pagination_nested_config():
    config = parse_pagination(
        {'type': 'api_pagination', 'api_config': {'endpoint': 'https://api.example.com/jobs', 'max_pages': 0}}
    )

    assert isinstance(config, APIPagination)
    assert config.api_config.page_param == 'page'
    assert config.api_config.max_pages == DEFAULT_MAX_PAGES


PAGINATION_VARIANTS = [
    {'type': 'query_param', 'param_name': 'offset', 'start_page': 0, 'increment': 20, 'max_pages': 7},
    {'type': 'url_pattern', 'url_pattern': '/jobs/page/{page}', 'start_page': 2, 'increment': 2, 'max_pages': 9},
    {'type': 'link_follow', 'next_page_selector': 'nav a[rel=next]', 'max_pages': 12},
    {
        'type': 'api_pagination',
        'api_config': {
            'endpoint': 'https://api.example.com/v2/jobs',
            'page_param': 'p',
            'page_size': 25,
            'max_pages': 4,
        },
        'start_page': 0,
        'increment': 3,
    },
]


@pytest.mark.parametrize('raw', PAGINATION_VARIANTS, ids=lambda raw: raw['type'])
def test_pagination_round_trips_its_own_fields(raw):
    dumped = dump_pagination(parse_pagination(raw))

    assert dumped == raw
    assert dump_pagination(parse_pagination(dumped)) == raw


@pytest.mark.parametrize('raw', PAGINATION_VARIANTS, ids=lambda raw: raw['type'])
def test_pagination_round_trips_through_site_repository(data_dir, site_repo, make_site, raw):
    site_repo.add(make_site(pagination_config=parse_pagination(raw)))

    reloaded = SiteRepository(data_dir).get('site-1')

    assert dump_pagination(reloaded.pagination_config) == raw


def test_field_rule_rejects_invalid_regex():
    with pytest.raises(ValidationError, match='invalid regex pattern'):
        FieldRule(selector='.salary', type='regex', regex_pattern='([0-9')


def test_field_rule_defaults():
    rule = FieldRule()

    assert rule.type == 'text'
    assert rule.required is False
    assert rule.transformations == []


def test_update_input_changes_only_lists_present_fields():
    update = UpdateSiteInput.model_validate({'name': 'Renamed', 'active': False, 'schedule': None})

    assert update.changes() == {'name': 'Renamed', 'active': False}


def test_compute_hash_strategies():
    job = CrawledJob(
        detail_url='https://example.com/jobs/1',
        external_id='ext-1',
        title='Engineer',
        company='Acme',
        location='Berlin',
    )

    assert job.compute_hash('url') == 'https://example.com/jobs/1'
    assert job.compute_hash('external_id') == 'ext-1'
    assert job.compute_hash('composite') == hashlib.sha256(b'Engineer|Acme|Berlin').hexdigest()
    assert job.compute_hash('something-else') == 'https://example.com/jobs/1'


def test_compute_hash_without_external_id_is_empty():
    assert CrawledJob(detail_url='https://example.com/jobs/1').compute_hash('external_id') == ''


def test_crawl_log_complete_sets_duration():
    log = CrawlLog(site_id='site-1')
    log.started_at = log.started_at - timedelta(seconds=2)

    log.complete()

    assert log.status == 'completed'
    assert log.completed_at is not None
    assert log.duration_ms >= 2000


def test_crawl_log_fail_records_error_line():
    log = CrawlLog(site_id='site-1')

    log.fail(RuntimeError('boom'))

    assert log.status == 'failed'
    assert log.errors == ['boom']
    assert log.logs[-1].level == 'error'
    assert log.logs[-1].message == 'boom'


def test_attribute_rule_without_attribute_round_trips():
    rule = FieldRule(selector='a.apply', type='attribute')

    restored = FieldRule.model_validate_json(rule.model_dump_json())

    assert restored.model_dump() == rule.model_dump()
    assert restored.attribute is None
