from jobcrawler.core.paginator import Paginator, set_query_param
from jobcrawler.models import parse_pagination


def test_set_query_param_keeps_existing_params():
    url = set_query_param('https://example.com/jobs?q=python&page=9', 'page', '2')

    assert url == 'https://example.com/jobs?q=python&page=2'


def test_no_config_crawls_base_url_once():
    paginator = Paginator(None)

    assert paginator.page_urls('https://example.com/jobs') == ['https://example.com/jobs']
    assert paginator.max_pages == 1
    assert not paginator.follows_links
    assert not paginator.generates_pages


def test_query_param_pages():
    paginator = Paginator(
        parse_pagination(
            {'type': 'query_param', 'param_name': 'p', 'start_page': 0, 'increment': 10, 'max_pages': 3}
        )
    )

    assert paginator.page_urls('https://example.com/jobs') == [
        'https://example.com/jobs?p=0',
        'https://example.com/jobs?p=10',
        'https://example.com/jobs?p=20',
    ]
    assert paginator.generates_pages


def test_url_pattern_relative_to_base_path():
    paginator = Paginator(parse_pagination({'type': 'url_pattern', 'url_pattern': '/page/{page}', 'max_pages': 2}))

    assert paginator.page_urls('https://example.com/jobs') == [
        'https://example.com/jobs/page/1',
        'https://example.com/jobs/page/2',
    ]


def test_url_pattern_absolute_template():
    paginator = Paginator(
        parse_pagination(
            {'type': 'url_pattern', 'url_pattern': 'https://cdn.example.com/list-{page}.html', 'max_pages': 2}
        )
    )

    assert paginator.page_urls('https://example.com/jobs') == [
        'https://cdn.example.com/list-1.html',
        'https://cdn.example.com/list-2.html',
    ]


def test_api_pagination_urls():
    paginator = Paginator(
        parse_pagination(
            {
                'type': 'api_pagination',
                'api_config': {
                    'endpoint': 'https://api.example.com/v1/jobs',
                    'page_param': 'pg',
                    'page_size': 25,
                    'max_pages': 2,
                },
            }
        )
    )

    assert paginator.page_urls('https://example.com') == [
        'https://api.example.com/v1/jobs?pg=1&page_size=25',
        'https://api.example.com/v1/jobs?pg=2&page_size=25',
    ]
    assert paginator.max_pages == 2


def test_link_follow_starts_from_base_url(listing_html):
    paginator = Paginator(parse_pagination({'type': 'link_follow', 'next_page_selector': 'a.next', 'max_pages': 4}))

    assert paginator.page_urls('https://example.com/jobs') == ['https://example.com/jobs']
    assert paginator.follows_links
    assert paginator.max_pages == 4
    assert paginator.next_page_url(listing_html, 'https://example.com/jobs') == 'https://example.com/jobs?page=2'


def test_next_page_url_missing_link():
    paginator = Paginator(parse_pagination({'type': 'link_follow', 'next_page_selector': 'a.next'}))

    assert paginator.next_page_url('<html><body><p>last page</p></body></html>', 'https://example.com') is None


def test_next_page_url_only_for_link_follow(listing_html):
    paginator = Paginator(parse_pagination({'type': 'query_param'}))

    assert paginator.next_page_url(listing_html, 'https://example.com/jobs') is None
