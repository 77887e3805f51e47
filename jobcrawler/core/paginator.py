"""Page URL generation for the supported pagination strategies."""

from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup

from jobcrawler.models.site import (
    APIPagination,
    LinkFollowPagination,
    PaginationConfig,
    QueryParamPagination,
    URLPatternPagination,
)


def set_query_param(url: str, name: str, value: str) -> str:
    """Return the URL with one query parameter set, keeping the others in place."""
    parts = urlsplit(url)
    params = [(key, val) for key, val in parse_qsl(parts.query, keep_blank_values=True) if key != name]
    params.append((name, value))
    return urlunsplit(parts._replace(query=urlencode(params)))


class Paginator:
    """Turns a pagination config into the URLs of the pages to crawl.

    Query parameter, URL pattern and API strategies produce every page URL up front.
    Link following starts from the base URL and discovers the rest while crawling,
    through `next_page_url`.
    """

    def __init__(self, config: PaginationConfig | None):
        """Create a paginator.

        Args:
            config: Pagination strategy. None crawls the base URL only.

        """
        self.config = config

    @property
    def follows_links(self) -> bool:
        return isinstance(self.config, LinkFollowPagination)

    @property
    def generates_pages(self) -> bool:
        """Whether page URLs are computed rather than discovered."""
        return isinstance(self.config, (QueryParamPagination, URLPatternPagination, APIPagination))

    @property
    def max_pages(self) -> int:
        config = self.config
        if isinstance(config, APIPagination):
            return config.api_config.max_pages
        if config is None:
            return 1
        return config.max_pages

    def page_urls(self, base_url: str) -> list[str]:
        """Generate the initial list of page URLs.

        Args:
            base_url: Site base URL

        Returns:
            Page URLs in crawl order.

        """
        config = self.config
        if isinstance(config, QueryParamPagination):
            return [
                set_query_param(base_url, config.param_name, str(page))
                for page in self._pages(config.start_page, config.increment, config.max_pages)
            ]
        if isinstance(config, URLPatternPagination):
            return [
                self._expand_pattern(base_url, config.url_pattern, page)
                for page in self._pages(config.start_page, config.increment, config.max_pages)
            ]
        if isinstance(config, APIPagination):
            return self._api_urls(config)
        return [base_url]

    def next_page_url(self, html: str | BeautifulSoup, current_url: str) -> str | None:
        """Find the next page link on a page.

        Args:
            html: Page markup, or an already parsed document
            current_url: URL of the page, used to resolve relative links

        Returns:
            Absolute URL of the next page, or None when there is no next link.

        """
        if not isinstance(self.config, LinkFollowPagination) or not self.config.next_page_selector:
            return None

        soup = html if isinstance(html, BeautifulSoup) else BeautifulSoup(html, 'lxml')
        link = soup.select_one(self.config.next_page_selector)
        if link is None:
            return None

        href = link.get('href')
        if isinstance(href, list):
            href = ' '.join(href)
        if not href or not href.strip():
            return None
        return urljoin(current_url, href.strip())

    @staticmethod
    def _pages(start: int, increment: int, count: int) -> list[int]:
        return [start + i * increment for i in range(count)]

    @staticmethod
    def _expand_pattern(base_url: str, pattern: str, page: int) -> str:
        expanded = pattern.replace('{page}', str(page))
        if urlsplit(expanded).scheme:
            return expanded

        parts = urlsplit(base_url)
        base_path = parts.path if parts.path.endswith('/') else parts.path + '/'
        return urlunsplit(parts._replace(path=base_path + expanded.lstrip('/')))

    def _api_urls(self, config: APIPagination) -> list[str]:
        api = config.api_config
        urls = []
        for page in self._pages(config.start_page, config.increment, api.max_pages):
            url = set_query_param(api.endpoint, api.page_param, str(page))
            if api.page_size > 0:
                url = set_query_param(url, 'page_size', str(api.page_size))
            urls.append(url)
        return urls
