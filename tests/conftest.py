import pytest
from typing import Callable, Dict, Optional

import httpx

from hotspot.core.http.fetcher import HtmlFetcher
from hotspot.schemas.source import SourceConfig
from hotspot.shared.config import Settings


ARTICLE_BODY = "这是一段足够长的新闻正文内容，用来确认页面确实包含可以阅读的文字。" * 4


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings without delays, proxies or robots.txt lookups."""
    return Settings(
        ENVIRONMENT="testing",
        LOG_LEVEL="DEBUG",
        ROBOTS_CHECK_ENABLED=False,
        PROXY_TYPE="none",
        FETCH_RETRY_DELAY=0,
        CRAWL_RETRY_BASE_DELAY=0,
        CRAWL_REQUEST_INTERVAL=0,
    )


@pytest.fixture
def make_fetcher(test_settings: Settings) -> Callable[..., HtmlFetcher]:
    """Build an HtmlFetcher whose client answers through ``httpx.MockTransport``."""

    def _make(handler: Callable[[httpx.Request], httpx.Response], settings: Optional[Settings] = None) -> HtmlFetcher:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)
        return HtmlFetcher(settings or test_settings, client=client)

    return _make


def article_page(body: str = ARTICLE_BODY) -> str:
    return (
        "<html><head><title>文章</title></head><body>"
        "<nav><a href='/'>首页</a></nav>"
        f"<article><h1>标题</h1><p>{body}</p></article>"
        "<footer>版权所有</footer></body></html>"
    )


def empty_page() -> str:
    return "<html><body><nav><a href='/'>首页</a></nav><p>短</p></body></html>"


def listing_page(items: Dict[str, str], wrapper: str = "ul", item_tag: str = "li", item_class: str = "news") -> str:
    """Listing page with one ``item_tag`` per ``path -> title`` pair."""
    rows = "".join(
        f"<{item_tag} class='{item_class}'><a href='{path}'>{title}</a><span>2024-05-01 10:00</span></{item_tag}>"
        for path, title in items.items()
    )
    return f"<html><body><{wrapper} class='list'>{rows}</{wrapper}></body></html>"


def make_source_config(item_selector: str = "li.news", limit: Optional[int] = None, **list_overrides) -> SourceConfig:
    listing = {
        "url": "https://news.example.com/latest",
        "itemSelector": item_selector,
        "fields": {"title": {"selector": "a"}, "url": {"selector": "a", "attribute": "href"}},
    }
    if limit is not None:
        listing["limit"] = limit
    listing.update(list_overrides)
    return SourceConfig.model_validate({
        "type": "html",
        "baseUrl": "https://news.example.com",
        "list": listing,
    })
