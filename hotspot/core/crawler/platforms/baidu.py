"""Baidu hot search crawler.

The hot list is read from the board page first. When the page yields nothing
(layout change, block page) the JSON board API is tried endpoint by endpoint.
Search mode queries Baidu news search once per keyword.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, urljoin

from hotspot.core.crawler.base import PlatformCrawler
from hotspot.core.extraction.dom import Document, Node
from hotspot.core.http.fetcher import HtmlFetcher
from hotspot.schemas.news import CrawlOptions, CrawlResult, NewsItem
from hotspot.shared.config import Settings
from hotspot.shared.exceptions import BaseAppException, describe_error

BOARD_URL = "https://top.baidu.com/board?tab=realtime"
BOARD_ORIGIN = "https://top.baidu.com"
BOARD_REFERER = "https://www.baidu.com/"
BOARD_TIMEOUT = 15.0

TITLE_SELECTORS = (
    ".c-single-text-ellipsis",
    ".list_1 .c-single-text-ellipsis",
    ".content_1YVWB .c-single-text-ellipsis",
)

API_ENDPOINTS = (
    "https://top.baidu.com/api/board?platform=wise&tab=realtime",
    "https://top.baidu.com/api/board?platform=pc&tab=realtime",
    "https://top.baidu.com/api/board?tab=realtime",
)
API_REFERER = "https://top.baidu.com/board"
API_RETRIES = 2

SEARCH_URL = "https://www.baidu.com/s"
SEARCH_BASE = "https://www.baidu.com"
SEARCH_RESULT_SELECTOR = ".result, .c-result"
SEARCH_TITLE_SELECTORS = ("h3 a", ".c-title-text", ".t a")
SEARCH_PAUSE = 0.5

DEFAULT_LIMIT = 10


def search_url(title: str) -> str:
    return f"https://www.baidu.com/s?wd={quote(title)}"


def mobile_search_url(title: str) -> str:
    return f"https://m.baidu.com/s?wd={quote(title)}"


def board_items(payload: Any) -> List[Dict[str, Any]]:
    """Pull the hot list out of the shapes the board API has been seen to return."""
    if not isinstance(payload, dict):
        return []

    data = payload.get("data")
    if not isinstance(data, dict):
        return []

    inner = data.get("data")
    if isinstance(inner, dict) and isinstance(inner.get("cards"), list):
        cards = inner["cards"]
        hot = next((c for c in cards if isinstance(c, dict) and c.get("component") == "hotList"), None)
        if hot is None and cards and isinstance(cards[0], dict):
            hot = cards[0]
        content = hot.get("content") if hot else None
        return [i for i in content if isinstance(i, dict)] if isinstance(content, list) else []

    cards = data.get("cards")
    if isinstance(cards, list) and cards and isinstance(cards[0], dict):
        content = cards[0].get("content")
        if isinstance(content, list):
            return [i for i in content if isinstance(i, dict)]

    return []


class BaiduCrawler(PlatformCrawler):
    """Hot list and news search for baidu.com."""

    platform_id = "baidu"

    def __init__(
        self,
        settings: Settings,
        fetcher: HtmlFetcher,
        logger: Optional[logging.Logger] = None
    ):
        self.settings = settings
        self.fetcher = fetcher
        self.logger = logger or logging.getLogger(__name__)

    async def crawl(self) -> CrawlResult:
        return await self.crawl_with_options(CrawlOptions(mode="hot"))

    async def crawl_with_options(self, options: Optional[CrawlOptions] = None) -> CrawlResult:
        options = options or CrawlOptions()
        limit = options.limit or DEFAULT_LIMIT

        if options.mode == "search" and options.keywords:
            items = await self.search(options.keywords, limit)
            return CrawlResult.from_items(self.platform_id, items, "no search results")

        items = await self.fetch_board_page(limit)
        if items:
            return CrawlResult.from_items(self.platform_id, items, "no hot items")

        self.logger.info("Board page yielded no items, trying board API", extra={"platform_id": self.platform_id})
        return await self.fetch_board_api(limit)

    async def fetch_board_page(self, limit: int) -> List[NewsItem]:
        try:
            html = await self.fetcher.fetch_html(
                BOARD_URL,
                referer=BOARD_REFERER,
                timeout=BOARD_TIMEOUT,
                proxy_fallback=True,
            )
        except BaseAppException as e:
            self.logger.warning(
                f"Board page fetch failed: {describe_error(e)}",
                extra={"platform_id": self.platform_id, "url": BOARD_URL}
            )
            return []

        doc = Document.parse(html)
        for selector in TITLE_SELECTORS:
            elements = doc.find(selector)
            if not elements:
                continue

            items: List[NewsItem] = []
            for element in elements:
                title = element.text(collapse=True)
                if not title:
                    continue
                url = self._board_link(element) or search_url(title)
                items.append(NewsItem(
                    title=title,
                    url=url,
                    mobile_url=mobile_search_url(title),
                    rank=len(items) + 1,
                ))
                if len(items) >= limit:
                    break

            if items:
                self.logger.info(
                    "Board page parsed",
                    extra={"platform_id": self.platform_id, "selector": selector, "items_count": len(items)}
                )
                return items

        return []

    async def fetch_board_api(self, limit: int) -> CrawlResult:
        last_error: Optional[BaseAppException] = None

        for endpoint in API_ENDPOINTS:
            try:
                payload = await self.fetcher.fetch_json(
                    endpoint,
                    referer=API_REFERER,
                    origin=BOARD_ORIGIN,
                    retries=API_RETRIES,
                )
            except BaseAppException as e:
                last_error = e
                self.logger.warning(
                    f"Board API request failed: {describe_error(e)}",
                    extra={"platform_id": self.platform_id, "url": endpoint}
                )
                continue

            items = self._items_from_payload(payload, limit)
            if items:
                return CrawlResult.from_items(self.platform_id, items, "no hot items")
            self.logger.warning(
                "Board API returned no items",
                extra={"platform_id": self.platform_id, "url": endpoint}
            )

        if last_error is not None:
            return CrawlResult.failure(self.platform_id, describe_error(last_error), last_error.kind)
        return CrawlResult.failure(self.platform_id, "no hot items")

    async def search(self, keywords: List[str], limit: int) -> List[NewsItem]:
        items: List[NewsItem] = []
        seen = set()

        for index, keyword in enumerate(keywords):
            if index:
                await asyncio.sleep(SEARCH_PAUSE)
            try:
                found = await self._search_keyword(keyword)
            except BaseAppException as e:
                self.logger.warning(
                    f"Search failed for keyword: {describe_error(e)}",
                    extra={"platform_id": self.platform_id, "keyword": keyword}
                )
                continue

            for title, url in found:
                if title in seen:
                    continue
                seen.add(title)
                items.append(NewsItem(
                    title=title,
                    url=url or search_url(title),
                    mobile_url=mobile_search_url(title),
                    rank=len(items) + 1,
                ))
                if len(items) >= limit:
                    return items

        return items

    async def _search_keyword(self, keyword: str) -> List[Tuple[str, Optional[str]]]:
        html = await self.fetcher.fetch_html(
            SEARCH_URL,
            params={"wd": keyword, "tn": "news", "rtt": "1", "bsst": "1", "cl": "2", "medium": "0"},
            referer=SEARCH_BASE,
            check_robots=False,
        )
        doc = Document.parse(html)

        results = []
        for element in doc.find(SEARCH_RESULT_SELECTOR):
            link = self._first_of(element, SEARCH_TITLE_SELECTORS)
            if link is None:
                continue
            title = link.text(collapse=True)
            if not title:
                continue
            anchor = link if link.is_tag("a") else link.closest("a") or link.first("a")
            href = anchor.attr("href") if anchor else None
            results.append((title, urljoin(SEARCH_BASE, href) if href else None))
        return results

    def _items_from_payload(self, payload: Any, limit: int) -> List[NewsItem]:
        items: List[NewsItem] = []
        for entry in board_items(payload):
            title = str(entry.get("word") or entry.get("query") or entry.get("title") or "").strip()
            if not title:
                continue
            url = entry.get("url") or entry.get("rawUrl") or entry.get("appUrl") or search_url(title)
            mobile_url = entry.get("appUrl") or entry.get("mobileUrl") or entry.get("url") or mobile_search_url(title)
            items.append(NewsItem(title=title, url=url, mobile_url=mobile_url, rank=len(items) + 1))
            if len(items) >= limit:
                break
        return items

    @staticmethod
    def _board_link(element: Node) -> Optional[str]:
        anchor = element.closest("a") or element.first("a")
        href = anchor.attr("href") if anchor else None
        if not href:
            return None
        return urljoin(BOARD_ORIGIN, href)

    @staticmethod
    def _first_of(element: Node, selectors) -> Optional[Node]:
        for selector in selectors:
            found = element.first(selector)
            if found is not None:
                return found
        return None
