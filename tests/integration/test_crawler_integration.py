"""Integration tests for the crawl workflow.

These tests run the real fetcher, extraction pipeline, orchestrator and
in-memory repositories together. Remote sites are simulated with
``httpx.MockTransport`` so no network access is needed.

Test Coverage:
- Listing extraction through content verification with exact batch accounting
- Selector fallback discovery on real markup
- Keyword matching and weight recording during a full crawl
- Failure reporting across component boundaries
"""

import pytest
from typing import Dict, List
from unittest.mock import AsyncMock, patch

import httpx

from conftest import ARTICLE_BODY, article_page, empty_page, listing_page, make_source_config
from hotspot.core.crawler.html_crawler import ConfigurableHtmlCrawler
from hotspot.core.crawler.registry import default_registry
from hotspot.core.crawler.service import CrawlerService
from hotspot.core.matching.calculator import CalculatorService
from hotspot.core.matching.matcher import MatcherService
from hotspot.repositories.base import PlatformSource
from hotspot.repositories.memory import (
    InMemoryKeywordGroupRepository,
    InMemoryNewsRepository,
    InMemoryPlatformRepository,
)
from hotspot.schemas.keyword import Appearance, KeywordGroup, NewsMatchData
from hotspot.schemas.news import CrawlOptions


class Site:
    """Serves fixed pages by path and records every requested path."""

    def __init__(self, pages: Dict[str, str]):
        self.pages = pages
        self.requested: List[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requested.append(request.url.path)
        body = self.pages.get(request.url.path)
        if body is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, text=body, headers={"Content-Type": "text/html; charset=utf-8"})

    def content_checks(self) -> List[str]:
        return [path for path in self.requested if path != "/latest"]


def article_listing(count: int) -> str:
    rows = "".join(
        f"<article class='story'><h2><a href='/n/{i}.html'>今日要闻第{i}条报道</a></h2></article>"
        for i in range(count)
    )
    return f"<html><body><main>{rows}</main></body></html>"


def assert_contiguous_ranks(items):
    assert [item.rank for item in items] == list(range(1, len(items) + 1))


@pytest.mark.integration
class TestConfigurableCrawlIntegration:
    """End-to-end listing extraction over a mocked site."""

    @pytest.mark.asyncio
    async def test_unresolvable_selector_returns_failed_result(self, test_settings, make_fetcher):
        site = Site({"/latest": "<html><body><div><p>短</p></div></body></html>"})
        crawler = ConfigurableHtmlCrawler("site", make_source_config(item_selector=".missing"), test_settings, make_fetcher(site))

        result = await crawler.crawl()

        assert result.success is False
        assert result.data == []
        assert site.content_checks() == []

    @pytest.mark.asyncio
    async def test_thin_pages_are_dropped(self, test_settings, make_fetcher):
        pages = {"/latest": article_listing(10)}
        for i in range(10):
            pages[f"/n/{i}.html"] = article_page() if i in (2, 5, 9) else empty_page()
        site = Site(pages)
        config = make_source_config(item_selector="article.story")

        result = await ConfigurableHtmlCrawler("site", config, test_settings, make_fetcher(site)).crawl()

        assert [item.title for item in result.data] == ["今日要闻第2条报道", "今日要闻第5条报道", "今日要闻第9条报道"]
        assert all(ARTICLE_BODY in item.content for item in result.data)
        assert_contiguous_ranks(result.data)

    @pytest.mark.asyncio
    async def test_rejected_candidates_cause_no_requests(self, test_settings, make_fetcher):
        items = {
            "/n/1.html": "今日要闻第1条报道",
            "/about.html": "关于本站的详细介绍",
            "/tag/": "热门标签汇总页面",
            "/n/2.html": "首页",
        }
        pages = {"/latest": listing_page(items), "/n/1.html": article_page()}
        site = Site(pages)

        result = await ConfigurableHtmlCrawler("site", make_source_config(), test_settings, make_fetcher(site)).crawl()

        assert len(result.data) == 1
        assert site.content_checks() == ["/n/1.html"]

    @pytest.mark.asyncio
    async def test_limit_bounds_content_checks(self, test_settings, make_fetcher):
        limit = 4
        batch_size = test_settings.CONTENT_CHECK_CONCURRENCY
        items = {f"/n/{i}.html": f"今日要闻第{i}条报道" for i in range(20)}
        pages = {"/latest": listing_page(items)}
        pages.update({path: article_page() for path in items})
        site = Site(pages)

        result = await ConfigurableHtmlCrawler(
            "site", make_source_config(limit=limit), test_settings, make_fetcher(site)
        ).crawl()

        assert len(result.data) == limit
        assert len(site.content_checks()) <= limit + batch_size - 1
        assert_contiguous_ranks(result.data)

    @pytest.mark.asyncio
    async def test_fallback_finds_list_items(self, test_settings, make_fetcher):
        items = {f"/n/{i}.html": f"今日要闻第{i}条报道" for i in range(4)}
        pages = {"/latest": listing_page(items, wrapper="ol", item_class="entry")}
        pages.update({path: article_page() for path in items})

        result = await ConfigurableHtmlCrawler(
            "site", make_source_config(item_selector=".missing"), test_settings, make_fetcher(Site(pages))
        ).crawl()

        assert result.success
        assert len(result.data) == 4

    @pytest.mark.asyncio
    async def test_gbk_listing_is_decoded(self, test_settings, make_fetcher):
        listing = (
            "<html><head><meta charset='gbk'></head><body><ul>"
            "<li class='news'><a href='/n/1.html'>今日要闻第1条报道</a></li>"
            "</ul></body></html>"
        )

        def handler(request):
            if request.url.path == "/latest":
                return httpx.Response(200, content=listing.encode("gbk"), headers={"Content-Type": "text/html"})
            return httpx.Response(200, text=article_page())

        result = await ConfigurableHtmlCrawler("site", make_source_config(), test_settings, make_fetcher(handler)).crawl()

        assert [item.title for item in result.data] == ["今日要闻第1条报道"]


@pytest.mark.integration
class TestCrawlAndMatchIntegration:
    """Full crawl through the orchestrator with realtime matching."""

    @pytest.fixture
    def keyword_groups(self):
        return InMemoryKeywordGroupRepository([
            KeywordGroup(id="phone-chips", words=["芯片"], required_words=["+手机"], excluded_words=[], priority=1),
            KeywordGroup(id="chips", words=["芯片", "半导体", "晶圆"], priority=2),
        ])

    @pytest.mark.asyncio
    async def test_crawl_saves_and_matches(self, test_settings, make_fetcher, keyword_groups):
        settings = test_settings.model_copy(update={"REALTIME_MATCHING_ENABLED": True})
        items = {
            "/n/1.html": "手机芯片降价潮来临",
            "/n/2.html": "电脑芯片降价半导体晶圆",
            "/n/3.html": "今日天气晴朗适合出行",
        }
        pages = {"/latest": listing_page(items)}
        pages.update({path: article_page() for path in items})
        fetcher = make_fetcher(Site(pages), settings=settings)
        news_repository = InMemoryNewsRepository()
        service = CrawlerService(
            settings,
            default_registry(settings, fetcher),
            InMemoryPlatformRepository([
                PlatformSource("site", "Example News", source_config=make_source_config()),
                PlatformSource("unknown", "Unknown"),
            ]),
            news_repository,
            matcher=MatcherService(keyword_groups, settings),
        )

        summary = await service.crawl_all_platforms()

        assert summary.success_count == 1
        assert summary.failed_count == 1
        assert summary.failed_platforms[0].platform_id == "unknown"
        assert len(news_repository.items) == 3

        by_title = {stored.title: stored for stored in news_repository.items.values()}
        phone = news_repository.matches[(by_title["手机芯片降价潮来临"].id, "phone-chips")]
        computer = news_repository.matches[(by_title["电脑芯片降价半导体晶圆"].id, "chips")]
        assert phone.matched_words == ["芯片"]
        assert computer.matched_words == ["芯片", "半导体", "晶圆"]
        assert len(news_repository.matches) == 2
        # rank 1: 10 * 0.6 + 10 * 0.3 + 100 * 0.1
        assert phone.weight == 19.0

    @pytest.mark.asyncio
    async def test_required_and_excluded_words(self, keyword_groups):
        matcher = MatcherService(keyword_groups)
        strict = (await keyword_groups.get_enabled_groups())[0]

        assert matcher.test_keyword_group("手机芯片降价", strict).matched
        assert not matcher.test_keyword_group("电脑芯片降价", strict).matched

        excluding = KeywordGroup(id="x", words=["芯片"], excluded_words=["!降价"])
        assert not matcher.test_keyword_group("手机芯片降价", excluding).matched

    @pytest.mark.asyncio
    async def test_first_match_not_best_match(self, keyword_groups):
        matcher = MatcherService(keyword_groups)

        result = await matcher.match_title("手机芯片与半导体晶圆")

        assert result.keyword_group.id == "phone-chips"

    def test_weight_is_deterministic(self):
        data = NewsMatchData(
            ranks=[1, 4, 12],
            match_count=3,
            appearances=[Appearance(rank=r) for r in (1, 4, 12)],
        )
        calculator = CalculatorService()

        assert len({calculator.calculate_weight(data) for _ in range(20)}) == 1
        assert calculator.calculate_weight(data) == CalculatorService().calculate_weight(data.model_copy())

    @pytest.mark.asyncio
    async def test_search_crawl_through_registry(self, test_settings, make_fetcher):
        search = (
            "<html><body><div class='result'><h3><a href='/link?url=a'>芯片新闻标题</a></h3></div></body></html>"
        )
        fetcher = make_fetcher(lambda request: httpx.Response(200, text=search))
        service = CrawlerService(
            test_settings,
            default_registry(test_settings, fetcher),
            InMemoryPlatformRepository([PlatformSource("baidu", "百度", keywords=["芯片"])]),
            InMemoryNewsRepository(),
        )

        with patch("asyncio.sleep", new_callable=AsyncMock):
            summary = await service.crawl_all_platforms()

        assert summary.success_count == 1
        assert summary.results[0].data[0].title == "芯片新闻标题"
        assert summary.results[0].data[0].url == "https://www.baidu.com/link?url=a"

    @pytest.mark.asyncio
    async def test_listing_outage_is_reported(self, test_settings, make_fetcher):
        fetcher = make_fetcher(lambda request: httpx.Response(503))
        crawler = ConfigurableHtmlCrawler("site", make_source_config(), test_settings, fetcher)

        result = await crawler.crawl_with_options(CrawlOptions(limit=5))

        assert not result.success
        assert result.data == []
