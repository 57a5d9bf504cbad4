"""Platform orchestrator: crawl every configured source and persist the results.

Sources are crawled one after another with a fixed pause between them. Each
source gets its own retry budget; a crawler that raises is retried with
exponential backoff, while a crawler that returns a failed ``CrawlResult`` is
reported as is. Failures never abort the run, they are collected into the
returned ``CrawlSummary``.

Example:
    ```python
    async with HtmlFetcher(settings) as fetcher:
        service = CrawlerService(
            settings,
            default_registry(settings, fetcher),
            platform_repository,
            news_repository,
            fetcher=fetcher,
        )
        summary = await service.crawl_all_platforms(on_progress=print)
    ```
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Union
from uuid import uuid4

import structlog

from hotspot.core.crawler.base import PlatformCrawler
from hotspot.core.crawler.html_crawler import ConfigurableHtmlCrawler
from hotspot.core.crawler.registry import CrawlerRegistry
from hotspot.core.error_handling.retry_handler import RetryHandler, platform_retry_config
from hotspot.core.http.fetcher import HtmlFetcher
from hotspot.core.matching.calculator import CalculatorService
from hotspot.core.matching.matcher import MatcherService
from hotspot.repositories.base import NewsRepository, PlatformRepository, PlatformSource, StoredNewsItem
from hotspot.schemas.keyword import Appearance, NewsMatchData
from hotspot.schemas.news import CrawlOptions, CrawlResult, NewsItem
from hotspot.shared.config import Settings
from hotspot.shared.exceptions import classify_error, describe_error

UNKNOWN_ERROR = "unknown error"


@dataclass
class FailedPlatform:
    platform_id: str
    error: str


@dataclass
class CrawlProgress:
    """Snapshot reported before each source is crawled."""
    current: int
    total: int
    current_platform: str
    success_count: int
    failed_count: int
    failed_platforms: List[FailedPlatform] = field(default_factory=list)


@dataclass
class CrawlSummary:
    success_count: int = 0
    failed_count: int = 0
    results: List[CrawlResult] = field(default_factory=list)
    failed_platforms: List[FailedPlatform] = field(default_factory=list)


ProgressCallback = Callable[[CrawlProgress], Union[None, Awaitable[None]]]


class CrawlerService:
    """Crawl sources, save their items and optionally match them as they arrive."""

    def __init__(
        self,
        settings: Settings,
        registry: CrawlerRegistry,
        platform_repository: PlatformRepository,
        news_repository: NewsRepository,
        matcher: Optional[MatcherService] = None,
        calculator: Optional[CalculatorService] = None,
        retry_handler: Optional[RetryHandler] = None,
        fetcher: Optional[HtmlFetcher] = None,
        logger=None
    ):
        self.settings = settings
        self.registry = registry
        self.platform_repository = platform_repository
        self.news_repository = news_repository
        self.matcher = matcher
        self.calculator = calculator or CalculatorService()
        self.fetcher = fetcher or registry.fetcher
        self.logger = logger or structlog.get_logger(__name__)
        self.retry_handler = retry_handler or RetryHandler(platform_retry_config(settings))

    def crawler_for(self, platform: PlatformSource) -> Optional[PlatformCrawler]:
        """Configured sources get a configurable crawler, the rest come from the registry."""
        if platform.source_config is not None:
            return ConfigurableHtmlCrawler(
                platform.platform_id,
                platform.source_config,
                self.settings,
                self.fetcher,
            )
        return self.registry.get(platform.platform_id)

    async def fetch_platform_data(self, platform: PlatformSource) -> CrawlResult:
        platform_id = platform.platform_id
        crawler = self.crawler_for(platform)
        if crawler is None:
            return self.registry.not_registered(platform_id)

        if platform.keywords:
            options = CrawlOptions(keywords=platform.keywords, mode="search")
        else:
            options = CrawlOptions(mode="hot")

        correlation_id = str(uuid4())
        try:
            result = await self.retry_handler.execute_with_retry(
                crawler.crawl_with_options,
                options,
                correlation_id=correlation_id
            )
        except Exception as e:
            self.logger.error(
                "Platform crawl failed after retries",
                platform_id=platform_id,
                correlation_id=correlation_id,
                error=describe_error(e),
                error_type=type(e).__name__
            )
            return CrawlResult.failure(platform_id, describe_error(e), classify_error(e))

        if result.success:
            self.logger.info("Platform crawled", platform_id=platform_id, items_count=len(result.data))
        else:
            self.logger.warning("Platform returned no data", platform_id=platform_id, error=result.error)
        return result

    async def crawl_all_platforms(
        self,
        platform_ids: Optional[List[str]] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> CrawlSummary:
        platforms = await self.platform_repository.get_enabled_platforms(platform_ids)
        summary = CrawlSummary()
        total = len(platforms)

        self.logger.info("Starting crawl", platforms_count=total)

        for index, platform in enumerate(platforms):
            if on_progress is not None:
                outcome = on_progress(CrawlProgress(
                    current=index + 1,
                    total=total,
                    current_platform=platform.platform_id,
                    success_count=summary.success_count,
                    failed_count=summary.failed_count,
                    failed_platforms=list(summary.failed_platforms),
                ))
                if inspect.isawaitable(outcome):
                    await outcome

            result = await self.fetch_platform_data(platform)
            summary.results.append(result)

            if result.success and result.data:
                summary.success_count += 1
                await self.save_news_items(platform.platform_id, result.data)
            else:
                summary.failed_count += 1
                summary.failed_platforms.append(
                    FailedPlatform(platform.platform_id, result.error or UNKNOWN_ERROR)
                )

            if index < total - 1:
                await asyncio.sleep(self.settings.CRAWL_REQUEST_INTERVAL)

        self.logger.info(
            "Crawl completed",
            success_count=summary.success_count,
            failed_count=summary.failed_count
        )
        return summary

    async def save_news_items(self, platform_id: str, items: List[NewsItem]) -> int:
        """Upsert every item under one crawl timestamp; one bad item does not stop the rest."""
        crawled_at = datetime.now(timezone.utc)
        saved = 0

        for item in items:
            try:
                stored = await self.news_repository.upsert_item(platform_id, item, crawled_at)
            except Exception as e:
                self.logger.error(
                    "Failed to save news item",
                    platform_id=platform_id,
                    title=item.title[:50],
                    error=describe_error(e)
                )
                continue
            saved += 1

            if self.settings.REALTIME_MATCHING_ENABLED and self.matcher is not None:
                try:
                    await self.match_item(stored, crawled_at)
                except Exception as e:
                    self.logger.error(
                        "Realtime matching failed",
                        platform_id=platform_id,
                        news_id=stored.id,
                        error=describe_error(e)
                    )

        return saved

    async def match_item(self, stored: StoredNewsItem, appeared_at: datetime) -> Optional[float]:
        """Match one saved item and record its weight; returns the weight, or None without a match."""
        match = await self.matcher.match_title(stored.title)
        if not match.matched:
            return None

        group_id = match.keyword_group.id
        history = await self.news_repository.get_match_data(stored.id, group_id)
        appearances = history.appearances + [Appearance(rank=stored.rank, appeared_at=appeared_at)]
        current = NewsMatchData(
            ranks=[a.rank for a in appearances],
            match_count=history.match_count + 1,
            appearances=appearances,
        )
        weight = self.calculator.calculate_weight(current)

        await self.news_repository.record_match(
            stored.id,
            group_id,
            match.matched_words,
            weight,
            stored.rank,
            appeared_at
        )
        self.logger.debug("Item matched", news_id=stored.id, keyword_group_id=group_id, weight=weight)
        return weight
