"""Crawler interface shared by built-in and configurable platforms."""

from abc import ABC, abstractmethod
from typing import Optional

from hotspot.schemas.news import CrawlOptions, CrawlResult


class PlatformCrawler(ABC):
    """One crawlable platform.

    ``crawl`` fetches the platform's hot list. ``crawl_with_options`` supports
    keyword search; platforms without a search mode fall back to ``crawl``.
    Implementations return a failed ``CrawlResult`` for expected problems and
    may raise for unexpected ones; the platform orchestrator retries on raise.
    """

    platform_id: str

    @abstractmethod
    async def crawl(self) -> CrawlResult:
        pass

    async def crawl_with_options(self, options: Optional[CrawlOptions] = None) -> CrawlResult:
        return await self.crawl()
