"""Registry of built-in platform crawlers."""

import logging
from typing import Callable, Dict, List, Optional

from hotspot.core.crawler.base import PlatformCrawler
from hotspot.core.http.fetcher import HtmlFetcher
from hotspot.schemas.news import CrawlResult
from hotspot.shared.config import Settings
from hotspot.shared.exceptions import PlatformNotRegisteredError

CrawlerFactory = Callable[[Settings, HtmlFetcher], PlatformCrawler]


class CrawlerRegistry:
    """Maps platform ids to crawler factories bound to one settings/fetcher pair."""

    def __init__(
        self,
        settings: Settings,
        fetcher: HtmlFetcher,
        logger: Optional[logging.Logger] = None
    ):
        self.settings = settings
        self.fetcher = fetcher
        self._factories: Dict[str, CrawlerFactory] = {}
        self.logger = logger or logging.getLogger(__name__)

    def register(self, platform_id: str, factory: CrawlerFactory) -> None:
        self._factories[platform_id] = factory

    def get(self, platform_id: str) -> Optional[PlatformCrawler]:
        factory = self._factories.get(platform_id)
        if factory is None:
            return None
        return factory(self.settings, self.fetcher)

    def registered_platforms(self) -> List[str]:
        return list(self._factories)

    def not_registered(self, platform_id: str) -> CrawlResult:
        """Failed result naming the platforms that do have a crawler."""
        error = PlatformNotRegisteredError(platform_id, self.registered_platforms())
        self.logger.warning(error.message, extra={"platform_id": platform_id})
        return CrawlResult.failure(platform_id, error.message, error.kind)


def default_registry(settings: Settings, fetcher: HtmlFetcher) -> CrawlerRegistry:
    from hotspot.core.crawler.platforms.baidu import BaiduCrawler

    registry = CrawlerRegistry(settings, fetcher)
    registry.register(BaiduCrawler.platform_id, BaiduCrawler)
    return registry
