"""Configurable HTML crawler: extraction pipeline for operator-described sources.

The pipeline runs in two phases:

1. Fetch the listing page, resolve the item selector (with fallback
   discovery), extract candidates and run the synchronous article filter on
   every one of them. No candidate page is fetched in this phase.
2. Verify survivors in fixed-size concurrent batches with the content
   checker, stopping as soon as the accepted count reaches the limit.

Ranks are assigned at acceptance time, so they are always 1..N.

Example:
    ```python
    async with HtmlFetcher(settings) as fetcher:
        crawler = ConfigurableHtmlCrawler("example", config, settings, fetcher)
        result = await crawler.crawl_with_options(CrawlOptions(keywords=["芯片"], limit=10))
    ```
"""

import asyncio
import logging
from typing import List, Optional
from uuid import uuid4

from hotspot.core.crawler.base import PlatformCrawler
from hotspot.core.extraction.article_filter import ArticleFilter
from hotspot.core.extraction.candidate_extractor import Candidate, CandidateExtractor
from hotspot.core.extraction.content_checker import (
    ContentCheckCache,
    ContentChecker,
    ContentCheckResult,
)
from hotspot.core.extraction.dom import Document
from hotspot.core.extraction.selector_resolver import SelectorResolver
from hotspot.core.http.fetcher import HtmlFetcher
from hotspot.schemas.news import CrawlOptions, CrawlResult, NewsItem
from hotspot.schemas.source import ListConfig, SourceConfig
from hotspot.shared.config import Settings
from hotspot.shared.exceptions import describe_error

LIST_ACCEPT_CHARSET = "utf-8,gbk,gb2312"
NO_ITEMS_ERROR = "no items found"
NO_SEARCH_RESULTS_ERROR = "no items matched the search"
MISSING_URL_REASON = "missing url, content cannot be verified"


class ConfigurableHtmlCrawler(PlatformCrawler):
    """Crawl a listing page described by a ``SourceConfig``."""

    def __init__(
        self,
        platform_id: str,
        config: SourceConfig,
        settings: Settings,
        fetcher: HtmlFetcher,
        logger: Optional[logging.Logger] = None
    ):
        self.platform_id = platform_id
        self.config = config
        self.settings = settings
        self.fetcher = fetcher
        self.logger = logger or logging.getLogger(__name__)
        self.resolver = SelectorResolver(settings, logger=self.logger)

    async def crawl(self) -> CrawlResult:
        items = await self.fetch_list(self.config.list_config)
        return CrawlResult.from_items(self.platform_id, items, NO_ITEMS_ERROR)

    async def crawl_with_options(self, options: Optional[CrawlOptions] = None) -> CrawlResult:
        options = options or CrawlOptions()
        if options.keywords and self.config.search is not None:
            items = await self.fetch_list(
                self.config.search,
                keywords=options.keywords,
                limit=options.limit
            )
            return CrawlResult.from_items(self.platform_id, items, NO_SEARCH_RESULTS_ERROR)

        items = await self.fetch_list(self.config.list_config, limit=options.limit)
        return CrawlResult.from_items(self.platform_id, items, NO_ITEMS_ERROR)

    async def fetch_list(
        self,
        list_config: ListConfig,
        keywords: Optional[List[str]] = None,
        limit: Optional[int] = None
    ) -> List[NewsItem]:
        """Run the whole pipeline for one descriptor; returns an empty list on any failure."""
        correlation_id = str(uuid4())
        self.logger.info(
            "Starting list extraction",
            extra={
                "correlation_id": correlation_id,
                "platform_id": self.platform_id,
                "url": list_config.url,
                "selector": list_config.item_selector,
                "keywords": keywords or []
            }
        )

        try:
            items = await self._extract(list_config, keywords, limit, correlation_id)
        except Exception as e:
            self.logger.error(
                f"List extraction failed: {describe_error(e)}",
                exc_info=True,
                extra={
                    "correlation_id": correlation_id,
                    "platform_id": self.platform_id,
                    "url": list_config.url,
                    "error_type": type(e).__name__
                }
            )
            return []

        self.logger.info(
            "List extraction completed",
            extra={
                "correlation_id": correlation_id,
                "platform_id": self.platform_id,
                "items_count": len(items)
            }
        )
        return items

    async def _extract(
        self,
        list_config: ListConfig,
        keywords: Optional[List[str]],
        limit: Optional[int],
        correlation_id: str
    ) -> List[NewsItem]:
        html = await self._fetch_listing(list_config, keywords)
        doc = Document.parse(html)

        resolution = self.resolver.resolve(doc, list_config.item_selector)
        if not resolution.found:
            return []

        base_url = self.config.base_url or list_config.url
        extractor = CandidateExtractor(list_config.fields, base_url=base_url, logger=self.logger)
        candidates = extractor.extract_all(resolution.elements)

        article_filter = ArticleFilter(list_config.filters, self.settings, logger=self.logger)
        survivors = [c for c in candidates if self._passes_filter(article_filter, c, correlation_id)]

        self.logger.info(
            "Synchronous filtering completed",
            extra={
                "correlation_id": correlation_id,
                "platform_id": self.platform_id,
                "selector": resolution.selector.selector,
                "selector_source": resolution.selector.source.value,
                "candidates_count": len(candidates),
                "survivors_count": len(survivors)
            }
        )

        checker = ContentChecker(
            self.settings,
            self.fetcher,
            ContentCheckCache(),
            base_url=base_url,
            logger=self.logger
        )
        return await self._verify(survivors, checker, limit or list_config.limit, correlation_id)

    async def _fetch_listing(self, list_config: ListConfig, keywords: Optional[List[str]]) -> str:
        params = dict(list_config.params)
        if keywords and list_config.keyword_param:
            params[list_config.keyword_param] = " ".join(keywords)

        headers = dict(list_config.headers)
        headers.setdefault("Accept-Charset", LIST_ACCEPT_CHARSET)

        return await self.fetcher.fetch_html(
            list_config.url,
            method=list_config.method,
            headers=headers,
            params=params or None,
            content=list_config.body,
            timeout=self.settings.LIST_FETCH_TIMEOUT,
            proxy_fallback=True,
        )

    def _passes_filter(self, article_filter: ArticleFilter, candidate: Candidate, correlation_id: str) -> bool:
        decision = article_filter.is_valid_article(candidate.title, candidate.url, candidate.element)
        if not decision.valid:
            self.logger.info(
                "Candidate rejected",
                extra={
                    "correlation_id": correlation_id,
                    "platform_id": self.platform_id,
                    "title": candidate.title[:50],
                    "url": candidate.url,
                    "reason": decision.reason
                }
            )
        return decision.valid

    async def _verify(
        self,
        candidates: List[Candidate],
        checker: ContentChecker,
        limit: Optional[int],
        correlation_id: str
    ) -> List[NewsItem]:
        accepted: List[NewsItem] = []
        batch_size = self.settings.CONTENT_CHECK_CONCURRENCY

        for start in range(0, len(candidates), batch_size):
            batch = candidates[start:start + batch_size]
            results = await asyncio.gather(
                *(self._check(checker, c) for c in batch),
                return_exceptions=True
            )

            for candidate, result in zip(batch, results):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                if isinstance(result, BaseException):
                    self.logger.warning(
                        f"Content check failed: {result}",
                        extra={
                            "correlation_id": correlation_id,
                            "url": candidate.url,
                            "error_type": type(result).__name__
                        }
                    )
                    continue
                if not result.has_content:
                    self.logger.info(
                        "Candidate rejected",
                        extra={
                            "correlation_id": correlation_id,
                            "platform_id": self.platform_id,
                            "title": candidate.title[:50],
                            "url": candidate.url,
                            "reason": result.reason
                        }
                    )
                    continue

                accepted.append(NewsItem(
                    title=candidate.title,
                    url=candidate.url,
                    rank=len(accepted) + 1,
                    content=result.text_snippet or candidate.summary,
                    published_at=candidate.published_at,
                ))
                if limit and len(accepted) >= limit:
                    return accepted

        return accepted

    @staticmethod
    async def _check(checker: ContentChecker, candidate: Candidate) -> ContentCheckResult:
        if not candidate.url:
            return ContentCheckResult(False, False, False, reason=MISSING_URL_REASON)
        return await checker.has_content(candidate.url)
