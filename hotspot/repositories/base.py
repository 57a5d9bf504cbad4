"""Persistence boundary of the crawler.

Storage is owned by the host application. The crawler only talks to these
abstract repositories:

- ``PlatformRepository``: which sources to crawl
- ``NewsRepository``: upsert of crawled items and keyword match history
- ``KeywordGroupRepository``: enabled keyword groups, by ascending priority

Example:
    Implementing a repository on top of an existing store:

    ```python
    class SqlKeywordGroupRepository(KeywordGroupRepository):
        async def get_enabled_groups(self) -> List[KeywordGroup]:
            rows = await self.db.fetch("SELECT ... WHERE enabled ORDER BY priority")
            return [KeywordGroup.model_validate(dict(r)) for r in rows]
    ```
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from hotspot.schemas.keyword import KeywordGroup, NewsMatchData
from hotspot.schemas.news import NewsItem
from hotspot.schemas.source import SourceConfig


@dataclass
class PlatformSource:
    """A crawlable source as configured by the operator."""
    platform_id: str
    name: str
    enabled: bool = True
    source_config: Optional[SourceConfig] = None
    keywords: List[str] = field(default_factory=list)


@dataclass
class StoredNewsItem:
    id: str
    platform_id: str
    title: str
    rank: int
    crawled_at: datetime
    url: Optional[str] = None
    mobile_url: Optional[str] = None
    content: Optional[str] = None
    published_at: Optional[datetime] = None


class PlatformRepository(ABC):

    @abstractmethod
    async def get_enabled_platforms(self, platform_ids: Optional[List[str]] = None) -> List[PlatformSource]:
        """Enabled sources, optionally restricted to the given ids."""


class NewsRepository(ABC):

    @abstractmethod
    async def upsert_item(self, platform_id: str, item: NewsItem, crawled_at: datetime) -> StoredNewsItem:
        """Insert or update one item keyed by (platform_id, title, crawled_at)."""

    @abstractmethod
    async def get_match_data(self, news_id: str, keyword_group_id: str) -> NewsMatchData:
        """Recorded appearance history of an item for one keyword group."""

    @abstractmethod
    async def record_match(
        self,
        news_id: str,
        keyword_group_id: str,
        matched_words: List[str],
        weight: float,
        rank: int,
        appeared_at: datetime
    ) -> None:
        """Store a match, its weight and the appearance that produced it."""


class KeywordGroupRepository(ABC):

    @abstractmethod
    async def get_enabled_groups(self) -> List[KeywordGroup]:
        """Enabled groups ordered by ascending priority."""
