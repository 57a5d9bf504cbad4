"""In-memory repositories for the command-line tool and tests."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from hotspot.repositories.base import (
    KeywordGroupRepository,
    NewsRepository,
    PlatformRepository,
    PlatformSource,
    StoredNewsItem,
)
from hotspot.schemas.keyword import Appearance, KeywordGroup, NewsMatchData
from hotspot.schemas.news import NewsItem

logger = logging.getLogger(__name__)


class InMemoryPlatformRepository(PlatformRepository):

    def __init__(self, platforms: Optional[List[PlatformSource]] = None):
        self.platforms: List[PlatformSource] = list(platforms or [])

    def add(self, platform: PlatformSource) -> None:
        self.platforms.append(platform)

    async def get_enabled_platforms(self, platform_ids: Optional[List[str]] = None) -> List[PlatformSource]:
        enabled = [p for p in self.platforms if p.enabled]
        if platform_ids:
            wanted = set(platform_ids)
            enabled = [p for p in enabled if p.platform_id in wanted]
        return enabled


@dataclass
class MatchRecord:
    news_id: str
    keyword_group_id: str
    weight: float
    match_count: int
    matched_words: List[str]
    first_matched_at: datetime
    last_matched_at: datetime
    appearances: List[Appearance] = field(default_factory=list)


class InMemoryNewsRepository(NewsRepository):

    def __init__(self):
        self.items: Dict[Tuple[str, str, datetime], StoredNewsItem] = {}
        self.matches: Dict[Tuple[str, str], MatchRecord] = {}

    async def upsert_item(self, platform_id: str, item: NewsItem, crawled_at: datetime) -> StoredNewsItem:
        key = (platform_id, item.title, crawled_at)
        stored = self.items.get(key)
        if stored is None:
            stored = StoredNewsItem(
                id=str(uuid4()),
                platform_id=platform_id,
                title=item.title,
                rank=item.rank,
                crawled_at=crawled_at,
            )
            self.items[key] = stored

        stored.rank = item.rank
        stored.url = item.url
        stored.mobile_url = item.mobile_url
        stored.content = item.content
        stored.published_at = item.published_at
        return stored

    async def get_match_data(self, news_id: str, keyword_group_id: str) -> NewsMatchData:
        record = self.matches.get((news_id, keyword_group_id))
        if record is None:
            return NewsMatchData()
        return NewsMatchData(
            ranks=[a.rank for a in record.appearances],
            match_count=record.match_count,
            appearances=list(record.appearances),
        )

    async def record_match(
        self,
        news_id: str,
        keyword_group_id: str,
        matched_words: List[str],
        weight: float,
        rank: int,
        appeared_at: datetime
    ) -> None:
        key = (news_id, keyword_group_id)
        record = self.matches.get(key)
        if record is None:
            record = MatchRecord(
                news_id=news_id,
                keyword_group_id=keyword_group_id,
                weight=weight,
                match_count=0,
                matched_words=list(matched_words),
                first_matched_at=appeared_at,
                last_matched_at=appeared_at,
            )
            self.matches[key] = record

        record.weight = weight
        record.match_count += 1
        record.matched_words = list(matched_words)
        record.last_matched_at = appeared_at
        record.appearances.append(Appearance(rank=rank, appeared_at=appeared_at))
        logger.debug(
            "Recorded keyword match",
            extra={"news_id": news_id, "keyword_group_id": keyword_group_id, "weight": weight}
        )


class InMemoryKeywordGroupRepository(KeywordGroupRepository):

    def __init__(self, groups: Optional[List[KeywordGroup]] = None):
        self.groups: List[KeywordGroup] = list(groups or [])
        self.load_count = 0

    async def get_enabled_groups(self) -> List[KeywordGroup]:
        self.load_count += 1
        enabled = [g for g in self.groups if g.enabled]
        return sorted(enabled, key=lambda g: g.priority)
