"""Keyword group matching for news titles.

A group matches a title when at least one normal word occurs in it, every
required word occurs in it and no excluded word does. Comparison is a
case-insensitive substring test. ``match_title`` walks groups by ascending
priority and returns the first match, so group order decides overlaps.
"""

import logging
import time
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from hotspot.repositories.base import KeywordGroupRepository
from hotspot.schemas.keyword import KeywordGroup, MatchResult
from hotspot.shared.config import Settings, get_settings

NO_MATCH = MatchResult(matched=False)


def _normalize_words(words: Iterable[str], prefix: str = "") -> List[str]:
    normalized = []
    for word in words:
        word = (word or "").strip()
        if prefix and word.startswith(prefix):
            word = word[len(prefix):].strip()
        if word:
            normalized.append(word.lower())
    return normalized


class MatcherService:
    """Match titles against keyword groups cached from the repository."""

    def __init__(
        self,
        keyword_repository: KeywordGroupRepository,
        settings: Optional[Settings] = None,
        cache_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None
    ):
        self.keyword_repository = keyword_repository
        if cache_ttl is None:
            cache_ttl = (settings or get_settings()).KEYWORD_CACHE_TTL
        self.cache_ttl = cache_ttl
        self._clock = clock
        self._cache: Optional[List[KeywordGroup]] = None
        self._cache_expiry = 0.0
        self.logger = logger or logging.getLogger(__name__)

    async def get_enabled_keyword_groups(self) -> List[KeywordGroup]:
        now = self._clock()
        if self._cache is not None and now < self._cache_expiry:
            return self._cache

        groups = await self.keyword_repository.get_enabled_groups()
        self._cache = sorted((g for g in groups if g.enabled), key=lambda g: g.priority)
        self._cache_expiry = now + self.cache_ttl
        self.logger.debug("Keyword groups loaded", extra={"groups_count": len(self._cache)})
        return self._cache

    def invalidate_cache(self) -> None:
        self._cache = None
        self._cache_expiry = 0.0

    async def match_title(self, title: str, groups: Optional[List[KeywordGroup]] = None) -> MatchResult:
        """First matching group by ascending priority."""
        if groups is None:
            groups = await self.get_enabled_keyword_groups()
        else:
            groups = sorted((g for g in groups if g.enabled), key=lambda g: g.priority)

        for group in groups:
            result = self.test_keyword_group(title, group)
            if result.matched:
                return result
        return NO_MATCH

    async def match_news_items(self, items: Iterable[Tuple[str, str]]) -> Dict[str, List[KeywordGroup]]:
        """Every matching group per ``(id, title)`` pair; unmatched items are left out."""
        groups = await self.get_enabled_keyword_groups()
        matches: Dict[str, List[KeywordGroup]] = {}
        for item_id, title in items:
            matched = [g for g in groups if self.test_keyword_group(title, g).matched]
            if matched:
                matches[item_id] = matched
        return matches

    def test_keyword_group(self, title: str, group: KeywordGroup) -> MatchResult:
        title_lower = (title or "").lower()

        matched_words = [
            word for word in group.words
            if word.strip() and word.strip().lower() in title_lower
        ]
        if not matched_words:
            return NO_MATCH

        for required in _normalize_words(group.required_words, prefix="+"):
            if required not in title_lower:
                return NO_MATCH

        for excluded in _normalize_words(group.excluded_words, prefix="!"):
            if excluded in title_lower:
                return NO_MATCH

        return MatchResult(matched=True, keyword_group=group, matched_words=matched_words)
