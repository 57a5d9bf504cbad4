from .base import KeywordGroupRepository, NewsRepository, PlatformRepository, PlatformSource, StoredNewsItem
from .memory import InMemoryKeywordGroupRepository, InMemoryNewsRepository, InMemoryPlatformRepository
