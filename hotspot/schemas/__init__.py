from .source import FieldMap, FieldRule, FilterPolicy, ListConfig, SourceConfig
from .news import CrawlOptions, CrawlResult, NewsItem
from .keyword import Appearance, KeywordGroup, MatchResult, NewsMatchData
