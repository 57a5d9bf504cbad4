"""Platform crawlers and the orchestrator that runs them.

Built-in crawlers are registered in ``registry.default_registry``; sources that
carry a ``SourceConfig`` are crawled by ``ConfigurableHtmlCrawler``.
"""

from .base import PlatformCrawler
from .html_crawler import ConfigurableHtmlCrawler
from .registry import CrawlerRegistry, default_registry
