"""Retry logic for platform crawls."""

from .retry_handler import RetryConfig, RetryHandler, PLATFORM_CRAWL_RETRY
