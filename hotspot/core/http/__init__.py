"""Outbound HTTP: fetcher, proxy targets and robots.txt checks."""

from .fetcher import HtmlFetcher
from .robots import RobotsChecker
