"""robots.txt checks cached per origin."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional
from urllib.parse import urlsplit
from urllib.robotparser import RobotFileParser


@dataclass(frozen=True)
class RobotsDecision:
    allowed: bool
    crawl_delay: Optional[float] = None


ALLOW_ALL = RobotsDecision(allowed=True)


class RobotsChecker:
    """Fetch and cache robots.txt rules per origin.

    ``load`` returns the robots.txt body, or ``None`` when the file is missing or
    unreachable, in which case everything is allowed.
    """

    def __init__(
        self,
        load: Callable[[str], Awaitable[Optional[str]]],
        max_crawl_delay: float,
        logger: Optional[logging.Logger] = None
    ):
        self._load = load
        self.max_crawl_delay = max_crawl_delay
        self._parsers: Dict[str, Optional[RobotFileParser]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def origin_of(url: str) -> str:
        parts = urlsplit(url)
        return f"{parts.scheme}://{parts.netloc}"

    async def check(self, url: str, user_agent: str) -> RobotsDecision:
        origin = self.origin_of(url)
        if origin not in self._parsers:
            # concurrent checks for one origin share a single load
            lock = self._locks.setdefault(origin, asyncio.Lock())
            async with lock:
                if origin not in self._parsers:
                    self._parsers[origin] = await self._fetch_rules(origin)

        parser = self._parsers[origin]
        if parser is None:
            return ALLOW_ALL

        allowed = parser.can_fetch(user_agent, url)
        delay = parser.crawl_delay(user_agent)
        if delay is not None:
            delay = min(float(delay), self.max_crawl_delay)
        return RobotsDecision(allowed=allowed, crawl_delay=delay)

    async def _fetch_rules(self, origin: str) -> Optional[RobotFileParser]:
        robots_url = f"{origin}/robots.txt"
        body = await self._load(robots_url)
        if body is None:
            self.logger.debug("No robots.txt, allowing all", extra={"url": robots_url})
            return None

        parser = RobotFileParser()
        parser.set_url(robots_url)
        parser.parse(body.splitlines())
        return parser
