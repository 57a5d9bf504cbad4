"""Tests for robots.txt checks."""

import asyncio

import pytest
from unittest.mock import AsyncMock

from hotspot.core.http.robots import RobotsChecker

ROBOTS = """
User-agent: *
Disallow: /admin/
Crawl-delay: 30
"""

UA = "Mozilla/5.0"


class TestRobotsChecker:

    @pytest.mark.asyncio
    async def test_rules_are_applied(self):
        checker = RobotsChecker(AsyncMock(return_value=ROBOTS), max_crawl_delay=10)

        assert not (await checker.check("https://e.com/admin/x", UA)).allowed
        assert (await checker.check("https://e.com/news/x", UA)).allowed

    @pytest.mark.asyncio
    async def test_crawl_delay_is_capped(self):
        checker = RobotsChecker(AsyncMock(return_value=ROBOTS), max_crawl_delay=10)

        decision = await checker.check("https://e.com/news/x", UA)

        assert decision.crawl_delay == 10

    @pytest.mark.asyncio
    async def test_loaded_once_per_origin(self):
        load = AsyncMock(return_value=ROBOTS)
        checker = RobotsChecker(load, max_crawl_delay=10)

        await checker.check("https://e.com/a", UA)
        await checker.check("https://e.com/b", UA)
        await checker.check("https://other.com/a", UA)

        assert [c.args[0] for c in load.await_args_list] == [
            "https://e.com/robots.txt",
            "https://other.com/robots.txt",
        ]

    @pytest.mark.asyncio
    async def test_missing_robots_allows_everything(self):
        load = AsyncMock(return_value=None)
        checker = RobotsChecker(load, max_crawl_delay=10)

        decision = await checker.check("https://e.com/admin/x", UA)

        assert decision.allowed
        assert decision.crawl_delay is None
        await checker.check("https://e.com/other", UA)
        assert load.await_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_checks_share_one_load(self):
        loaded = []

        async def slow_load(robots_url):
            loaded.append(robots_url)
            await asyncio.sleep(0.01)
            return ROBOTS

        checker = RobotsChecker(slow_load, max_crawl_delay=10)

        decisions = await asyncio.gather(*(
            checker.check(f"https://articles.example.org/a/{i}", UA) for i in range(5)
        ))

        assert all(decision.allowed for decision in decisions)
        assert loaded == ["https://articles.example.org/robots.txt"]
