"""Tests for content analysis and the network-backed content checker."""

import pytest
from unittest.mock import AsyncMock, Mock

import httpx

from conftest import ARTICLE_BODY, article_page, empty_page
from hotspot.core.extraction.content_checker import (
    NO_CONTENT_REASON,
    ContentAnalyzer,
    ContentCheckCache,
    ContentChecker,
    ContentCheckResult,
    normalize_text,
)
from hotspot.shared.exceptions import FetchTimeoutError, HttpStatusError, TIMEOUT_REASON


def link_menu(count: int = 10) -> str:
    rows = "".join(f"<li><a href='/c/{i}'>栏目导航链接文字第{i}个</a></li>" for i in range(count))
    return f"<ul>{rows}</ul>"


class TestContentAnalyzer:
    """Tests for ContentAnalyzer.analyze."""

    @pytest.fixture
    def analyzer(self):
        return ContentAnalyzer(min_content_length=80, snippet_length=800)

    def test_article_with_enough_text(self, analyzer):
        result = analyzer.analyze(article_page())

        assert result.has_content
        assert result.has_text
        assert not result.has_video
        assert result.reason is None
        assert ARTICLE_BODY in result.text_snippet

    def test_chrome_text_is_not_counted(self, analyzer):
        html = (
            "<html><body>"
            f"<header>{ARTICLE_BODY}</header>"
            f"<div class='sidebar'>{ARTICLE_BODY}</div>"
            f"<footer>{ARTICLE_BODY}</footer>"
            "<article><p>短短的正文</p></article>"
            "</body></html>"
        )

        result = analyzer.analyze(html)

        assert not result.has_content
        assert result.reason == NO_CONTENT_REASON

    def test_short_page_has_no_content(self, analyzer):
        result = analyzer.analyze(empty_page())

        assert not result.has_content
        assert not result.has_text
        assert result.text_snippet is None

    def test_body_fallback_without_content_container(self, analyzer):
        html = f"<html><body><div class='story'><p>{ARTICLE_BODY}</p></div></body></html>"

        result = analyzer.analyze(html)

        assert result.has_text

    def test_link_lists_are_removed_from_body_text(self, analyzer):
        html = f"<html><body>{link_menu()}<p>短正文</p></body></html>"

        result = analyzer.analyze(html)

        assert not result.has_text

    def test_link_dense_blocks_skipped_in_container(self, analyzer):
        html = (
            "<html><body><div class='content'>"
            "<p><a href='/1'>相关一</a> <a href='/2'>相关二</a> <a href='/3'>相关三</a></p>"
            f"<p>{ARTICLE_BODY}</p>"
            "</div></body></html>"
        )

        result = analyzer.analyze(html)

        assert result.has_text
        assert "相关一" not in result.text_snippet

    def test_video_tag_satisfies_content(self, analyzer):
        result = analyzer.analyze("<html><body><video src='/v.mp4'></video></body></html>")

        assert result.has_content
        assert result.has_video
        assert not result.has_text

    def test_video_iframe_detected_before_iframes_are_stripped(self, analyzer):
        html = "<html><body><iframe src='https://player.bilibili.com/player.html?bvid=1'></iframe></body></html>"

        assert analyzer.analyze(html).has_video

    def test_other_iframes_are_not_video(self, analyzer):
        html = "<html><body><iframe src='https://maps.example.com/embed'></iframe></body></html>"

        assert not analyzer.analyze(html).has_content

    def test_video_class_hint(self, analyzer):
        html = "<html><body><div id='main-video-box'></div></body></html>"

        assert analyzer.analyze(html).has_video

    def test_snippet_is_truncated(self):
        analyzer = ContentAnalyzer(min_content_length=80, snippet_length=50)

        result = analyzer.analyze(article_page())

        assert len(result.text_snippet) == 50


class TestContentCheckCache:

    def test_put_and_get(self):
        cache = ContentCheckCache()
        result = ContentCheckResult(True, True, False)

        cache.put("https://e.com/a", result)

        assert "https://e.com/a" in cache
        assert cache.get("https://e.com/a") is result
        assert cache.get("https://e.com/b") is None
        assert len(cache) == 1


class TestContentChecker:
    """Tests for ContentChecker.has_content."""

    @pytest.fixture
    def fetcher(self):
        fetcher = Mock()
        fetcher.fetch_html = AsyncMock(return_value=article_page())
        return fetcher

    @pytest.fixture
    def checker(self, test_settings, fetcher):
        return ContentChecker(test_settings, fetcher, ContentCheckCache(), base_url="https://news.example.com")

    @pytest.mark.asyncio
    async def test_fetches_with_content_check_limits(self, checker, fetcher, test_settings):
        result = await checker.has_content("https://cdn.example.org/a/1.html")

        assert result.has_content
        fetcher.fetch_html.assert_awaited_once()
        kwargs = fetcher.fetch_html.await_args.kwargs
        assert kwargs["timeout"] == test_settings.CONTENT_CHECK_TIMEOUT
        assert kwargs["retries"] == test_settings.CONTENT_CHECK_RETRIES
        assert kwargs["referer"] == "https://cdn.example.org"
        assert kwargs["origin"] == "https://cdn.example.org"
        assert kwargs["proxy_fallback"] is True

    @pytest.mark.asyncio
    async def test_results_are_cached_per_url(self, checker, fetcher):
        first = await checker.has_content("https://e.com/a")
        second = await checker.has_content("https://e.com/a")

        assert first is second
        assert fetcher.fetch_html.await_count == 1

    @pytest.mark.asyncio
    async def test_timeout_reason(self, checker, fetcher):
        fetcher.fetch_html.side_effect = FetchTimeoutError("https://e.com/a", 5)

        result = await checker.has_content("https://e.com/a")

        assert not result.has_content
        assert result.reason == TIMEOUT_REASON

    @pytest.mark.asyncio
    async def test_fetch_error_reason_is_message(self, checker, fetcher):
        fetcher.fetch_html.side_effect = HttpStatusError("https://e.com/a", 404)

        result = await checker.has_content("https://e.com/a")

        assert not result.has_content
        assert result.reason == "HTTP 404 from https://e.com/a"

    @pytest.mark.asyncio
    async def test_failures_are_cached_too(self, checker, fetcher):
        fetcher.fetch_html.side_effect = HttpStatusError("https://e.com/a", 500)

        await checker.has_content("https://e.com/a")
        await checker.has_content("https://e.com/a")

        assert fetcher.fetch_html.await_count == 1

    @pytest.mark.asyncio
    async def test_redirect_loop_becomes_cached_failure(self, test_settings, make_fetcher):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.TooManyRedirects("too many redirects", request=request)

        checker = ContentChecker(test_settings, make_fetcher(handler), ContentCheckCache())

        result = await checker.has_content("https://news.example.com/a/1")
        again = await checker.has_content("https://news.example.com/a/1")

        assert not result.has_content
        assert "too many redirects" in result.reason
        assert again is result
        assert len(calls) == 1


def test_normalize_text():
    assert normalize_text("a  b\n c") == "a b c"
    assert normalize_text("a\n\n\n\nb", preserve_newlines=True) == "a\n\nb"
    assert normalize_text("") == ""
