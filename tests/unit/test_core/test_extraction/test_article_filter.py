"""Tests for the synchronous article filter."""

import pytest

from hotspot.core.extraction.article_filter import ArticleFilter
from hotspot.core.extraction.dom import Document
from hotspot.schemas.source import FilterPolicy


PAGE = """
<html><body>
  <nav><a id="in-nav" href="https://e.com/n/1">导航里的链接文字</a></nav>
  <div class="sidebar"><a id="in-sidebar" href="https://e.com/n/2">侧栏里的链接文字</a></div>
  <aside role="complementary"><a id="in-aside" href="https://e.com/n/3">补充区域链接文字</a></aside>
  <main><ul><li><a id="in-main" href="https://e.com/n/4">正文列表里的新闻</a></li></ul></main>
</body></html>
"""

VALID_URL = "https://news.example.com/2024/05/01/chip.html"


class TestArticleFilter:
    """Tests for ArticleFilter.is_valid_article."""

    @pytest.fixture
    def article_filter(self, test_settings):
        return ArticleFilter(FilterPolicy(), test_settings)

    @pytest.fixture
    def doc(self):
        return Document.parse(PAGE)

    def test_accepts_regular_headline(self, article_filter):
        decision = article_filter.is_valid_article("国产芯片出货量创新高", VALID_URL, None)

        assert decision.valid
        assert decision.reason is None

    def test_rejects_short_title(self, article_filter):
        decision = article_filter.is_valid_article("芯片", VALID_URL, None)

        assert not decision.valid
        assert "too short" in decision.reason

    def test_rejects_long_title(self, article_filter):
        decision = article_filter.is_valid_article("长" * 201, VALID_URL, None)

        assert not decision.valid
        assert "too long" in decision.reason

    def test_rejects_missing_url(self, article_filter):
        decision = article_filter.is_valid_article("国产芯片出货量创新高", None, None)

        assert decision.reason == "missing url"

    def test_missing_url_allowed_when_not_required(self, test_settings):
        article_filter = ArticleFilter(FilterPolicy(require_url=False), test_settings)

        assert article_filter.is_valid_article("国产芯片出货量创新高", None, None).valid

    @pytest.mark.parametrize("url", [
        "#comments",
        "javascript:void(0)",
        "https://e.com/index.html",
        "https://e.com/about.php",
        "https://e.com/contact.htm",
        "https://e.com/login.aspx",
        "https://e.com/search.html",
        "https://e.com/category/",
        "https://e.com/tag",
        "https://e.com/archive/",
        "https://e.com/feed",
        "https://e.com/sitemap.xml",
    ])
    def test_rejects_excluded_url_patterns(self, article_filter, url):
        decision = article_filter.is_valid_article("国产芯片出货量创新高", url, None)

        assert not decision.valid
        assert "excluded pattern" in decision.reason

    @pytest.mark.parametrize("url", ["ftp://e.com/file", "mailto:editor@e.com", "/relative/path", "https://"])
    def test_rejects_non_http_or_malformed_urls(self, article_filter, url):
        assert not article_filter.is_valid_article("国产芯片出货量创新高", url, None).valid

    @pytest.mark.parametrize("title", ["首页", "About", "更多", "RSS", "新闻", "Login"])
    def test_rejects_short_navigation_titles(self, test_settings, title):
        article_filter = ArticleFilter(FilterPolicy(min_title_length=1), test_settings)

        decision = article_filter.is_valid_article(title, VALID_URL, None)

        assert not decision.valid
        assert "navigation pattern" in decision.reason

    def test_navigation_words_inside_longer_titles_pass(self, article_filter):
        assert article_filter.is_valid_article("首页改版新闻发布会", VALID_URL, None).valid

    def test_custom_navigation_patterns_ignore_case(self, test_settings):
        policy = FilterPolicy(min_title_length=1, nav_title_max_length=10, exclude_nav_patterns=[r"^archive$"])
        article_filter = ArticleFilter(policy, test_settings)

        assert not article_filter.is_valid_article("ARCHIVE", VALID_URL, None).valid
        assert not article_filter.is_valid_article("Archive", VALID_URL, None).valid
        assert article_filter.is_valid_article("首页", VALID_URL, None).valid

    def test_navigation_threshold_is_configurable(self, test_settings):
        article_filter = ArticleFilter(FilterPolicy(min_title_length=1, nav_title_max_length=1), test_settings)

        assert article_filter.is_valid_article("首页", VALID_URL, None).valid

    @pytest.mark.parametrize("element_id", ["in-nav", "in-sidebar", "in-aside"])
    def test_rejects_excluded_ancestors(self, article_filter, doc, element_id):
        node = doc.find(f"#{element_id}").first()

        decision = article_filter.is_valid_article("国产芯片出货量创新高", VALID_URL, node)

        assert not decision.valid
        assert "excluded ancestor" in decision.reason

    def test_accepts_element_in_main_content(self, article_filter, doc):
        node = doc.find("#in-main").first()

        assert article_filter.is_valid_article("国产芯片出货量创新高", VALID_URL, node).valid

    def test_custom_lists_replace_defaults(self, test_settings, doc):
        policy = FilterPolicy(
            exclude_url_patterns=[r"/ads/"],
            exclude_parent_selectors=["main"],
        )
        article_filter = ArticleFilter(policy, test_settings)

        assert article_filter.is_valid_article("国产芯片出货量创新高", "https://e.com/feed", None).valid
        assert not article_filter.is_valid_article("国产芯片出货量创新高", "https://e.com/ads/1", None).valid
        assert not article_filter.is_valid_article(
            "国产芯片出货量创新高", VALID_URL, doc.find("#in-main").first()
        ).valid

    def test_invalid_ancestor_selector_is_ignored(self, test_settings, doc):
        article_filter = ArticleFilter(FilterPolicy(exclude_parent_selectors=["nav[", "nav"]), test_settings)

        decision = article_filter.is_valid_article("国产芯片出货量创新高", VALID_URL, doc.find("#in-nav").first())

        assert decision.reason == "inside excluded ancestor: nav"
