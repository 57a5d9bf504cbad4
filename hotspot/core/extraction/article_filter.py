"""Rule-based accept/reject decision over extracted candidates.

Runs before any network access; every candidate passes through ``is_valid_article``
and only survivors are handed to the content checker.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Sequence
from urllib.parse import urlsplit

from hotspot.core.extraction.dom import Node
from hotspot.schemas.source import FilterPolicy
from hotspot.shared.config import Settings
from hotspot.shared.exceptions import SelectorError


# Whole-title navigation words; only checked for short titles.
DEFAULT_NAV_PATTERNS: Sequence[str] = (
    r"^(首页|主页|home|index)$",
    r"^(关于|关于我们|about)$",
    r"^(联系我们|contact)$",
    r"^(登录|注册|login|signin|signup)$",
    r"^(更多|more|更多信息)$",
    r"^(返回|back|返回首页)$",
    r"^(搜索|search)$",
    r"^(分类|分类目录|category|categories)$",
    r"^(标签|tag|tags)$",
    r"^(归档|archive)$",
    r"^(友情链接|links)$",
    r"^(站点地图|sitemap)$",
    r"^(RSS|订阅|feed)$",
    r"^(帮助|help|faq)$",
    r"^(隐私|privacy|政策|policy)$",
    r"^(条款|terms|服务|service)$",
    r"^(广告|ad|ads|advertisement)$",
    r"^(招聘|jobs|career)$",
    r"^(加入我们|join)$",
    r"^(新闻|news|资讯|information)$",
    r"^(技术|tech|技术文档)$",
    r"^(学术|academic|学术研究)$",
)

DEFAULT_URL_PATTERNS: Sequence[str] = (
    r"^#",
    r"^javascript:",
    r"/index\.(html?|php|aspx?)$",
    r"/home\.(html?|php|aspx?)$",
    r"/about\.(html?|php|aspx?)$",
    r"/contact\.(html?|php|aspx?)$",
    r"/login\.(html?|php|aspx?)$",
    r"/register\.(html?|php|aspx?)$",
    r"/search\.(html?|php|aspx?)$",
    r"/category/?$",
    r"/tag/?$",
    r"/archive/?$",
    r"/feed/?$",
    r"/sitemap",
)

DEFAULT_PARENT_SELECTORS: Sequence[str] = (
    "nav",
    "header",
    "footer",
    ".nav",
    ".navbar",
    ".navigation",
    ".header",
    ".footer",
    ".menu",
    ".sidebar",
    ".breadcrumb",
    '[role="navigation"]',
    '[role="banner"]',
    '[role="contentinfo"]',
    '[role="complementary"]',
)


@dataclass(frozen=True)
class FilterDecision:
    valid: bool
    reason: Optional[str] = None


ACCEPT = FilterDecision(valid=True)


def _compile(patterns: Sequence[str], flags: int = 0) -> List[Pattern]:
    return [re.compile(p, flags) for p in patterns]


class ArticleFilter:
    """Synchronous candidate filter configured from a ``FilterPolicy``."""

    def __init__(
        self,
        policy: Optional[FilterPolicy],
        settings: Settings,
        logger: Optional[logging.Logger] = None
    ):
        policy = policy or FilterPolicy()
        self.min_title_length = policy.min_title_length
        self.max_title_length = policy.max_title_length
        self.require_url = policy.require_url
        self.nav_title_max_length = (
            policy.nav_title_max_length
            if policy.nav_title_max_length is not None
            else settings.NAV_TITLE_MAX_LENGTH
        )

        if policy.exclude_nav_patterns is not None:
            self.nav_patterns = _compile(policy.exclude_nav_patterns, re.IGNORECASE)
        else:
            self.nav_patterns = _compile(DEFAULT_NAV_PATTERNS, re.IGNORECASE)

        if policy.exclude_url_patterns is not None:
            self.url_patterns = _compile(policy.exclude_url_patterns)
        else:
            self.url_patterns = _compile(DEFAULT_URL_PATTERNS, re.IGNORECASE)

        self.parent_selectors = list(
            policy.exclude_parent_selectors
            if policy.exclude_parent_selectors is not None
            else DEFAULT_PARENT_SELECTORS
        )
        self.logger = logger or logging.getLogger(__name__)

    def is_valid_article(self, title: str, url: Optional[str], element: Optional[Node]) -> FilterDecision:
        title = (title or "").strip()
        title_length = len(title)

        if title_length < self.min_title_length:
            return FilterDecision(False, f"title too short ({title_length} < {self.min_title_length})")
        if title_length > self.max_title_length:
            return FilterDecision(False, f"title too long ({title_length} > {self.max_title_length})")

        url = (url or "").strip()
        if self.require_url and not url:
            return FilterDecision(False, "missing url")

        if url:
            for pattern in self.url_patterns:
                if pattern.search(url):
                    return FilterDecision(False, f"url matches excluded pattern: {pattern.pattern}")

            decision = self._check_url_shape(url)
            if not decision.valid:
                return decision

        if title_length <= self.nav_title_max_length:
            for pattern in self.nav_patterns:
                if pattern.search(title):
                    return FilterDecision(False, f"title matches navigation pattern: {pattern.pattern}")

        if element is not None:
            for selector in self.parent_selectors:
                try:
                    if element.closest(selector) is not None:
                        return FilterDecision(False, f"inside excluded ancestor: {selector}")
                except SelectorError as e:
                    self.logger.warning(
                        "Ignoring invalid ancestor selector",
                        extra={"selector": selector, "error": e.message}
                    )

        return ACCEPT

    @staticmethod
    def _check_url_shape(url: str) -> FilterDecision:
        try:
            parts = urlsplit(url)
        except ValueError:
            return FilterDecision(False, "malformed url")
        if parts.scheme.lower() not in ("http", "https"):
            return FilterDecision(False, f"unsupported url scheme: {parts.scheme or 'none'}")
        if not parts.netloc:
            return FilterDecision(False, "malformed url")
        return ACCEPT
