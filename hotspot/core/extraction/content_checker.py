"""Network-backed verification that a candidate links to real content.

A page counts as having content when, after page chrome is stripped, it
still carries enough readable text or embeds a video. Results are cached per
URL in a ``ContentCheckCache`` owned by one extraction run.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from hotspot.core.extraction.dom import Document, Node, NodeSet
from hotspot.core.http.fetcher import HtmlFetcher, origin_of
from hotspot.shared.config import Settings
from hotspot.shared.exceptions import BaseAppException, FetchTimeoutError, TIMEOUT_REASON


CONTENT_SELECTORS: Sequence[str] = (
    "article",
    ".article",
    ".article-content",
    ".rich-text",
    ".content",
    ".detail",
    ".post-content",
    ".main-content",
    ".article-body",
    "#article",
    "#content",
)

BLOCK_SELECTOR = "p, h1, h2, h3, h4, h5, h6, li, blockquote, div.paragraph, div.content"

_KEEP = ":not(html, body, main, article)"

# Removed from the whole page before any text is read.
PAGE_CHROME_SELECTORS: Sequence[str] = (
    "script, style, noscript, iframe, nav, header, footer, aside",
    ".nav, .navbar, .navigation, .sidebar, .menu, .breadcrumb, .header, .footer",
    ".ad, .ads, .advertisement",
    '[role="navigation"], [role="banner"], [role="contentinfo"], [role="complementary"]',
    f'[class*="nav"]{_KEEP}, [class*="menu"]{_KEEP}, [class*="sidebar"]{_KEEP}',
    f'[class*="header"]{_KEEP}, [class*="footer"]{_KEEP}, [class*="advert"]{_KEEP}',
)

# Removed again inside a content container or the body copy.
INNER_CHROME_SELECTOR = (
    'nav, header, footer, aside, .nav, .navbar, .sidebar, .menu, .breadcrumb, [role="navigation"]'
)

VIDEO_IFRAME_SELECTOR = (
    'iframe[src*="youtube"], iframe[src*="youku"], iframe[src*="bilibili"], '
    'iframe[src*="v.qq.com"], iframe[src*="vimeo"]'
)
VIDEO_HINT_SELECTOR = '[class*="video"], [id*="video"]'

NAV_TEXT_KEYWORDS: Sequence[str] = (
    "首页", "关于", "联系我们", "登录", "注册", "更多", "返回", "搜索", "分类",
    "标签", "归档", "RSS", "订阅", "帮助", "收藏", "官方微博", "官方微信", "扫描二维码",
)

MIN_BLOCK_LENGTH = 10
SHORT_BLOCK_LENGTH = 50
NAV_BLOCK_LENGTH = 30
BLOCK_LINK_DENSITY = 0.2
DIV_LINK_DENSITY = 0.3
LIST_LINK_RATIO = 0.7

NO_CONTENT_REASON = "no substantial text or video content"


@dataclass(frozen=True)
class ContentCheckResult:
    has_content: bool
    has_text: bool
    has_video: bool
    reason: Optional[str] = None
    text_snippet: Optional[str] = None


class ContentCheckCache:
    """Per-run URL to result map; one instance per extraction call."""

    def __init__(self):
        self._results: Dict[str, ContentCheckResult] = {}

    def __contains__(self, url: str) -> bool:
        return url in self._results

    def __len__(self) -> int:
        return len(self._results)

    def get(self, url: str) -> Optional[ContentCheckResult]:
        return self._results.get(url)

    def put(self, url: str, result: ContentCheckResult) -> None:
        self._results[url] = result


def normalize_text(text: str, preserve_newlines: bool = False) -> str:
    if not text:
        return ""
    cleaned = text.replace("\u00a0", " ").replace("\r\n", "\n")
    if preserve_newlines:
        cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
        lines = [line.strip() for line in cleaned.split("\n")]
        return "\n".join(line for line in lines if line).strip()
    return " ".join(cleaned.split())


def _outermost(nodes: NodeSet) -> List[Node]:
    members = set(nodes)
    return [n for n in nodes if not any(a in members for a in n.ancestors())]


def _innermost(nodes: NodeSet) -> List[Node]:
    ancestors_of_members = set()
    for node in nodes:
        ancestors_of_members.update(node.ancestors())
    return [n for n in nodes if n not in ancestors_of_members]


def _remove_link_lists(container: Node) -> None:
    for node in container.find("ul, ol"):
        if node.removed:
            continue
        items = len(node.find("li"))
        links = len(node.find("a"))
        if items > 0 and links / items > LIST_LINK_RATIO:
            node.remove()


class ContentAnalyzer:
    """Pure HTML analysis behind the content check."""

    def __init__(self, min_content_length: int = 80, snippet_length: int = 800):
        self.min_content_length = min_content_length
        self.snippet_length = snippet_length

    def analyze(self, html: str) -> ContentCheckResult:
        doc = Document.parse(html)

        # iframes are stripped below, so embedded players are detected first
        has_video = bool(doc.find("video")) or bool(doc.find(VIDEO_IFRAME_SELECTOR))

        for selector in PAGE_CHROME_SELECTORS:
            doc.remove_all(selector)

        if not has_video:
            has_video = bool(doc.find(VIDEO_HINT_SELECTOR))

        text = None
        for selector in CONTENT_SELECTORS:
            containers = doc.find(selector)
            if not containers:
                continue
            text = self.extract_text(containers)
            if text:
                break

        if not text:
            text = self.extract_body_text(doc)

        has_text = text is not None
        has_content = has_text or has_video
        return ContentCheckResult(
            has_content=has_content,
            has_text=has_text,
            has_video=has_video,
            reason=None if has_content else NO_CONTENT_REASON,
            text_snippet=text[:self.snippet_length] if has_text else None,
        )

    def extract_text(self, containers: NodeSet) -> Optional[str]:
        """Readable text of the containers, or None when shorter than the minimum."""
        pieces: List[str] = []
        fallback: List[str] = []
        for container in _outermost(containers):
            clean = container.clone()
            clean.remove_all(INNER_CHROME_SELECTOR)
            _remove_link_lists(clean)
            fallback.append(clean.text())

            for block in _innermost(clean.find(BLOCK_SELECTOR)):
                block_text = block.text()
                if self._is_content_block(block, block_text):
                    pieces.append(block_text)

        joined = "\n\n".join(pieces) if pieces else "\n".join(fallback)
        text = normalize_text(joined, preserve_newlines=True)
        return text if len(text) >= self.min_content_length else None

    def extract_body_text(self, doc: Document) -> Optional[str]:
        body = doc.body.clone()
        body.remove_all(INNER_CHROME_SELECTOR)
        body.remove_all("ul.nav, ul.menu, ol.nav, ol.menu")
        _remove_link_lists(body)

        for div in body.find("div"):
            if div.removed:
                continue
            links = len(div.find("a"))
            div_text = div.text()
            if links > 0 and len(div_text) < SHORT_BLOCK_LENGTH and links / max(len(div_text), 1) > DIV_LINK_DENSITY:
                div.remove()

        text = normalize_text(body.text(), preserve_newlines=True)
        return text if len(text) >= self.min_content_length else None

    @staticmethod
    def _is_content_block(block: Node, text: str) -> bool:
        length = len(text)
        if length < MIN_BLOCK_LENGTH:
            return False
        links = len(block.find("a"))
        if links > 0 and length < SHORT_BLOCK_LENGTH and links / length > BLOCK_LINK_DENSITY:
            return False
        if length < NAV_BLOCK_LENGTH and any(k in text for k in NAV_TEXT_KEYWORDS):
            return False
        return True


class ContentChecker:
    """Fetch a candidate page and decide whether it has content."""

    def __init__(
        self,
        settings: Settings,
        fetcher: HtmlFetcher,
        cache: ContentCheckCache,
        base_url: Optional[str] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.settings = settings
        self.fetcher = fetcher
        self.cache = cache
        self.base_url = base_url
        self.analyzer = ContentAnalyzer(
            min_content_length=settings.MIN_CONTENT_LENGTH,
            snippet_length=settings.CONTENT_SNIPPET_LENGTH
        )
        self.logger = logger or logging.getLogger(__name__)

    async def has_content(self, url: str) -> ContentCheckResult:
        cached = self.cache.get(url)
        if cached is not None:
            return cached

        referer = origin_of(url) or self.base_url
        try:
            html = await self.fetcher.fetch_html(
                url,
                timeout=self.settings.CONTENT_CHECK_TIMEOUT,
                retries=self.settings.CONTENT_CHECK_RETRIES,
                referer=referer,
                origin=referer,
                proxy_fallback=True,
            )
        except FetchTimeoutError:
            result = ContentCheckResult(False, False, False, reason=TIMEOUT_REASON)
        except BaseAppException as e:
            result = ContentCheckResult(False, False, False, reason=e.message)
        else:
            result = self.analyzer.analyze(html)

        self.cache.put(url, result)
        self.logger.debug(
            "Content check finished",
            extra={
                "url": url,
                "has_content": result.has_content,
                "has_video": result.has_video,
                "reason": result.reason
            }
        )
        return result
