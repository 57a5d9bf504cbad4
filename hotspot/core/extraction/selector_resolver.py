"""Item selector resolution with fallback discovery."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from soupsieve import escape as css_escape

from hotspot.core.extraction.dom import Document, Node, NodeSet
from hotspot.shared.config import Settings
from hotspot.shared.exceptions import SelectorError


# Ordered: containers first, the bare "li a" last since it needs re-targeting.
FALLBACK_SELECTORS: Tuple[str, ...] = (
    "li",
    "article",
    ".item",
    ".news-item",
    ".article",
    '[class*="item"]',
    '[class*="news"]',
    '[class*="list"]',
    'div[class*="item"]',
    'div[class*="news"]',
    "li a",
)

ANCHOR_IN_LIST_ITEM = "li a"


class SelectorSource(str, Enum):
    CONFIGURED = "configured"
    FALLBACK = "fallback"
    CLASS_FREQUENCY = "class_frequency"


@dataclass(frozen=True)
class ResolvedSelector:
    """The selector actually used for one extraction call."""
    selector: str
    source: SelectorSource


@dataclass
class Resolution:
    selector: Optional[ResolvedSelector]
    elements: NodeSet = field(default_factory=NodeSet)

    @property
    def found(self) -> bool:
        return len(self.elements) > 0


class SelectorResolver:
    """Resolve the configured item selector, falling back to generic ones.

    The configured selector is never modified; the selector that was used is
    returned as a ``ResolvedSelector`` next to the element set.
    """

    def __init__(
        self,
        settings: Settings,
        fallback_selectors: Tuple[str, ...] = FALLBACK_SELECTORS,
        logger: Optional[logging.Logger] = None
    ):
        self.settings = settings
        self.fallback_selectors = fallback_selectors
        self.min_valid_items = settings.FALLBACK_MIN_VALID_ITEMS
        self.min_text_length = settings.FALLBACK_MIN_TEXT_LENGTH
        self.top_classes = settings.FALLBACK_TOP_CLASSES
        self.logger = logger or logging.getLogger(__name__)

    def resolve(self, doc: Document, item_selector: str) -> Resolution:
        try:
            elements = doc.find(item_selector)
        except SelectorError as e:
            self.logger.warning(
                "Configured item selector is invalid, trying fallbacks",
                extra={"selector": item_selector, "error": e.message}
            )
            elements = NodeSet()

        if elements:
            return Resolution(
                selector=ResolvedSelector(item_selector, SelectorSource.CONFIGURED),
                elements=elements
            )

        self.logger.warning(
            "No elements matched configured selector",
            extra={"selector": item_selector}
        )

        resolution = self._try_fallback_selectors(doc)
        if resolution is None:
            resolution = self._try_frequent_classes(doc)

        if resolution is None:
            self.logger.error(
                "All fallback selectors failed",
                extra={"selector": item_selector}
            )
            return Resolution(selector=None)

        self.logger.info(
            "Using fallback selector",
            extra={
                "selector": item_selector,
                "resolved_selector": resolution.selector.selector,
                "source": resolution.selector.source.value,
                "element_count": len(resolution.elements)
            }
        )
        return resolution

    def _try_fallback_selectors(self, doc: Document) -> Optional[Resolution]:
        for selector in self.fallback_selectors:
            elements = doc.find(selector)
            if not elements:
                continue

            valid_count = self.count_valid(elements)
            self.logger.debug(
                "Fallback selector candidate",
                extra={"selector": selector, "element_count": len(elements), "valid_count": valid_count}
            )
            if valid_count < self.min_valid_items:
                continue

            if selector == ANCHOR_IN_LIST_ITEM:
                containers = self._list_item_parents(elements)
                if containers:
                    return Resolution(
                        selector=ResolvedSelector("li", SelectorSource.FALLBACK),
                        elements=containers
                    )

            return Resolution(
                selector=ResolvedSelector(selector, SelectorSource.FALLBACK),
                elements=elements
            )
        return None

    def _try_frequent_classes(self, doc: Document) -> Optional[Resolution]:
        ranked = doc.class_frequency()[:self.top_classes]
        for class_name, count in ranked:
            if count < self.min_valid_items:
                continue
            selector = f".{css_escape(class_name)}"
            elements = doc.find(selector)
            if self.count_valid(elements) >= self.min_valid_items:
                return Resolution(
                    selector=ResolvedSelector(selector, SelectorSource.CLASS_FREQUENCY),
                    elements=elements
                )
        return None

    def count_valid(self, elements: NodeSet) -> int:
        """Count elements holding a link and enough text.

        A bare anchor is judged by its parent's text.
        """
        valid = 0
        for node in elements:
            if node.is_tag("a"):
                parent = node.parent
                if parent is not None and len(parent.text()) >= self.min_text_length:
                    valid += 1
            elif node.first("a") is not None and len(node.text()) >= self.min_text_length:
                valid += 1
        return valid

    @staticmethod
    def _list_item_parents(anchors: NodeSet) -> NodeSet:
        parents: List[Node] = []
        for anchor in anchors:
            parent = anchor.parent
            if parent is not None and parent.is_tag("li"):
                parents.append(parent)
        return NodeSet(parents)
