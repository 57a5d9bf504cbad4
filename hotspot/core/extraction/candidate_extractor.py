"""Per-element field extraction for listing pages."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from urllib.parse import urljoin, urlsplit

from dateutil import parser as date_parser

from hotspot.core.extraction.dom import Node, NodeSet, collapse_whitespace
from hotspot.schemas.source import FieldMap, FieldRule
from hotspot.shared.exceptions import SelectorError


@dataclass
class Candidate:
    """An extracted item awaiting filtering and content verification."""
    title: str
    url: Optional[str]
    element: Node
    published_at: Optional[datetime] = None
    summary: Optional[str] = None


def read_field(element: Node, rule: Optional[FieldRule]) -> Optional[str]:
    """Read one field; ``None`` when the rule yields nothing."""
    if rule is None:
        return None

    target: Optional[Node] = element
    if rule.selector:
        target = element.first(rule.selector)
    if target is None:
        return None

    value = target.attr(rule.attribute) if rule.attribute else target.text()
    if not value:
        return None
    value = value.strip()

    if rule.regex:
        match = re.search(rule.regex, value)
        if match:
            # group 1 when the pattern has one and it participated, else the whole match
            if match.re.groups >= 1 and match.group(1):
                value = match.group(1)
            else:
                value = match.group(0)

    return value or None


def parse_published_at(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed, skipped = date_parser.parse(value, fuzzy_with_tokens=True)
    except (ValueError, OverflowError):
        return None
    # a stray number inside prose ("3 comments") is not a date
    skipped_length = sum(len(token.strip()) for token in skipped)
    if skipped_length * 2 > len(value.strip()):
        return None
    return parsed


class CandidateExtractor:
    """Build candidates from resolved item elements."""

    def __init__(
        self,
        fields: FieldMap,
        base_url: Optional[str] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.fields = fields
        self.base_url = base_url
        self.logger = logger or logging.getLogger(__name__)

    def extract_all(self, elements: NodeSet) -> List[Candidate]:
        candidates = []
        for index, element in enumerate(elements):
            candidate = self.extract(element, index)
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    def extract(self, element: Node, index: int = 0) -> Optional[Candidate]:
        try:
            title = self._extract_title(element)
            if not title:
                self.logger.debug("Skipping item without title", extra={"index": index})
                return None

            link = self._extract_url(element)
            if link is not None:
                link = self.resolve_url(link)
        except SelectorError as e:
            self.logger.warning(
                "Field selector failed, skipping item",
                extra={"index": index, "selector": e.selector, "error": e.message}
            )
            return None
        except ValueError as e:
            self.logger.warning(
                "Invalid item URL, skipping item",
                extra={"index": index, "error": str(e)}
            )
            return None

        return Candidate(
            title=title,
            url=link,
            element=element,
            published_at=self._safe_field(element, self.fields.published_at, parse_published_at),
            summary=self._safe_field(element, self.fields.summary, collapse_whitespace),
        )

    def _extract_title(self, element: Node) -> str:
        title = read_field(element, self.fields.title)
        if title and title.strip():
            return collapse_whitespace(title)

        link = element.first("a")
        if link is not None:
            title = link.text(collapse=True) or (link.attr("title") or "")
        elif element.is_tag("a"):
            title = element.text(collapse=True) or (element.attr("title") or "")
        else:
            title = element.text(collapse=True)
        return collapse_whitespace(title)

    def _extract_url(self, element: Node) -> Optional[str]:
        rule = self.fields.url
        link = None
        if rule is not None and (rule.selector or rule.attribute):
            link = read_field(element, rule)

        if not link:
            anchor = element.first("a")
            if anchor is not None:
                link = anchor.attr("href")
            elif element.is_tag("a"):
                link = element.attr("href")

        link = link.strip() if link else None
        return link or None

    def resolve_url(self, link: str) -> str:
        """Make ``link`` absolute against the base URL; raises ValueError when it cannot be parsed."""
        parts = urlsplit(link)
        # fragment-only links stay as they are so the filter can reject them
        if parts.scheme or not self.base_url or link.startswith("#"):
            return link
        resolved = urljoin(self.base_url, link)
        urlsplit(resolved)
        return resolved

    @staticmethod
    def _safe_field(element: Node, rule: Optional[FieldRule], convert):
        try:
            value = read_field(element, rule)
        except SelectorError:
            return None
        return convert(value) if value else None
