"""Typed node handles over a BeautifulSoup tree.

Components never touch ``bs4`` objects directly; they work with ``Document``,
``Node`` and ``NodeSet`` which expose the handful of operations extraction
needs: ``find(selector)``, ``text()``, ``attr(name)``, ``closest(selector)``.
Node identity is object identity, so two structurally equal elements remain
distinct members of a ``NodeSet``.
"""

import copy
from typing import Iterable, Iterator, List, Optional

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

from hotspot.shared.exceptions import SelectorError

HTML_PARSER = "html.parser"


def _select(tag: Tag, selector: str) -> List[Tag]:
    try:
        return tag.select(selector)
    except (SelectorSyntaxError, NotImplementedError, ValueError) as e:
        raise SelectorError(selector, str(e))


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


class Node:
    """Handle to one element of a parsed document."""

    __slots__ = ("_tag",)

    def __init__(self, tag: Tag):
        self._tag = tag

    def __eq__(self, other) -> bool:
        return isinstance(other, Node) and other._tag is self._tag

    def __hash__(self) -> int:
        return id(self._tag)

    def __repr__(self) -> str:
        return f"<Node {self.name}>"

    @property
    def name(self) -> str:
        return (self._tag.name or "").lower()

    @property
    def parent(self) -> Optional["Node"]:
        parent = self._tag.parent
        if parent is None or isinstance(parent, BeautifulSoup):
            return None
        return Node(parent)

    def ancestors(self) -> Iterator["Node"]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def is_tag(self, *names: str) -> bool:
        return self.name in {n.lower() for n in names}

    def find(self, selector: str) -> "NodeSet":
        """All descendants matching a CSS selector."""
        return NodeSet(Node(t) for t in _select(self._tag, selector))

    def first(self, selector: str) -> Optional["Node"]:
        return self.find(selector).first()

    def matches(self, selector: str) -> bool:
        try:
            return bool(self._tag.css.match(selector))
        except (SelectorSyntaxError, NotImplementedError, ValueError) as e:
            raise SelectorError(selector, str(e))

    def closest(self, selector: str) -> Optional["Node"]:
        """Nearest element, starting with this one, that matches ``selector``."""
        try:
            found = self._tag.css.closest(selector)
        except (SelectorSyntaxError, NotImplementedError, ValueError) as e:
            raise SelectorError(selector, str(e))
        return Node(found) if found is not None else None

    def text(self, collapse: bool = False) -> str:
        raw = self._tag.get_text()
        if collapse:
            return collapse_whitespace(raw)
        return raw.strip()

    def attr(self, name: str) -> Optional[str]:
        value = self._tag.get(name)
        if value is None:
            return None
        if isinstance(value, list):
            return " ".join(value)
        return str(value)

    @property
    def classes(self) -> List[str]:
        value = self._tag.get("class") or []
        if isinstance(value, str):
            return value.split()
        return list(value)

    @property
    def removed(self) -> bool:
        return bool(self._tag.decomposed)

    def remove(self) -> None:
        self._tag.decompose()

    def clone(self) -> "Node":
        """Detached deep copy; removals on the copy leave this node intact."""
        return Node(copy.copy(self._tag))

    def remove_all(self, selector: str) -> int:
        """Remove every descendant matching ``selector``; returns how many were removed."""
        removed = 0
        for node in self.find(selector):
            # An ancestor removed earlier in the loop already took this node along
            if node.removed:
                continue
            node.remove()
            removed += 1
        return removed


class NodeSet:
    """Ordered, identity-unique collection of nodes."""

    def __init__(self, nodes: Iterable[Node] = ()):
        self._nodes: List[Node] = []
        seen = set()
        for node in nodes:
            if node in seen:
                continue
            seen.add(node)
            self._nodes.append(node)

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes)

    def __getitem__(self, index: int) -> Node:
        return self._nodes[index]

    def __bool__(self) -> bool:
        return bool(self._nodes)

    def first(self) -> Optional[Node]:
        return self._nodes[0] if self._nodes else None


class Document:
    """A parsed HTML document."""

    def __init__(self, soup: BeautifulSoup):
        self._soup = soup

    @classmethod
    def parse(cls, html: str) -> "Document":
        return cls(BeautifulSoup(html, HTML_PARSER))

    @property
    def root(self) -> Node:
        return Node(self._soup)

    @property
    def body(self) -> Node:
        body = self._soup.body
        return Node(body) if body is not None else self.root

    def find(self, selector: str) -> NodeSet:
        return self.root.find(selector)

    def remove_all(self, selector: str) -> int:
        return self.root.remove_all(selector)

    def class_frequency(self) -> List[tuple]:
        """``(class_name, count)`` pairs sorted by descending count, then first appearance."""
        counts = {}
        for tag in self._soup.find_all(class_=True):
            for cls_name in Node(tag).classes:
                counts[cls_name] = counts.get(cls_name, 0) + 1
        return sorted(counts.items(), key=lambda item: -item[1])
