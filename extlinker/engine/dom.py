"""BeautifulSoup-backed live document used by the client-mode processor."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from bs4 import BeautifulSoup, FeatureNotFound, NavigableString, Tag  # type: ignore

from .types import ICON_CLASS, AnchorRecord, AttributeDelta, split_tokens

logger = logging.getLogger(__name__)

SubtreeCallback = Callable[[Sequence[Tag]], None]


def make_soup(html: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(html, "lxml")
    except FeatureNotFound:
        # Fallback to html.parser if lxml isn't installed
        return BeautifulSoup(html, "html.parser")


def parse_fragment(html: str) -> List:
    """Parse a markup fragment without adding html/body wrappers."""

    return list(BeautifulSoup(html, "html.parser").contents)


class LiveDocument:
    """A mutable document that reports inserted subtrees to its subscribers.

    Subscribers receive the top-level tags of every fragment added through
    :meth:`insert_html`, mirroring a childList/subtree mutation observer.
    """

    def __init__(self, html: str = "") -> None:
        self.soup = make_soup(html)
        self._subscribers: List[SubtreeCallback] = []

    @property
    def body(self) -> Tag:
        return self.soup.body or self.soup

    def anchors(self) -> List[Tag]:
        """Return every anchor that carries an ``href`` attribute, in document order."""

        return self.soup.find_all("a", href=True)

    def subscribe(self, callback: SubtreeCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def insert_html(self, html: str, parent: Optional[Tag] = None, position: str = "beforeend") -> List[Tag]:
        """Insert ``html`` into ``parent`` (the body by default) and notify subscribers."""

        container = parent if parent is not None else self.body
        nodes = parse_fragment(html)
        if position == "afterbegin":
            for node in reversed(nodes):
                container.insert(0, node)
        else:
            for node in nodes:
                container.append(node)

        added = [node for node in nodes if isinstance(node, Tag)]
        if added:
            self._notify(added)
        return added

    def remove(self, node: Tag) -> None:
        node.extract()

    def render(self) -> str:
        return str(self.soup)

    def _notify(self, added: Sequence[Tag]) -> None:
        for callback in list(self._subscribers):
            callback(added)


def contains_anchor(node: object) -> bool:
    """Return True when ``node`` is an anchor or has one among its descendants."""

    if not isinstance(node, Tag):
        return False
    if node.name == "a":
        return True
    return node.find("a") is not None


def anchor_record_from_tag(tag: Tag) -> AnchorRecord:
    target = tag.get("target")
    if isinstance(target, list):
        target = " ".join(target)
    href = tag.get("href") or ""
    if isinstance(href, list):
        href = " ".join(href)
    return AnchorRecord(
        href=str(href),
        existing_rel=split_tokens(tag.get("rel")),
        existing_class=split_tokens(tag.get("class")),
        existing_target=(target or "") if tag.has_attr("target") else None,
        has_icon=tag.find(class_=ICON_CLASS) is not None,
    )


def apply_delta(tag: Tag, delta: AttributeDelta) -> None:
    """Write ``delta`` onto a live anchor tag."""

    if delta.target is not None and "target" not in tag.attrs:
        tag["target"] = delta.target
    if delta.rel:
        tag["rel"] = list(delta.rel)
    tag["class"] = list(delta.classes)

    if delta.icon is None:
        return
    icon_nodes = parse_fragment(delta.icon.markup)
    if delta.icon.position == "before":
        tag.insert(0, NavigableString(" "))
        for node in reversed(icon_nodes):
            tag.insert(0, node)
    else:
        tag.append(NavigableString(" "))
        for node in icon_nodes:
            tag.append(node)
