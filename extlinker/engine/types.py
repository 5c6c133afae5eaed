"""Typed data structures shared by the link engine."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple
from urllib.parse import urlsplit

EXTERNAL_LINK_CLASS = "selm-external-link"
ICON_CLASS = "selm-external-icon"


def unique_tokens(tokens: Iterable[str]) -> Tuple[str, ...]:
    """Return tokens de-duplicated while keeping first-seen order."""

    seen = set()
    ordered = []
    for token in tokens:
        if not token or token in seen:
            continue
        seen.add(token)
        ordered.append(token)
    return tuple(ordered)


def split_tokens(value: object) -> Tuple[str, ...]:
    """Split an attribute value (string or token list) into unique tokens."""

    if value is None:
        return ()
    if isinstance(value, str):
        return unique_tokens(value.split())
    return unique_tokens(str(token) for token in value)


class Classification(enum.Enum):
    """Outcome of classifying a single link."""

    INTERNAL = "internal"
    SPECIAL = "special"
    EXCLUDED_BY_CLASS = "excluded_by_class"
    EXCLUDED_BY_DOMAIN = "excluded_by_domain"
    EXTERNAL = "external"


@dataclass(frozen=True)
class SiteIdentity:
    """Canonical origin of the current site."""

    host: str
    scheme: str = "https"

    def __post_init__(self) -> None:
        object.__setattr__(self, "host", (self.host or "").strip().lower())
        object.__setattr__(self, "scheme", (self.scheme or "https").strip().lower())

    @classmethod
    def from_url(cls, url: str) -> "SiteIdentity":
        """Derive the identity from a base URL such as ``https://example.com/``."""

        candidate = (url or "").strip()
        if candidate and "://" not in candidate:
            candidate = f"https://{candidate}"
        try:
            parsed = urlsplit(candidate)
            host = parsed.hostname or ""
        except ValueError:
            return cls(host="")
        return cls(host=host, scheme=parsed.scheme or "https")


@dataclass(frozen=True)
class AnchorRecord:
    """Attributes of one anchor as read from markup or a live document."""

    href: str
    existing_rel: Tuple[str, ...] = ()
    existing_class: Tuple[str, ...] = ()
    existing_target: Optional[str] = None
    has_icon: bool = False


@dataclass(frozen=True)
class IconInsertion:
    """Icon markup plus where it goes inside the anchor."""

    markup: str
    position: str


@dataclass(frozen=True)
class AttributeDelta:
    """Final attribute values computed for an external anchor.

    ``target`` is ``None`` when the existing target (or its absence) must be
    left alone.
    """

    target: Optional[str]
    rel: Tuple[str, ...]
    classes: Tuple[str, ...]
    icon: Optional[IconInsertion] = None

    def changes(self, record: AnchorRecord) -> Dict[str, str]:
        """Return the attribute values that differ from ``record``."""

        changed: Dict[str, str] = {}
        if self.target is not None and self.target != record.existing_target:
            changed["target"] = self.target
        if self.rel and self.rel != record.existing_rel:
            changed["rel"] = " ".join(self.rel)
        if self.classes != record.existing_class:
            changed["class"] = " ".join(self.classes)
        return changed
