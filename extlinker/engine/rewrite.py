"""Server-side rewriting of external links inside rendered content.

The rewriter scans a finished HTML string for anchor tags, classifies each
``href`` and splices the computed ``target``/``rel``/``class`` attributes and
optional icon back into the original tag text. Only attributes that actually
change are touched; every other byte of the match is preserved.
"""

from __future__ import annotations

import logging
import re
from html import escape, unescape
from typing import Dict, List, Optional, Tuple

from .annotate import annotate, icon_for, wrap_icon
from .classify import classify
from .config import LinkConfig
from .types import ICON_CLASS, AnchorRecord, Classification, SiteIdentity, split_tokens

logger = logging.getLogger(__name__)

ANCHOR_RE = re.compile(
    r"<a\s+(?P<attrs>[^>]*?(?<![\w-])href\s*=\s*(?P<quote>[\"'])(?P<href>[^\"'>]+)(?P=quote)[^>]*?)>"
    r"(?P<inner>.*?)</a\s*>",
    re.IGNORECASE | re.DOTALL,
)

ATTR_RE = re.compile(
    r"""(?P<name>[^\s"'>/=]+)(?:\s*=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<uq>[^\s"'=<>`]+)))?"""
)

_ICON_MARKER_RE = re.compile(
    r"""class\s*=\s*(["'])[^"']*(?<![\w-])""" + re.escape(ICON_CLASS) + r"""(?![\w-])[^"']*\1""",
    re.IGNORECASE,
)

# Attributes inserted after ``<a`` when the tag does not carry them yet.
INSERT_ORDER = ("target", "rel", "class")

_Attribute = Tuple[str, Tuple[int, int]]


def parse_attributes(attrs: str) -> Dict[str, _Attribute]:
    """Map lower-cased attribute names to ``(value, span)``; first occurrence wins."""

    parsed: Dict[str, _Attribute] = {}
    for match in ATTR_RE.finditer(attrs):
        name = match.group("name").lower()
        if name in parsed:
            continue
        value = match.group("dq")
        if value is None:
            value = match.group("sq")
        if value is None:
            value = match.group("uq") or ""
        parsed[name] = (unescape(value), match.span())
    return parsed


def anchor_record(attributes: Dict[str, _Attribute], inner: str) -> AnchorRecord:
    target = attributes.get("target")
    return AnchorRecord(
        href=attributes["href"][0],
        existing_rel=split_tokens(attributes["rel"][0]) if "rel" in attributes else (),
        existing_class=split_tokens(attributes["class"][0]) if "class" in attributes else (),
        existing_target=target[0] if target is not None else None,
        has_icon=bool(_ICON_MARKER_RE.search(inner)),
    )


def rewrite(content: str, site: SiteIdentity, config: LinkConfig) -> str:
    """Annotate every external anchor in ``content`` and return the new markup."""

    if not content or "<a" not in content.lower():
        return content

    icon_html = icon_for(config)
    counts = {"anchors": 0, "annotated": 0}

    def _replace(match: re.Match[str]) -> str:
        counts["anchors"] += 1
        try:
            replaced = _rewrite_anchor(match, site, config, icon_html)
        except Exception:
            logger.warning("Leaving anchor untouched after rewrite failure: %.80s", match.group(0), exc_info=True)
            return match.group(0)
        if replaced is None:
            return match.group(0)
        counts["annotated"] += 1
        return replaced

    rewritten = ANCHOR_RE.sub(_replace, content)
    logger.debug("Annotated %d of %d anchors", counts["annotated"], counts["anchors"])
    return rewritten


def _rewrite_anchor(
    match: re.Match[str],
    site: SiteIdentity,
    config: LinkConfig,
    icon_html: str,
) -> Optional[str]:
    """Return the rewritten anchor text, or ``None`` when it stays as is."""

    attrs = match.group("attrs")
    inner = match.group("inner")
    attributes = parse_attributes(attrs)
    # The pattern may have matched "href=" inside another attribute value.
    if "href" not in attributes:
        return None
    record = anchor_record(attributes, inner)

    result = classify(record.href, record.existing_class, site, config)
    if result is not Classification.EXTERNAL:
        return None

    delta = annotate(record, config, icon_html)
    changes = delta.changes(record)
    if not changes and delta.icon is None:
        return None

    new_attrs = _splice_attributes(attrs, attributes, changes)
    new_inner = wrap_icon(delta.icon, inner) if delta.icon is not None else inner

    full = match.group(0)
    base = match.start()
    head = full[: match.start("attrs") - base]
    middle = full[match.end("attrs") - base : match.start("inner") - base]
    tail = full[match.end("inner") - base :]
    return f"{head}{new_attrs}{middle}{new_inner}{tail}"


def _splice_attributes(attrs: str, attributes: Dict[str, _Attribute], changes: Dict[str, str]) -> str:
    replacements: List[Tuple[Tuple[int, int], str]] = []
    inserted: List[str] = []

    for name in INSERT_ORDER:
        if name not in changes:
            continue
        rendered = f'{name}="{escape(changes[name], quote=True)}"'
        if name in attributes:
            replacements.append((attributes[name][1], rendered))
        else:
            inserted.append(rendered)

    # Replace right to left so earlier spans stay valid.
    for (start, end), rendered in sorted(replacements, reverse=True):
        attrs = attrs[:start] + rendered + attrs[end:]

    if inserted:
        attrs = " ".join(inserted) + " " + attrs
    return attrs


def process_content(
    content: str,
    site: SiteIdentity,
    config: LinkConfig,
    content_type: str | None = None,
) -> str:
    """Rewrite ``content`` when server-side processing applies to it."""

    if not config.enabled or config.is_client_mode:
        return content
    if content_type is not None and content_type not in config.content_types:
        return content
    return rewrite(content, site, config)
