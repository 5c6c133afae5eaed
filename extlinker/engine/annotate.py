"""Attribute and icon composition for external anchors."""

from __future__ import annotations

from .config import LinkConfig
from .icons import render_icon
from .types import EXTERNAL_LINK_CLASS, AnchorRecord, AttributeDelta, IconInsertion, unique_tokens


def icon_for(config: LinkConfig) -> str:
    """Render the icon configured in ``config`` (empty when icons are off)."""

    if not config.add_icon:
        return ""
    return render_icon(config.icon_type, config.icon_svg_file, config.icon_class, config.custom_icon)


def annotate(record: AnchorRecord, config: LinkConfig, icon_html: str = "") -> AttributeDelta:
    """Compute the final attributes for an anchor already classified external.

    The result only depends on the token sets of ``record``, so feeding the
    annotated anchor back in yields the same delta.
    """

    target = None
    if config.open_new_tab and record.existing_target is None:
        target = "_blank"

    rel = list(record.existing_rel)
    if config.add_nofollow:
        rel.append("nofollow")
    if config.add_noopener:
        rel.append("noopener")

    classes = unique_tokens(list(record.existing_class) + [EXTERNAL_LINK_CLASS])

    icon = None
    if config.add_icon and icon_html and not record.has_icon:
        icon = IconInsertion(markup=icon_html, position=config.icon_position)

    return AttributeDelta(target=target, rel=unique_tokens(rel), classes=classes, icon=icon)


def wrap_icon(insertion: IconInsertion, inner: str) -> str:
    """Place icon markup inside anchor content, separated by one space."""

    if insertion.position == "before":
        return f"{insertion.markup} {inner}"
    return f"{inner} {insertion.markup}"
