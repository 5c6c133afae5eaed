"""Icon markup rendering for external links."""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from html import escape
from pathlib import Path

from .types import ICON_CLASS

logger = logging.getLogger(__name__)

ICON_DIR = Path(__file__).resolve().parent.parent / "static" / "extlinker" / "icons"
DEFAULT_SVG_ICON = "icon-external"

AVAILABLE_SVG_ICONS = {
    "icon-external": "Box with Arrow (Default)",
    "icon-external-arrow": "Arrow in Box",
    "icon-external-simple": "Simple Arrow",
}

_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9_-]+")
_SVG_OPEN_RE = re.compile(r"<svg\b", re.IGNORECASE)


def render_icon(icon_type: str, icon_name: str = "", css_class: str = "", custom_html: str = "") -> str:
    """Return icon markup for ``icon_type``, or an empty string for no icon.

    Class names and icon names are escaped; ``custom_html`` is operator
    supplied markup and is inserted as-is.
    """

    if icon_type == "fontawesome":
        return f'<i class="{escape(css_class)} {ICON_CLASS}"></i>'
    if icon_type == "custom":
        if not custom_html:
            return ""
        return f'<span class="{ICON_CLASS} selm-custom-icon">{custom_html}</span>'
    if icon_type == "dashicon":
        return f'<span class="dashicons {escape(css_class)} {ICON_CLASS}"></span>'
    return svg_icon(icon_name or DEFAULT_SVG_ICON, css_class)


def svg_icon(icon_name: str, css_class: str = "") -> str:
    return _svg_icon(_safe_name(icon_name), css_class)


@lru_cache(maxsize=32)
def _svg_icon(icon_name: str, css_class: str) -> str:
    icon_file = ICON_DIR / f"{icon_name}.svg"
    if not icon_file.is_file():
        logger.debug("SVG icon %s not found, using %s", icon_name, DEFAULT_SVG_ICON)
        icon_file = ICON_DIR / f"{DEFAULT_SVG_ICON}.svg"

    try:
        content = icon_file.read_text(encoding="utf-8").strip()
    except OSError:
        logger.warning("Unable to read SVG icon %s", icon_file)
        return ""
    if not content:
        return ""

    class_attr = f"{ICON_CLASS} {escape(css_class)}".strip()
    return _SVG_OPEN_RE.sub(f'<svg class="{class_attr}"', content, count=1)


def _safe_name(icon_name: str) -> str:
    return _UNSAFE_NAME_RE.sub("", icon_name or "") or DEFAULT_SVG_ICON
