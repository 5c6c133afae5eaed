"""Template helpers for external link handling.

Usage::

    {% load extlinker %}
    {% extlinker_head %}
    {{ post.body|safe|external_links:"post" }}
"""

from __future__ import annotations

from django import template
from django.utils.html import format_html, json_script
from django.utils.safestring import SafeString, mark_safe

from ..services import generate_css, get_link_config, get_script_data, rewrite_html

register = template.Library()

SCRIPT_DATA_ELEMENT_ID = 'selm-data'


@register.filter(is_safe=True)
def external_links(value: str, content_type: str | None = None) -> str:
    """Annotate external links in ``value`` (server mode only).

    The site identity comes from ``EXTLINKER['SITE_URL']`` because filters do
    not see the request.
    """

    if not value:
        return value
    return rewrite_html(str(value), content_type=content_type or None)


@register.simple_tag(takes_context=True)
def extlinker_head(context: template.Context) -> SafeString:
    """Emit the link stylesheet and, in client mode, the processor data."""

    config = get_link_config()
    if not config.enabled:
        return mark_safe('')

    parts = [format_html('<style id="selm-styles">{}</style>', mark_safe(generate_css(config)))]
    if config.is_client_mode:
        parts.append(json_script(get_script_data(context.get('request')), SCRIPT_DATA_ELEMENT_ID))
    return mark_safe('\n'.join(parts))
