"""Service functions connecting Django settings to the link engine.

These functions are the configuration provider for the app: they build the
:class:`~extlinker.engine.config.LinkConfig` from settings (optionally layered
over a YAML file), derive the current site identity, and produce the data
the client-side processor and the page stylesheet need. Views, the
middleware and the template library all go through here so the engine never
has to import Django.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Dict

from django.conf import settings
from django.core.cache import cache
from django.http import HttpRequest

from .engine.config import LinkConfig, load_config
from .engine.rewrite import process_content
from .engine.types import SiteIdentity

logger = logging.getLogger(__name__)

SCRIPT_DATA_CACHE_PREFIX = 'extlinker:script_data'
DEFAULT_SCRIPT_DATA_TIMEOUT = 3600  # seconds

BASE_CSS = """
.selm-external-link {
    position: relative;
}

.selm-external-icon {
    display: inline-block;
    vertical-align: middle;
    margin: 0 2px;
    font-size: 0.9em;
    line-height: 1;
}

.selm-external-icon.dashicons {
    width: 1em;
    height: 1em;
    font-size: 1em;
}

.selm-custom-icon {
    display: inline-block;
    vertical-align: middle;
}
"""

FONTAWESOME_CSS = """
.selm-external-icon.fa,
.selm-external-icon.fas,
.selm-external-icon.far,
.selm-external-icon.fab {
    font-size: 0.9em;
}
"""


def get_link_config() -> LinkConfig:
    """Return the link configuration from settings.

    ``settings.EXTLINKER_CONFIG_FILE`` (YAML) is merged over the engine
    defaults, then ``settings.EXTLINKER`` is merged over the result. The
    ``SITE_URL`` key is not a link option and is ignored here.
    """

    overrides = {
        key: value
        for key, value in getattr(settings, 'EXTLINKER', {}).items()
        if key != 'SITE_URL'
    }
    return load_config(getattr(settings, 'EXTLINKER_CONFIG_FILE', None), overrides)


def get_site_identity(request: HttpRequest | None = None, site_url: str | None = None) -> SiteIdentity:
    """Resolve the site identity.

    Precedence: an explicit ``site_url``, then ``EXTLINKER['SITE_URL']``,
    then the scheme and host of ``request``. Without any of them the
    identity has an empty host, which makes every absolute link external.
    """

    configured = site_url or getattr(settings, 'EXTLINKER', {}).get('SITE_URL')
    if configured:
        return SiteIdentity.from_url(str(configured))
    if request is not None:
        return SiteIdentity.from_url(f"{request.scheme}://{request.get_host()}")
    logger.warning('No SITE_URL configured and no request available; site host is unknown')
    return SiteIdentity(host='')


def rewrite_html(
    content: str,
    request: HttpRequest | None = None,
    *,
    content_type: str | None = None,
    config: LinkConfig | None = None,
) -> str:
    """Run the server-side rewriter over ``content`` using the configured options."""

    link_config = config or get_link_config()
    return process_content(content, get_site_identity(request), link_config, content_type)


def _script_data_cache_key(site: SiteIdentity) -> str:
    digest = hashlib.md5(f"{site.scheme}://{site.host}".encode('utf-8')).hexdigest()
    return f"{SCRIPT_DATA_CACHE_PREFIX}:{digest}"


def get_script_data(request: HttpRequest | None = None) -> Dict[str, Any]:
    """Return the data handed to the client-side processor.

    The payload always carries ``site_host`` and ``site_scheme``; the
    ``config`` mapping is only included in client mode. Results are cached
    per site for ``EXTLINKER_SCRIPT_DATA_TIMEOUT`` seconds.
    """

    site = get_site_identity(request)
    cache_key = _script_data_cache_key(site)
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    config = get_link_config()
    data: Dict[str, Any] = {
        'site_host': site.host,
        'site_scheme': site.scheme,
    }
    if config.is_client_mode:
        data['config'] = config.to_script_config()

    timeout = getattr(settings, 'EXTLINKER_SCRIPT_DATA_TIMEOUT', DEFAULT_SCRIPT_DATA_TIMEOUT)
    cache.set(cache_key, data, timeout=timeout)
    return data


def generate_css(config: LinkConfig | None = None) -> str:
    """Return the stylesheet for annotated links, including operator CSS."""

    link_config = config or get_link_config()
    parts = [BASE_CSS.strip()]
    if link_config.icon_type == 'fontawesome':
        parts.append(FONTAWESOME_CSS.strip())
    if link_config.custom_css.strip():
        parts.append(link_config.custom_css.strip())
    return '\n\n'.join(parts) + '\n'
