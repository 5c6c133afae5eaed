"""External/internal link classification.

Every function here is pure: the inputs are never mutated and no I/O is
performed. Anything that cannot be parsed is treated as internal so that it
is never annotated.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional
from urllib.parse import urlsplit

from .config import LinkConfig
from .types import Classification, SiteIdentity

SPECIAL_SCHEMES = ("javascript:", "mailto:", "tel:", "sms:", "ftp:")

_WWW_RE = re.compile(r"^www\.", re.IGNORECASE)


def normalize_host(host: str) -> str:
    """Lower-case ``host`` and strip one leading ``www.``."""

    return _WWW_RE.sub("", (host or "").strip().lower())


def is_special_link(href: str) -> bool:
    """Return True for empty, fragment-only and non-web scheme links."""

    candidate = (href or "").strip()
    if not candidate or candidate.startswith("#"):
        return True
    lowered = candidate.lower()
    return any(lowered.startswith(scheme) for scheme in SPECIAL_SCHEMES)


def link_host(href: str, site: SiteIdentity) -> Optional[str]:
    """Return the normalized host of an absolute http(s) link, else None."""

    candidate = (href or "").strip()
    if candidate.startswith("//"):
        candidate = f"{site.scheme}:{candidate}"
    elif candidate.startswith(("/", "?")):
        return None

    if not candidate.lower().startswith(("http://", "https://")):
        return None

    try:
        hostname = urlsplit(candidate).hostname
    except ValueError:
        return None
    if not hostname:
        return None
    return normalize_host(hostname)


def is_external_url(href: str, site: SiteIdentity) -> bool:
    host = link_host(href, site)
    if host is None:
        return False
    return host != normalize_host(site.host)


def has_excluded_class(anchor_classes: Iterable[str], config: LinkConfig) -> bool:
    excluded = {entry.strip() for entry in config.exclude_classes if entry.strip()}
    if not excluded:
        return False
    return any(token in excluded for token in anchor_classes)


def is_domain_excluded(host: str, config: LinkConfig) -> bool:
    """Return True when ``host`` is an excluded domain or one of its subdomains."""

    for entry in config.exclude_domains:
        domain = normalize_host(entry)
        if not domain:
            continue
        if host == domain or host.endswith("." + domain):
            return True
    return False


def classify(
    href: str,
    anchor_classes: Iterable[str],
    site: SiteIdentity,
    config: LinkConfig,
) -> Classification:
    """Classify a link; the first matching rule wins."""

    if is_special_link(href):
        return Classification.SPECIAL

    host = link_host(href, site)
    if host is None:
        return Classification.INTERNAL

    if host == normalize_host(site.host):
        return Classification.INTERNAL

    if has_excluded_class(anchor_classes, config):
        return Classification.EXCLUDED_BY_CLASS

    if is_domain_excluded(host, config):
        return Classification.EXCLUDED_BY_DOMAIN

    return Classification.EXTERNAL
