"""Link statistics for rendered content."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Dict, List

from .classify import is_domain_excluded, link_host, normalize_host
from .config import LinkConfig
from .rewrite import parse_attributes
from .types import SiteIdentity

_OPEN_TAG_RE = re.compile(r"<a\s+([^>]*)>", re.IGNORECASE)


@dataclass(frozen=True)
class LinkStats:
    total_links: int = 0
    external_links: int = 0
    internal_links: int = 0
    processed_links: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


def _hrefs(content: str) -> List[str]:
    hrefs = []
    for attrs in _OPEN_TAG_RE.findall(content or ""):
        href = parse_attributes(attrs).get("href")
        if href is not None and href[0]:
            hrefs.append(href[0])
    return hrefs


def link_stats(content: str, site: SiteIdentity, config: LinkConfig) -> LinkStats:
    """Count links in ``content``.

    ``processed_links`` counts external links whose domain is not excluded;
    class exclusions are not considered here.
    """

    total = external = internal = processed = 0
    site_host = normalize_host(site.host)
    for href in _hrefs(content):
        total += 1
        host = link_host(href, site)
        if host is None or host == site_host:
            internal += 1
            continue
        external += 1
        if not is_domain_excluded(host, config):
            processed += 1
    return LinkStats(
        total_links=total,
        external_links=external,
        internal_links=internal,
        processed_links=processed,
    )


def external_domains(content: str, site: SiteIdentity) -> List[str]:
    """Return the unique external hosts linked from ``content`` in first-seen order."""

    site_host = normalize_host(site.host)
    domains: List[str] = []
    for href in _hrefs(content):
        host = link_host(href, site)
        if host is None or host == site_host:
            continue
        if host not in domains:
            domains.append(host)
    return domains
