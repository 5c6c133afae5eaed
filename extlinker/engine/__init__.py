"""Framework-agnostic external link classification and annotation engine."""

from .annotate import annotate, icon_for
from .classify import classify, is_external_url
from .config import LinkConfig, load_config
from .live import LiveLinkProcessor, start_processor, stop_processor
from .rewrite import process_content, rewrite
from .stats import external_domains, link_stats
from .types import AnchorRecord, AttributeDelta, Classification, SiteIdentity

__all__ = [
    "AnchorRecord",
    "AttributeDelta",
    "Classification",
    "LinkConfig",
    "LiveLinkProcessor",
    "SiteIdentity",
    "annotate",
    "classify",
    "external_domains",
    "icon_for",
    "is_external_url",
    "link_stats",
    "load_config",
    "process_content",
    "rewrite",
    "start_processor",
    "stop_processor",
]
