"""Client-mode processing of a live, mutating document.

A :class:`LiveLinkProcessor` walks the anchors of a document in bounded
batches, one batch per scheduling turn, and remembers every anchor it has
inspected so that later scans only pay for newly added links. When the
document reports added subtrees containing anchors, a debounced rescan is
scheduled; a newer burst replaces the pending rescan instead of queueing
behind it.
"""

from __future__ import annotations

import logging
import weakref
from typing import Any, List, Mapping, Optional, Sequence

from bs4 import Tag  # type: ignore

from .annotate import annotate, icon_for
from .classify import classify
from .config import LinkConfig
from .dom import anchor_record_from_tag, apply_delta, contains_anchor
from .scheduling import Scheduler, TimerHandle
from .types import Classification, SiteIdentity

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50
DEFAULT_DEBOUNCE_DELAY = 0.1  # seconds


class ProcessedSet:
    """Identity set of anchors already inspected in this document lifetime."""

    def __init__(self) -> None:
        # Entries vanish with their tag, so a reused id() never matches.
        self._items: "weakref.WeakValueDictionary[int, Tag]" = weakref.WeakValueDictionary()

    def add(self, anchor: Tag) -> None:
        self._items[id(anchor)] = anchor

    def discard(self, anchor: Tag) -> None:
        self._items.pop(id(anchor), None)

    def clear(self) -> None:
        self._items.clear()

    def __contains__(self, anchor: object) -> bool:
        return self._items.get(id(anchor)) is anchor

    def __len__(self) -> int:
        return len(self._items)


class LiveLinkProcessor:
    """Batched, debounced, at-most-once external link processing."""

    def __init__(
        self,
        document: Any,
        scheduler: Scheduler,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        debounce_delay: float = DEFAULT_DEBOUNCE_DELAY,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be greater than zero")
        self.document = document
        self.scheduler = scheduler
        self.batch_size = batch_size
        self.debounce_delay = debounce_delay

        self.config = LinkConfig()
        self.site = SiteIdentity(host="")
        self.processed = ProcessedSet()
        self.running = False

        self.scans = 0
        self.inspected = 0
        self.annotated = 0

        self._icon_html = ""
        self._pending: Optional[TimerHandle] = None
        self._unsubscribe = None
        self._generation = 0
        self._queued = 0

    def start(self, config: LinkConfig, site: SiteIdentity) -> "LiveLinkProcessor":
        """Run the initial pass and begin observing the document."""

        if self.running:
            return self
        self.config = config
        self.site = site
        self._icon_html = icon_for(config)
        self.running = True

        self.scan()

        subscribe = getattr(self.document, "subscribe", None)
        if callable(subscribe):
            self._unsubscribe = subscribe(self._on_subtree_added)
        else:
            logger.info("Document cannot report mutations; only the initial pass will run")
        return self

    def stop(self) -> None:
        """Stop observing, cancel pending work and release the processed set."""

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self._generation += 1
        self._queued = 0
        self.running = False
        self.processed.clear()

    def invalidate(self, anchor: Optional[Tag] = None) -> None:
        """Forget ``anchor`` (or every anchor) so the next scan inspects it again."""

        if anchor is None:
            self.processed.clear()
        else:
            self.processed.discard(anchor)

    @property
    def pending_rescan(self) -> bool:
        return self._pending is not None

    @property
    def busy(self) -> bool:
        """True while batches are queued or a rescan is waiting to fire."""

        return self.running and (self._queued > 0 or self._pending is not None)

    def scan(self) -> None:
        """Process the current anchor set, first batch now and the rest deferred."""

        if not self.running:
            return
        self.scans += 1
        anchors = list(self.document.anchors())
        logger.debug("Scan %d over %d anchors", self.scans, len(anchors))
        if anchors:
            self._run_batch(anchors, 0, self._generation)

    def _run_batch(self, anchors: List[Tag], start: int, generation: int) -> None:
        if generation != self._generation or not self.running:
            return

        end = min(start + self.batch_size, len(anchors))
        for anchor in anchors[start:end]:
            if anchor in self.processed:
                continue
            self._process_anchor(anchor)
            self.processed.add(anchor)

        if end < len(anchors):
            self._queued += 1
            self.scheduler.defer(lambda: self._deferred_batch(anchors, end, generation))

    def _deferred_batch(self, anchors: List[Tag], start: int, generation: int) -> None:
        if generation == self._generation:
            self._queued -= 1
        self._run_batch(anchors, start, generation)

    def _process_anchor(self, anchor: Tag) -> None:
        self.inspected += 1
        try:
            record = anchor_record_from_tag(anchor)
            result = classify(record.href, record.existing_class, self.site, self.config)
            if result is not Classification.EXTERNAL:
                return
            apply_delta(anchor, annotate(record, self.config, self._icon_html))
            self.annotated += 1
        except Exception:
            logger.warning("Skipping anchor after processing failure", exc_info=True)

    def _on_subtree_added(self, nodes: Sequence[Any]) -> None:
        if not self.running:
            return
        if not any(contains_anchor(node) for node in nodes):
            return
        if self._pending is not None:
            self._pending.cancel()
        self._pending = self.scheduler.call_later(self.debounce_delay, self._debounced_scan)

    def _debounced_scan(self) -> None:
        self._pending = None
        self.scan()


def start_processor(
    document: Any,
    script_data: Mapping[str, Any] | None,
    scheduler: Scheduler,
    **options: Any,
) -> LiveLinkProcessor:
    """Start a processor from the client boundary data.

    ``script_data`` carries ``site_host``, ``site_scheme`` and an optional
    camelCase ``config`` mapping; a missing ``config`` means defaults.
    """

    data = script_data or {}
    site = SiteIdentity(host=data.get("site_host") or "", scheme=data.get("site_scheme") or "https")
    config = LinkConfig.from_script_config(data.get("config"))
    processor = LiveLinkProcessor(document, scheduler, **options)
    return processor.start(config, site)


def stop_processor(handle: LiveLinkProcessor) -> None:
    handle.stop()
