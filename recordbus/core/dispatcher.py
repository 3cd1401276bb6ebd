"""FanOutDispatcher — one enrichment and one publish per affected key.

Events for collections outside the allow-list are ignored with no side
effects.  For the rest, every affected key walks its own small state
machine::

    pending_lookup -> resolved -> published
                               -> dropped

Per-key outcomes are independent: a failed lookup or publish for one key
never blocks or aborts its siblings.  Keys run sequentially in delivery
order by default; with ``max_concurrency > 1`` they run on a bounded
thread pool and publish order across keys is no longer guaranteed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor

from recordbus.core.enricher import EventEnricher
from recordbus.core.publisher import Publisher
from recordbus.core.topics import build_topic
from recordbus.models.events import MutationEvent, RecordKey
from recordbus.models.resolution import DispatchReport, KeyOutcome, KeyState

logger = logging.getLogger(__name__)


class FanOutDispatcher:
    """Routes allow-listed mutation events to the publisher, key by key.

    Usage
    -----
    >>> dispatcher = FanOutDispatcher(["customers"], enricher, publisher)
    >>> report = dispatcher.dispatch(event)
    >>> report.published_count
    1
    """

    def __init__(
        self,
        collections: Iterable[str],
        enricher: EventEnricher,
        publisher: Publisher,
        *,
        topic_prefix: str = "directus",
        max_concurrency: int = 1,
    ) -> None:
        self._collections = frozenset(collections)
        self._enricher = enricher
        self._publisher = publisher
        self._topic_prefix = topic_prefix
        self._max_concurrency = max(1, max_concurrency)

    @property
    def collections(self) -> frozenset[str]:
        return self._collections

    def accepts(self, collection: str) -> bool:
        """Return ``True`` if *collection* is on the allow-list."""
        return collection in self._collections

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, event: MutationEvent) -> DispatchReport:
        """Enrich and publish every affected key of *event*."""
        if not self.accepts(event.collection):
            logger.debug(
                "Ignoring %s on unlisted collection %s",
                event.operation.value,
                event.collection,
            )
            return DispatchReport(
                operation=event.operation, collection=event.collection, ignored=True
            )

        logger.info(
            "Dispatching %s on %s: %d key(s)",
            event.operation.value,
            event.collection,
            len(event.affected_keys),
        )

        keys = event.affected_keys
        if self._max_concurrency == 1 or len(keys) == 1:
            outcomes = [self._process_key(event, key) for key in keys]
        else:
            workers = min(self._max_concurrency, len(keys))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                outcomes = list(pool.map(lambda k: self._process_key(event, k), keys))

        report = DispatchReport(
            operation=event.operation,
            collection=event.collection,
            outcomes=tuple(outcomes),
        )
        if report.dropped_count:
            logger.warning(
                "%s on %s: %d/%d messages published, %d dropped",
                event.operation.value,
                event.collection,
                report.published_count,
                len(keys),
                report.dropped_count,
            )
        return report

    def dispatch_many(self, events: Iterable[MutationEvent]) -> list[DispatchReport]:
        """Dispatch several events in order, one report each."""
        return [self.dispatch(event) for event in events]

    # ------------------------------------------------------------------
    # Per-key state machine
    # ------------------------------------------------------------------

    def _process_key(self, event: MutationEvent, key: RecordKey) -> KeyOutcome:
        logger.debug(
            "%s/%s: %s", event.collection, key, KeyState.PENDING_LOOKUP.value
        )
        message, resolution = self._enricher.enrich_with_resolution(event, key)
        logger.debug(
            "%s/%s: %s as %r",
            event.collection,
            key,
            KeyState.RESOLVED.value,
            resolution.actor,
        )

        topic = build_topic(
            self._topic_prefix, event.collection, resolution.actor, event.operation
        )
        if self._publisher.publish(topic, message):
            state = KeyState.PUBLISHED
        else:
            state = KeyState.DROPPED

        return KeyOutcome(
            key=key,
            topic=topic,
            actor=resolution.actor,
            source=resolution.source,
            lookup=resolution.lookup,
            state=state,
        )
