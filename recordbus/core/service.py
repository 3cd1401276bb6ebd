"""Bridge service — wires the core together and owns the process lifecycle.

The BridgeService holds the single process-wide message-bus client: it is
connected once by ``start()``, shared by every publish, and closed by
``stop()``.  Host callbacks hand events to ``submit()``, which schedules
the dispatch on a bounded worker pool so the host's thread is never held
up by the visibility delay, the lookup, or the broker.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from recordbus.config import BridgeConfig
from recordbus.core.dispatcher import FanOutDispatcher
from recordbus.core.enricher import EventEnricher
from recordbus.core.publisher import MessageBusClient, Publisher
from recordbus.core.resolver import ActorResolver, RecordLookup
from recordbus.core.scheduling import VisibilityDelay
from recordbus.models.events import MutationEvent
from recordbus.models.resolution import DispatchReport

logger = logging.getLogger(__name__)


class BridgeNotStartedError(RuntimeError):
    """Raised when events are handed to a service that is not running."""


class BridgeService:
    """Runs the enrichment-and-publish pipeline for one process.

    Parameters
    ----------
    config:
        Bridge configuration.  Uses defaults if not provided.
    client:
        The message-bus client.  If it exposes ``connect()`` / ``close()``
        they are called by ``start()`` / ``stop()``.
    lookup:
        Optional record-lookup collaborator for creator resolution.
    delay:
        Visibility delay override (tests inject a no-op sleep).
    """

    def __init__(
        self,
        client: MessageBusClient,
        config: BridgeConfig | None = None,
        *,
        lookup: RecordLookup | None = None,
        delay: VisibilityDelay | None = None,
    ) -> None:
        self.config = config or BridgeConfig()
        self.client = client
        self.lookup = lookup
        self.resolver = ActorResolver(
            lookup,
            delay=delay or VisibilityDelay(self.config.lookup_delay_seconds),
            creator_field=self.config.creator_field,
        )
        self.publisher = Publisher(client)
        self.dispatcher = FanOutDispatcher(
            self.config.collections,
            EventEnricher(self.resolver),
            self.publisher,
            topic_prefix=self.config.topic_prefix,
            max_concurrency=self.config.max_concurrency,
        )
        self._pool: ThreadPoolExecutor | None = None

    @classmethod
    def from_config(cls, config: BridgeConfig | None = None) -> BridgeService:
        """Build a service backed by paho-mqtt and, if configured, Directus."""
        from recordbus.bridge.directus import DirectusRecordLookup
        from recordbus.bridge.mqtt import MqttBusClient

        cfg = config or BridgeConfig()
        lookup = DirectusRecordLookup.from_config(cfg) if cfg.directus_url else None
        return cls(MqttBusClient.from_config(cfg), cfg, lookup=lookup)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._pool is not None

    def start(self) -> None:
        """Connect the bus client and open the worker pool."""
        if self._pool is not None:
            return
        connect = getattr(self.client, "connect", None)
        if callable(connect):
            connect()
        self._pool = ThreadPoolExecutor(
            max_workers=max(1, self.config.max_workers),
            thread_name_prefix="recordbus",
        )
        logger.info(
            "Bridge started: prefix=%s collections=%s lookup=%s",
            self.config.topic_prefix,
            sorted(self.dispatcher.collections),
            "enabled" if self.resolver.has_lookup else "disabled",
        )

    def stop(self) -> None:
        """Finish queued events, then close the bus client and the lookup."""
        pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=True)
        for name, resource in (("bus client", self.client), ("record lookup", self.lookup)):
            close = getattr(resource, "close", None)
            if callable(close):
                try:
                    close()
                except Exception:
                    logger.exception("Bridge stop: error closing %s.", name)
        logger.info("Bridge stopped.")

    def __enter__(self) -> BridgeService:
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Event intake
    # ------------------------------------------------------------------

    def handle(self, event: MutationEvent) -> DispatchReport:
        """Dispatch *event* on the calling thread and return its report."""
        self._require_running()
        return self.dispatcher.dispatch(event)

    def submit(self, event: MutationEvent) -> Future[DispatchReport]:
        """Schedule *event* on the worker pool (fire-and-forget)."""
        pool = self._require_running()
        future = pool.submit(self.dispatcher.dispatch, event)
        future.add_done_callback(_log_unexpected_failure)
        return future

    def _require_running(self) -> ThreadPoolExecutor:
        if self._pool is None:
            raise BridgeNotStartedError("BridgeService.start() has not been called")
        return self._pool

    def __repr__(self) -> str:
        return (
            f"BridgeService(prefix={self.config.topic_prefix!r}, "
            f"collections={sorted(self.dispatcher.collections)!r}, "
            f"running={self.running})"
        )


def _log_unexpected_failure(future: Future[DispatchReport]) -> None:
    exc = future.exception()
    if exc is not None:
        logger.error("Background dispatch failed: %s", exc, exc_info=exc)
