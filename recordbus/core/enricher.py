"""EventEnricher — turns one affected key of an event into an outbound message.

``enrich`` is total: whatever goes wrong inside (resolver bug, model
validation), the key still yields exactly one message, with the actor
downgraded to the hinted user or ``unknown``.
"""

from __future__ import annotations

import logging

from recordbus.core.resolver import ActorResolver
from recordbus.models.events import EnrichedMessage, MutationEvent, RecordKey
from recordbus.models.resolution import ActorSource, LookupStatus, Resolution

logger = logging.getLogger(__name__)


class EventEnricher:
    """Attaches the resolved actor to each affected key of a mutation event."""

    def __init__(self, resolver: ActorResolver) -> None:
        self._resolver = resolver

    def enrich(self, event: MutationEvent, key: RecordKey) -> EnrichedMessage:
        """Build the message for *key*.  Never raises."""
        message, _ = self.enrich_with_resolution(event, key)
        return message

    def enrich_with_resolution(
        self, event: MutationEvent, key: RecordKey
    ) -> tuple[EnrichedMessage, Resolution]:
        """Build the message for *key* and report how its actor was chosen."""
        try:
            resolution = self._resolver.resolve(
                event.operation, event.collection, key, event.hinted_actor
            )
            return EnrichedMessage.for_key(event, key, resolution.actor), resolution
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Enrichment failed for %s/%s (%s): %s — using fallback actor %r",
                event.collection,
                key,
                event.operation.value,
                exc,
                event.fallback_actor,
            )

        resolution = Resolution(
            actor=event.fallback_actor,
            source=ActorSource.HINT if event.hinted_actor else ActorSource.UNKNOWN,
            lookup=LookupStatus.FAILED,
        )
        message = EnrichedMessage.model_construct(
            operation=event.operation,
            collection=event.collection,
            key=key,
            keys=event.affected_keys if event.is_batch else None,
            payload=event.payload,
            resolved_actor=resolution.actor,
            timestamp=None,
        )
        return message, resolution
