"""Publisher — serializes enriched messages and hands them to the bus client.

Delivery is at-most-once: one ``client.publish`` call per message, no
acknowledgement wait, no retry.  A payload that cannot be encoded is
replaced by a ``payload_error`` marker, so the message still goes out.  A
transport failure is logged and the message is dropped; it never affects
other messages.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Protocol, runtime_checkable

from recordbus.core.serialization import encode_message
from recordbus.models.events import EnrichedMessage

logger = logging.getLogger(__name__)


@runtime_checkable
class MessageBusClient(Protocol):
    """The only operation the core needs from the message bus."""

    def publish(self, topic: str, body: str) -> None:
        """Send *body* on *topic*.  May raise on transport failure."""
        ...


class Publisher:
    """Publishes enriched messages through an injected bus client.

    Parameters
    ----------
    client:
        The process-wide message-bus client (opened elsewhere).
    clock:
        Returns the current time; the message timestamp is taken from it
        at publish time.
    """

    def __init__(
        self,
        client: MessageBusClient,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._client = client
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def publish(self, topic: str, message: EnrichedMessage) -> bool:
        """Publish *message* on *topic*.

        Returns ``True`` if the client accepted the message, ``False`` if
        it was dropped.
        """
        stamped = message.stamped(self._clock())
        try:
            body = encode_message(stamped)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Payload for %s/%s not serializable, publishing without it (%s)",
                message.collection,
                message.key,
                exc,
            )
            body = encode_message(
                stamped.without_payload(
                    f"unserializable payload: {type(message.payload).__name__}"
                )
            )

        try:
            self._client.publish(topic, body)
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Dropping message for %s/%s: publish to %s failed (%s)",
                message.collection,
                message.key,
                topic,
                exc,
            )
            return False

        logger.debug("Published %s (%d bytes)", topic, len(body))
        return True
