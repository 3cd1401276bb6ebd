"""In-memory bus client — records publishes instead of sending them.

Used by ``recordbus replay --dry-run`` to show what would be published
without a broker, and by the test-suite as the bus collaborator.
"""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


class MemoryBusClient:
    """Buffers ``(topic, body)`` pairs in publish order."""

    def __init__(self) -> None:
        self._published: list[tuple[str, str]] = []

    def publish(self, topic: str, body: str) -> None:
        self._published.append((topic, body))
        logger.debug("MemoryBusClient: recorded %s", topic)

    @property
    def published(self) -> list[tuple[str, str]]:
        """Return a copy of everything published so far."""
        return list(self._published)

    @property
    def topics(self) -> list[str]:
        return [topic for topic, _ in self._published]

    def bodies(self) -> list[dict[str, Any]]:
        """Return the decoded JSON bodies in publish order."""
        return [json.loads(body) for _, body in self._published]
