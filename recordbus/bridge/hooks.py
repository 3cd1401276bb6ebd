"""HookRegistry — the host-facing registration surface for mutation hooks.

Mirrors the host's ``action(event_name, handler)`` API so the bridge can
be wired the same way whether the notifications come from an embedded
host, a webhook receiver, or a replayed event log.  ``register_bridge``
subscribes the bridge to create/update/delete on every allow-listed
collection.

Handlers never raise into the host: a malformed notification or a
handler failure is logged and the remaining handlers still run.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Callable

from recordbus.bridge.directus import EventParseError, parse_hook_event
from recordbus.core.service import BridgeService
from recordbus.models.events import Operation

logger = logging.getLogger(__name__)

HookHandler = Callable[[Mapping[str, Any]], None]


class HookRegistry:
    """Named action hooks, called in registration order."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[HookHandler]] = {}

    def action(self, event_name: str, handler: HookHandler) -> None:
        """Register *handler* for *event_name*."""
        self._handlers.setdefault(event_name, []).append(handler)
        logger.debug("Registered hook %s", event_name)

    @property
    def registered_events(self) -> list[str]:
        return sorted(self._handlers)

    def emit(self, event_name: str, raw: Mapping[str, Any]) -> int:
        """Deliver a notification to every handler of *event_name*.

        Returns the number of handlers that completed without error.
        """
        completed = 0
        for handler in self._handlers.get(event_name, []):
            try:
                handler(raw)
                completed += 1
            except Exception as exc:  # noqa: BLE001
                logger.error("Hook %s handler failed: %s", event_name, exc)
        return completed


def register_bridge(
    registry: HookRegistry,
    service: BridgeService,
    collections: Iterable[str] | None = None,
    *,
    background: bool = True,
) -> list[str]:
    """Subscribe *service* to mutations on *collections*.

    Registers ``items.<op>.<collection>`` for each operation and each
    collection (defaulting to the service's allow-list), plus a generic
    ``items.create`` observer that logs every create at DEBUG level.
    With ``background=True`` events are handed to the worker pool;
    otherwise they are dispatched on the host's thread.

    Returns the list of event names registered.
    """
    names = sorted(collections) if collections is not None else sorted(
        service.dispatcher.collections
    )
    intake = service.submit if background else service.handle

    def _observe_create(raw: Mapping[str, Any]) -> None:
        logger.debug(
            "items.create observed: collection=%s key=%s has_accountability=%s",
            raw.get("collection"),
            raw.get("key"),
            bool(raw.get("accountability")),
        )

    registry.action("items.create", _observe_create)
    registered = ["items.create"]

    for collection in names:
        for operation in Operation:
            event_name = f"items.{operation.value}.{collection}"
            registry.action(event_name, _make_handler(event_name, intake))
            registered.append(event_name)

    logger.info(
        "Registered %d collection hooks for %s", len(registered) - 1, names
    )
    return registered


def _make_handler(event_name: str, intake: Callable[..., Any]) -> HookHandler:
    def _handler(raw: Mapping[str, Any]) -> None:
        try:
            event = parse_hook_event(event_name, raw)
        except EventParseError as exc:
            logger.warning("Skipping notification: %s", exc)
            return
        intake(event)

    return _handler
