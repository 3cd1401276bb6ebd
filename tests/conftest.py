"""Shared test fixtures for Recordbus."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

import pytest

from recordbus.bridge.memory import MemoryBusClient
from recordbus.config import BridgeConfig
from recordbus.core.dispatcher import FanOutDispatcher
from recordbus.core.enricher import EventEnricher
from recordbus.core.publisher import Publisher
from recordbus.core.resolver import ActorResolver
from recordbus.core.scheduling import VisibilityDelay
from recordbus.models.events import MutationEvent, Operation, RecordKey

COLLECTIONS = ("boutiques", "categories", "customers")


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeLookup:
    """Record lookup backed by a dict of ``(collection, key) -> record``.

    Keys listed in ``failing`` raise; unknown keys raise ``KeyError``.
    Every call is recorded in ``calls``.
    """

    def __init__(
        self,
        records: Mapping[tuple[str, RecordKey], Mapping[str, Any]] | None = None,
        *,
        failing: Sequence[RecordKey] = (),
        serves_deleted_records: bool = False,
    ) -> None:
        self.records = dict(records or {})
        self.failing = set(failing)
        self.serves_deleted_records = serves_deleted_records
        self.calls: list[tuple[str, RecordKey, list[str]]] = []

    def read_one(
        self, collection: str, key: RecordKey, fields: Sequence[str]
    ) -> Mapping[str, Any]:
        self.calls.append((collection, key, list(fields)))
        if key in self.failing:
            raise RuntimeError(f"lookup failed for {key}")
        record = self.records[(collection, key)]
        return {f: record[f] for f in fields if f in record}


class FailingBusClient:
    """A bus client whose publish always raises."""

    def __init__(self) -> None:
        self.attempts = 0

    def publish(self, topic: str, body: str) -> None:
        self.attempts += 1
        raise ConnectionError("broker unreachable")


class SleepRecorder:
    """Stand-in for ``time.sleep`` that records requested durations."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def bus() -> MemoryBusClient:
    """Provide a fresh in-memory bus client."""
    return MemoryBusClient()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def config() -> BridgeConfig:
    """Deterministic config that ignores the process environment and .env."""
    return BridgeConfig(
        _env_file=None,
        broker_url="mqtt://localhost:1883",
        topic_prefix="directus",
        collections=list(COLLECTIONS),
        lookup_delay_seconds=0.0,
        directus_url=None,
    )


@pytest.fixture
def make_event() -> Callable[..., MutationEvent]:
    """Factory fixture: build a MutationEvent with sensible defaults."""

    def _factory(
        operation: Operation | str = Operation.CREATE,
        collection: str = "customers",
        keys: Any = 7,
        **overrides: Any,
    ) -> MutationEvent:
        defaults: dict[str, Any] = {
            "operation": operation,
            "collection": collection,
            "affected_keys": keys,
            "payload": {"name": "test"},
        }
        defaults.update(overrides)
        return MutationEvent(**defaults)

    return _factory


@pytest.fixture
def make_dispatcher(
    bus: MemoryBusClient, sleeper: SleepRecorder
) -> Callable[..., FanOutDispatcher]:
    """Factory fixture: wire a dispatcher around a lookup and the memory bus."""

    def _factory(
        lookup: Any = None,
        *,
        client: Any = None,
        collections: Sequence[str] = COLLECTIONS,
        delay_seconds: float = 0.0,
        max_concurrency: int = 1,
    ) -> FanOutDispatcher:
        resolver = ActorResolver(
            lookup, delay=VisibilityDelay(delay_seconds, sleep=sleeper)
        )
        return FanOutDispatcher(
            collections,
            EventEnricher(resolver),
            Publisher(client if client is not None else bus),
            topic_prefix="directus",
            max_concurrency=max_concurrency,
        )

    return _factory


@pytest.fixture
def make_lookup() -> Callable[..., FakeLookup]:
    """Factory fixture: build a FakeLookup from ``{(collection, key): creator}``."""

    def _factory(
        creators: Mapping[tuple[str, RecordKey], Any] | None = None,
        **kwargs: Any,
    ) -> FakeLookup:
        records = {
            ck: {"user_created": creator} for ck, creator in (creators or {}).items()
        }
        return FakeLookup(records, **kwargs)

    return _factory


@pytest.fixture
def failing_bus() -> FailingBusClient:
    return FailingBusClient()
