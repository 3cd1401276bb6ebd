"""Actor resolution results and per-key dispatch outcomes."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from recordbus.models.events import Operation, RecordKey


class LookupStatus(str, Enum):
    """What happened when the resolver tried to read the record's creator."""

    SUCCESS = "success"  # creator field present and non-empty
    MISS = "miss"  # record read, creator field empty or absent
    FAILED = "failed"  # lookup raised
    UNAVAILABLE = "unavailable"  # no lookup collaborator configured
    SKIPPED = "skipped"  # policy chose not to look up (delete)


class ActorSource(str, Enum):
    """Where the resolved actor came from."""

    RECORD = "record"
    HINT = "hint"
    UNKNOWN = "unknown"


class LookupResult(BaseModel):
    """Outcome of a single lookup attempt."""

    model_config = ConfigDict(frozen=True)

    status: LookupStatus
    identity: str | None = None
    error: str = ""

    @classmethod
    def success(cls, identity: str) -> LookupResult:
        return cls(status=LookupStatus.SUCCESS, identity=identity)

    @classmethod
    def miss(cls) -> LookupResult:
        return cls(status=LookupStatus.MISS)

    @classmethod
    def failed(cls, error: str) -> LookupResult:
        return cls(status=LookupStatus.FAILED, error=error)

    @classmethod
    def unavailable(cls) -> LookupResult:
        return cls(status=LookupStatus.UNAVAILABLE)

    @classmethod
    def skipped(cls) -> LookupResult:
        return cls(status=LookupStatus.SKIPPED)


class Resolution(BaseModel):
    """The actor chosen for one record key, with its provenance."""

    model_config = ConfigDict(frozen=True)

    actor: str = Field(min_length=1)
    source: ActorSource
    lookup: LookupStatus

    @property
    def degraded(self) -> bool:
        """True when the record itself did not name the actor."""
        return self.source is not ActorSource.RECORD


class KeyState(str, Enum):
    """Per-key progress: pending_lookup -> resolved -> published | dropped."""

    PENDING_LOOKUP = "pending_lookup"
    RESOLVED = "resolved"
    PUBLISHED = "published"
    DROPPED = "dropped"


class KeyOutcome(BaseModel):
    """Final state of one affected key after dispatch."""

    model_config = ConfigDict(frozen=True)

    key: RecordKey
    topic: str
    actor: str
    source: ActorSource
    lookup: LookupStatus
    state: KeyState


class DispatchReport(BaseModel):
    """Everything the dispatcher did for one mutation event."""

    model_config = ConfigDict(frozen=True)

    operation: Operation
    collection: str
    ignored: bool = False
    outcomes: tuple[KeyOutcome, ...] = ()

    @property
    def published_count(self) -> int:
        return sum(1 for o in self.outcomes if o.state is KeyState.PUBLISHED)

    @property
    def dropped_count(self) -> int:
        return sum(1 for o in self.outcomes if o.state is KeyState.DROPPED)
