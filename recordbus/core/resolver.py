"""ActorResolver — finds the user who originally created a record.

The host tells us who issued the current request (the *hint*), but for
edits made by someone other than the record's author that is the wrong
identity to route on.  The resolver reads the record's creator field and
falls back through a single priority rule:

1. creator field from a successful lookup
2. the hinted actor
3. ``unknown``

Each lookup attempt yields a ``LookupResult`` (success / miss / failed /
unavailable / skipped).  Lookup errors are logged and swallowed here;
they never reach the caller and never prevent a publish.

Deletes invert the order: the record may already be gone, so the hinted
actor is used without any lookup.  A lookup is only attempted for a
delete without a hint, and only if the collaborator declares that it can
serve pre-delete state (``serves_deleted_records``).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from recordbus.core.scheduling import VisibilityDelay
from recordbus.models.events import UNKNOWN_ACTOR, Operation, RecordKey
from recordbus.models.resolution import (
    ActorSource,
    LookupResult,
    LookupStatus,
    Resolution,
)

logger = logging.getLogger(__name__)

DEFAULT_CREATOR_FIELD = "user_created"


@runtime_checkable
class RecordLookup(Protocol):
    """Narrow read interface onto the host's record store.

    Only the creator-identity field is ever requested.  Implementations
    may expose ``serves_deleted_records = True`` if they can answer for
    records that have just been deleted.
    """

    def read_one(
        self, collection: str, key: RecordKey, fields: Sequence[str]
    ) -> Mapping[str, Any]:
        """Return the record projected onto *fields*, or raise."""
        ...


def extract_identity(value: Any) -> str | None:
    """Normalise a creator field value to a user id string.

    Expanded relations (``{"id": ...}``) resolve to their ``id``; empty
    values resolve to ``None``.
    """
    if isinstance(value, Mapping):
        value = value.get("id")
    if value is None:
        return None
    identity = str(value).strip()
    return identity or None


def choose_actor(result: LookupResult, hint: str | None) -> Resolution:
    """Apply the priority rule: record creator, then hint, then ``unknown``."""
    if result.status is LookupStatus.SUCCESS and result.identity:
        return Resolution(
            actor=result.identity, source=ActorSource.RECORD, lookup=result.status
        )
    if hint:
        return Resolution(actor=hint, source=ActorSource.HINT, lookup=result.status)
    return Resolution(
        actor=UNKNOWN_ACTOR, source=ActorSource.UNKNOWN, lookup=result.status
    )


class ActorResolver:
    """Resolves the owning user of a record, degrading gracefully.

    Parameters
    ----------
    lookup:
        The record-lookup collaborator, or ``None`` when the host offers
        no way to read records.
    delay:
        The fixed visibility pause taken once before each lookup.
    creator_field:
        Name of the field holding the creator's id.
    """

    def __init__(
        self,
        lookup: RecordLookup | None = None,
        *,
        delay: VisibilityDelay | None = None,
        creator_field: str = DEFAULT_CREATOR_FIELD,
    ) -> None:
        self._lookup = lookup
        self._delay = delay or VisibilityDelay(0)
        self._creator_field = creator_field

    @property
    def has_lookup(self) -> bool:
        return self._lookup is not None

    def resolve(
        self,
        operation: Operation,
        collection: str,
        key: RecordKey,
        fallback_hint: str | None,
    ) -> Resolution:
        """Resolve the actor for one record key.  Never raises."""
        result = self._attempt(operation, collection, key, fallback_hint)
        resolution = choose_actor(result, fallback_hint)

        if resolution.degraded and result.status is not LookupStatus.SKIPPED:
            logger.warning(
                "Creator lookup %s for %s/%s (%s) — using %s actor %r",
                result.status.value,
                collection,
                key,
                operation.value,
                resolution.source.value,
                resolution.actor,
            )
        else:
            logger.debug(
                "Resolved %s/%s (%s) to %r from %s",
                collection,
                key,
                operation.value,
                resolution.actor,
                resolution.source.value,
            )
        return resolution

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _attempt(
        self,
        operation: Operation,
        collection: str,
        key: RecordKey,
        fallback_hint: str | None,
    ) -> LookupResult:
        if operation is Operation.DELETE and (
            fallback_hint or not self._serves_deleted_records()
        ):
            return LookupResult.skipped()

        if self._lookup is None:
            return LookupResult.unavailable()

        self._delay.wait()
        try:
            record = self._lookup.read_one(collection, key, [self._creator_field])
        except Exception as exc:  # noqa: BLE001
            return LookupResult.failed(f"{type(exc).__name__}: {exc}")

        if not isinstance(record, Mapping):
            return LookupResult.failed(
                f"lookup returned {type(record).__name__}, expected a mapping"
            )

        identity = extract_identity(record.get(self._creator_field))
        if identity is None:
            return LookupResult.miss()
        return LookupResult.success(identity)

    def _serves_deleted_records(self) -> bool:
        return bool(getattr(self._lookup, "serves_deleted_records", False))
