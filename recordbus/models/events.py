"""Mutation events delivered by the host and the enriched messages built from them.

Both records are frozen Pydantic models: an event is scoped to a single
dispatch call, and a message is constructed once per affected key and
never mutated afterwards (the publish timestamp is applied to a copy).
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

RecordKey = Union[str, int]

# Sentinel actor used when neither the record nor the host names a user.
UNKNOWN_ACTOR = "unknown"


class Operation(str, Enum):
    """The three mutation kinds the bridge listens for."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class MutationEvent(BaseModel):
    """A create/update/delete notification from the host's hook system.

    ``affected_keys`` keeps host delivery order.  A bare key is accepted
    and normalised to a one-element tuple; an empty key list is rejected.
    ``hinted_actor`` is the user who issued the request, which is not
    necessarily the user who created the record.
    """

    model_config = ConfigDict(frozen=True)

    operation: Operation
    collection: str = Field(min_length=1)
    affected_keys: tuple[RecordKey, ...]
    payload: Any = None
    hinted_actor: str | None = None

    @field_validator("affected_keys", mode="before")
    @classmethod
    def _normalise_keys(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("a mutation event needs at least one affected key")
        if isinstance(value, (str, int)):
            return (value,)
        if isinstance(value, (list, tuple)):
            return tuple(value)
        raise ValueError(
            f"affected keys must be a key or a list of keys, not {type(value).__name__}"
        )

    @field_validator("affected_keys")
    @classmethod
    def _require_keys(cls, value: tuple[RecordKey, ...]) -> tuple[RecordKey, ...]:
        if not value:
            raise ValueError("a mutation event needs at least one affected key")
        return value

    @field_validator("hinted_actor", mode="before")
    @classmethod
    def _normalise_hint(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return str(value)

    @property
    def fallback_actor(self) -> str:
        """The hinted actor, or ``unknown`` when the host gave none."""
        return self.hinted_actor or UNKNOWN_ACTOR

    @property
    def is_batch(self) -> bool:
        return len(self.affected_keys) > 1


class EnrichedMessage(BaseModel):
    """One outbound message: a single affected key plus its resolved actor.

    ``keys`` carries the original batch for context and is only set when
    the source event touched more than one record.  ``timestamp`` is
    stamped by the Publisher at publish time.  ``payload_error`` is set
    only when the payload could not be encoded and was left out.
    """

    model_config = ConfigDict(frozen=True)

    operation: Operation
    collection: str
    key: RecordKey
    keys: tuple[RecordKey, ...] | None = None
    payload: Any = None
    resolved_actor: str = Field(min_length=1)
    timestamp: str | None = None
    payload_error: str | None = None

    @classmethod
    def for_key(
        cls, event: MutationEvent, key: RecordKey, resolved_actor: str
    ) -> EnrichedMessage:
        """Build the message for *key* of *event*."""
        return cls(
            operation=event.operation,
            collection=event.collection,
            key=key,
            keys=event.affected_keys if event.is_batch else None,
            payload=event.payload,
            resolved_actor=resolved_actor,
        )

    def stamped(self, now: datetime | None = None) -> EnrichedMessage:
        """Return a copy carrying an ISO-8601 UTC publish timestamp."""
        moment = now or datetime.now(timezone.utc)
        return self.model_copy(update={"timestamp": moment.isoformat()})

    def without_payload(self, reason: str) -> EnrichedMessage:
        """Return a copy whose payload is replaced by an error marker."""
        return self.model_copy(update={"payload": None, "payload_error": reason})

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict of the message body (unset optional fields omitted)."""
        exclude = {
            name
            for name in ("keys", "payload_error")
            if getattr(self, name) is None
        }
        return self.model_dump(mode="json", exclude=exclude)
