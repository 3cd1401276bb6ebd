"""Directus adapters — record lookup over REST and hook payload parsing.

Bridge boundary
---------------
The core depends on ``RecordLookup`` and ``MutationEvent`` only.  This
module is the one place that knows Directus shapes:

- ``DirectusRecordLookup`` reads ``GET /items/{collection}/{key}`` with a
  field projection and a static bearer token.
- ``parse_hook_event`` turns an action-hook notification (``key`` for
  creates, ``keys`` for updates and deletes, ``accountability.user`` as
  the acting user) into a ``MutationEvent``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import quote

import requests
from pydantic import ValidationError

from recordbus.config import BridgeConfig
from recordbus.models.events import MutationEvent, Operation, RecordKey

logger = logging.getLogger(__name__)


class RecordLookupError(RuntimeError):
    """Raised when a record cannot be read from Directus."""


class EventParseError(ValueError):
    """Raised when a hook notification cannot be turned into an event."""


# ---------------------------------------------------------------------------
# Record lookup
# ---------------------------------------------------------------------------


class DirectusRecordLookup:
    """Reads single records from the Directus items API.

    Parameters
    ----------
    base_url:
        Directus root URL, e.g. ``http://directus:8055``.
    token:
        Static access token sent as a bearer token.  Empty means the
        request is made with the public role.
    timeout:
        Per-request timeout in seconds.
    """

    serves_deleted_records = False

    def __init__(
        self,
        base_url: str,
        *,
        token: str = "",
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._headers = {"Accept": "application/json"}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_config(cls, config: BridgeConfig) -> DirectusRecordLookup:
        if not config.directus_url:
            raise ValueError("directus_url is not configured")
        return cls(
            config.directus_url,
            token=config.directus_token,
            timeout=config.lookup_timeout_seconds,
        )

    def item_url(self, collection: str, key: RecordKey) -> str:
        return (
            f"{self._base_url}/items/{quote(collection, safe='')}"
            f"/{quote(str(key), safe='')}"
        )

    def read_one(
        self, collection: str, key: RecordKey, fields: Sequence[str]
    ) -> Mapping[str, Any]:
        """Return the record's *fields*, or raise ``RecordLookupError``."""
        url = self.item_url(collection, key)
        try:
            response = self._session.get(
                url,
                params={"fields": ",".join(fields)},
                headers=self._headers,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise RecordLookupError(f"GET {url} failed: {exc}") from exc

        if response.status_code != 200:
            raise RecordLookupError(
                f"GET {url} returned {response.status_code}: {response.text[:200]}"
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise RecordLookupError(f"GET {url} returned invalid JSON") from exc

        data = body.get("data") if isinstance(body, Mapping) else None
        if not isinstance(data, Mapping):
            raise RecordLookupError(f"GET {url} returned no record")
        return data

    def ping(self) -> bool:
        """Return ``True`` if the Directus server answers its health probe."""
        try:
            response = self._session.get(
                f"{self._base_url}/server/ping", timeout=self._timeout
            )
        except requests.RequestException:
            return False
        return response.status_code == 200

    def close(self) -> None:
        self._session.close()

    def __repr__(self) -> str:
        return f"DirectusRecordLookup(base_url={self._base_url!r})"


# ---------------------------------------------------------------------------
# Hook payload parsing
# ---------------------------------------------------------------------------


def split_event_name(event_name: str) -> tuple[Operation, str | None]:
    """Extract the operation and collection from a hook event name.

    Accepts both ``items.<op>[.<collection>]`` (action hooks) and
    ``<collection>.items.<op>`` (flow triggers).

    Examples
    --------
    >>> split_event_name("items.update.categories")
    (<Operation.UPDATE: 'update'>, 'categories')
    >>> split_event_name("customers.items.create")
    (<Operation.CREATE: 'create'>, 'customers')
    """
    parts = event_name.split(".")
    try:
        idx = parts.index("items")
        operation = Operation(parts[idx + 1])
    except (ValueError, IndexError) as exc:
        raise EventParseError(f"Unrecognised hook event name: {event_name!r}") from exc

    before = ".".join(parts[:idx])
    after = ".".join(parts[idx + 2 :])
    return operation, (after or before or None)


def _hinted_user(raw: Mapping[str, Any]) -> Any:
    accountability = raw.get("accountability")
    if isinstance(accountability, Mapping):
        return accountability.get("user")
    return None


def parse_hook_event(event_name: str, raw: Mapping[str, Any]) -> MutationEvent:
    """Convert a Directus hook notification into a ``MutationEvent``.

    Raises
    ------
    EventParseError
        If the name, collection, or keys are missing or malformed.
    """
    operation, name_collection = split_event_name(event_name)
    collection = raw.get("collection") or name_collection
    if not collection:
        raise EventParseError(f"No collection in {event_name!r} notification")

    keys = raw.get("keys")
    if keys is None:
        keys = raw.get("key")
    if keys is None and operation is Operation.DELETE:
        # delete notifications sometimes carry the keys as the payload
        keys = raw.get("payload")

    try:
        return MutationEvent(
            operation=operation,
            collection=collection,
            affected_keys=keys,
            payload=raw.get("payload"),
            hinted_actor=_hinted_user(raw),
        )
    except ValidationError as exc:
        raise EventParseError(
            f"Malformed {event_name!r} notification for {collection!r}: {exc}"
        ) from exc
