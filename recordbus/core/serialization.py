"""Canonical JSON encoding for message bodies.

Message bodies are deterministic so identical messages produce identical
bytes on the wire:
- sorted keys
- no whitespace separators (",", ":")
- non-ASCII characters kept as-is
- UTF-8 encoding
"""

from __future__ import annotations

import json
from typing import Any

from recordbus.models.events import EnrichedMessage


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def encode_message(message: EnrichedMessage) -> str:
    """Serialize an enriched message to its UTF-8 JSON wire body."""
    return canonical_json_bytes(message.to_wire()).decode("utf-8")
