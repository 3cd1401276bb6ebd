"""Topic naming for published mutation messages.

Layout: ``{prefix}/{collection}/{actor}/{operation}``
"""

from __future__ import annotations

from recordbus.models.events import UNKNOWN_ACTOR, Operation


def build_topic(
    prefix: str, collection: str, actor: str, operation: Operation | str
) -> str:
    """Return the topic for a message.

    Pure and deterministic: identical inputs always yield the identical
    topic, which consumers rely on for de-duplication.

    Examples
    --------
    >>> build_topic("directus", "boutiques", "42", "create")
    'directus/boutiques/42/create'
    """
    op = operation.value if isinstance(operation, Operation) else str(operation)
    return "/".join(
        (prefix.rstrip("/"), collection, actor or UNKNOWN_ACTOR, op)
    )
