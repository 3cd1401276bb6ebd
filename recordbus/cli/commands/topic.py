"""``recordbus topic`` — print the topic a message would be published on."""

from __future__ import annotations

import typer
from rich.console import Console

from recordbus.config import BridgeConfig
from recordbus.core.topics import build_topic
from recordbus.models.events import Operation

console = Console()


def topic_cmd(
    collection: str = typer.Argument(..., help="Collection name."),
    actor: str = typer.Argument(..., help="Resolved actor (user id or 'unknown')."),
    operation: Operation = typer.Argument(..., help="create, update or delete."),
    prefix: str = typer.Option(
        None, "--prefix", "-p", help="Topic prefix (defaults to the configured one)."
    ),
) -> None:
    """Print the topic for COLLECTION / ACTOR / OPERATION."""
    topic_prefix = prefix if prefix is not None else BridgeConfig().topic_prefix
    console.print(build_topic(topic_prefix, collection, actor, operation), highlight=False)
