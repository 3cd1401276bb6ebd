"""Main Typer application — imports and registers all CLI commands.

Entry point: ``recordbus`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from recordbus.cli.commands.replay import replay_cmd
from recordbus.cli.commands.status import status_cmd
from recordbus.cli.commands.topic import topic_cmd
from recordbus.config import BridgeConfig

app = typer.Typer(
    name="recordbus",
    help="Recordbus: record-store mutation hooks bridged to MQTT.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="topic", help="Print the topic for a collection/actor/operation.")(topic_cmd)
app.command(name="replay", help="Replay recorded hook notifications through the bridge.")(replay_cmd)
app.command(name="status", help="Show configuration and check broker / Directus.")(status_cmd)


@app.callback()
def configure_logging(
    log_level: str = typer.Option(
        None, "--log-level", "-l", help="Override the configured log level."
    ),
) -> None:
    """Configure root logging before any command runs."""
    level = (log_level or BridgeConfig().log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
