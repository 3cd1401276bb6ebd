"""``recordbus replay`` — push recorded hook notifications through the bridge.

Input is JSON lines, one notification per line, each carrying its hook
event name alongside the host payload::

    {"event": "items.update.categories", "keys": [3, 4], "payload": {...},
     "accountability": {"user": "u0"}}

Malformed lines are reported and skipped.  Events are dispatched in file
order on the calling thread, and a per-key outcome table is printed.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Iterator
from typing import Any, TextIO

import typer
from rich.console import Console
from rich.table import Table

from recordbus.bridge.directus import EventParseError, parse_hook_event
from recordbus.config import BridgeConfig
from recordbus.core.service import BridgeService
from recordbus.models.events import MutationEvent
from recordbus.models.resolution import DispatchReport, KeyState

console = Console()


def read_notifications(stream: TextIO) -> Iterator[tuple[int, MutationEvent | str]]:
    """Yield ``(line_no, event)`` or ``(line_no, error)`` for each non-blank line."""
    for line_no, line in enumerate(stream, start=1):
        text = line.strip()
        if not text:
            continue
        try:
            raw: Any = json.loads(text)
        except json.JSONDecodeError as exc:
            yield line_no, f"invalid JSON: {exc.msg}"
            continue
        if not isinstance(raw, dict) or not isinstance(raw.get("event"), str):
            yield line_no, "expected an object with an 'event' name"
            continue
        try:
            yield line_no, parse_hook_event(raw["event"], raw)
        except EventParseError as exc:
            yield line_no, str(exc)


def _render(reports: list[DispatchReport]) -> Table:
    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Key")
    table.add_column("Topic")
    table.add_column("Actor source", justify="center")
    table.add_column("Lookup", justify="center")
    table.add_column("State", justify="center")

    for report in reports:
        if report.ignored:
            table.add_row(
                "-",
                f"[dim]{report.collection} ({report.operation.value})[/dim]",
                "-",
                "-",
                "[dim]ignored[/dim]",
            )
            continue
        for outcome in report.outcomes:
            state = (
                "[green]published[/green]"
                if outcome.state is KeyState.PUBLISHED
                else "[red]dropped[/red]"
            )
            table.add_row(
                str(outcome.key),
                outcome.topic,
                outcome.source.value,
                outcome.lookup.value,
                state,
            )
    return table


def replay_cmd(
    source: str = typer.Argument(
        "-", help="JSON-lines file of hook notifications ('-' for stdin)."
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Record messages in memory instead of publishing to the broker.",
    ),
    show_bodies: bool = typer.Option(
        False, "--bodies", help="Print each message body (dry-run only)."
    ),
) -> None:
    """Replay hook notifications through the bridge and report per-key outcomes."""
    try:
        stream = sys.stdin if source == "-" else open(source, encoding="utf-8")
    except OSError as exc:
        console.print(f"[red]Cannot read {source}:[/red] {exc.strerror or exc}")
        raise typer.Exit(code=2) from exc

    reports: list[DispatchReport] = []
    skipped = 0
    try:
        config = BridgeConfig()

        if dry_run:
            from recordbus.bridge.directus import DirectusRecordLookup
            from recordbus.bridge.memory import MemoryBusClient

            memory = MemoryBusClient()
            lookup = DirectusRecordLookup.from_config(config) if config.directus_url else None
            service = BridgeService(memory, config, lookup=lookup)
        else:
            memory = None
            service = BridgeService.from_config(config)

        with service:
            for line_no, item in read_notifications(stream):
                if isinstance(item, str):
                    skipped += 1
                    console.print(f"[yellow]line {line_no}:[/yellow] {item}")
                    continue
                reports.append(service.handle(item))
    finally:
        if stream is not sys.stdin:
            stream.close()

    console.print(_render(reports))
    published = sum(r.published_count for r in reports)
    dropped = sum(r.dropped_count for r in reports)
    ignored = sum(1 for r in reports if r.ignored)
    console.print(
        f"[bold]{len(reports)}[/bold] events: {published} published, "
        f"{dropped} dropped, {ignored} ignored, {skipped} skipped lines"
    )

    if memory is not None and show_bodies:
        for topic, body in memory.published:
            console.print(f"[cyan]{topic}[/cyan] {body}", highlight=False)

    if dropped:
        raise typer.Exit(code=1)
