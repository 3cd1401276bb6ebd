"""``recordbus status`` — show configuration and check external services.

Reports the loaded configuration and whether the MQTT broker and the
Directus record store are reachable.  The bridge still runs when Directus
is not configured; creator lookups are then unavailable and every message
falls back to the acting user.
"""

from __future__ import annotations

import socket

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from recordbus.config import BridgeConfig

console = Console()


def _check_broker(config: BridgeConfig) -> tuple[bool, str]:
    """Open and close a TCP connection to the broker."""
    address = f"{config.broker_host}:{config.broker_port}"
    try:
        with socket.create_connection(
            (config.broker_host, config.broker_port), timeout=3
        ):
            return True, f"{address} reachable"
    except OSError as exc:
        return False, f"{address} unreachable ({exc})"


def _check_directus(config: BridgeConfig) -> tuple[bool, str]:
    """Ping the Directus server if one is configured."""
    if not config.directus_url:
        return False, "not configured (creator lookups disabled)"

    from recordbus.bridge.directus import DirectusRecordLookup

    lookup = DirectusRecordLookup.from_config(config)
    try:
        if lookup.ping():
            return True, f"{config.directus_url} reachable"
        return False, f"{config.directus_url} did not answer /server/ping"
    finally:
        lookup.close()


def status_cmd() -> None:
    """Show the bridge configuration and check broker / Directus reachability."""
    config = BridgeConfig()

    settings = Table(show_header=False, box=None)
    settings.add_column("Setting", style="cyan")
    settings.add_column("Value")
    settings.add_row("Environment", config.environment)
    settings.add_row("Broker", config.broker_url)
    settings.add_row("Topic prefix", config.topic_prefix)
    settings.add_row("Collections", ", ".join(config.collections) or "[red]none[/red]")
    settings.add_row("Creator field", config.creator_field)
    settings.add_row("Lookup delay", f"{config.lookup_delay_seconds:.3f}s")
    settings.add_row("QoS", str(config.mqtt_qos))

    checks = [
        ("MQTT broker", *_check_broker(config)),
        ("Directus", *_check_directus(config)),
    ]
    health = Table(show_header=True, header_style="bold cyan", expand=True)
    health.add_column("Component", min_width=16)
    health.add_column("Status", width=10, justify="center")
    health.add_column("Details")
    for name, ok, detail in checks:
        status = "[green]OK[/green]" if ok else "[yellow]MISSING[/yellow]"
        health.add_row(name, status, detail)

    border_style = "green" if all(ok for _, ok, _ in checks) else "yellow"
    console.print()
    console.print(Panel(settings, title="[bold]Configuration[/bold]", padding=(1, 2)))
    console.print(
        Panel(
            health,
            title="[bold]Health Check[/bold]",
            border_style=border_style,
            padding=(1, 2),
        )
    )
    console.print()
