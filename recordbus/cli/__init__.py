"""Recordbus CLI — Typer-based command-line interface.

Provides the ``recordbus`` command with subcommands for previewing
topics, replaying recorded hook notifications through the bridge, and
checking broker and record-store connectivity.

All output uses Rich for formatted terminal display.
"""
