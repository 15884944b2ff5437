"""Scan command - find bans and pardons in an existing log file."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..classifier import classify_lines
from ..records import BanEvent


def run_scan(log_path: Path, *, format: str = "text", console: Console | None = None) -> int:
    """
    Classify every line of `log_path` and print the events found.

    Returns the number of events.
    """
    console = console or Console()

    with log_path.open("r", encoding="utf-8", errors="replace") as f:
        events = list(classify_lines(f))

    if format == "json":
        for event in events:
            d = {
                "kind": "ban" if isinstance(event, BanEvent) else "pardon",
                "target": event.target,
                "issuer": event.issuer,
            }
            if isinstance(event, BanEvent):
                d["reason"] = event.reason
            console.print(json.dumps(d), highlight=False, markup=False, soft_wrap=True)
        return len(events)

    if not events:
        console.print("[dim]No bans or pardons found.[/dim]")
        return 0

    table = Table(title=f"Ban list changes in {log_path.name}")
    table.add_column("Kind")
    table.add_column("Target", style="bold")
    table.add_column("Issuer")
    table.add_column("Reason")

    for event in events:
        if isinstance(event, BanEvent):
            table.add_row("[red]ban[/red]", escape(event.target), escape(event.issuer), escape(event.reason))
        else:
            table.add_row("[green]pardon[/green]", escape(event.target), escape(event.issuer), "")

    console.print(table)
    bans = sum(1 for e in events if isinstance(e, BanEvent))
    console.print(f"{bans} bans, {len(events) - bans} pardons")
    return len(events)
