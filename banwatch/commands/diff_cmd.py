"""Diff and listing commands for ban-list files."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..differ import diff_snapshots
from ..records import BanRecord, UserCache, read_ban_list, read_user_cache
from ..watcher import removed_name


def _record_table(title: str, records: list[BanRecord] | tuple[BanRecord, ...]) -> Table:
    table = Table(title=title)
    table.add_column("Name", style="bold")
    table.add_column("UUID", style="dim")
    table.add_column("Source")
    table.add_column("Created")
    table.add_column("Expires")
    table.add_column("Reason")
    for r in records:
        table.add_row(*(escape(v) for v in (r.display_name, r.uuid, r.source, r.created, r.expires, r.reason)))
    return table


def run_diff(
    old_path: Path,
    new_path: Path,
    *,
    user_cache_path: Path | None = None,
    format: str = "text",
    console: Console | None = None,
) -> int:
    """
    Compare two ban-list files.

    Returns the number of changed records (added + removed).
    """
    console = console or Console()

    diff = diff_snapshots(read_ban_list(old_path), read_ban_list(new_path))

    if format == "json":
        console.print(json.dumps(diff.to_dict()), highlight=False, markup=False, soft_wrap=True)
        return len(diff.added) + len(diff.removed)

    if not diff:
        console.print("[dim]No changes.[/dim]")
        return 0

    user_cache = read_user_cache(user_cache_path) if user_cache_path else UserCache()

    for record in diff.removed:
        console.print(f"[green]- pardoned[/green] {escape(removed_name(record, user_cache))}", highlight=False)
    for record in diff.added:
        suffix = f" ({record.reason})" if record.reason else ""
        line = f"{record.display_name} by {record.source or 'unknown'}{suffix}"
        console.print(f"[red]+ banned[/red] {escape(line)}", highlight=False)

    console.print()
    console.print(f"{len(diff.added)} added, {len(diff.removed)} removed")
    return len(diff.added) + len(diff.removed)


def run_bans(path: Path, *, format: str = "text", console: Console | None = None) -> int:
    """List the entries of a ban-list file. Returns the entry count."""
    console = console or Console()

    snapshot = read_ban_list(path)

    if format == "json":
        console.print(json.dumps(snapshot.to_list()), highlight=False, markup=False, soft_wrap=True)
        return len(snapshot)

    if not len(snapshot):
        console.print("[dim]Ban list is empty.[/dim]")
        return 0

    console.print(_record_table(f"{path.name} ({len(snapshot)} entries)", list(snapshot)))
    return len(snapshot)
