"""Watch command - report bans and pardons as they happen."""

from __future__ import annotations

import time
from datetime import datetime, timezone

from rich.console import Console

from ..config import WatchConfig
from ..watcher import ChangeWatcher


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def format_ban_report(target: str, issuer: str, reason: str, when: str | None = None) -> str:
    """Plain-text ban report, as it would be posted to staff."""
    return f'User {target} was banned on {when or _now()} with reason "{reason}".\nBan issued by {issuer}'


def format_pardon_report(target: str, issuer: str, when: str | None = None) -> str:
    """Plain-text pardon report."""
    return f"User {target} was pardoned on {when or _now()}.\nPardon issued by {issuer}"


def run_watch(config: WatchConfig, *, console: Console | None = None) -> int:
    """
    Watch the configured file and print a report for each ban and pardon.

    Blocks until interrupted (Ctrl+C) or until the watcher stops on its own
    after an I/O failure. Returns the number of reports printed.
    """
    console = console or Console(stderr=True)

    console.print(f"[bold]Watching[/bold] {config.target}")
    console.print(f"  Mode: {config.mode.value}")
    console.print(f"  Notifications: {'polling' if config.polling else 'native'}")
    console.print()
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    report_count = 0

    def on_ban(target: str, issuer: str, reason: str) -> None:
        nonlocal report_count
        report_count += 1
        console.print("[bold red]Ban Report[/bold red]")
        console.print(format_ban_report(target, issuer, reason), highlight=False, markup=False)
        console.print()

    def on_pardon(target: str, issuer: str) -> None:
        nonlocal report_count
        report_count += 1
        console.print("[bold yellow]Pardon Report[/bold yellow]")
        console.print(format_pardon_report(target, issuer), highlight=False, markup=False)
        console.print()

    watcher = ChangeWatcher(
        config.directory,
        config.file_name,
        config.mode,
        on_ban,
        on_pardon,
        user_cache_name=config.user_cache,
        polling=config.polling,
        poll_interval=config.poll_interval,
    )
    watcher.start()
    try:
        while watcher.is_running():
            time.sleep(0.5)
        console.print("[red]Watcher stopped unexpectedly, see the log for details.[/red]")
    except KeyboardInterrupt:
        console.print()
    finally:
        watcher.stop()

    console.print(f"[bold]Stopped.[/bold] Reported {report_count} changes.")
    return report_count
