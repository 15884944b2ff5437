"""CLI entrypoint for banwatch."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # watchdog is chatty at DEBUG
    logging.getLogger("watchdog").setLevel(logging.INFO)


@click.group()
@click.version_option(__version__, prog_name="banwatch")
@click.option("--verbose", "-v", is_flag=True, help="Log debug detail")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """banwatch - report Minecraft bans and pardons as they happen.

    Follows the server's latest.log, or diffs banned-players.json on every
    rewrite, and reports each ban and pardon.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _setup_logging(verbose)


@cli.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to banwatch.toml (defaults to ./banwatch.toml if present)",
)
@click.option(
    "--dir",
    "directory",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Directory holding the watched file",
)
@click.option(
    "--mode",
    type=click.Choice(["log", "snapshot"]),
    default=None,
    help="log: follow latest.log; snapshot: diff banned-players.json",
)
@click.option("--file", "file_name", type=str, default=None, help="Name of the watched file")
@click.option(
    "--polling/--native",
    default=None,
    help="Poll the directory instead of using native notifications",
)
def watch(
    config_path: Path | None,
    directory: Path | None,
    mode: str | None,
    file_name: str | None,
    polling: bool | None,
) -> None:
    """Watch for bans and pardons until interrupted (Ctrl+C).

    Examples:

        banwatch watch --dir ./logs

        banwatch watch --dir . --mode snapshot --polling
    """
    from .commands.watch_cmd import run_watch
    from .config import load_config

    try:
        config = load_config(config_path).with_overrides(
            directory=directory,
            mode=mode,
            file_name=file_name,
            polling=polling,
        )
        run_watch(config)
    except (OSError, ValueError) as e:
        raise click.ClickException(str(e)) from e


@cli.command()
@click.argument("log_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "output_json", is_flag=True, help="Output events as JSON lines")
def scan(log_file: Path, output_json: bool) -> None:
    """Find bans and pardons in an existing log file.

    Exits non-zero when nothing was found.
    """
    from .commands.scan_cmd import run_scan

    try:
        count = run_scan(log_file, format="json" if output_json else "text")
    except OSError as e:
        raise click.ClickException(str(e)) from e
    sys.exit(0 if count > 0 else 1)


@cli.command()
@click.argument("old", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("new", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--user-cache",
    "user_cache_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="usercache.json used to name pardoned entries that lack a name",
)
@click.option("--json", "output_json", is_flag=True, help="Output the diff as JSON")
def diff(old: Path, new: Path, user_cache_path: Path | None, output_json: bool) -> None:
    """Compare two banned-players.json files.

    Exits with 1 when the files differ, like diff(1).
    """
    from .commands.diff_cmd import run_diff

    try:
        changed = run_diff(
            old,
            new,
            user_cache_path=user_cache_path,
            format="json" if output_json else "text",
        )
    except (OSError, ValueError) as e:
        raise click.ClickException(str(e)) from e
    sys.exit(1 if changed else 0)


@cli.command()
@click.argument("ban_list", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "output_json", is_flag=True, help="Output entries as JSON")
def bans(ban_list: Path, output_json: bool) -> None:
    """List the entries of a banned-players.json file."""
    from .commands.diff_cmd import run_bans

    try:
        run_bans(ban_list, format="json" if output_json else "text")
    except (OSError, ValueError) as e:
        raise click.ClickException(str(e)) from e


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
