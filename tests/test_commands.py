from __future__ import annotations

import io
import json
from pathlib import Path

from click.testing import CliRunner
from rich.console import Console

from banwatch.cli import cli
from banwatch.commands.diff_cmd import run_bans, run_diff
from banwatch.commands.scan_cmd import run_scan
from banwatch.commands.watch_cmd import format_ban_report, format_pardon_report
from banwatch.records import BanRecord

from conftest import log_line, write_ban_list


def _console() -> tuple[Console, io.StringIO]:
    buf = io.StringIO()
    return Console(file=buf, width=200, color_system=None), buf


def _write_log(path: Path) -> None:
    path.write_text(
        "\n".join(
            [
                log_line("Starting minecraft server version 1.12.2"),
                log_line("Banned bob: AFK: griefing"),
                log_line("[A: Unbanned bob]"),
                log_line("bob left the game"),
            ]
        )
        + "\n",
        encoding="utf-8",
    )


def test_format_reports() -> None:
    when = "2018-06-01T10:00:00Z"
    assert format_ban_report("bob", "A", "1d: griefing", when) == (
        'User bob was banned on 2018-06-01T10:00:00Z with reason "1d: griefing".\nBan issued by A'
    )
    assert format_pardon_report("bob", "A", when) == (
        "User bob was pardoned on 2018-06-01T10:00:00Z.\nPardon issued by A"
    )


def test_run_scan_text(tmp_path: Path) -> None:
    log_path = tmp_path / "latest.log"
    _write_log(log_path)
    console, buf = _console()
    assert run_scan(log_path, console=console) == 2
    out = buf.getvalue()
    assert "AFK: griefing" in out
    assert "1 bans, 1 pardons" in out


def test_run_scan_json(tmp_path: Path) -> None:
    log_path = tmp_path / "latest.log"
    _write_log(log_path)
    console, buf = _console()
    assert run_scan(log_path, format="json", console=console) == 2
    rows = [json.loads(line) for line in buf.getvalue().splitlines()]
    assert rows == [
        {"kind": "ban", "target": "bob", "issuer": "Server", "reason": "AFK: griefing"},
        {"kind": "pardon", "target": "bob", "issuer": "A"},
    ]


def test_run_diff(tmp_path: Path, bob: BanRecord, alice: BanRecord) -> None:
    old, new = tmp_path / "old.json", tmp_path / "new.json"
    write_ban_list(old, [bob])
    write_ban_list(new, [alice])
    console, buf = _console()
    assert run_diff(old, new, console=console) == 2
    out = buf.getvalue()
    assert "- pardoned bob" in out
    assert "+ banned alice by Server (AFK: griefing)" in out


def test_run_diff_json(tmp_path: Path, bob: BanRecord, alice: BanRecord) -> None:
    old, new = tmp_path / "old.json", tmp_path / "new.json"
    write_ban_list(old, [bob])
    write_ban_list(new, [bob, alice])
    console, buf = _console()
    assert run_diff(old, new, format="json", console=console) == 1
    assert json.loads(buf.getvalue()) == {"added": [alice.to_dict()], "removed": []}


def test_run_bans(tmp_path: Path, bob: BanRecord, alice: BanRecord) -> None:
    path = tmp_path / "banned-players.json"
    write_ban_list(path, [bob, alice])
    console, buf = _console()
    assert run_bans(path, console=console) == 2
    assert "alice" in buf.getvalue()


def test_cli_scan_exit_codes(tmp_path: Path) -> None:
    log_path = tmp_path / "latest.log"
    _write_log(log_path)
    runner = CliRunner()
    assert runner.invoke(cli, ["scan", str(log_path)]).exit_code == 0

    quiet = tmp_path / "quiet.log"
    quiet.write_text(log_line("Done (3.2s)!") + "\n", encoding="utf-8")
    assert runner.invoke(cli, ["scan", str(quiet)]).exit_code == 1


def test_cli_diff_exit_codes(tmp_path: Path, bob: BanRecord, alice: BanRecord) -> None:
    old, new = tmp_path / "old.json", tmp_path / "new.json"
    write_ban_list(old, [bob])
    write_ban_list(new, [bob])
    runner = CliRunner()
    assert runner.invoke(cli, ["diff", str(old), str(new)]).exit_code == 0

    write_ban_list(new, [alice])
    assert runner.invoke(cli, ["diff", str(old), str(new)]).exit_code == 1


def test_cli_reports_malformed_ban_list(tmp_path: Path) -> None:
    path = tmp_path / "banned-players.json"
    path.write_text("{not json", encoding="utf-8")
    result = CliRunner().invoke(cli, ["bans", str(path)])
    assert result.exit_code == 1
    assert "Error" in result.output
