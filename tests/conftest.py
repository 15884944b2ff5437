"""Pytest configuration and fixtures."""

from __future__ import annotations

import json
import threading
import time
from pathlib import Path
from typing import Callable

import pytest

from banwatch.records import BanRecord

PREFIX = "[03:05:13] [Server thread/INFO]: "


def log_line(text: str) -> str:
    """A server log line: timestamp/thread prefix followed by `text`."""
    return PREFIX + text


def write_ban_list(path: Path, records: list[BanRecord]) -> None:
    path.write_text(json.dumps([r.to_dict() for r in records], indent=2), encoding="utf-8")


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll `predicate` until it holds or `timeout` expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class Recorder:
    """Collects ban/pardon callbacks from the watcher thread."""

    def __init__(self):
        self.calls: list[tuple] = []
        self._lock = threading.Lock()

    def on_ban(self, target: str, issuer: str, reason: str) -> None:
        with self._lock:
            self.calls.append(("ban", target, issuer, reason))

    def on_pardon(self, target: str, issuer: str) -> None:
        with self._lock:
            self.calls.append(("pardon", target, issuer))

    def wait(self, count: int, timeout: float = 5.0) -> bool:
        return wait_for(lambda: len(self.calls) >= count, timeout)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def bob() -> BanRecord:
    return BanRecord(
        uuid="5b2c1f0e-0000-4000-8000-000000000001",
        name="bob",
        created="2018-06-01 10:00:00 +0000",
        source="Alice",
        expires="forever",
        reason="griefing",
    )


@pytest.fixture
def alice() -> BanRecord:
    return BanRecord(
        uuid="5b2c1f0e-0000-4000-8000-000000000002",
        name="alice",
        created="2018-06-02 11:30:00 +0000",
        source="Server",
        expires="forever",
        reason="AFK: griefing",
    )
