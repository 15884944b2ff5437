"""
Incremental reader for one growing log file.

The reader follows a single file through rotation. It is driven by
directory notifications rather than by polling the file itself:

- at start, existing content is skipped (only new lines are interesting)
- MODIFIED reads whatever was appended since the last read
- CREATED means a new file instance, read from offset 0
- DELETED releases the handle until the next CREATED

Offsets are byte offsets into the file, so a line is never delivered twice.
A trailing line without its newline is held back until the newline arrives.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path
from typing import BinaryIO

from .notify import WatchEvent, WatchEventKind

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024
MAX_PARTIAL_LINE = 1024 * 1024


class ReaderState(str, Enum):
    """Lifecycle of the tailed file handle."""

    CLOSED = "closed"
    OPEN_AT_END = "open_at_end"
    OPEN_READING = "open_reading"


class TailReader:
    """Deliver lines appended to `path`, surviving delete/recreate and truncation."""

    def __init__(self, path: Path, encoding: str = "utf-8"):
        self.path = Path(path)
        self.encoding = encoding
        self.state = ReaderState.CLOSED
        self.position = 0
        self._handle: BinaryIO | None = None
        self._partial = b""
        self._skip_partial = False

    @property
    def name(self) -> str:
        return self.path.name

    def prime(self) -> ReaderState:
        """
        Open the file if it exists and skip everything already in it.

        A partial last line is skipped too: its remainder will arrive with
        the next write but it belongs to content that predates the watch.
        """
        self.close()
        try:
            self._handle = self.path.open("rb")
        except FileNotFoundError:
            logger.debug(f"{self.path} does not exist yet")
            return self.state

        end = self._handle.seek(0, os.SEEK_END)
        if end > 0:
            self._handle.seek(end - 1)
            self._skip_partial = self._handle.read(1) != b"\n"
        self.position = end
        self.state = ReaderState.OPEN_AT_END
        logger.debug(f"Skipped {end} existing bytes of {self.path}")
        return self.state

    def handle(self, event: WatchEvent) -> list[str]:
        """Apply one notification and return the complete lines it made available."""
        if event.kind == WatchEventKind.OVERFLOW:
            return self.resync()
        if event.name != self.name:
            return []

        if event.kind == WatchEventKind.DELETED:
            self.close()
            return []
        if event.kind == WatchEventKind.CREATED:
            self._reopen()
            return self.read_new_lines()
        if event.kind == WatchEventKind.MODIFIED:
            return self.read_new_lines()
        return []

    def read_new_lines(self) -> list[str]:
        """Read from the current position to end of file."""
        if self._handle is None:
            return []

        size = os.fstat(self._handle.fileno()).st_size
        if size < self.position:
            logger.info(f"{self.path} was truncated, reading from the start")
            self.position = 0
            self._partial = b""
            self._skip_partial = False

        self._handle.seek(self.position)
        chunks = [self._partial]
        while True:
            chunk = self._handle.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            chunks.append(chunk)
            self.position += len(chunk)
        data = b"".join(chunks)
        self.state = ReaderState.OPEN_READING

        *complete, self._partial = data.split(b"\n")
        if complete and self._skip_partial:
            complete = complete[1:]
            self._skip_partial = False
        if len(self._partial) > MAX_PARTIAL_LINE:
            logger.debug(f"Dropping {len(self._partial)} bytes of {self.path} with no line break")
            self._partial = b""
            self._skip_partial = True

        return [raw.rstrip(b"\r").decode(self.encoding, errors="replace") for raw in complete]

    def resync(self) -> list[str]:
        """
        Reconcile with the file on disk after notifications were lost.

        Same file instance: read what was appended. Different instance:
        start over at offset 0. File gone: close.
        """
        try:
            on_disk = self.path.stat()
        except FileNotFoundError:
            if self._handle is not None:
                logger.info(f"{self.path} disappeared while notifications were lost")
            self.close()
            return []

        if self._handle is not None:
            current = os.fstat(self._handle.fileno())
            if (current.st_dev, current.st_ino) == (on_disk.st_dev, on_disk.st_ino):
                return self.read_new_lines()
            logger.info(f"{self.path} was replaced while notifications were lost")

        self._reopen()
        return self.read_new_lines()

    def _reopen(self) -> None:
        self.close()
        try:
            self._handle = self.path.open("rb")
        except FileNotFoundError:
            logger.debug(f"{self.path} vanished before it could be opened")
            return
        self.state = ReaderState.OPEN_READING

    def close(self) -> None:
        """Release the handle. Safe to call repeatedly."""
        if self._handle is not None:
            self._handle.close()
            self._handle = None
        self.state = ReaderState.CLOSED
        self.position = 0
        self._partial = b""
        self._skip_partial = False

    def __enter__(self) -> "TailReader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
