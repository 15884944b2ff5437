"""
Ban list change watcher.

Watches one directory and turns changes to one file in it into ban and
pardon reports. Two modes:

- log:      tail latest.log and classify each new line
- snapshot: reload banned-players.json on every change and diff it
            against the previous contents

All work happens on one worker thread. The only blocking point is the wait
for the next notification batch; stop() interrupts that wait.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Callable

from .classifier import SERVER_ISSUER, classify_line
from .differ import diff_snapshots
from .notify import NotificationSource, WatchEvent, WatchEventKind, subscribe
from .records import (
    USER_CACHE_FILE_NAME,
    BanEvent,
    BanRecord,
    BanSnapshot,
    PardonEvent,
    UserCache,
    decode_ban_list,
    read_user_cache,
)
from .tailer import TailReader

logger = logging.getLogger(__name__)

BanCallback = Callable[[str, str, str], None]
PardonCallback = Callable[[str, str], None]
SnapshotDecoder = Callable[[bytes], BanSnapshot]
SourceFactory = Callable[[Path], NotificationSource]


class WatchMode(str, Enum):
    """How the watched file is turned into events."""

    LOG = "log"
    SNAPSHOT = "snapshot"


class ChangeWatcher:
    """
    Report bans and pardons from one watched file.

    Arguments given to the constructor can be overridden by start(). A
    watcher runs once: after stop() it cannot be started again.

    Callbacks run on the worker thread. An exception from a callback is
    logged and the watcher carries on; it is not retried.
    """

    def __init__(
        self,
        directory: Path | None = None,
        file_name: str | None = None,
        mode: WatchMode = WatchMode.LOG,
        on_ban: BanCallback | None = None,
        on_pardon: PardonCallback | None = None,
        *,
        decoder: SnapshotDecoder = decode_ban_list,
        user_cache_name: str = USER_CACHE_FILE_NAME,
        polling: bool = False,
        poll_interval: float = 1.0,
        source_factory: SourceFactory | None = None,
    ):
        self.directory = Path(directory) if directory is not None else None
        self.file_name = file_name
        self.mode = WatchMode(mode)
        self.on_ban = on_ban
        self.on_pardon = on_pardon
        self.decoder = decoder
        self.user_cache_name = user_cache_name
        self.polling = polling
        self.poll_interval = poll_interval
        self.source_factory = source_factory

        self.bans_reported = 0
        self.pardons_reported = 0

        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._source: NotificationSource | None = None
        self._reader: TailReader | None = None
        self._snapshot = BanSnapshot()

    @property
    def target(self) -> Path:
        if self.directory is None or not self.file_name:
            raise ValueError("ChangeWatcher needs a directory and a file name")
        return self.directory / self.file_name

    @property
    def snapshot(self) -> BanSnapshot:
        """Last successfully decoded ban list (snapshot mode)."""
        return self._snapshot

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(
        self,
        directory: Path | None = None,
        file_name: str | None = None,
        mode: WatchMode | None = None,
        on_ban: BanCallback | None = None,
        on_pardon: PardonCallback | None = None,
    ) -> None:
        """
        Subscribe, skip or load the current file contents, and start the worker.

        Returns once the worker is running. Raises OSError if the directory
        cannot be watched and ValueError if arguments are missing.
        """
        with self._lock:
            if self._thread is not None:
                raise RuntimeError("ChangeWatcher was already started")
            if self._stop_event.is_set():
                raise RuntimeError("ChangeWatcher was stopped and cannot be started")

            if directory is not None:
                self.directory = Path(directory)
            if file_name is not None:
                self.file_name = file_name
            if mode is not None:
                self.mode = WatchMode(mode)
            if on_ban is not None:
                self.on_ban = on_ban
            if on_pardon is not None:
                self.on_pardon = on_pardon

            target = self.target
            if self.on_ban is None or self.on_pardon is None:
                raise ValueError("ChangeWatcher needs both on_ban and on_pardon callbacks")

            source = self._subscribe()
            try:
                self._prime()
            except Exception:
                source.close()
                raise

            self._source = source
            self._thread = threading.Thread(
                target=self._run,
                name=f"banwatch-{self.file_name}",
                daemon=True,
            )
            self._thread.start()
            logger.info(f"Watching {target} ({self.mode.value} mode)")

    def stop(self, timeout: float | None = 5.0) -> None:
        """Ask the worker to finish and wait for it. Safe to call more than once."""
        self._stop_event.set()
        with self._lock:
            thread, source = self._thread, self._source
        if source is not None:
            source.interrupt()
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout)
        if thread.is_alive():
            logger.warning(f"Watcher for {self.file_name} did not stop within {timeout}s")

    def __enter__(self) -> "ChangeWatcher":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

    def _subscribe(self) -> NotificationSource:
        if self.source_factory is not None:
            return self.source_factory(self.directory)
        return subscribe(self.directory, polling=self.polling, poll_interval=self.poll_interval)

    def _prime(self) -> None:
        if self.mode == WatchMode.LOG:
            self._reader = TailReader(self.target)
            self._reader.prime()
            return

        self._reader = None
        current = self._reload()
        self._snapshot = current if current is not None else BanSnapshot()
        logger.debug(f"Initial ban list has {len(self._snapshot)} entries")

    def _run(self) -> None:
        source = self._source
        try:
            for batch in source.batches():
                if self._stop_event.is_set():
                    break
                self._process_batch(batch)
                if self._stop_event.is_set():
                    break
                if not source.rearm():
                    logger.warning(f"Could not renew the watch on {self.directory}, continuing")
        except OSError:
            logger.error(f"Watcher for {self.target} stopped on an I/O error", exc_info=True)
        finally:
            if self._reader is not None:
                self._reader.close()
            source.close()
            logger.info(
                f"Stopped watching {self.target} "
                f"({self.bans_reported} bans, {self.pardons_reported} pardons reported)"
            )

    def _process_batch(self, batch: list[WatchEvent]) -> None:
        if self.mode == WatchMode.LOG:
            self._process_log_batch(batch)
        else:
            self._process_snapshot_batch(batch)

    def _process_log_batch(self, batch: list[WatchEvent]) -> None:
        for event in batch:
            if event.kind == WatchEventKind.OVERFLOW:
                logger.warning("Notifications were dropped, resynchronizing with the log file")
            for line in self._reader.handle(event):
                parsed = classify_line(line)
                if isinstance(parsed, BanEvent):
                    self._report_ban(parsed.target, parsed.issuer, parsed.reason)
                elif isinstance(parsed, PardonEvent):
                    self._report_pardon(parsed.target, parsed.issuer)

    def _process_snapshot_batch(self, batch: list[WatchEvent]) -> None:
        changed = False
        for event in batch:
            if event.kind == WatchEventKind.OVERFLOW:
                logger.warning("Notifications were dropped, reloading the ban list")
                changed = True
            elif event.name != self.file_name:
                continue
            elif event.kind == WatchEventKind.DELETED:
                logger.debug(f"{self.target} was deleted, keeping the last ban list")
            else:
                changed = True
        if not changed:
            return

        current = self._reload()
        if current is None:
            return

        previous, self._snapshot = self._snapshot, current
        diff = diff_snapshots(previous, current)
        if not diff:
            return

        user_cache = UserCache()
        if any(not r.name for r in diff.removed):
            user_cache = self._load_user_cache()
        for record in diff.removed:
            self._report_pardon(removed_name(record, user_cache), SERVER_ISSUER)
        for record in diff.added:
            self._report_ban(record.display_name, record.source or SERVER_ISSUER, record.reason)

    def _reload(self) -> BanSnapshot | None:
        """
        Read and decode the ban list.

        Returns None when there is nothing usable to diff against this
        cycle: the file is missing, blank (caught between truncate and
        write), or the decoder rejected it. Other I/O errors propagate.
        """
        try:
            data = self.target.read_bytes()
        except FileNotFoundError:
            logger.debug(f"{self.target} is gone, nothing to reload")
            return None
        if not data.strip():
            logger.debug(f"{self.target} is empty, waiting for the rewrite to finish")
            return None
        try:
            return self.decoder(data)
        except Exception:
            logger.error(f"Skipping undecodable ban list {self.target}", exc_info=True)
            return None

    def _load_user_cache(self) -> UserCache:
        path = self.directory / self.user_cache_name
        try:
            return read_user_cache(path)
        except FileNotFoundError:
            logger.debug(f"No user cache at {path}")
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read user cache {path}: {e}")
        return UserCache()

    def _report_ban(self, target: str, issuer: str, reason: str) -> None:
        try:
            self.on_ban(target, issuer, reason)
        except Exception:
            logger.error(f"Ban callback failed for {target}", exc_info=True)
            return
        self.bans_reported += 1
        logger.info(f"Reported ban of user {target}")

    def _report_pardon(self, target: str, issuer: str) -> None:
        try:
            self.on_pardon(target, issuer)
        except Exception:
            logger.error(f"Pardon callback failed for {target}", exc_info=True)
            return
        self.pardons_reported += 1
        logger.info(f"Reported pardon of user {target}")


def removed_name(record: BanRecord, user_cache: UserCache) -> str:
    """Display name for a record that left the ban list."""
    return record.name or user_cache.name_for(record.uuid) or record.uuid
