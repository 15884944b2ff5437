"""
Directory change notifications.

A notification source turns file system activity in one directory into
batches of WatchEvent. The watchdog-backed source uses the native observer
for the platform (inotify, FSEvents, ReadDirectoryChangesW, kqueue) or,
with polling=True, watchdog's PollingObserver for file systems where native
notifications are unavailable (network mounts, some containers).

Events are queued by the observer thread and consumed in batches by a
single worker. When the queue is full, further events are dropped and the
next batch starts with an OVERFLOW event.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, Protocol

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

logger = logging.getLogger(__name__)

DEFAULT_MAX_PENDING = 4096


class WatchEventKind(str, Enum):
    """Kinds of directory notifications."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    OVERFLOW = "overflow"  # events were dropped


@dataclass(frozen=True)
class WatchEvent:
    """One notification: what happened, and to which file name in the directory."""

    kind: WatchEventKind
    name: str = ""


class NotificationSource(Protocol):
    """What the change watcher needs from a subscription."""

    def batches(self) -> Iterator[list[WatchEvent]]: ...

    def rearm(self) -> bool: ...

    def interrupt(self) -> None: ...

    def close(self) -> None: ...


class QueueSource:
    """
    In-memory notification source.

    Producers call put(); the consumer iterates batches(). interrupt()
    wakes a blocked consumer and ends the iteration.
    """

    def __init__(self, max_pending: int = DEFAULT_MAX_PENDING):
        self._queue: queue.Queue[WatchEvent | None] = queue.Queue(maxsize=max_pending)
        self._overflowed = threading.Event()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def put(self, event: WatchEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            self._overflowed.set()

    def take(self, timeout: float | None = None) -> list[WatchEvent] | None:
        """
        Wait for the next batch.

        Returns everything queued once at least one item arrives, an empty
        list when `timeout` expires first, or None once interrupted.
        """
        if self._closed.is_set():
            return None
        try:
            first = self._queue.get(timeout=timeout)
        except queue.Empty:
            return []

        batch = [first] if first is not None else []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is not None:
                batch.append(item)

        if self._closed.is_set():
            return None
        if self._overflowed.is_set():
            self._overflowed.clear()
            batch.insert(0, WatchEvent(WatchEventKind.OVERFLOW))
        return batch

    def batches(self) -> Iterator[list[WatchEvent]]:
        """Yield non-empty batches until interrupted."""
        while True:
            batch = self.take()
            if batch is None:
                return
            if batch:
                yield batch

    def rearm(self) -> bool:
        return not self._closed.is_set()

    def interrupt(self) -> None:
        self._closed.set()
        try:
            self._queue.put_nowait(None)
        except queue.Full:
            pass  # consumer is not blocked while items are pending

    def close(self) -> None:
        self.interrupt()


class _DirectoryEventHandler(FileSystemEventHandler):
    """Translate watchdog events into WatchEvent for the owning source."""

    def __init__(self, source: QueueSource):
        super().__init__()
        self.source = source

    def _put(self, kind: WatchEventKind, path: str | bytes) -> None:
        self.source.put(WatchEvent(kind, Path(os.fsdecode(path)).name))

    def on_created(self, event: FileCreatedEvent | DirCreatedEvent) -> None:
        if not event.is_directory:
            self._put(WatchEventKind.CREATED, event.src_path)

    def on_modified(self, event: FileModifiedEvent | DirModifiedEvent) -> None:
        if not event.is_directory:
            self._put(WatchEventKind.MODIFIED, event.src_path)

    def on_deleted(self, event: FileDeletedEvent | DirDeletedEvent) -> None:
        if not event.is_directory:
            self._put(WatchEventKind.DELETED, event.src_path)

    def on_moved(self, event: FileMovedEvent | DirMovedEvent) -> None:
        # A rename within the directory is a delete of the old name and a
        # create of the new one (log rotation renames latest.log away).
        if event.is_directory:
            return
        self._put(WatchEventKind.DELETED, event.src_path)
        self._put(WatchEventKind.CREATED, event.dest_path)


class WatchdogSource(QueueSource):
    """Notification source backed by a watchdog observer on one directory."""

    def __init__(
        self,
        directory: Path,
        *,
        polling: bool = False,
        poll_interval: float = 1.0,
        max_pending: int = DEFAULT_MAX_PENDING,
    ):
        super().__init__(max_pending=max_pending)
        self.directory = Path(directory)
        self.polling = polling
        self._handler = _DirectoryEventHandler(self)
        if polling:
            self._observer = PollingObserver(timeout=poll_interval)
        else:
            self._observer = Observer()
        self._watch = None

    def start(self) -> None:
        if not self.directory.is_dir():
            raise FileNotFoundError(f"Not a directory: {self.directory}")
        self._watch = self._observer.schedule(self._handler, str(self.directory), recursive=False)
        self._observer.start()
        logger.debug(f"Subscribed to {self.directory} ({type(self._observer).__name__})")

    def rearm(self) -> bool:
        """
        Make sure the subscription is still live, renewing it if its emitter died.

        Returns False if the subscription could not be renewed. A dead
        observer thread cannot be restarted, so the source is closed and
        batches() ends.
        """
        if self.closed:
            return True
        if not self._observer.is_alive():
            logger.error(f"Observer for {self.directory} is no longer running, closing the subscription")
            self.close()
            return False

        emitters = list(self._observer.emitters)
        if emitters and all(e.is_alive() for e in emitters):
            return True

        if self._watch is not None:
            try:
                self._observer.unschedule(self._watch)
            except KeyError:
                pass
        try:
            self._watch = self._observer.schedule(self._handler, str(self.directory), recursive=False)
        except OSError as e:
            logger.debug(f"Could not renew watch on {self.directory}: {e}")
            self._watch = None
            return False
        logger.info(f"Renewed watch on {self.directory}")
        return True

    def close(self) -> None:
        super().close()
        if self._observer.is_alive():
            self._observer.stop()
            self._observer.join(timeout=5.0)
            if self._observer.is_alive():
                logger.warning("Observer thread did not terminate within timeout.")


def subscribe(
    directory: Path,
    *,
    polling: bool = False,
    poll_interval: float = 1.0,
    max_pending: int = DEFAULT_MAX_PENDING,
) -> WatchdogSource:
    """
    Start watching `directory` and return the running source.

    The caller owns the source and must close() it.
    """
    source = WatchdogSource(
        directory,
        polling=polling,
        poll_interval=poll_interval,
        max_pending=max_pending,
    )
    source.start()
    return source
