"""Filesystem watcher that reports new or updated images in a capture folder.

The watchdog observer thread only publishes raw events onto a bounded
queue. A single consumer thread filters them by kind and extension, runs
them through the debounce filter and hands accepted paths to the
subscriber.
"""

import logging
import os
import queue
import threading
import time
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED, FileSystemEventHandler
from watchdog.observers import Observer

from hdrstack.errors import (
    AlreadyWatchingError,
    InvalidFolderError,
    LockError,
    NotConfiguredError,
    WatchSetupError,
)
from hdrstack.io.debounce import DebounceFilter, is_image_path
from hdrstack.locks import guarded
from hdrstack.models import PathLike, RawEvent

log = logging.getLogger(__name__)

ACCEPTED_EVENT_KINDS = {EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED}
EVENT_QUEUE_SIZE = 1024

_STOP = object()


class RawEventPublisher(FileSystemEventHandler):
    """Forwards every file event from the observer thread onto a queue."""

    def __init__(self, events: "queue.Queue"):
        super().__init__()
        self.events = events

    def on_any_event(self, event):
        if event.is_directory:
            return
        self.events.put(RawEvent(kind=event.event_type, paths=(os.fsdecode(event.src_path),)))


class EventPump:
    """Turns raw events into debounced "file detected" notifications."""

    def __init__(
        self,
        events: "queue.Queue",
        debounce: DebounceFilter,
        emit: Callable[[str], None],
        clock: Callable[[], float] = time.monotonic,
    ):
        self.events = events
        self.debounce = debounce
        self.emit = emit
        self.clock = clock
        self.thread = threading.Thread(target=self._run, name="WatchEventPump", daemon=True)

    def start(self):
        self.thread.start()

    def close(self):
        """Asks the pump to exit once it has drained what is already queued."""
        self.events.put(_STOP)

    def _run(self):
        while True:
            event = self.events.get()
            if event is _STOP:
                break
            self.handle(event)
        log.debug("Event pump exited")

    def handle(self, event: RawEvent):
        if event.kind not in ACCEPTED_EVENT_KINDS:
            return

        for path in event.paths:
            if not is_image_path(path):
                continue
            try:
                accepted = self.debounce.accept(path, self.clock())
            except LockError:
                log.exception("Dropping event for %s", path)
                continue
            if not accepted:
                continue

            log.info("Detected image: %s", path)
            try:
                self.emit(str(path))
            except Exception:
                log.exception("File-detected subscriber failed for %s", path)


class _Session:
    def __init__(self, observer, pump: EventPump):
        self.observer = observer
        self.pump = pump

    def close(self):
        self.observer.stop()
        self.observer.join()
        self.pump.close()


class WatchController:
    """Owns the lifecycle of a single recursive folder watch."""

    def __init__(self, on_file_detected: Callable[[str], None], observer_factory=Observer):
        self.on_file_detected = on_file_detected
        self.observer_factory = observer_factory
        self._folder: Optional[Path] = None
        self._running = False
        self._session: Optional[_Session] = None
        self._folder_lock = threading.Lock()
        self._running_lock = threading.Lock()
        self._session_lock = threading.Lock()

    @property
    def folder(self) -> Optional[Path]:
        with guarded(self._folder_lock, "folder"):
            return self._folder

    def set_folder(self, folder: PathLike):
        """Sets the folder to watch. Takes effect on the next start()."""
        if not os.fspath(folder).strip():
            raise InvalidFolderError("Folder does not exist: (empty path)")
        path = Path(folder)
        if not path.is_dir():
            raise InvalidFolderError(f"Folder does not exist: {folder}")
        with guarded(self._folder_lock, "folder"):
            self._folder = path.absolute()
        log.info("Watch folder set to %s", path)

    def start(self):
        folder = self.folder
        if folder is None:
            raise NotConfiguredError("No watch folder has been set")

        with guarded(self._running_lock, "running flag"):
            if self._running:
                raise AlreadyWatchingError(f"Already watching {folder}")

            events = queue.Queue(maxsize=EVENT_QUEUE_SIZE)
            try:
                # Observers cannot be restarted, so each session gets a new one.
                observer = self.observer_factory()
                observer.schedule(RawEventPublisher(events), str(folder), recursive=True)
                observer.start()
            except (OSError, RuntimeError, ValueError) as e:
                raise WatchSetupError(f"Failed to watch {folder}: {e}") from e

            pump = EventPump(events, DebounceFilter(), self.on_file_detected)
            pump.start()
            with guarded(self._session_lock, "watch session"):
                self._session = _Session(observer, pump)
            self._running = True
        log.info("Started watching %s (recursively)", folder)

    def stop(self):
        """Stops watching. Safe to call when already stopped."""
        with guarded(self._running_lock, "running flag"):
            with guarded(self._session_lock, "watch session"):
                session, self._session = self._session, None
            self._running = False

        if session is not None:
            session.close()
            log.info("Stopped watching")

    def is_running(self) -> bool:
        with guarded(self._running_lock, "running flag"):
            return self._running
