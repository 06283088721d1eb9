"""Command layer exposed to the application shell.

Every command returns a CommandResult instead of raising, so the shell only
ever has to render `error` strings. Decoding and merging run on a worker
pool so they never share a thread with the watcher.
"""

import dataclasses
import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Union

from watchdog.observers import Observer

from hdrstack.errors import HdrError
from hdrstack.imaging.luma import analyze
from hdrstack.imaging.merge import merge_request
from hdrstack.io.grouping import BurstGrouper
from hdrstack.io.watcher import WatchController
from hdrstack.models import BurstGroup, MergeRequest

log = logging.getLogger(__name__)

FILE_DETECTED_EVENT = "file-detected"

EventListener = Callable[[str, Any], None]


@dataclasses.dataclass
class CommandResult:
    ok: bool
    value: Any = None
    error: Optional[str] = None
    kind: Optional[str] = None

    @classmethod
    def success(cls, value: Any = None) -> "CommandResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: Exception) -> "CommandResult":
        kind = error.kind if isinstance(error, HdrError) else "InternalError"
        return cls(ok=False, error=str(error), kind=kind)

    def unwrap(self) -> Any:
        """Returns the value, or raises a RuntimeError carrying the error text."""
        if not self.ok:
            raise RuntimeError(f"{self.kind}: {self.error}")
        return self.value

    def to_dict(self) -> Dict[str, Any]:
        value = self.value
        if isinstance(value, list):
            value = [v.to_dict() if hasattr(v, "to_dict") else v for v in value]
        elif hasattr(value, "to_dict"):
            value = value.to_dict()
        return {"ok": self.ok, "value": value, "error": self.error, "kind": self.kind}


def run_command(name: str, fn: Callable[[], Any]) -> CommandResult:
    try:
        return CommandResult.success(fn())
    except HdrError as e:
        log.warning("%s failed (%s): %s", name, e.kind, e)
        return CommandResult.failure(e)
    except Exception as e:
        log.exception("%s failed unexpectedly", name)
        return CommandResult.failure(e)


class HdrService:
    """Owns the watcher, the burst grouper and the worker pool."""

    def __init__(self, max_workers: Optional[int] = None, observer_factory=Observer):
        if max_workers is None:
            max_workers = min(os.cpu_count() or 1, 4)
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="HdrWorker")
        self.grouper = BurstGrouper()
        self.watcher = WatchController(self._on_file_detected, observer_factory=observer_factory)
        self._listeners: List[EventListener] = []

    def subscribe(self, listener: EventListener):
        """Registers `listener(event_name, payload)` for asynchronous events."""
        self._listeners.append(listener)

    def _emit(self, name: str, payload: Any):
        for listener in list(self._listeners):
            try:
                listener(name, payload)
            except Exception:
                log.exception("Listener failed handling %s", name)

    def _on_file_detected(self, path: str):
        # Runs on the watcher's event pump thread
        self.grouper.add(path)
        self._emit(FILE_DETECTED_EVENT, path)

    # Watcher commands

    def watcher_set_folder(self, folder: str) -> CommandResult:
        return run_command("watcher_set_folder", lambda: self.watcher.set_folder(folder))

    def watcher_start(self) -> CommandResult:
        return run_command("watcher_start", self.watcher.start)

    def watcher_stop(self) -> CommandResult:
        return run_command("watcher_stop", self.watcher.stop)

    def watcher_is_running(self) -> CommandResult:
        return run_command("watcher_is_running", self.watcher.is_running)

    def burst_groups(self) -> List[BurstGroup]:
        return self.grouper.groups()

    # Imaging commands

    def submit_analyze(self, paths: List[str]) -> "Future[CommandResult]":
        paths = [str(p) for p in paths]
        return self.executor.submit(run_command, "analyze_images", lambda: analyze(paths))

    def analyze_images(self, paths: List[str]) -> CommandResult:
        return self.submit_analyze(paths).result()

    def submit_merge(self, request: Union[MergeRequest, Dict[str, Any]]) -> "Future[CommandResult]":
        if isinstance(request, dict):
            request = MergeRequest.from_dict(request)
        return self.executor.submit(run_command, "merge_hdr", lambda: merge_request(request))

    def merge_hdr(self, request: Union[MergeRequest, Dict[str, Any]]) -> CommandResult:
        return self.submit_merge(request).result()

    def shutdown(self):
        self.watcher_stop()
        self.executor.shutdown(wait=True)
        log.info("Service shut down")
