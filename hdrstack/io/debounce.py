"""Suppresses bursts of repeated change notifications for the same file."""

import logging
import os
import threading
from pathlib import Path
from typing import Dict

from hdrstack.locks import guarded
from hdrstack.models import PathLike

log = logging.getLogger(__name__)

# Fixed; repeated events for one path inside this many seconds are dropped.
DEBOUNCE_WINDOW = 0.5

IMAGE_EXTENSIONS = {"png", "jpg", "jpeg"}


def is_image_path(path: PathLike) -> bool:
    """True if the path has a png/jpg/jpeg extension, in any case."""
    suffix = Path(path).suffix
    if not suffix:
        return False
    return suffix[1:].lower() in IMAGE_EXTENSIONS


def normalize_path(path: PathLike) -> Path:
    return Path(os.path.normpath(os.fspath(path)))


class DebounceFilter:
    """Tracks when each path was last let through.

    Entries are overwritten but never evicted, so the table grows with the
    number of distinct paths seen, not with event volume.
    """

    def __init__(self):
        self._last_accepted: Dict[Path, float] = {}
        self._lock = threading.Lock()

    def accept(self, path: PathLike, now: float) -> bool:
        """Returns True and records `now` if the path is outside its window."""
        key = normalize_path(path)
        with guarded(self._lock, "debounce table"):
            last = self._last_accepted.get(key)
            if last is not None and now - last < DEBOUNCE_WINDOW:
                return False
            self._last_accepted[key] = now
            return True

    def __len__(self) -> int:
        with guarded(self._lock, "debounce table"):
            return len(self._last_accepted)
