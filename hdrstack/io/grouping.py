"""Groups detected images into capture bursts (one bracket per group)."""

import logging
import threading
import time
import uuid
from typing import List, Optional

from hdrstack.locks import guarded
from hdrstack.models import BurstGroup, DetectedImage

log = logging.getLogger(__name__)

GROUP_WINDOW = 2 * 60.0  # seconds between consecutive shots of one burst
MAX_GROUP_IMAGES = 5


class BurstGrouper:
    def __init__(self, window: float = GROUP_WINDOW, max_images: int = MAX_GROUP_IMAGES):
        self.window = window
        self.max_images = max_images
        self._groups: List[BurstGroup] = []
        self._lock = threading.Lock()

    def add(self, path: str, detected_at: Optional[float] = None) -> Optional[BurstGroup]:
        """Files `path` into the latest burst or a new one.

        Returns the group the path landed in, or None if it was already
        grouped.
        """
        if detected_at is None:
            detected_at = time.time()

        with guarded(self._lock, "burst groups"):
            if any(path in group.paths for group in self._groups):
                return None

            image = DetectedImage(path=path, detected_at=detected_at)
            last = self._groups[-1] if self._groups else None
            if (
                last is not None
                and len(last.images) < self.max_images
                and detected_at - last.images[-1].detected_at <= self.window
            ):
                last.images.append(image)
                return last

            group = BurstGroup(id=str(uuid.uuid4()), created_at=detected_at, images=[image])
            self._groups.append(group)
            log.debug("Started burst group %s with %s", group.id, path)
            return group

    def groups(self) -> List[BurstGroup]:
        """A snapshot of the current groups."""
        with guarded(self._lock, "burst groups"):
            return [
                BurstGroup(id=g.id, created_at=g.created_at, images=list(g.images))
                for g in self._groups
            ]

    def clear(self):
        with guarded(self._lock, "burst groups"):
            self._groups.clear()
