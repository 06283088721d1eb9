"""Lock acquisition that fails loudly instead of blocking forever."""

import logging
import threading
from contextlib import contextmanager

from hdrstack.errors import LockError

log = logging.getLogger(__name__)

# Seconds to wait for a lock before treating it as wedged.
LOCK_TIMEOUT = 5.0


@contextmanager
def guarded(lock: threading.Lock, name: str = "state"):
    """Holds `lock` for the duration of the block, or raises LockError."""
    if not lock.acquire(timeout=LOCK_TIMEOUT):
        log.error("Timed out acquiring %s lock", name)
        raise LockError(f"lock error: could not acquire {name} lock")
    try:
        yield
    finally:
        lock.release()
