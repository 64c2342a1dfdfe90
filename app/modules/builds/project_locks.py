"""Thread-safe registry of project_id -> lock serializing builds and deploys of one project."""
import threading
import weakref
import logging
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)
_lock = threading.Lock()
# Entries drop out once nothing references the lock any more
_registry: "weakref.WeakValueDictionary[str, threading.RLock]" = weakref.WeakValueDictionary()


def get_lock(project_id: str) -> threading.RLock:
    with _lock:
        lock = _registry.get(project_id)
        if lock is None:
            lock = threading.RLock()
            _registry[project_id] = lock
        return lock


@contextmanager
def hold(project_id: str) -> Iterator[None]:
    """Hold the project's lock for the duration of the block; re-entrant within one thread."""
    lock = get_lock(project_id)
    if not lock.acquire(blocking=False):
        logger.info(f"Waiting for in-flight build of project {project_id}")
        lock.acquire()
    try:
        yield
    finally:
        lock.release()
