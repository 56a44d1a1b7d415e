"""Named, process-wide advisory locks for job identities.

At most one run per job name executes at a time. A second trigger waits up to
``timeout`` seconds and is rejected with ``JobAlreadyRunningError`` if the
holder has not finished by then. The lock is released on completion or failure.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from .errors import JobAlreadyRunningError
from .logging_setup import get_logger

logger = get_logger("transaction_ingest.locking")

_REGISTRY_LOCK = threading.Lock()
_LOCKS: dict[str, threading.Lock] = {}


def _lock_for(name: str) -> threading.Lock:
    with _REGISTRY_LOCK:
        lock = _LOCKS.get(name)
        if lock is None:
            lock = threading.Lock()
            _LOCKS[name] = lock
        return lock


def is_locked(name: str) -> bool:
    return _lock_for(name).locked()


@contextmanager
def job_lock(name: str, timeout: float) -> Iterator[None]:
    """Hold the lock for ``name`` for the duration of the block."""

    lock = _lock_for(name)
    if not lock.acquire(timeout=max(0.0, timeout)):
        logger.warning("lock:rejected job=%s waited=%.1fs", name, timeout)
        raise JobAlreadyRunningError(
            f"job {name!r} is already running (waited {timeout:.1f}s for the lock)"
        )
    logger.debug("lock:acquired job=%s", name)
    try:
        yield
    finally:
        lock.release()
        logger.debug("lock:released job=%s", name)


__all__ = ["is_locked", "job_lock"]
