from __future__ import annotations

import threading

import pytest

from transaction_ingest.errors import JobAlreadyRunningError
from transaction_ingest.locking import is_locked, job_lock


def test_lock_released_after_block_and_after_failure():
    with job_lock("lock-test-a", timeout=0):
        assert is_locked("lock-test-a")
    assert not is_locked("lock-test-a")

    with pytest.raises(RuntimeError):
        with job_lock("lock-test-a", timeout=0):
            raise RuntimeError("boom")
    assert not is_locked("lock-test-a")


def test_overlapping_run_rejected_after_timeout():
    holding = threading.Event()
    release = threading.Event()

    def _holder() -> None:
        with job_lock("lock-test-b", timeout=1):
            holding.set()
            release.wait(5)

    t = threading.Thread(target=_holder)
    t.start()
    try:
        assert holding.wait(5)
        with pytest.raises(JobAlreadyRunningError):
            with job_lock("lock-test-b", timeout=0.05):
                pass
    finally:
        release.set()
        t.join(5)

    with job_lock("lock-test-b", timeout=1):
        pass


def test_distinct_names_do_not_block_each_other():
    with job_lock("lock-test-c", timeout=0):
        with job_lock("lock-test-d", timeout=0):
            assert is_locked("lock-test-c") and is_locked("lock-test-d")
