from __future__ import annotations

import threading
import time

import pytest

from transaction_ingest.pmap import chunked, p_map


def test_p_map_preserves_order_and_bounds_concurrency():
    active = 0
    peak = 0
    lock = threading.Lock()

    def work(x: int) -> int:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.01 * (5 - x % 5))
        with lock:
            active -= 1
        return x * 2

    assert p_map(range(12), work, concurrency=3) == [x * 2 for x in range(12)]
    assert peak <= 3


def test_p_map_fail_fast_propagates_original_error():
    def work(x: int) -> int:
        if x == 2:
            raise KeyError("boom")
        return x

    with pytest.raises(KeyError):
        p_map(range(5), work, concurrency=2)


def test_p_map_collects_errors_when_not_failing_fast():
    def work(x: int) -> int:
        if x % 2:
            raise ValueError(str(x))
        return x

    with pytest.raises(ExceptionGroup) as excinfo:
        p_map(range(6), work, concurrency=2, stop_on_error=False)
    assert sorted(str(e) for e in excinfo.value.exceptions) == ["1", "3", "5"]


def test_p_map_rejects_bad_concurrency():
    with pytest.raises(ValueError):
        p_map([1], lambda x: x, concurrency=0)


def test_chunked_splits_into_fixed_size_slices():
    assert [list(c) for c in chunked(list(range(25)), 10)] == [
        list(range(10)),
        list(range(10, 20)),
        list(range(20, 25)),
    ]
    assert list(chunked([], 3)) == []
