"""A small abstraction over ThreadPoolExecutor inspired by `p-map`.

Goals
-----
- A single `p_map()` call with an iterable, a mapper, and a `concurrency` cap.
- Hide `ThreadPoolExecutor` mechanics (submission window, shutdown, cancels).
- Preserve input order while running work concurrently.

The pipeline uses it for per-record validation and for inserting independent
sub-batches in parallel. `chunked()` produces those fixed-size sub-batches.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")


def p_map(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
    stop_on_error: bool = True,
) -> list[OutT]:
    """Map ``iterable`` through ``mapper`` with a bounded concurrency limit.

    - The returned list preserves the input order.
    - When ``stop_on_error`` is True (default), the first mapper error is
      propagated and any not-yet-started work is cancelled. Work already running
      finishes; its effects are not undone.
    - When ``stop_on_error`` is False, every mapper runs and an
      ``ExceptionGroup`` of all failures is raised at the end.
    """

    if not isinstance(concurrency, int) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    # The iterable is consumed lazily; only the window is in flight.
    it = enumerate(iterable)

    results: dict[int, OutT] = {}
    errors: list[Exception] = []
    future_to_idx: dict[Future[OutT], int] = {}

    def _submit(pool: ThreadPoolExecutor) -> Future[OutT] | None:
        try:
            idx, item = next(it)
        except StopIteration:
            return None
        fut = pool.submit(mapper, item)
        future_to_idx[fut] = idx
        return fut

    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        active: set[Future[OutT]] = set()
        for _ in range(concurrency):
            fut = _submit(pool)
            if fut is None:
                break
            active.add(fut)

        while active:
            done, active = wait(active, return_when=FIRST_COMPLETED)

            for fut in done:
                idx = future_to_idx.pop(fut)
                try:
                    results[idx] = fut.result()
                except Exception as e:  # noqa: BLE001
                    if stop_on_error:
                        try:
                            pool.shutdown(wait=False, cancel_futures=True)
                        finally:
                            raise
                    errors.append(e)

            for _ in range(len(done)):
                fut = _submit(pool)
                if fut is None:
                    break
                active.add(fut)

    if errors:
        raise ExceptionGroup("p_map: one or more mapper calls failed", errors)

    return [results[i] for i in sorted(results)]


def chunked(items: Sequence[InT], size: int) -> Iterator[Sequence[InT]]:
    """Yield consecutive slices of ``items`` holding at most ``size`` elements."""

    if size < 1:
        raise ValueError("size must be a positive integer")
    for start in range(0, len(items), size):
        yield items[start : start + size]


__all__ = ["chunked", "p_map"]
