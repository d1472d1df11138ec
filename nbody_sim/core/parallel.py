"""
Fork-join helpers over contiguous index ranges.

Work is split into fixed-size chunks whose boundaries depend only on the
problem size and the chunk size, never on the number of workers. Results
come back in chunk order, so reductions merged from them are reproducible.
"""

from __future__ import annotations

from concurrent.futures import Executor, wait
from typing import Callable, TypeVar

T = TypeVar("T")


def chunk_ranges(n: int, size: int) -> list[tuple[int, int]]:
    """Split ``range(n)`` into ``[(i0, i1), ...]`` blocks of at most ``size``."""
    size = max(1, int(size))
    return [(i0, min(n, i0 + size)) for i0 in range(0, n, size)]


def fork_join(
    executor: Executor | None,
    fn: Callable[[int, int], T],
    ranges: list[tuple[int, int]],
) -> list[T]:
    """
    Run ``fn(i0, i1)`` for every range and wait for all of them.

    With no executor (or a single range) the calls run inline and the first
    exception stops the remaining ranges. On the pool, exceptions propagate
    only after every task has finished; the first failing range in range
    order wins.
    """
    if executor is None or len(ranges) <= 1:
        return [fn(i0, i1) for i0, i1 in ranges]
    futures = [executor.submit(fn, i0, i1) for i0, i1 in ranges]
    wait(futures)
    return [f.result() for f in futures]
