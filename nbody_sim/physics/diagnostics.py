"""
Mass reductions used as run diagnostics.

Both reductions compute per-chunk partial sums (optionally on a thread
pool) and merge them in chunk order.
"""

from __future__ import annotations

from concurrent.futures import Executor

import numpy as np

from nbody_sim.core.parallel import chunk_ranges, fork_join

REDUCTION_CHUNK = 4096


def total_mass(
    mass: np.ndarray,
    executor: Executor | None = None,
    *,
    chunk: int = REDUCTION_CHUNK,
) -> float:
    partials = fork_join(executor, lambda i0, i1: float(np.sum(mass[i0:i1])), chunk_ranges(len(mass), chunk))
    total = 0.0
    for p in partials:
        total += p
    return total


def center_of_mass(
    pos: np.ndarray,
    mass: np.ndarray,
    total: float,
    executor: Executor | None = None,
    *,
    chunk: int = REDUCTION_CHUNK,
) -> tuple[float, float, float]:
    """
    Mass-weighted mean position ``Σ m·r / total`` in a single pass.

    Args:
        pos: ``(N, 3)`` positions
        mass: ``(N,)`` masses
        total: Precomputed total mass
        executor: Optional thread pool for the partial sums
        chunk: Rows per partial sum

    Returns:
        (cx, cy, cz)
    """
    def partial(i0: int, i1: int) -> np.ndarray:
        return np.sum(mass[i0:i1, None] * pos[i0:i1], axis=0)

    acc = np.zeros(3, dtype=np.float64)
    for p in fork_join(executor, partial, chunk_ranges(len(mass), chunk)):
        acc += p
    acc /= total
    return float(acc[0]), float(acc[1]), float(acc[2])
