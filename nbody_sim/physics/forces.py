"""
Pairwise Newtonian gravity and the per-step velocity/position update.

Two kernels compute the velocity change of a block of particles against
the step snapshot:
- numpy: tiled vectorised summation (default)
- python: plain double loop, the reference for tests

``ForceIntegrator`` splits the particle range into row blocks and runs
them on a thread pool. Each block reads only the snapshot and its own
live rows, and writes only its own rows of velocity and position.

Example:
    >>> integrator = ForceIntegrator(tile_size=256, executor=pool)
    >>> integrator.integrate(state, buffer.capture(state))
"""

from __future__ import annotations

import math
from concurrent.futures import Executor
from typing import TYPE_CHECKING

import numpy as np

from nbody_sim.core.parallel import chunk_ranges, fork_join

if TYPE_CHECKING:
    from nbody_sim.core.state import ParticleState, Snapshot

GRAV_CONST = 0.001
SOFTENING_FLOOR = 0.01


def gravity_pair(
    xi: float, yi: float, zi: float,
    mi: float,
    xj: float, yj: float, zj: float,
    mj: float,
    g: float = GRAV_CONST,
    floor: float = SOFTENING_FLOOR,
) -> tuple[float, float, float, float, float]:
    """
    Evaluate the gravitational pull of particle j on particle i.

    Args:
        xi, yi, zi, mi: Position and mass of particle i
        xj, yj, zj, mj: Position and mass of particle j
        g: Gravitational constant
        floor: Minimum distance used in the force law

    Returns:
        (dist, force, ax, ay, az): clamped distance, force magnitude
        ``g*mi*mj/dist²`` and the acceleration on i
    """
    dx = xj - xi
    dy = yj - yi
    dz = zj - zi
    r = math.sqrt(dx*dx + dy*dy + dz*dz)
    d = r if r > floor else floor
    f = g * mi * mj / (d*d)
    return d, f, (f/mi) * dx / d, (f/mi) * dy / d, (f/mi) * dz / d


def velocity_delta_python(
    snap_pos: np.ndarray,
    snap_mass: np.ndarray,
    pos_rows: np.ndarray,
    mass_rows: np.ndarray,
    i0: int,
    g: float,
    floor: float,
) -> np.ndarray:
    """Sum accelerations on rows ``i0 .. i0+len(pos_rows)`` with a plain loop."""
    n = len(snap_mass)
    xs = snap_pos[:, 0].tolist()
    ys = snap_pos[:, 1].tolist()
    zs = snap_pos[:, 2].tolist()
    ms = snap_mass.tolist()
    out = np.zeros((len(pos_rows), 3), dtype=np.float64)

    for r in range(len(pos_rows)):
        i = i0 + r
        xi, yi, zi = (float(v) for v in pos_rows[r])
        mi = float(mass_rows[r])
        vx = vy = vz = 0.0
        for j in range(n):
            if j == i:
                continue
            dx = xs[j] - xi
            dy = ys[j] - yi
            dz = zs[j] - zi
            t = math.sqrt(dx*dx + dy*dy + dz*dz)
            d = t if t > floor else floor
            f = g * mi * ms[j] / (d*d)
            vx += (f/mi) * dx / d
            vy += (f/mi) * dy / d
            vz += (f/mi) * dz / d
        out[r, 0] = vx
        out[r, 1] = vy
        out[r, 2] = vz

    return out


def velocity_delta_numpy(
    snap_pos: np.ndarray,
    snap_mass: np.ndarray,
    pos_rows: np.ndarray,
    mass_rows: np.ndarray,
    i0: int,
    g: float,
    floor: float,
    tile: int = 256,
) -> np.ndarray:
    """Sum accelerations on a row block, tiling over the snapshot columns."""
    n = len(snap_mass)
    rows = len(pos_rows)
    i1 = i0 + rows
    acc = np.zeros((rows, 3), dtype=np.float64)
    mi = mass_rows.reshape(-1, 1)
    tile = max(1, tile)

    for j0 in range(0, n, tile):
        j1 = min(n, j0 + tile)
        d = snap_pos[None, j0:j1, :] - pos_rows[:, None, :]
        dist = np.sqrt(np.sum(d * d, axis=2))
        np.maximum(dist, floor, out=dist)

        f = g * mi * snap_mass[None, j0:j1] / (dist * dist)
        a = (f / mi)[:, :, None] * d / dist[:, :, None]

        lo = max(i0, j0)
        hi = min(i1, j1)
        if lo < hi:
            k = np.arange(lo, hi)
            a[k - i0, k - j0, :] = 0.0

        acc += np.sum(a, axis=1)

    return acc


class ForceIntegrator:
    """
    One unit-time semi-implicit Euler step over all particles.

    Attributes:
        g: Gravitational constant
        floor: Softening floor on pair distance
        tile_size: Rows per work block and columns per tile
        backend: "numpy" or "python"
        executor: Thread pool for the row blocks, or None to run inline
    """

    def __init__(
        self,
        *,
        g: float = GRAV_CONST,
        floor: float = SOFTENING_FLOOR,
        tile_size: int = 256,
        backend: str = "numpy",
        executor: Executor | None = None,
    ) -> None:
        if backend not in {"numpy", "python"}:
            raise ValueError(f"unknown force backend: {backend!r}")
        self.g = g
        self.floor = floor
        self.tile_size = max(1, tile_size)
        self.backend = backend
        self.executor = executor

    def velocity_delta(self, state: "ParticleState", snapshot: "Snapshot", i0: int, i1: int) -> np.ndarray:
        pos_rows = state.pos[i0:i1].copy()
        mass_rows = state.mass[i0:i1]
        if self.backend == "python":
            return velocity_delta_python(
                snapshot.pos, snapshot.mass, pos_rows, mass_rows, i0, self.g, self.floor,
            )
        return velocity_delta_numpy(
            snapshot.pos, snapshot.mass, pos_rows, mass_rows, i0, self.g, self.floor,
            tile=self.tile_size,
        )

    def _update_rows(self, state: "ParticleState", snapshot: "Snapshot", i0: int, i1: int) -> None:
        delta = self.velocity_delta(state, snapshot, i0, i1)
        state.vel[i0:i1] += delta
        state.pos[i0:i1] = snapshot.pos[i0:i1] + state.vel[i0:i1]

    def integrate(self, state: "ParticleState", snapshot: "Snapshot") -> None:
        """Advance ``state`` by one step using ``snapshot`` as the right-hand side."""
        n = len(state)
        if len(snapshot) != n:
            raise ValueError(f"snapshot has {len(snapshot)} particles, state has {n}")
        ranges = chunk_ranges(n, self.tile_size)
        fork_join(self.executor, lambda i0, i1: self._update_rows(state, snapshot, i0, i1), ranges)
