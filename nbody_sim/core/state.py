"""
Particle storage and per-step snapshots.

``ParticleState`` is the only mutable store in a run. ``SnapshotBuffer``
holds two preallocated copies of position and mass; each step the live
values are copied into the back slot, the slots are swapped, and the
front slot is handed out as a read-only ``Snapshot``.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from nbody_sim.errors import AllocationError


@dataclass(slots=True)
class ParticleState:
    """
    Columnar position, velocity and mass for N particles.

    Attributes:
        pos: ``(N, 3)`` float64 positions
        vel: ``(N, 3)`` float64 velocities
        mass: ``(N,)`` float64 masses, fixed after initialization
    """
    pos: np.ndarray
    vel: np.ndarray
    mass: np.ndarray

    @classmethod
    def allocate(cls, n: int) -> "ParticleState":
        """Create zeroed storage for ``n`` particles, or raise AllocationError."""
        if n < 0:
            raise AllocationError(f"cannot allocate storage for {n} particles")
        try:
            return cls(
                pos=np.zeros((n, 3), dtype=np.float64),
                vel=np.zeros((n, 3), dtype=np.float64),
                mass=np.zeros(n, dtype=np.float64),
            )
        except (MemoryError, ValueError) as exc:
            raise AllocationError(f"cannot allocate storage for {n} particles: {exc}") from exc

    @classmethod
    def from_arrays(cls, pos, vel, mass) -> "ParticleState":
        """Build a state from array-likes (copied), mainly for hand-built scenarios."""
        pos_arr = np.array(pos, dtype=np.float64).reshape(-1, 3)
        vel_arr = np.array(vel, dtype=np.float64).reshape(-1, 3)
        mass_arr = np.array(mass, dtype=np.float64).reshape(-1)
        if not (len(pos_arr) == len(vel_arr) == len(mass_arr)):
            raise ValueError("pos, vel and mass must describe the same number of particles")
        if len(mass_arr) == 0:
            raise ValueError("a state needs at least one particle")
        if not np.all(np.isfinite(mass_arr) & (mass_arr > 0.0)):
            raise ValueError("every mass must be finite and positive")
        return cls(pos=pos_arr, vel=vel_arr, mass=mass_arr)

    def __len__(self) -> int:
        return int(self.mass.shape[0])

    def copy(self) -> "ParticleState":
        return ParticleState(pos=self.pos.copy(), vel=self.vel.copy(), mass=self.mass.copy())


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Read-only view of position and mass at the start of a step."""
    pos: np.ndarray
    mass: np.ndarray

    def __len__(self) -> int:
        return int(self.mass.shape[0])


class SnapshotBuffer:
    """Two-slot buffer of position and mass, swapped on every capture."""

    def __init__(self, n: int) -> None:
        try:
            self._pos = [np.empty((n, 3), dtype=np.float64) for _ in range(2)]
            self._mass = [np.empty(n, dtype=np.float64) for _ in range(2)]
        except (MemoryError, ValueError) as exc:
            raise AllocationError(f"cannot allocate snapshot buffers for {n} particles: {exc}") from exc
        self._front = 0
        self.n = n

    def capture(self, state: ParticleState) -> Snapshot:
        if len(state) != self.n:
            raise ValueError(f"snapshot buffer sized for {self.n} particles, state has {len(state)}")
        back = 1 - self._front
        pos = self._pos[back]
        mass = self._mass[back]
        pos.flags.writeable = True
        mass.flags.writeable = True
        np.copyto(pos, state.pos)
        np.copyto(mass, state.mass)
        pos.flags.writeable = False
        mass.flags.writeable = False
        self._front = back
        return Snapshot(pos=pos, mass=mass)

    @property
    def current(self) -> Snapshot | None:
        """The most recent snapshot, or None before the first capture."""
        if self._pos[self._front].flags.writeable:
            return None
        return Snapshot(pos=self._pos[self._front], mass=self._mass[self._front])
