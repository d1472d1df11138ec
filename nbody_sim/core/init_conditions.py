"""
Initial condition generator for the N-body simulation.

Every particle consumes seven uniform draws from a single random stream,
in the order ``x, y, z, vx, vy, vz, mass``. The loop is sequential on
purpose: reordering or splitting the draws changes every trajectory.
"""

from __future__ import annotations

import math
import random
from typing import Protocol

from nbody_sim.core.state import ParticleState
from nbody_sim.errors import InitializationError

MIN_POS = -50.0
POS_SPAN = 100.0
MAX_VEL = 5.0
MIN_MASS = 0.1
MASS_SPAN = 10.0
DRAWS_PER_PARTICLE = 7


class UniformSource(Protocol):
    def random(self) -> float: ...


def make_rng(seed: int) -> random.Random:
    return random.Random(seed)


def initialize_uniform(state: ParticleState, rng: UniformSource) -> ParticleState:
    """
    Fill ``state`` in place with pseudo-random initial conditions.

    Ranges:
        x, y in [-50, 50), z in [0, 100),
        vx, vy, vz in [-5, 5), mass in [0.1, 10.1)

    Args:
        state: Preallocated particle storage
        rng: Any object with a ``random()`` method returning floats in [0, 1)

    Returns:
        The same ``state`` object

    Raises:
        InitializationError: if the source fails or yields a draw outside [0, 1)
    """
    pos = state.pos
    vel = state.vel
    mass = state.mass

    def draw() -> float:
        try:
            u = float(rng.random())
        except Exception as exc:
            raise InitializationError(f"random source failed: {exc}") from exc
        if not (math.isfinite(u) and 0.0 <= u < 1.0):
            raise InitializationError(f"random source returned {u!r}, expected a value in [0, 1)")
        return u

    for i in range(len(state)):
        pos[i, 0] = MIN_POS + POS_SPAN * draw()
        pos[i, 1] = MIN_POS + POS_SPAN * draw()
        pos[i, 2] = POS_SPAN * draw()
        vel[i, 0] = -MAX_VEL + 2.0 * MAX_VEL * draw()
        vel[i, 1] = -MAX_VEL + 2.0 * MAX_VEL * draw()
        vel[i, 2] = -MAX_VEL + 2.0 * MAX_VEL * draw()
        mass[i] = MIN_MASS + MASS_SPAN * draw()

    return state
