from __future__ import annotations

import enum
import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable

import numpy as np

from nbody_sim.core.init_conditions import MASS_SPAN, MIN_MASS, UniformSource, initialize_uniform, make_rng
from nbody_sim.core.state import ParticleState, SnapshotBuffer
from nbody_sim.params import SimParams
from nbody_sim.physics.diagnostics import center_of_mass, total_mass
from nbody_sim.physics.forces import ForceIntegrator


class SimStatus(enum.Enum):
    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    TERMINATED = "terminated"


@dataclass(frozen=True, slots=True)
class StepReport:
    step: int
    com: tuple[float, float, float]


@dataclass(frozen=True, slots=True)
class RunReport:
    particle_count: int
    steps: int
    elapsed: float
    com: tuple[float, float, float]


class NBodySim:
    """
    Fixed-step driver: snapshot, integrate, centre of mass, repeat.

    The random source can be injected; otherwise one is seeded from
    ``params.seed``. A state built by hand can be passed as ``state`` to
    skip the random fill.
    """

    def __init__(
        self,
        params: SimParams,
        *,
        rng: UniformSource | None = None,
        state: ParticleState | None = None,
    ) -> None:
        self.params = params
        self._rng = rng if rng is not None else make_rng(params.seed)
        self._initial_state = state
        self.status = SimStatus.UNINITIALIZED
        self.state: ParticleState | None = None
        self.total_mass: float = 0.0
        self.step_index = 0

        self._allocated: ParticleState | None = None
        self._buffer: SnapshotBuffer | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._integrator: ForceIntegrator | None = None
        self._started: float | None = None

    def __enter__(self) -> "NBodySim":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def allocate(self) -> None:
        """Acquire particle and snapshot storage; raises AllocationError."""
        if self.status is not SimStatus.UNINITIALIZED:
            raise RuntimeError(f"allocate() called while {self.status.value}")
        if self._allocated is not None:
            return
        self._started = time.perf_counter()
        if self._initial_state is not None:
            state = self._initial_state
        else:
            state = ParticleState.allocate(self.params.particle_count)
        self._buffer = SnapshotBuffer(len(state))
        self._allocated = state

    def initialize(self) -> StepReport:
        """Fill the state (allocating first if needed), compute the total mass, report t=0."""
        if self.status is not SimStatus.UNINITIALIZED:
            raise RuntimeError(f"initialize() called while {self.status.value}")
        p = self.params
        self.allocate()

        state = self._allocated
        if self._initial_state is None:
            initialize_uniform(state, self._rng)
        self.state = state

        workers = p.resolved_workers()
        if workers > 1:
            self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="nbody")
        self._integrator = ForceIntegrator(
            g=p.grav_const,
            floor=p.softening_floor,
            tile_size=p.tile_size,
            backend=p.force_backend,
            executor=self._executor,
        )

        self.total_mass = total_mass(state.mass, self._executor)
        self.status = SimStatus.RUNNING
        self.step_index = 0
        return StepReport(step=0, com=self.center_of_mass())

    def center_of_mass(self) -> tuple[float, float, float]:
        if self.state is None:
            raise RuntimeError("simulation not initialized")
        return center_of_mass(self.state.pos, self.state.mass, self.total_mass, self._executor)

    def step(self) -> StepReport:
        if self.status is not SimStatus.RUNNING:
            raise RuntimeError(f"step() called while {self.status.value}")
        # The snapshot is complete before any worker is scheduled.
        snapshot = self._buffer.capture(self.state)
        self._integrator.integrate(self.state, snapshot)
        self.step_index += 1
        return StepReport(step=self.step_index, com=self.center_of_mass())

    def run(self, on_step: Callable[[StepReport], None] | None = None) -> RunReport:
        """
        Run all configured steps and terminate.

        Initializes first if needed. ``on_step`` receives each step's report;
        the t=0 report is only returned by ``initialize()``.
        """
        if self.status is SimStatus.UNINITIALIZED:
            self.initialize()
        if self.status is not SimStatus.RUNNING:
            raise RuntimeError(f"run() called while {self.status.value}")

        while self.step_index < self.params.steps:
            report = self.step()
            if on_step is not None:
                on_step(report)

        self.status = SimStatus.TERMINATED
        elapsed = time.perf_counter() - self._started
        self.close()
        return RunReport(
            particle_count=len(self.state),
            steps=self.step_index,
            elapsed=elapsed,
            com=center_of_mass(self.state.pos, self.state.mass, self.total_mass),
        )

    def validate_state(self) -> list[str]:
        issues: list[str] = []
        state = self.state
        if state is None:
            return issues

        finite = np.isfinite(state.pos).all(axis=1) & np.isfinite(state.vel).all(axis=1)
        for i in np.flatnonzero(~finite):
            issues.append(f"particle {i} has non-finite position/velocity")

        out_of_range = (state.mass < MIN_MASS) | (state.mass >= MIN_MASS + MASS_SPAN)
        for i in np.flatnonzero(out_of_range):
            issues.append(f"particle {i} mass {state.mass[i]:.6g} out of range")

        current = total_mass(state.mass)
        if not math.isclose(current, self.total_mass, rel_tol=1e-12, abs_tol=1e-12):
            issues.append(f"total mass drifted from {self.total_mass:.12g} to {current:.12g}")

        return issues
