"""Brute-force gravitational N-body simulator with thread-parallel force evaluation."""

from nbody_sim.core.sim import NBodySim, RunReport, SimStatus, StepReport
from nbody_sim.errors import AllocationError, InitializationError, NBodyError
from nbody_sim.params import SimParams

__all__ = [
    "AllocationError",
    "InitializationError",
    "NBodyError",
    "NBodySim",
    "RunReport",
    "SimParams",
    "SimStatus",
    "StepReport",
]
