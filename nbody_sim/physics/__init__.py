"""Force law, integrator and diagnostics."""

from nbody_sim.physics.diagnostics import center_of_mass, total_mass
from nbody_sim.physics.forces import GRAV_CONST, SOFTENING_FLOOR, ForceIntegrator, gravity_pair

__all__ = [
    "GRAV_CONST",
    "SOFTENING_FLOOR",
    "ForceIntegrator",
    "center_of_mass",
    "gravity_pair",
    "total_mass",
]
