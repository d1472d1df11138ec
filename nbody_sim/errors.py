"""
Fatal startup errors for the N-body simulator.

Both kinds are raised before the time-stepping loop begins. Once a run is
in progress nothing can fail: the softened force law is total.
"""

from __future__ import annotations


class NBodyError(Exception):
    """Base class for simulator errors."""

    exit_code: int = 1


class AllocationError(NBodyError):
    """Backing arrays for the particle state could not be created."""

    exit_code = 3


class InitializationError(NBodyError):
    """The random fill of the initial conditions failed."""

    exit_code = 4


class ConfigError(NBodyError):
    """The parameter file could not be read or parsed."""

    exit_code = 5
