"""
Export utilities for particle state.

- Table: tab-separated listing, one record per particle
- CSV: positions, velocities and masses
- Summary: particle count, total mass, centre of mass, speeds

Usage:
    >>> from nbody_sim.utils.export import export_particles_csv
    >>> export_particles_csv(sim.state, "particles.csv")
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, TextIO

import numpy as np

from nbody_sim.physics.diagnostics import center_of_mass, total_mass

if TYPE_CHECKING:
    from nbody_sim.core.state import ParticleState


@dataclass
class ExportStats:
    """Statistics from an export operation."""
    file_path: Path
    particle_count: int
    total_mass: float
    timestamp: str


def format_particles(state: "ParticleState") -> Iterator[str]:
    """Yield a header line, then one tab-separated line per particle."""
    yield "num \t position (x,y,z) \t velocity (vx, vy, vz)\t mass "
    for i in range(len(state)):
        x, y, z = state.pos[i]
        vx, vy, vz = state.vel[i]
        yield f"{i} \t {x:f} {y:f} {z:f} \t {vx:f} {vy:f} {vz:f} \t {state.mass[i]:f} "


def write_particles(state: "ParticleState", stream: TextIO) -> int:
    """Write the tabular listing to ``stream``; returns the number of records."""
    count = 0
    for count, line in enumerate(format_particles(state)):
        stream.write(line + "\n")
    return count


def export_particles_csv(
    state: "ParticleState",
    output_path: str | Path,
    *,
    include_velocity: bool = True,
    step: int | None = None,
) -> ExportStats:
    """
    Export particle state to a CSV file.

    Args:
        state: Particle state to dump
        output_path: Path to output CSV file
        include_velocity: Include velocity columns (vx, vy, vz)
        step: Optional step number prepended to each row

    Returns:
        ExportStats with export details
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    header = ["index", "x", "y", "z", "mass"]
    if include_velocity:
        header.extend(["vx", "vy", "vz"])
    if step is not None:
        header.insert(0, "step")

    mass_total = total_mass(state.mass)
    timestamp = datetime.now().isoformat()
    with open(output_path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow([f"# N-body export - {timestamp}"])
        writer.writerow([f"# Particles: {len(state)} (total mass: {mass_total:.6f})"])
        writer.writerow(header)

        for i in range(len(state)):
            row = []
            if step is not None:
                row.append(step)
            x, y, z = state.pos[i]
            row.extend([i, f"{x:.6f}", f"{y:.6f}", f"{z:.6f}", f"{state.mass[i]:.6f}"])
            if include_velocity:
                vx, vy, vz = state.vel[i]
                row.extend([f"{vx:.6f}", f"{vy:.6f}", f"{vz:.6f}"])
            writer.writerow(row)

    return ExportStats(
        file_path=output_path,
        particle_count=len(state),
        total_mass=mass_total,
        timestamp=timestamp,
    )


def export_summary(
    state: "ParticleState",
    output_path: str | Path,
    *,
    mass_total: float | None = None,
) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if mass_total is None:
        mass_total = total_mass(state.mass)
    if len(state) and mass_total > 0.0:
        cx, cy, cz = center_of_mass(state.pos, state.mass, mass_total)
        speeds = np.linalg.norm(state.vel, axis=1)
        avg_speed = float(speeds.mean())
        max_speed = float(speeds.max())
    else:
        cx = cy = cz = 0.0
        avg_speed = max_speed = 0.0

    with open(output_path, "w") as f:
        f.write("N-body Simulation Summary\n")
        f.write(f"Generated: {datetime.now().isoformat()}\n")
        f.write("\n")
        f.write(f"Particles: {len(state)}\n")
        f.write(f"Total mass: {mass_total:.6f}\n")
        f.write("\n")
        f.write("Centre of Mass:\n")
        f.write(f"  X: {cx:.5f}\n")
        f.write(f"  Y: {cy:.5f}\n")
        f.write(f"  Z: {cz:.5f}\n")
        f.write("\n")
        f.write("Velocity Statistics:\n")
        f.write(f"  Average speed: {avg_speed:.4f}\n")
        f.write(f"  Max speed: {max_speed:.4f}\n")

    return output_path
