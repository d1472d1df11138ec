"""
Command-line entry point.

With no arguments this runs the built-in problem (20000 particles,
10 steps) and prints the centre of mass after every step.

Usage:
    python -m nbody_sim [--particles 2000] [--steps 10] [--workers 8]
"""

from __future__ import annotations

import argparse
import sys

from nbody_sim.core.sim import NBodySim, RunReport, StepReport
from nbody_sim.errors import AllocationError, ConfigError, InitializationError
from nbody_sim.params import SimParams
from nbody_sim.utils.export import export_particles_csv


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Brute-force gravitational N-body simulation")
    parser.add_argument("--config", help="JSON parameter file")
    parser.add_argument("--particles", "-n", type=int, help="Number of particles")
    parser.add_argument("--steps", "-s", type=int, help="Number of timesteps")
    parser.add_argument("--seed", type=int, help="Random seed for the initial conditions")
    parser.add_argument("--workers", "-w", type=int, help="Worker threads (0 = one per CPU)")
    parser.add_argument("--backend", choices=["numpy", "python"], help="Force kernel")
    parser.add_argument("--dump", help="Write the final particle state to this CSV file")
    parser.add_argument("--quiet", "-q", action="store_true", help="Skip the per-step lines")
    return parser


def params_from_args(args: argparse.Namespace) -> SimParams:
    if args.config:
        try:
            params = SimParams.load(args.config)
        except (OSError, ValueError, TypeError) as exc:
            raise ConfigError(f"cannot load {args.config}: {exc}") from exc
    else:
        params = SimParams()
    if args.particles is not None:
        params.particle_count = args.particles
    if args.steps is not None:
        params.steps = args.steps
    if args.seed is not None:
        params.seed = args.seed
    if args.workers is not None:
        params.workers = args.workers
    if args.backend is not None:
        params.force_backend = args.backend
    if args.dump is not None:
        params.dump_path = args.dump
    if args.quiet:
        params.quiet = True
    return params.clamp()


def print_step(report: StepReport) -> None:
    cx, cy, cz = report.com
    print(f"End of timestep {report.step}, centre of mass = ({cx:.3f},{cy:.3f},{cz:.3f})")


def print_summary(report: RunReport) -> None:
    cx, cy, cz = report.com
    print(
        f"Time to init+solve {report.particle_count} molecules for {report.steps} timesteps "
        f"is {report.elapsed:g} seconds"
    )
    print(f"Centre of mass = ({cx:.5f},{cy:.5f},{cz:.5f})")


def run(params: SimParams) -> int:
    for warning in params.validate():
        print(f"[params] {warning}", file=sys.stderr)

    print(f"Initializing for {params.particle_count} particles in x,y,z space...", end="", flush=True)
    with NBodySim(params) as sim:
        try:
            sim.allocate()
        except AllocationError as exc:
            print(f"\n ERROR in allocation - aborting: {exc}", file=sys.stderr)
            return exc.exit_code
        print("  (allocated)  ", end="", flush=True)

        try:
            initial = sim.initialize()
        except InitializationError as exc:
            print(f"\n ERROR during init - aborting: {exc}", file=sys.stderr)
            return exc.exit_code
        print("  INIT COMPLETE")

        cx, cy, cz = initial.com
        print(f"At t=0, centre of mass = ({cx:g},{cy:g},{cz:g})")
        print(f"Now to integrate for {params.steps} timesteps")

        report = sim.run(None if params.quiet else print_step)
        print_summary(report)

        if params.dump_path:
            stats = export_particles_csv(sim.state, params.dump_path, step=report.steps)
            print(f"[dump] wrote {stats.particle_count} particles to {stats.file_path}", file=sys.stderr)

    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        params = params_from_args(args)
    except ConfigError as exc:
        print(f"[params] {exc}", file=sys.stderr)
        return exc.exit_code
    return run(params)


if __name__ == "__main__":
    sys.exit(main())
