#!/usr/bin/env python3
"""
Performance benchmark for the force integrator.

Times one integration step for different worker counts and kernels:
- numpy (tiled, thread-parallel)
- python (reference loop, small N only)

Usage:
    python -m nbody_sim.utils.benchmark [--particles 2000] [--iterations 3]
"""

from __future__ import annotations

import argparse
import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor

from nbody_sim.core.init_conditions import initialize_uniform, make_rng
from nbody_sim.core.state import ParticleState, SnapshotBuffer
from nbody_sim.physics.forces import ForceIntegrator


def generate_state(n: int, seed: int = 42) -> ParticleState:
    """Generate random particle data."""
    return initialize_uniform(ParticleState.allocate(n), make_rng(seed))


def benchmark_integrator(
    state: ParticleState,
    *,
    backend: str,
    workers: int,
    tile_size: int = 256,
    iterations: int = 3,
) -> tuple[float, float]:
    """Return mean and standard deviation of the step time in milliseconds."""
    buffer = SnapshotBuffer(len(state))
    work = state.copy()
    times = []
    with ThreadPoolExecutor(max_workers=workers) as pool:
        integrator = ForceIntegrator(
            tile_size=tile_size,
            backend=backend,
            executor=pool if workers > 1 else None,
        )
        for _ in range(iterations):
            t0 = time.perf_counter()
            integrator.integrate(work, buffer.capture(work))
            times.append(time.perf_counter() - t0)

    mean_ms = (sum(times) / len(times)) * 1000
    std_ms = (sum((t - mean_ms/1000)**2 for t in times) / len(times))**0.5 * 1000
    return mean_ms, std_ms


def run_benchmark(n_particles: int, iterations: int, worker_counts: list[int]) -> dict:
    """Run full benchmark suite."""
    print(f"\n{'='*60}")
    print(f"Benchmark: {n_particles} particles, {iterations} iterations")
    print(f"{'='*60}")

    print("Generating particles...", end=" ", flush=True)
    state = generate_state(n_particles)
    print("done")

    results = {}
    for workers in worker_counts:
        print(f"numpy, {workers} worker(s)...", end=" ", flush=True)
        mean_ms, std_ms = benchmark_integrator(state, backend="numpy", workers=workers, iterations=iterations)
        print(f"{mean_ms:.2f} ± {std_ms:.2f} ms")
        results[f"numpy_{workers}"] = mean_ms

    if n_particles <= 1000:
        print("python, 1 worker...", end=" ", flush=True)
        mean_ms, std_ms = benchmark_integrator(state, backend="python", workers=1, iterations=iterations)
        print(f"{mean_ms:.2f} ± {std_ms:.2f} ms")
        results["python_1"] = mean_ms
    else:
        print("python: skipped (too many particles)")

    print(f"\n{'='*60}")
    print("Summary:")
    base = results.get(f"numpy_{worker_counts[0]}")
    for workers in worker_counts:
        ms = results[f"numpy_{workers}"]
        speedup = base / ms if base and ms > 0 else 1.0
        print(f"  numpy x{workers}: {ms:.2f} ms ({speedup:.1f}x vs {worker_counts[0]} worker(s))")
    if "python_1" in results:
        print(f"  python x1: {results['python_1']:.2f} ms")

    return results


def main():
    parser = argparse.ArgumentParser(description="Benchmark N-body force integration")
    parser.add_argument("--particles", "-n", type=int, default=2000, help="Number of particles")
    parser.add_argument("--iterations", "-i", type=int, default=3, help="Benchmark iterations")
    parser.add_argument("--sweep", action="store_true", help="Run sweep over particle counts")
    args = parser.parse_args()

    cpus = os.cpu_count() or 1
    worker_counts = sorted({1, 2, 4, cpus} & set(range(1, cpus + 1)))

    print("N-body Force Integration Benchmark")
    print(f"Platform: {sys.platform}")
    print(f"CPUs: {cpus}")

    if args.sweep:
        for n in [500, 1000, 2000, 5000, 10000]:
            run_benchmark(n, args.iterations, worker_counts)
    else:
        run_benchmark(args.particles, args.iterations, worker_counts)


if __name__ == "__main__":
    main()
