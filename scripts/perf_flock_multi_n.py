"""
Multi-N performance validation for the flock tick.

Runs the neighbour query phase and the full tick at 250, 1000, 2000, 5000
boids on each spatial index backend and reports median/p90.
Single-threaded BLAS, log-only for N>2000.
"""

# Pin threading for stable measurement
import os
os.environ.update({
    'OPENBLAS_NUM_THREADS': '1',
    'MKL_NUM_THREADS': '1',
    'NUMEXPR_NUM_THREADS': '1',
    'OMP_NUM_THREADS': '1'
})

import numpy as np
import time
import gc

from flocksim.constants import NEIGHBOR_QUERY_HALF_EXTENT
from flocksim.data_types import default_world
from flocksim.simulation import FlockSimulation
from flocksim.spatial_queries import SpatialIndexAdapter, BACKENDS


def create_test_positions(count: int, cluster_size: int = 250, spread: float = 6.0, seed: int = 42) -> np.ndarray:
    """Create clustered boid positions (flock-like density)."""
    rng = np.random.Generator(np.random.PCG64(seed))
    n_clusters = max(1, count // cluster_size)
    centers = rng.uniform(-60.0, 60.0, size=(n_clusters, 3))
    positions = centers[np.arange(count) % n_clusters] + rng.normal(0.0, spread, size=(count, 3))
    return np.clip(positions, -100.0, 100.0)


def _percentiles(times_ns) -> dict:
    times_ms = np.array(times_ns) / 1_000_000
    return {
        'p50_ms': float(np.percentile(times_ms, 50)),
        'p90_ms': float(np.percentile(times_ms, 90)),
        'min_ms': float(np.min(times_ms)),
        'max_ms': float(np.max(times_ms)),
    }


def run_query_perf_test(boid_count: int, backend: str, runs: int = 7) -> dict:
    """
    Time index build plus one neighbour query per boid.

    Args:
        boid_count: Number of boids to test
        backend: Spatial index backend
        runs: Number of test runs (default 7 for stable median)

    Returns:
        Dict with p50, p90, min, max, mean neighbour count
    """
    positions = create_test_positions(boid_count)
    adapter = SpatialIndexAdapter(backend=backend)

    # Warmup
    adapter.build(positions)
    neighbor_counts = [len(adapter.query_region(p, NEIGHBOR_QUERY_HALF_EXTENT)) for p in positions]

    # Measure (GC disabled for stable timing)
    gc.collect()
    gc.disable()

    times_ns = []
    try:
        for _ in range(runs):
            start = time.perf_counter_ns()
            adapter.build(positions)
            for p in positions:
                adapter.query_region(p, NEIGHBOR_QUERY_HALF_EXTENT)
            times_ns.append(time.perf_counter_ns() - start)
    finally:
        gc.enable()

    result = _percentiles(times_ns)
    result.update({
        'boid_count': boid_count,
        'backend': backend,
        'runs': runs,
        'mean_neighbors': float(np.mean(neighbor_counts)),
    })
    return result


def run_tick_perf_test(boid_count: int, backend: str, runs: int = 5) -> dict:
    """Time full simulation ticks on a clustered flock."""
    sim = FlockSimulation(world=default_world(half_size=100.0, seed=42, backend=backend))
    rng = np.random.Generator(np.random.PCG64(7))
    for pos in create_test_positions(boid_count):
        sim.add_boid(pos, heading=rng.normal(size=3), profile_id='prey')

    # Warmup
    sim.tick()

    gc.collect()
    gc.disable()

    times_ns = []
    try:
        for _ in range(runs):
            start = time.perf_counter_ns()
            sim.tick()
            times_ns.append(time.perf_counter_ns() - start)
    finally:
        gc.enable()

    result = _percentiles(times_ns)
    result.update({'boid_count': boid_count, 'backend': backend, 'runs': runs})
    return result


def main():
    """Run multi-N flock performance validation."""
    print("=" * 80)
    print("Flock Multi-N Performance Validation")
    print("=" * 80)
    print()

    test_sizes = [250, 1000, 2000, 5000]

    query_results = []
    tick_results = []

    for boid_count in test_sizes:
        print(f"[N = {boid_count}]")

        for backend in BACKENDS:
            if backend == 'linear' and boid_count > 2000:
                print(f"  {backend:8s} skipped (quadratic)")
                continue

            query = run_query_perf_test(boid_count, backend)
            tick = run_tick_perf_test(boid_count, backend)

            print(f"  {backend:8s} query p50: {query['p50_ms']:9.3f}ms  p90: {query['p90_ms']:9.3f}ms  "
                  f"| tick p50: {tick['p50_ms']:9.3f}ms  "
                  f"| neighbours/boid: {query['mean_neighbors']:.1f}")

            # Log-only for large flocks
            if boid_count <= 2000 and backend != 'linear' and tick['p50_ms'] >= 50.0 * boid_count / 1000:
                print(f"  WARNING: {backend} tick p50 {tick['p50_ms']:.3f}ms over 50ms per 1000 boids")

            query_results.append(query)
            tick_results.append(tick)

        print()

    # Summary table
    print("=" * 80)
    print("Summary Table")
    print("=" * 80)
    print()
    print("| Boids | Backend  | query p50 (ms) | query p90 (ms) | tick p50 (ms) |")
    print("|-------|----------|----------------|----------------|---------------|")
    for q, t in zip(query_results, tick_results):
        print(f"| {q['boid_count']:5d} | {q['backend']:8s} | {q['p50_ms']:14.3f} | "
              f"{q['p90_ms']:14.3f} | {t['p50_ms']:13.3f} |")

    print()
    print("=" * 80)


if __name__ == '__main__':
    main()
