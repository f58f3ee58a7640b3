"""
Synthetic performance test harness.

Creates controlled boid populations for performance testing without modifying the data pack.
Deterministic seeded spawns with a prey/predator mix and a food field.
"""

import numpy as np
from typing import Dict, List

from flocksim.simulation import FlockSimulation
from flocksim.boid import Boid
from flocksim.data_types import default_world


def build_perf_scenario(
    N: int,
    predator_ratio: float = 0.01,
    food_count: int = 32,
    seed: int = 42,
    backend: str = "octree",
    half_size: float = 100.0
) -> FlockSimulation:
    """
    Build synthetic performance scenario with N boids.

    Boid distribution:
    - ~99% prey, placed in a few dense clusters (realistic flock density)
    - ~1% predators, placed uniformly

    Args:
        N: Total boid count
        predator_ratio: Fraction of boids that are predators (default 0.01 = 1%)
        food_count: Number of food items
        seed: Random seed for deterministic placement
        backend: Spatial index backend ('octree', 'ckdtree', 'linear')
        half_size: World half size

    Returns:
        Simulation with N synthetic boids
    """
    sim = FlockSimulation(world=default_world(half_size=half_size, seed=seed, backend=backend))

    n_predators = max(1, int(N * predator_ratio)) if N > 1 else 0
    n_prey = N - n_predators

    # Seed RNG for deterministic placement
    rng = np.random.Generator(np.random.PCG64(seed))

    print(f"[Perf Harness] Creating {N} synthetic boids (backend={backend}):")
    print(f"  - {n_prey} prey")
    print(f"  - {n_predators} predators")

    n_clusters = max(1, n_prey // 250)
    centers = rng.uniform(-0.6 * half_size, 0.6 * half_size, size=(n_clusters, 3))

    for i in range(n_prey):
        center = centers[i % n_clusters]
        pos = np.clip(center + rng.normal(0.0, 6.0, size=3), -half_size, half_size)
        sim.add_boid(pos, heading=rng.normal(size=3), profile_id='prey')

    for _ in range(n_predators):
        pos = rng.uniform(-half_size, half_size, size=3)
        sim.add_boid(pos, heading=rng.normal(size=3), profile_id='predator')

    if food_count > 0:
        sim.set_food(
            rng.uniform(-0.9 * half_size, 0.9 * half_size, size=(food_count, 3)),
            rng.uniform(0.5, 5.0, size=food_count)
        )

    print(f"[OK] Created {len(sim.boids)} synthetic boids, {len(sim.food_masses)} food")

    return sim


def get_profile_distribution(boids: List[Boid]) -> Dict[str, int]:
    """Get count of boids per profile for validation."""
    counts = {}
    for boid in boids:
        counts[boid.profile_id] = counts.get(boid.profile_id, 0) + 1
    return counts


if __name__ == "__main__":
    # Quick test
    sim = build_perf_scenario(N=1000, predator_ratio=0.01, seed=42)

    print(f"\n[Test] Profile distribution:")
    for profile_id, count in sorted(get_profile_distribution(sim.boids).items()):
        print(f"  {profile_id}: {count}")

    print(f"\n[Test] Running 10 ticks...")
    for i in range(10):
        sim.tick()

    stats = sim.get_tick_stats()
    print(f"[OK] {stats['tick_count']} ticks completed")
    print(f"  Avg tick: {stats['avg_tick_time_ms']:.3f} ms")
