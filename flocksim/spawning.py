"""
Boid and food spawning system.

Spawns boids from the world spawning configuration with deterministic
placement. Supports uniform and clustered distributions.
"""

import numpy as np
from typing import List, Optional, Tuple

from .boid import Boid
from .navigation import NavState
from .data_types import World, BoidProfile, SpawningConfig
from .rng import (
    SimRandom, make_seed, random_unit_vector, random_position_in_cube, random_in_range
)

# Clustered spawns scatter around their cluster center with this fraction of the spawn extent
CLUSTER_SPREAD_FRACTION = 0.15


def make_boid(
    boid_id: int,
    profile: BoidProfile,
    position,
    world_seed: int,
    heading=None,
    lifespan: Optional[float] = None
) -> Boid:
    """
    Create one boid with profile tunables and derived random streams.

    Args:
        boid_id: Arena slot identifier
        profile: Variant configuration
        position: Initial position [x, y, z]
        world_seed: World seed (root of all per-boid seeds)
        heading: Initial forward direction (None = seeded random)
        lifespan: Explicit lifespan (None = sampled from profile range)

    Returns:
        Boid instance
    """
    boid_seed = make_seed(world_seed, profile.profile_id, boid_id)

    if heading is None:
        heading = random_unit_vector(make_seed(boid_seed, "initial_heading"))

    if lifespan is None:
        low, high = profile.lifespan_range
        lifespan = random_in_range(make_seed(boid_seed, "lifespan"), low, high)

    nav = NavState(position)
    nav.look_along(heading)

    return Boid(
        boid_id=boid_id,
        nav=nav,
        lifespan=lifespan,
        profile_id=profile.profile_id,
        age_rate=profile.age_rate,
        min_edge_proximity=profile.min_edge_proximity,
        turn_rate_factor=profile.turn_rate_factor,
        rng=SimRandom(make_seed(boid_seed, "bounce")),
    )


def spawn_boids(
    world: World,
    start_id: int = 0,
    limit: Optional[int] = None,
    only_profiles: Optional[List[str]] = None
) -> List[Boid]:
    """
    Spawn boids according to the world spawning configuration.

    Args:
        world: World definition with profiles and spawning config
        start_id: First arena id to assign
        limit: Optional limit on total boids spawned (for testing)
        only_profiles: Optional list of profile IDs to spawn (for testing)

    Returns:
        List of spawned Boid instances

    Example (test override):
        boids = spawn_boids(world, limit=10, only_profiles=['prey'])
    """
    world_seed = world.parameters.seed or 0
    boids = []
    next_id = start_id

    for spawn_config in world.spawning:
        profile_id = spawn_config.profile_id

        # Filter by only_profiles if specified
        if only_profiles and profile_id not in only_profiles:
            continue

        # Check if profile exists
        if profile_id not in world.profiles:
            print(f"[WARN] Profile {profile_id} not found, skipping")
            continue

        # Determine spawn count (respect limit)
        count = spawn_config.count
        if limit is not None:
            count = min(count, limit - len(boids))
        if count <= 0:
            continue

        spawned = _spawn_profile(
            world=world,
            profile=world.profiles[profile_id],
            spawn_config=spawn_config,
            count=count,
            start_id=next_id,
            world_seed=world_seed
        )
        boids.extend(spawned)
        next_id += len(spawned)

        # Stop if limit reached
        if limit is not None and len(boids) >= limit:
            break

    return boids


def _spawn_profile(
    world: World,
    profile: BoidProfile,
    spawn_config: SpawningConfig,
    count: int,
    start_id: int,
    world_seed: int
) -> List[Boid]:
    """
    Spawn multiple boids of a single profile.

    Returns:
        List of spawned boids
    """
    half_size = world.parameters.half_size
    extent = spawn_config.spawn_extent if spawn_config.spawn_extent is not None else half_size
    extent = min(extent, half_size)

    distribution = spawn_config.distribution
    if distribution == "clustered":
        cluster_seed = make_seed(world_seed, profile.profile_id, "cluster_center")
        cluster_center = random_position_in_cube(cluster_seed, extent * 0.5)
    elif distribution != "uniform":
        print(f"[WARN] Unknown distribution '{distribution}' for profile {profile.profile_id}, using uniform")
        distribution = "uniform"

    boids = []
    for i in range(count):
        boid_id = start_id + i
        position_seed = make_seed(world_seed, profile.profile_id, boid_id, "position")

        if distribution == "clustered":
            rng = np.random.Generator(np.random.PCG64(position_seed))
            position = cluster_center + rng.normal(0.0, extent * CLUSTER_SPREAD_FRACTION, size=3)
            position = np.clip(position, -extent, extent)
        else:
            position = random_position_in_cube(position_seed, extent)

        boids.append(make_boid(boid_id, profile, position, world_seed))

    return boids


def spawn_food(world: World) -> Tuple[np.ndarray, np.ndarray]:
    """
    Place food items according to the world food configuration.

    Returns:
        Tuple of ((M, 3) positions, (M,) masses)
    """
    food = world.food
    world_seed = world.parameters.seed or 0

    if food.count <= 0:
        return np.empty((0, 3), dtype=np.float64), np.empty(0, dtype=np.float64)

    extent = food.spawn_extent if food.spawn_extent is not None else world.parameters.half_size
    extent = min(extent, world.parameters.half_size)

    positions = np.empty((food.count, 3), dtype=np.float64)
    masses = np.empty(food.count, dtype=np.float64)
    for i in range(food.count):
        food_seed = make_seed(world_seed, "food", i)
        positions[i] = random_position_in_cube(make_seed(food_seed, "position"), extent)
        masses[i] = random_in_range(make_seed(food_seed, "mass"), food.mass_min, food.mass_max)

    return positions, masses
