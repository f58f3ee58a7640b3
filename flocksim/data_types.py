"""
Data types mirroring YAML schema structures.

These dataclasses are populated by loader.py from YAML files, or built
directly in code for tests and harnesses.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional

from .constants import (
    MAX_PREY_LIFESPAN,
    MAX_PREDATOR_LIFESPAN,
    MIN_PREY_EDGE_PROXIMITY,
    MIN_PREDATOR_EDGE_PROXIMITY,
    MAX_PREY_TURN_RATE,
    MAX_PREDATOR_TURN_RATE,
    MIN_EDGE_PROXIMITY_DEFAULT,
    TURN_RATE_FACTOR_DEFAULT,
    AGE_RATE_DEFAULT,
    LIFESPAN_MIN_FRACTION,
    SPEED_DEFAULT,
    TICK_DELTA_DEFAULT,
    INDEX_BACKEND_DEFAULT,
    TICK_SUMMARY_INTERVAL,
)


# ============================================================================
# Boid Profiles
# ============================================================================

@dataclass
class BoidProfile:
    """Per-variant boid configuration (prey, predator, ...)"""
    profile_id: str
    max_lifespan: float
    min_edge_proximity: float = MIN_EDGE_PROXIMITY_DEFAULT
    turn_rate_factor: float = TURN_RATE_FACTOR_DEFAULT
    age_rate: float = AGE_RATE_DEFAULT
    speed: float = SPEED_DEFAULT
    lifespan_min_fraction: float = LIFESPAN_MIN_FRACTION
    description: Optional[str] = None

    @property
    def lifespan_range(self) -> tuple:
        """(min, max) lifespan sampled at spawn"""
        return (self.max_lifespan * self.lifespan_min_fraction, self.max_lifespan)


def builtin_profiles() -> Dict[str, BoidProfile]:
    """Profiles available without any data pack"""
    return {
        'default': BoidProfile(
            profile_id='default',
            max_lifespan=MAX_PREY_LIFESPAN,
        ),
        'prey': BoidProfile(
            profile_id='prey',
            max_lifespan=MAX_PREY_LIFESPAN,
            min_edge_proximity=MIN_PREY_EDGE_PROXIMITY,
            turn_rate_factor=MAX_PREY_TURN_RATE,
        ),
        'predator': BoidProfile(
            profile_id='predator',
            max_lifespan=MAX_PREDATOR_LIFESPAN,
            min_edge_proximity=MIN_PREDATOR_EDGE_PROXIMITY,
            turn_rate_factor=MAX_PREDATOR_TURN_RATE,
        ),
    }


# ============================================================================
# Spawning
# ============================================================================

@dataclass
class SpawningConfig:
    """Boid spawning configuration for one profile"""
    profile_id: str
    count: int
    distribution: str = "uniform"  # uniform, clustered
    spawn_extent: Optional[float] = None  # Half extent of spawn cube (None = world half size)


@dataclass
class FoodConfig:
    """Food field configuration"""
    count: int = 0
    mass_min: float = 1.0
    mass_max: float = 1.0
    spawn_extent: Optional[float] = None


# ============================================================================
# World Definition
# ============================================================================

@dataclass
class WorldParameters:
    """Physical parameters of the world"""
    half_size: float
    seed: Optional[int] = None


@dataclass
class SimulationConfig:
    """Simulation global defaults"""
    tick_delta: float = TICK_DELTA_DEFAULT
    index_backend: str = INDEX_BACKEND_DEFAULT
    summary_interval: int = TICK_SUMMARY_INTERVAL


@dataclass
class World:
    """World configuration"""
    world_id: str
    name: str
    parameters: WorldParameters
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    profiles: Dict[str, BoidProfile] = field(default_factory=builtin_profiles)
    spawning: List[SpawningConfig] = field(default_factory=list)
    food: FoodConfig = field(default_factory=FoodConfig)
    description: Optional[str] = None


def default_world(half_size: float = 100.0, seed: int = 0, backend: str = INDEX_BACKEND_DEFAULT) -> World:
    """
    Empty world with built-in profiles and no spawning.

    Used by tests and harnesses that place boids by hand.
    """
    return World(
        world_id="default",
        name="Default World",
        parameters=WorldParameters(half_size=half_size, seed=seed),
        simulation=SimulationConfig(index_backend=backend),
    )
