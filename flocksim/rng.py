"""
Deterministic RNG utilities for the flock simulation.

Uses SHA256 hashing to derive stable seeds from hierarchical components
(world_seed, profile_id, boid_index, component_name). All randomness uses
numpy.random.Generator(PCG64) for reproducible cross-session results.
"""

import hashlib
import numpy as np
from typing import Any


def make_seed(*components: Any) -> int:
    """
    Generate deterministic 64-bit seed from hierarchical components.

    Uses SHA256 to hash components into stable seed value.

    Args:
        *components: Seed components (world_seed, profile_id, boid_index, etc.)

    Returns:
        64-bit integer seed for numpy RNG

    Example:
        boid_seed = make_seed(world_seed, "prey", boid_index)
        heading_seed = make_seed(boid_seed, "initial_heading")
    """
    # Join all components with colon separator
    hash_input = ":".join(str(c) for c in components)

    # SHA256 hash and extract 64-bit integer
    hash_bytes = hashlib.sha256(hash_input.encode('utf-8')).digest()
    seed = int.from_bytes(hash_bytes[:8], byteorder='big')

    return seed


class SimRandom:
    """
    Injected random source for per-tick stochastic behaviour.

    Wraps a PCG64 generator so that two sources built from the same seed
    produce the same draw sequence.
    """

    def __init__(self, seed: int = 0):
        self.seed = seed
        self.generator = np.random.Generator(np.random.PCG64(seed))

    def uniform(self) -> float:
        """Uniform float in [0, 1)."""
        return float(self.generator.random())

    def uniform_s(self) -> float:
        """Signed uniform float in [-1, 1]."""
        return float(self.generator.uniform(-1.0, 1.0))


def random_unit_vector(seed: int) -> np.ndarray:
    """
    Generate random 3D unit vector (uniform distribution on sphere surface).

    Uses rejection sampling: generate random point in [-1, 1]^3 cube,
    reject if outside unit sphere, normalize.

    Args:
        seed: RNG seed (from make_seed())

    Returns:
        3D unit vector as numpy array [x, y, z]
    """
    rng = np.random.Generator(np.random.PCG64(seed))

    # Rejection sampling for uniform sphere surface
    while True:
        vec = rng.uniform(-1.0, 1.0, size=3)
        length_sq = np.dot(vec, vec)

        # Reject if outside unit sphere or too close to origin
        if 0.01 < length_sq <= 1.0:
            return vec / np.sqrt(length_sq)


def random_position_in_cube(seed: int, half_extent: float) -> np.ndarray:
    """
    Generate random position uniformly distributed within an origin-centred cube.

    Args:
        seed: RNG seed
        half_extent: Half edge length of the cube

    Returns:
        Random position as numpy array [x, y, z]
    """
    rng = np.random.Generator(np.random.PCG64(seed))
    return rng.uniform(-half_extent, half_extent, size=3)


def random_in_range(seed: int, min_val: float, max_val: float) -> float:
    """
    Generate a random scalar in [min_val, max_val].

    Used for lifespans and food masses.

    Args:
        seed: RNG seed
        min_val: Lower bound
        max_val: Upper bound

    Returns:
        Random float in [min_val, max_val]
    """
    rng = np.random.Generator(np.random.PCG64(seed))
    return float(rng.uniform(min_val, max_val))
