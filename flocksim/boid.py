"""
Boid runtime representation.

Boids are spawned from profiles and live in the simulation arena.
Each boid owns its navigation state and lifecycle attributes, and reads
other boids only through an immutable per-tick FlockSnapshot.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Optional, Sequence, TYPE_CHECKING

from .navigation import NavState
from .rng import SimRandom, make_seed
from .behavior import alignment, cohesion, separation, handle_boundary, origin_avoidance
from .constants import (
    NEIGHBOR_QUERY_HALF_EXTENT,
    BOUNDARY_SIZE_SCALE,
    FOOD_TURN,
    SEEK_SMOOTHING,
    WORLD_UP,
    HUNGER_DEFAULT,
    AGE_RATE_DEFAULT,
    MIN_EDGE_PROXIMITY_DEFAULT,
    TURN_RATE_FACTOR_DEFAULT,
    MAX_PREY_LIFESPAN,
)

if TYPE_CHECKING:
    from .spatial_queries import SpatialIndexAdapter


class FlockSnapshot:
    """
    Read-only copy of every boid's position and forward vector at tick start.

    Row i corresponds to row i of the boid spatial index built for the
    same tick.
    """

    def __init__(self, positions: np.ndarray, forwards: np.ndarray):
        positions = np.array(positions, dtype=np.float64).reshape(-1, 3)
        forwards = np.array(forwards, dtype=np.float64).reshape(-1, 3)
        if positions.shape != forwards.shape:
            raise ValueError(f"positions {positions.shape} and forwards {forwards.shape} differ in shape")
        positions.setflags(write=False)
        forwards.setflags(write=False)
        self.positions = positions
        self.forwards = forwards

    def __len__(self) -> int:
        return len(self.positions)

    @classmethod
    def from_navs(cls, navs: Sequence[NavState]) -> 'FlockSnapshot':
        if not navs:
            return cls(np.empty((0, 3)), np.empty((0, 3)))
        return cls(
            np.array([nav.pos for nav in navs], dtype=np.float64),
            np.array([nav.uf() for nav in navs], dtype=np.float64)
        )

    @classmethod
    def from_boids(cls, boids: Sequence['Boid']) -> 'FlockSnapshot':
        return cls.from_navs([b.nav for b in boids])


@dataclass
class Boid:
    """
    Runtime boid in simulation.

    Attributes:
        boid_id: Arena slot identifier (unique for the simulation run)
        nav: Navigation state (position + orientation)
        lifespan: Age at which the boid dies
        profile_id: Profile (variant) this boid was spawned from
        target: Last seek target [x, y, z]
        alive: False once age exceeds lifespan (terminal)
        hunger: Hunger level (1.0 = sated)
        fear: Fear level, accelerates aging
        mutation: Accumulated mutation
        mutation_rate: Mutation accumulation rate
        age: Current age
        age_rate: Age increment per tick
        min_edge_proximity: Per-axis wall distance at which boundary steering starts
        turn_rate_factor: Boundary / origin steering strength
        rng: Random source for boundary bounce perturbation (None = derived from profile_id and boid_id)
    """
    boid_id: int
    nav: NavState = field(default_factory=NavState)
    lifespan: float = MAX_PREY_LIFESPAN
    profile_id: str = "default"
    target: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float64))
    alive: bool = True
    hunger: float = HUNGER_DEFAULT
    fear: float = 0.0
    mutation: float = 0.0
    mutation_rate: float = 0.0
    age: float = 0.0
    age_rate: float = AGE_RATE_DEFAULT
    min_edge_proximity: float = MIN_EDGE_PROXIMITY_DEFAULT
    turn_rate_factor: float = TURN_RATE_FACTOR_DEFAULT
    rng: Optional[SimRandom] = field(default=None, repr=False)

    def __post_init__(self):
        """Ensure target is a float64 array and the boid has its own random stream"""
        self.target = np.asarray(self.target, dtype=np.float64).copy()
        if self.rng is None:
            self.rng = SimRandom(make_seed(0, self.profile_id, self.boid_id, "bounce"))

    def detect_surroundings(
        self,
        index: 'SpatialIndexAdapter',
        world_size: float,
        snapshot: FlockSnapshot,
        rng: Optional[SimRandom] = None
    ):
        """
        Sense neighbours and apply the flocking and avoidance rules.

        Order is fixed: alignment, cohesion, separation, boundary, origin.
        Later rules act on the orientation left by earlier ones.

        Args:
            index: Spatial index built over snapshot.positions
            world_size: Half edge length of the world cube
            snapshot: Tick-start positions and headings of all boids
            rng: Random source override (defaults to self.rng)
        """
        candidates = index.query_region(self.nav.pos, NEIGHBOR_QUERY_HALF_EXTENT)

        alignment(self, snapshot, candidates)
        cohesion(self, snapshot, candidates)
        separation(self, snapshot, candidates)

        effective_size = world_size * BOUNDARY_SIZE_SCALE
        handle_boundary(self, effective_size, rng if rng is not None else self.rng)
        origin_avoidance(self, effective_size)

    def find_food(
        self,
        index: 'SpatialIndexAdapter',
        world_size: float,
        food_positions: np.ndarray,
        food_masses: np.ndarray
    ):
        """
        Steer toward the heaviest food item within a cube of half extent world_size.

        Ties keep the lowest index. No-op if nothing is in range.
        """
        if len(food_positions) == 0:
            return

        candidates = index.query_region(self.nav.pos, world_size)
        if len(candidates) == 0:
            return

        biggest = candidates[0]
        for i in candidates:
            if food_masses[i] > food_masses[biggest]:
                biggest = i

        self.seek(food_positions[biggest], FOOD_TURN)

    def seek(self, target, amt: float, smooth: float = SEEK_SMOOTHING):
        """Record target, set motion smoothing, and turn toward target."""
        self.target = np.array(target, dtype=np.float64)
        self.nav.smooth(smooth)
        self.nav.face_toward(self.target, WORLD_UP, amt)

    def update_params(self):
        """
        Advance age; mark dead once age exceeds lifespan.

        Death is checked before the increment and never reverts.
        """
        if self.age > self.lifespan:
            self.alive = False

        # Fear increases rate of aging
        self.age += self.age_rate + self.age_rate * self.fear

    def update_position(self, speed: float, dt: float):
        """
        Move forward at `speed` and integrate one step of `dt`.

        Args:
            speed: Forward speed (world units per unit time)
            dt: Time step
        """
        self.nav.move_forward(speed)
        self.nav.step(dt)

    def to_dict(self) -> dict:
        """
        Serialize boid to JSON-compatible dict.

        Returns:
            Dict with position, orientation and lifecycle fields
        """
        return {
            'boid_id': self.boid_id,
            'profile_id': self.profile_id,
            'position': self.nav.pos.tolist(),
            'orientation': self.nav.quat.tolist(),
            'forward': self.nav.uf().tolist(),
            'up': self.nav.uu().tolist(),
            'target': self.target.tolist(),
            'alive': self.alive,
            'hunger': self.hunger,
            'fear': self.fear,
            'mutation': self.mutation,
            'mutation_rate': self.mutation_rate,
            'age': self.age,
            'age_rate': self.age_rate,
            'lifespan': self.lifespan,
            'min_edge_proximity': self.min_edge_proximity,
            'turn_rate_factor': self.turn_rate_factor,
        }

    @classmethod
    def from_dict(cls, data: dict, rng: Optional[SimRandom] = None) -> 'Boid':
        """
        Deserialize boid from dict.

        Args:
            data: Dict with boid fields
            rng: Random source for the restored boid (None = per-boid derived stream)

        Returns:
            Boid instance
        """
        nav = NavState(data['position'], data.get('orientation'))
        return cls(
            boid_id=data['boid_id'],
            nav=nav,
            lifespan=data['lifespan'],
            profile_id=data.get('profile_id', 'default'),
            target=data.get('target', [0.0, 0.0, 0.0]),
            alive=data.get('alive', True),
            hunger=data.get('hunger', HUNGER_DEFAULT),
            fear=data.get('fear', 0.0),
            mutation=data.get('mutation', 0.0),
            mutation_rate=data.get('mutation_rate', 0.0),
            age=data.get('age', 0.0),
            age_rate=data.get('age_rate', AGE_RATE_DEFAULT),
            min_edge_proximity=data.get('min_edge_proximity', MIN_EDGE_PROXIMITY_DEFAULT),
            turn_rate_factor=data.get('turn_rate_factor', TURN_RATE_FACTOR_DEFAULT),
            rng=rng,
        )
