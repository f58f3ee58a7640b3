"""
Flock simulation kernel.

Main simulation class that manages the boid arena, food field, tick loop,
and per-phase timing.
"""

import numpy as np
import os
import time
from typing import Dict, List, Optional
from pathlib import Path

from .boid import Boid, FlockSnapshot
from .data_types import World, BoidProfile
from .loader import load_all_data
from .spawning import spawn_boids, spawn_food, make_boid
from .spatial_queries import SpatialIndexAdapter
from .constants import TICK_TIME_WINDOW


class FlockSimulation:
    """
    Main simulation class for the flock.

    Manages boid lifecycle, the tick loop and the two per-tick spatial
    indices (boids, food).
    """

    def __init__(
        self,
        world: Optional[World] = None,
        data_root: Optional[Path] = None,
        schema_dir: Optional[Path] = None,
        spawn_limit: Optional[int] = None,
        spawn_only_profiles: Optional[List[str]] = None
    ):
        """
        Initialize simulation from a World or a data pack.

        Args:
            world: World definition (takes precedence over data_root)
            data_root: Path to data directory
            schema_dir: Optional path to JSON schemas
            spawn_limit: Optional limit on spawned boids (for testing)
            spawn_only_profiles: Optional list of profiles to spawn (for testing)
        """
        if world is None:
            if data_root is None:
                raise ValueError("FlockSimulation needs either world or data_root")
            print("Loading data pack...")
            world = load_all_data(data_root, schema_dir)['world']

        self.world: World = world
        self.profiles: Dict[str, BoidProfile] = world.profiles
        self.half_size: float = world.parameters.half_size
        self.seed: int = world.parameters.seed or 0

        # Simulation state
        self.boids: List[Boid] = []
        self.tick_count: int = 0
        self.dt: float = world.simulation.tick_delta
        self._next_id: int = 0

        # Food field (owned here, read-only to boids during a tick)
        self.food_positions: np.ndarray = np.empty((0, 3), dtype=np.float64)
        self.food_masses: np.ndarray = np.empty(0, dtype=np.float64)

        # Spatial indexing (rebuilt every tick)
        backend = world.simulation.index_backend
        self.boid_index = SpatialIndexAdapter(backend=backend)
        self.food_index = SpatialIndexAdapter(backend=backend)

        # Performance metrics
        self._tick_times: List[float] = []
        self._tick_time_sum: float = 0.0
        self._tick_time_window: int = TICK_TIME_WINDOW  # Rolling average window

        # Phase timing breakdown
        self._build_times: List[float] = []
        self._sense_times: List[float] = []
        self._forage_times: List[float] = []
        self._aging_times: List[float] = []
        self._movement_times: List[float] = []
        self._reap_times: List[float] = []

        # Lifecycle telemetry
        self._lifecycle_telemetry: Dict = {
            'total_deaths': 0,
            'deaths_this_tick': 0,
            'mean_age': 0.0,
        }

        # Spawn boids and food
        print(f"Spawning boids (limit={spawn_limit}, profiles={spawn_only_profiles})...")
        spawned = spawn_boids(world, start_id=self._next_id, limit=spawn_limit, only_profiles=spawn_only_profiles)
        self.boids.extend(spawned)
        self._next_id += len(spawned)

        food_positions, food_masses = spawn_food(world)
        self.set_food(food_positions, food_masses)

        print(f"[OK] Simulation initialized: {len(self.boids)} boids, "
              f"{len(self.food_masses)} food, dt={self.dt}, seed={self.seed}")

    # ========================================================================
    # Arena management
    # ========================================================================

    def add_boid(
        self,
        position,
        heading=None,
        profile_id: str = "default",
        lifespan: Optional[float] = None,
        **overrides
    ) -> Boid:
        """
        Place a boid by hand.

        Args:
            position: Initial position [x, y, z]
            heading: Initial forward direction (None = seeded random)
            profile_id: Profile to take tunables from
            lifespan: Explicit lifespan (None = sampled)
            **overrides: Boid attributes to set after creation (e.g. fear=0.5)

        Returns:
            The new boid
        """
        if profile_id not in self.profiles:
            raise KeyError(f"Unknown profile '{profile_id}'")

        boid = make_boid(
            boid_id=self._next_id,
            profile=self.profiles[profile_id],
            position=position,
            world_seed=self.seed,
            heading=heading,
            lifespan=lifespan
        )
        for name, value in overrides.items():
            if not hasattr(boid, name):
                raise AttributeError(f"Boid has no attribute '{name}'")
            setattr(boid, name, value)

        self._next_id += 1
        self.boids.append(boid)
        return boid

    def set_food(self, positions, masses):
        """
        Replace the food field.

        Args:
            positions: (M, 3) food positions
            masses: (M,) food masses
        """
        positions = np.array(positions, dtype=np.float64).reshape(-1, 3)
        masses = np.array(masses, dtype=np.float64).reshape(-1)
        if len(positions) != len(masses):
            raise ValueError(f"food positions ({len(positions)}) and masses ({len(masses)}) differ in length")
        self.food_positions = positions
        self.food_masses = masses

    def add_food(self, position, mass: float):
        """Append one food item."""
        self.set_food(
            np.vstack([self.food_positions, np.asarray(position, dtype=np.float64).reshape(1, 3)]),
            np.append(self.food_masses, float(mass))
        )

    def _speed_of(self, boid: Boid) -> float:
        profile = self.profiles.get(boid.profile_id)
        if profile is None:
            return self.profiles['default'].speed
        return profile.speed

    # ========================================================================
    # Tick
    # ========================================================================

    def tick(self):
        """
        Advance simulation by one time step.

        SNAPSHOT CONTRACT:

        The positions and headings of every boid are copied into a read-only
        FlockSnapshot at tick start, and both spatial indices are built from
        that snapshot. Every boid senses neighbours through the snapshot only
        and writes only its own state, so boid iteration order does not
        change the outcome.

        Per boid: detect_surroundings -> find_food -> update_params ->
        update_position. Boids that died this tick are reaped at the end.
        """
        start_time = time.perf_counter()

        # ============================================================
        # BUILD: snapshot + indices (t=N)
        # ============================================================
        build_start = time.perf_counter()
        snapshot = FlockSnapshot.from_boids(self.boids)
        self.boid_index.build(snapshot.positions)
        self.food_index.build(self.food_positions)
        self._build_times.append(time.perf_counter() - build_start)

        # ============================================================
        # SENSE: flocking + avoidance (reads snapshot only)
        # ============================================================
        sense_start = time.perf_counter()
        for boid in self.boids:
            boid.detect_surroundings(self.boid_index, self.half_size, snapshot)
        self._sense_times.append(time.perf_counter() - sense_start)

        # ============================================================
        # FORAGE
        # ============================================================
        forage_start = time.perf_counter()
        for boid in self.boids:
            boid.find_food(self.food_index, self.half_size, self.food_positions, self.food_masses)
        self._forage_times.append(time.perf_counter() - forage_start)

        # ============================================================
        # AGING
        # ============================================================
        aging_start = time.perf_counter()
        for boid in self.boids:
            boid.update_params()
        self._aging_times.append(time.perf_counter() - aging_start)

        # ============================================================
        # MOVEMENT
        # ============================================================
        movement_start = time.perf_counter()
        for boid in self.boids:
            boid.update_position(self._speed_of(boid), self.dt)
        self._movement_times.append(time.perf_counter() - movement_start)

        # ============================================================
        # REAP: remove boids that died this tick
        # ============================================================
        reap_start = time.perf_counter()
        deaths_count = self._process_deaths()
        self._reap_times.append(time.perf_counter() - reap_start)

        self._lifecycle_telemetry['deaths_this_tick'] = deaths_count
        self._lifecycle_telemetry['total_deaths'] += deaths_count
        self._lifecycle_telemetry['mean_age'] = (
            float(np.mean([b.age for b in self.boids])) if self.boids else 0.0
        )

        # Increment tick count
        self.tick_count += 1

        # Record timing
        elapsed = time.perf_counter() - start_time
        self._record_tick_time(elapsed)

        # Debug invariant check (zero perf impact when env var not set)
        if os.getenv('SIM_DEBUG_INVARIANTS') == '1':
            for boid in self.boids:
                norm = float(np.linalg.norm(boid.nav.quat))
                assert abs(norm - 1.0) < 1e-9, \
                    f"boid {boid.boid_id} quaternion norm {norm} != 1"
                assert np.all(np.isfinite(boid.nav.pos)), \
                    f"boid {boid.boid_id} has non-finite position"

    def _process_deaths(self) -> int:
        """
        Drop dead boids from the arena.

        Returns:
            Number of boids removed
        """
        before = len(self.boids)
        self.boids = [b for b in self.boids if b.alive]
        return before - len(self.boids)

    # ========================================================================
    # Stats and snapshots
    # ========================================================================

    def get_tick_stats(self) -> dict:
        """
        Get current tick timing statistics.

        Returns:
            Dict with tick_count, avg_tick_time_ms, last_tick_time_ms
        """
        if not self._tick_times:
            return {
                'tick_count': self.tick_count,
                'avg_tick_time_ms': 0.0,
                'last_tick_time_ms': 0.0
            }

        avg_time = self._tick_time_sum / len(self._tick_times)
        last_time = self._tick_times[-1]

        return {
            'tick_count': self.tick_count,
            'avg_tick_time_ms': avg_time * 1000.0,
            'last_tick_time_ms': last_time * 1000.0
        }

    def get_lifecycle_telemetry(self) -> dict:
        return dict(self._lifecycle_telemetry)

    def _record_tick_time(self, elapsed: float):
        """
        Record tick timing for rolling average.

        Args:
            elapsed: Tick time in seconds
        """
        self._tick_times.append(elapsed)
        self._tick_time_sum += elapsed

        # Maintain rolling window
        if len(self._tick_times) > self._tick_time_window:
            removed = self._tick_times.pop(0)
            self._tick_time_sum -= removed

        # Phase timings share the same window
        for samples in (self._build_times, self._sense_times, self._forage_times,
                        self._aging_times, self._movement_times, self._reap_times):
            if len(samples) > self._tick_time_window:
                del samples[0]

    def get_pose_arrays(self) -> dict:
        """
        Per-boid pose arrays for renderers.

        Returns:
            Dict with ids (N,), positions (N, 3), orientations (N, 4) [x, y, z, w]
        """
        if not self.boids:
            return {
                'ids': np.empty(0, dtype=np.int64),
                'positions': np.empty((0, 3), dtype=np.float64),
                'orientations': np.empty((0, 4), dtype=np.float64),
            }
        return {
            'ids': np.array([b.boid_id for b in self.boids], dtype=np.int64),
            'positions': np.array([b.nav.pos for b in self.boids], dtype=np.float64),
            'orientations': np.array([b.nav.quat for b in self.boids], dtype=np.float64),
        }

    def get_snapshot(self) -> dict:
        """
        Get complete simulation state snapshot.

        Returns:
            Dict with tick_count, boids, food, timing
        """
        return {
            'tick_count': self.tick_count,
            'boid_count': len(self.boids),
            'boids': [b.to_dict() for b in self.boids],
            'food': {
                'positions': self.food_positions.tolist(),
                'masses': self.food_masses.tolist(),
            },
            'lifecycle': self.get_lifecycle_telemetry(),
            'timing': self.get_tick_stats()
        }

    def print_tick_summary(self):
        """Print tick summary to console (lightweight monitoring)"""
        stats = self.get_tick_stats()
        print(f"Tick {stats['tick_count']:5d} | "
              f"Avg: {stats['avg_tick_time_ms']:6.3f} ms | "
              f"Last: {stats['last_tick_time_ms']:6.3f} ms | "
              f"Boids: {len(self.boids)} | "
              f"Deaths: {self._lifecycle_telemetry['total_deaths']}")

    def print_perf_breakdown(self, every: Optional[int] = None):
        """
        Print performance breakdown on interval.

        Only prints every N ticks to reduce overhead.

        Args:
            every: Print interval in ticks (default: world summary_interval)
        """
        if every is None:
            every = self.world.simulation.summary_interval
        if self.tick_count == 0 or self.tick_count % every != 0:
            return

        # Calculate averages over last window
        window = min(every, len(self._build_times))
        if window == 0:
            return

        def _avg_ms(samples: List[float]) -> float:
            return sum(samples[-window:]) / window * 1000.0

        avg_total = sum(self._tick_times[-window:]) / min(window, len(self._tick_times)) * 1000.0

        print(f"\n[Perf Breakdown] Tick {self.tick_count} ({len(self.boids)} boids, "
              f"backend={self.boid_index.backend})")
        print(f"  Build:        {_avg_ms(self._build_times):6.3f} ms "
              f"(last boid index {self.boid_index.last_build_ms:6.3f} ms)")
        print(f"  Sense:        {_avg_ms(self._sense_times):6.3f} ms")
        print(f"  Forage:       {_avg_ms(self._forage_times):6.3f} ms")
        print(f"  Aging:        {_avg_ms(self._aging_times):6.3f} ms")
        print(f"  Movement:     {_avg_ms(self._movement_times):6.3f} ms")
        print(f"  Reap:         {_avg_ms(self._reap_times):6.3f} ms")
        print(f"  Total:        {avg_total:6.3f} ms")
