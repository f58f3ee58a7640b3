"""
Test boid aging and death.

Verifies:
- Death is checked before the age increment and is terminal
- Fear accelerates aging
- Dead boids are reaped at the end of the tick
- Spawned lifespans fall within the profile range
"""

import sys
import numpy as np
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from flocksim.boid import Boid
from flocksim.data_types import default_world
from flocksim.simulation import FlockSimulation


def test_death_after_age_exceeds_lifespan():
    print("=" * 60)
    print("Test: Aging and death")
    print("=" * 60)

    boid = Boid(boid_id=0, lifespan=1.0, age_rate=0.5)

    boid.update_params()
    assert boid.alive and boid.age == 0.5
    boid.update_params()
    assert boid.alive and boid.age == 1.0

    # age == lifespan is not yet past it
    boid.update_params()
    assert boid.alive
    assert boid.age == 1.5

    boid.update_params()
    assert not boid.alive

    # Terminal: further updates never revive
    boid.age = 0.0
    boid.update_params()
    assert not boid.alive

    print("[OK] Death is terminal\n")


def test_fear_accelerates_aging():
    calm = Boid(boid_id=0, age_rate=0.25, fear=0.0)
    scared = Boid(boid_id=1, age_rate=0.25, fear=1.0)

    calm.update_params()
    scared.update_params()

    assert calm.age == 0.25
    assert scared.age == 0.5


def test_simulation_reaps_dead_boids():
    sim = FlockSimulation(world=default_world(half_size=50.0, seed=3))
    doomed = sim.add_boid([10.0, 0.0, 0.0], heading=[1.0, 0.0, 0.0], lifespan=0.0)
    survivor = sim.add_boid([-10.0, 0.0, 0.0], heading=[-1.0, 0.0, 0.0], lifespan=100.0)

    # First tick: age 0 is not past lifespan 0
    sim.tick()
    assert len(sim.boids) == 2
    assert doomed.alive

    # Second tick: age 0.001 > 0, boid dies and is removed
    sim.tick()
    assert not doomed.alive
    assert [b.boid_id for b in sim.boids] == [survivor.boid_id]

    telemetry = sim.get_lifecycle_telemetry()
    assert telemetry['deaths_this_tick'] == 1
    assert telemetry['total_deaths'] == 1
    assert telemetry['mean_age'] > 0.0

    sim.tick()
    assert sim.get_lifecycle_telemetry()['deaths_this_tick'] == 0


def test_spawned_lifespans_within_profile_range():
    data_root = Path(__file__).parent.parent.parent / "data"
    sim = FlockSimulation(data_root=data_root)

    assert len(sim.boids) > 0
    for boid in sim.boids:
        low, high = sim.profiles[boid.profile_id].lifespan_range
        assert low <= boid.lifespan <= high, \
            f"boid {boid.boid_id} lifespan {boid.lifespan} outside [{low}, {high}]"

    lifespans = np.array([b.lifespan for b in sim.boids])
    print(f"[OK] {len(lifespans)} lifespans in range, mean {lifespans.mean():.1f}")


def test_serialization_keeps_lifecycle_state():
    boid = Boid(boid_id=3, lifespan=12.0, age=4.5, fear=0.25, profile_id='predator')
    boid.nav.pos[:] = [1.0, -2.0, 3.0]
    boid.nav.look_along([0.0, 1.0, 1.0])

    restored = Boid.from_dict(boid.to_dict())

    assert restored.boid_id == 3
    assert restored.profile_id == 'predator'
    assert restored.lifespan == 12.0
    assert restored.age == 4.5
    assert restored.fear == 0.25
    assert np.allclose(restored.nav.pos, [1.0, -2.0, 3.0])
    assert np.allclose(restored.nav.uf(), boid.nav.uf())


def test_default_random_streams_differ_per_boid():
    """Boids built without an explicit rng still bounce independently"""
    first = Boid(boid_id=0)
    second = Boid(boid_id=1)
    assert first.rng.uniform_s() != second.rng.uniform_s()

    # Same identity gives the same stream
    assert Boid(boid_id=0).rng.uniform_s() == Boid(boid_id=0).rng.uniform_s()

    restored_a = Boid.from_dict(Boid(boid_id=5, profile_id='prey').to_dict())
    restored_b = Boid.from_dict(Boid(boid_id=6, profile_id='prey').to_dict())
    assert restored_a.rng.uniform_s() != restored_b.rng.uniform_s()
