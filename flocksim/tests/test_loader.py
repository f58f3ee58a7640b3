"""
Test data loading: YAML world pack -> dataclasses, with schema validation.
"""

import sys
import pytest
import yaml
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from flocksim.loader import load_world, load_all_data, load_yaml, DataLoadError

DATA_ROOT = Path(__file__).parent.parent.parent / "data"
SCHEMA_DIR = DATA_ROOT / "schemas"


def _minimal_world(**overrides):
    data = {
        'world_id': 'test-world',
        'name': 'Test World',
        'parameters': {'half_size': 25.0, 'seed': 5},
    }
    data.update(overrides)
    return data


def _write(tmp_path, data, name="world.yaml"):
    path = tmp_path / name
    with open(path, 'w') as f:
        yaml.safe_dump(data, f)
    return path


def test_load_data_pack():
    """Test loading the bundled flock world"""
    world = load_all_data(DATA_ROOT)['world']

    print(f"[OK] Loaded world: {world.name} ({world.world_id})")
    print(f"  Half size: {world.parameters.half_size}, seed: {world.parameters.seed}")
    print(f"  Profiles: {', '.join(sorted(world.profiles))}")
    print(f"  Spawning: {sum(s.count for s in world.spawning)} boids")

    assert world.world_id == "flock-cube"
    assert world.parameters.half_size == 100.0
    assert world.parameters.seed == 1337
    assert world.simulation.index_backend == "octree"

    # YAML profiles override built-ins, built-in default stays available
    assert world.profiles['prey'].speed == 0.25
    assert world.profiles['prey'].min_edge_proximity == 5.5
    assert world.profiles['predator'].max_lifespan == 100.0
    assert 'default' in world.profiles

    assert [s.profile_id for s in world.spawning] == ['prey', 'predator']
    assert world.spawning[0].distribution == "clustered"
    assert world.food.count == 24
    assert world.food.mass_min <= world.food.mass_max

    print("[OK] World pack loaded correctly\n")


def test_minimal_world_uses_defaults(tmp_path):
    path = _write(tmp_path, _minimal_world())
    world = load_world(path, SCHEMA_DIR)

    assert world.simulation.tick_delta == 1.0
    assert world.simulation.index_backend == "octree"
    assert world.spawning == []
    assert world.food.count == 0
    assert set(world.profiles) == {'default', 'prey', 'predator'}


def test_schema_violation(tmp_path):
    data = _minimal_world(simulation={'tick_delta': 1.0, 'gravity': 9.8})
    path = _write(tmp_path, data)

    with pytest.raises(DataLoadError, match="Validation error"):
        load_world(path, SCHEMA_DIR)

    # Without schema the dataclass still rejects the unknown field
    with pytest.raises(DataLoadError, match="Unexpected field"):
        load_world(path)


def test_missing_required_field(tmp_path):
    data = _minimal_world()
    del data['parameters']
    path = _write(tmp_path, data)

    with pytest.raises(DataLoadError, match="Missing required field"):
        load_world(path)


def test_unknown_spawn_profile(tmp_path):
    data = _minimal_world(spawning=[{'profile_id': 'kraken', 'count': 3}])
    path = _write(tmp_path, data)

    with pytest.raises(DataLoadError, match="kraken"):
        load_world(path, SCHEMA_DIR)


def test_semantic_checks(tmp_path):
    bad_backend = _write(tmp_path, _minimal_world(simulation={'index_backend': 'bsp'}), "backend.yaml")
    with pytest.raises(DataLoadError):
        load_world(bad_backend)

    bad_size = _write(tmp_path, _minimal_world(parameters={'half_size': 0.0}), "size.yaml")
    with pytest.raises(DataLoadError):
        load_world(bad_size)

    bad_food = _write(tmp_path, _minimal_world(food={'count': 2, 'mass_min': 5.0, 'mass_max': 1.0}), "food.yaml")
    with pytest.raises(DataLoadError):
        load_world(bad_food)

    bad_fraction = _write(
        tmp_path,
        _minimal_world(profiles=[{'profile_id': 'moth', 'max_lifespan': 10.0, 'lifespan_min_fraction': 1.5}]),
        "fraction.yaml"
    )
    with pytest.raises(DataLoadError):
        load_world(bad_fraction)


def test_missing_file_and_bad_yaml(tmp_path):
    with pytest.raises(DataLoadError, match="File not found"):
        load_yaml(tmp_path / "nope.yaml")

    broken = tmp_path / "broken.yaml"
    broken.write_text("world_id: [unclosed\n")
    with pytest.raises(DataLoadError, match="YAML parse error"):
        load_yaml(broken)

    scalar = tmp_path / "scalar.yaml"
    scalar.write_text("just a string\n")
    with pytest.raises(DataLoadError):
        load_yaml(scalar)


def test_missing_top_level_id_without_schema(tmp_path):
    for key in ('world_id', 'name'):
        data = _minimal_world()
        del data[key]
        path = _write(tmp_path, data, f"no_{key}.yaml")

        with pytest.raises(DataLoadError, match="Missing required field"):
            load_world(path)
