"""
YAML data loader with schema validation.

Loads the world definition (parameters, simulation defaults, boid profiles,
spawning and food) from YAML files and validates against JSON schemas.
"""

import yaml
import json
from pathlib import Path
from typing import Optional
import jsonschema

from .data_types import (
    World, WorldParameters, SimulationConfig, BoidProfile,
    SpawningConfig, FoodConfig, builtin_profiles
)
from .spatial_queries import BACKENDS


class DataLoadError(Exception):
    """Raised when data loading or validation fails"""
    pass


def load_yaml(file_path: Path) -> dict:
    """Load YAML file and return parsed dict"""
    file_path = Path(file_path)
    if not file_path.exists():
        raise DataLoadError(f"File not found: {file_path}")

    try:
        with open(file_path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise DataLoadError(f"YAML parse error in {file_path}: {e}")

    if not isinstance(data, dict):
        raise DataLoadError(f"Expected a mapping at top level of {file_path}")
    return data


def validate_against_schema(data: dict, schema_path: Path, data_path: Path):
    """Validate data dict against JSON schema"""
    if not schema_path.exists():
        # Schema validation optional when a pack ships without schemas
        return

    try:
        with open(schema_path, 'r') as f:
            schema = json.load(f)
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        raise DataLoadError(f"Validation error in {data_path}: {e.message}")
    except json.JSONDecodeError as e:
        raise DataLoadError(f"Invalid JSON schema {schema_path}: {e}")


def _load_profiles(profile_data: list) -> dict:
    """Merge YAML profiles over the built-in ones (YAML wins on id clash)"""
    profiles = builtin_profiles()
    for p_data in profile_data:
        try:
            profile = BoidProfile(**p_data)
        except TypeError as e:
            raise DataLoadError(f"Bad profile {p_data.get('profile_id', '?')}: {e}")
        if not 0.0 < profile.lifespan_min_fraction <= 1.0:
            raise DataLoadError(
                f"Profile {profile.profile_id}: lifespan_min_fraction must be in (0, 1]"
            )
        profiles[profile.profile_id] = profile
    return profiles


def load_world(file_path: Path, schema_dir: Optional[Path] = None) -> World:
    """Load world configuration from YAML"""
    file_path = Path(file_path)
    data = load_yaml(file_path)

    # Validate if schema available
    if schema_dir:
        schema_path = Path(schema_dir) / "world.schema.json"
        validate_against_schema(data, schema_path, file_path)

    try:
        world_id = data['world_id']
        name = data['name']
        parameters = WorldParameters(**data['parameters'])
        simulation = SimulationConfig(**data.get('simulation', {}))
        spawning = [SpawningConfig(**s) for s in data.get('spawning', [])]
        food = FoodConfig(**data.get('food', {}))
    except KeyError as e:
        raise DataLoadError(f"Missing required field {e} in {file_path}")
    except TypeError as e:
        raise DataLoadError(f"Unexpected field in {file_path}: {e}")

    profiles = _load_profiles(data.get('profiles', []))

    if parameters.half_size <= 0:
        raise DataLoadError(f"half_size must be positive in {file_path}")
    if simulation.index_backend not in BACKENDS:
        raise DataLoadError(f"Unknown index_backend '{simulation.index_backend}' in {file_path}")
    if food.mass_min > food.mass_max:
        raise DataLoadError(f"food.mass_min exceeds food.mass_max in {file_path}")
    for spawn in spawning:
        if spawn.profile_id not in profiles:
            raise DataLoadError(f"Spawning references unknown profile '{spawn.profile_id}' in {file_path}")

    return World(
        world_id=world_id,
        name=name,
        parameters=parameters,
        simulation=simulation,
        profiles=profiles,
        spawning=spawning,
        food=food,
        description=data.get('description')
    )


def load_all_data(data_root: Path, schema_dir: Optional[Path] = None, world_file: str = "flock.yaml") -> dict:
    """Load all simulation data from data directory

    Returns dict with keys: world
    """
    data_root = Path(data_root)
    if schema_dir is None and (data_root / "schemas").exists():
        schema_dir = data_root / "schemas"

    world = load_world(data_root / "world" / world_file, schema_dir)

    return {
        'world': world,
    }
