"""
Steering rules for boids.

Each rule reads the tick-start FlockSnapshot plus the candidate rows returned
by the neighbour query, and turns only the calling boid. Rules are applied in
sequence, so each one starts from the orientation the previous rule left.
A rule with no qualifying neighbours leaves the boid untouched.
"""

import numpy as np
from typing import Tuple, TYPE_CHECKING

from .spatial import distance_3d, normalize, axis_wall_distances
from .constants import (
    ALIGNMENT_RADIUS,
    ALIGNMENT_TURN,
    SEPARATION_RADIUS,
    SEPARATION_TURN,
    SEPARATION_EPSILON,
    COHESION_MIN_DISTANCE,
    COHESION_TURN_DIVISOR,
    COHESION_MAX_TURN,
    BOUNCE_THRESHOLD,
    ORIGIN_AVOID_RADIUS,
    WORLD_UP,
)

if TYPE_CHECKING:
    from .boid import Boid, FlockSnapshot
    from .rng import SimRandom

# Quaternion components (scalar-last) perturbed when bouncing off each axis' walls
_BOUNCE_COMPONENTS = {0: (1, 2), 1: (0, 2), 2: (0, 1)}


def _neighbor_offsets(boid: 'Boid', snapshot: 'FlockSnapshot', candidates: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Rows, offsets (self - other) and distances for candidate neighbours.
    """
    rows = np.asarray(candidates, dtype=np.int64)
    offsets = boid.nav.pos - snapshot.positions[rows]
    dists = np.sqrt(np.einsum('ij,ij->i', offsets, offsets))
    return rows, offsets, dists


def alignment(boid: 'Boid', snapshot: 'FlockSnapshot', candidates: np.ndarray):
    """
    Turn toward the mean heading of neighbours closer than ALIGNMENT_RADIUS.
    """
    if len(candidates) == 0:
        return

    rows, _, dists = _neighbor_offsets(boid, snapshot, candidates)
    mask = dists < ALIGNMENT_RADIUS
    count = int(np.count_nonzero(mask))
    if count == 0:
        return

    average_heading = snapshot.forwards[rows[mask]].sum(axis=0) / count
    direction, length = normalize(average_heading)
    if length == 0.0:
        # Opposing headings cancelled out
        return

    boid.nav.face_toward(boid.nav.pos + direction, WORLD_UP, ALIGNMENT_TURN)


def separation(boid: 'Boid', snapshot: 'FlockSnapshot', candidates: np.ndarray):
    """
    Turn away from neighbours closer than SEPARATION_RADIUS.

    Each neighbour contributes a unit vector away from it scaled by
    1 / distance. Coincident neighbours (including the boid itself) carry
    no direction and are skipped.
    """
    if len(candidates) == 0:
        return

    _, offsets, dists = _neighbor_offsets(boid, snapshot, candidates)
    mask = (dists > SEPARATION_EPSILON) & (dists < SEPARATION_RADIUS)
    count = int(np.count_nonzero(mask))
    if count == 0:
        return

    close_dists = dists[mask]
    away = offsets[mask] / (close_dists * close_dists)[:, np.newaxis]
    separation_force = away.sum(axis=0) / count

    if np.dot(separation_force, separation_force) < SEPARATION_EPSILON:
        # Symmetric neighbours, forces cancel
        return

    boid.nav.face_toward(boid.nav.pos + separation_force, WORLD_UP, SEPARATION_TURN)


def cohesion(boid: 'Boid', snapshot: 'FlockSnapshot', candidates: np.ndarray):
    """
    Turn toward the centroid of neighbours farther than COHESION_MIN_DISTANCE.

    Nearby flock-mates do not attract; only distant ones pull the boid in.
    Turn strength grows with distance to the centroid, capped at
    COHESION_MAX_TURN.
    """
    if len(candidates) == 0:
        return

    rows, _, dists = _neighbor_offsets(boid, snapshot, candidates)
    mask = dists > COHESION_MIN_DISTANCE
    count = int(np.count_nonzero(mask))
    if count == 0:
        return

    center_of_mass = snapshot.positions[rows[mask]].sum(axis=0) / count
    turn_rate = min(distance_3d(boid.nav.pos, center_of_mass) / COHESION_TURN_DIVISOR, COHESION_MAX_TURN)

    boid.nav.face_toward(center_of_mass, WORLD_UP, turn_rate)


def handle_boundary(boid: 'Boid', size: float, rng: 'SimRandom'):
    """
    Steer away from the walls of the cube [-size, size]^3.

    Axes are handled independently in x, y, z order. Within
    min_edge_proximity of a wall the boid turns toward the point mirrored
    across that axis, with strength turn_rate_factor * proximity ratio.
    Closer than BOUNCE_THRESHOLD, the two quaternion components orthogonal
    to the axis are replaced with signed uniform draws and renormalised.

    Args:
        boid: Boid to steer
        size: Half edge length of the (enlarged) world cube
        rng: Random source for bounce perturbation
    """
    wall_dists = axis_wall_distances(boid.nav.pos, size)

    for axis in range(3):
        axis_dist = float(wall_dists[axis])
        if axis_dist >= boid.min_edge_proximity:
            continue

        proximity = (size - axis_dist) / size
        mirror = boid.nav.pos.copy()
        mirror[axis] = -mirror[axis]
        boid.nav.face_toward(mirror, boid.nav.uu(), boid.turn_rate_factor * proximity)

        if axis_dist < BOUNCE_THRESHOLD:
            quat = boid.nav.quat
            first, second = _BOUNCE_COMPONENTS[axis]
            quat[first] = rng.uniform_s()
            quat[second] = rng.uniform_s()
            boid.nav.set_quat(quat)


def origin_avoidance(boid: 'Boid', size: float):
    """
    Steer out of the small sphere around the world origin.

    Turns toward the point mirrored through the origin with strength
    turn_rate_factor * (1 - dist / size).
    """
    pos = boid.nav.pos
    dist = float(np.sqrt(np.dot(pos, pos)))
    if dist >= ORIGIN_AVOID_RADIUS:
        return

    turn_rate = boid.turn_rate_factor * (1.0 - dist / size)
    boid.nav.face_toward(-pos, boid.nav.uu(), turn_rate)
