"""
Spatial utility functions for 3D geometry.

Helper functions for distance calculations, boundary distances,
and box containment in 3D space.
"""

import numpy as np
from typing import Tuple


def distance_3d(pos_a: np.ndarray, pos_b: np.ndarray) -> float:
    """
    Calculate Euclidean distance between two 3D points.

    Args:
        pos_a: Position [x, y, z]
        pos_b: Position [x, y, z]

    Returns:
        Distance in world units
    """
    diff = pos_a - pos_b
    return float(np.sqrt(np.dot(diff, diff)))


def normalize(vec: np.ndarray) -> Tuple[np.ndarray, float]:
    """
    Normalize vector to unit length.

    Args:
        vec: Vector to normalize [x, y, z]

    Returns:
        Tuple of (normalized vector, original length)
    """
    length = float(np.sqrt(np.dot(vec, vec)))

    if length < 1e-9:
        # Zero vector, return arbitrary unit vector
        return np.array([1.0, 0.0, 0.0], dtype=np.float64), 0.0

    return vec / length, length


def axis_wall_distances(pos: np.ndarray, half_size: float) -> np.ndarray:
    """
    Distance to the nearest of the two walls at +/-half_size, per axis.

    Args:
        pos: Position [x, y, z]
        half_size: Half edge length of the world cube

    Returns:
        (3,) array of per-axis distances
    """
    pos = np.asarray(pos, dtype=np.float64)
    return np.minimum(np.abs(pos - half_size), np.abs(pos + half_size))


def points_in_box(points: np.ndarray, center: np.ndarray, half_extents: np.ndarray) -> np.ndarray:
    """
    Boolean mask of points inside an axis-aligned box (bounds inclusive).

    Args:
        points: (N, 3) positions
        center: Box center [x, y, z]
        half_extents: Box half extents [hx, hy, hz]

    Returns:
        (N,) bool mask
    """
    lo = center - half_extents
    hi = center + half_extents
    return np.all((points >= lo) & (points <= hi), axis=1)

