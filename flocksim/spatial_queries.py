"""
Spatial Index Adapter API

Provides a stable interface for axis-aligned region queries over a point
snapshot (boid positions or food positions). The index is rebuilt wholesale
once per tick and is read-only afterwards.

Backends:
- octree: recursive 8-way partition with exact leaf tests (default)
- ckdtree: scipy.cKDTree Chebyshev ball query + exact box filter
- linear: O(n) scan, reference implementation
"""

import numpy as np
import time
from typing import List, Optional
from scipy.spatial import cKDTree

from .spatial import points_in_box
from .constants import (
    INDEX_BACKEND_DEFAULT,
    OCTREE_LEAF_CAPACITY,
    OCTREE_MAX_DEPTH,
    CKDTREE_LEAFSIZE,
)

BACKENDS = ("octree", "ckdtree", "linear")

_EMPTY_INDICES = np.empty(0, dtype=np.int64)


def _as_points(points) -> np.ndarray:
    """Coerce input to an (N, 3) float64 array."""
    arr = np.asarray(points, dtype=np.float64)
    if arr.size == 0:
        return np.empty((0, 3), dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"points must have shape (N, 3), got {arr.shape}")
    return arr


def _as_box(center, half_extents):
    center = np.asarray(center, dtype=np.float64).reshape(3)
    half = np.broadcast_to(np.asarray(half_extents, dtype=np.float64), (3,)).astype(np.float64)
    if np.any(half < 0.0):
        raise ValueError(f"half_extents must be non-negative, got {half.tolist()}")
    return center, half


# ============================================================================
# O(n) Reference Implementation
# ============================================================================

def query_region_linear(points: np.ndarray, center, half_extents) -> np.ndarray:
    """
    Indices of points inside the box [center - half, center + half].

    Brute-force scan. Bounds are inclusive.

    Args:
        points: (N, 3) positions
        center: Box center [x, y, z]
        half_extents: Box half extents [hx, hy, hz] (scalar broadcasts)

    Returns:
        Sorted int64 array of matching indices
    """
    points = _as_points(points)
    center, half = _as_box(center, half_extents)
    if len(points) == 0:
        return _EMPTY_INDICES.copy()
    return np.flatnonzero(points_in_box(points, center, half)).astype(np.int64)


# ============================================================================
# Octree
# ============================================================================

class _OctreeNode:
    """
    Octree node.

    `lo`/`hi` are the tight bounds of the points actually stored below this
    node, so pruning never depends on rounded octant geometry.
    """
    __slots__ = ("center", "half", "depth", "indices", "children", "lo", "hi")

    def __init__(self, center: np.ndarray, half: float, depth: int, indices: np.ndarray, points: np.ndarray):
        self.center = center
        self.half = half
        self.depth = depth
        self.indices = indices
        self.children: Optional[List['_OctreeNode']] = None
        sub = points[indices]
        self.lo = sub.min(axis=0)
        self.hi = sub.max(axis=0)


class Octree:
    """
    Octree over a fixed point snapshot.

    A node is split into up to 8 children once it holds more than
    `leaf_capacity` points. Splitting stops at `max_depth` or when every
    point in the node is identical.
    """

    def __init__(self, points, leaf_capacity: int = OCTREE_LEAF_CAPACITY, max_depth: int = OCTREE_MAX_DEPTH):
        if leaf_capacity < 1:
            raise ValueError("leaf_capacity must be >= 1")
        self.points = _as_points(points)
        self.leaf_capacity = leaf_capacity
        self.max_depth = max_depth
        self.node_count = 0
        self.root: Optional[_OctreeNode] = None

        n = len(self.points)
        if n == 0:
            return

        lo = self.points.min(axis=0)
        hi = self.points.max(axis=0)
        center = (lo + hi) * 0.5
        half = float(np.max(hi - lo)) * 0.5

        self.root = self._build_node(center, half, 0, np.arange(n, dtype=np.int64))

    def _build_node(self, center: np.ndarray, half: float, depth: int, indices: np.ndarray) -> _OctreeNode:
        node = _OctreeNode(center, half, depth, indices, self.points)
        self.node_count += 1

        if len(indices) <= self.leaf_capacity or depth >= self.max_depth:
            return node
        if np.array_equal(node.lo, node.hi):
            # All points coincide, no split can separate them
            return node

        sub = self.points[indices]
        upper = sub >= center
        octant = upper[:, 0].astype(np.int8) | (upper[:, 1].astype(np.int8) << 1) | (upper[:, 2].astype(np.int8) << 2)

        child_half = half * 0.5
        children = []
        for code in range(8):
            child_indices = indices[octant == code]
            if len(child_indices) == 0:
                continue
            offset = np.array([
                child_half if code & 1 else -child_half,
                child_half if code & 2 else -child_half,
                child_half if code & 4 else -child_half,
            ])
            children.append(self._build_node(center + offset, child_half, depth + 1, child_indices))

        node.children = children
        node.indices = None  # Interior nodes keep no index list
        return node

    def query_region(self, center, half_extents) -> np.ndarray:
        """
        Exact indices inside the axis-aligned box (bounds inclusive).

        Returns:
            Sorted int64 array of indices
        """
        center, half = _as_box(center, half_extents)
        if self.root is None:
            return _EMPTY_INDICES.copy()

        q_lo = center - half
        q_hi = center + half

        found = []
        stack = [self.root]
        while stack:
            node = stack.pop()

            # Disjoint: prune
            if np.any(node.hi < q_lo) or np.any(node.lo > q_hi):
                continue

            # Fully contained: every stored point matches
            if np.all(node.lo >= q_lo) and np.all(node.hi <= q_hi):
                found.append(self._collect(node))
                continue

            if node.children is None:
                sub = self.points[node.indices]
                mask = points_in_box(sub, center, half)
                if mask.any():
                    found.append(node.indices[mask])
            else:
                stack.extend(node.children)

        if not found:
            return _EMPTY_INDICES.copy()
        result = np.concatenate(found)
        result.sort()
        return result

    def _collect(self, node: _OctreeNode) -> np.ndarray:
        if node.children is None:
            return node.indices
        return np.concatenate([self._collect(child) for child in node.children])

    def depth(self) -> int:
        """Maximum depth of any node (0 for a single leaf, -1 when empty)."""
        if self.root is None:
            return -1
        deepest = 0
        stack = [self.root]
        while stack:
            node = stack.pop()
            deepest = max(deepest, node.depth)
            if node.children:
                stack.extend(node.children)
        return deepest


# ============================================================================
# SpatialIndexAdapter
# ============================================================================

class SpatialIndexAdapter:
    """
    Spatial index adapter with stable API.

    Backend selection via constants.INDEX_BACKEND_DEFAULT or the constructor:
    - 'octree': Octree partition (default)
    - 'ckdtree': scipy.cKDTree
    - 'linear': O(n) scan

    All backends return identical results: exactly the indices whose point
    lies inside the query box.
    """

    def __init__(
        self,
        backend: Optional[str] = None,
        leaf_capacity: Optional[int] = None,
        max_depth: Optional[int] = None,
        leafsize: Optional[int] = None
    ):
        """
        Initialize spatial adapter.

        Args:
            backend: Override INDEX_BACKEND_DEFAULT (for testing / A/B runs)
            leaf_capacity: Override OCTREE_LEAF_CAPACITY
            max_depth: Override OCTREE_MAX_DEPTH
            leafsize: Override CKDTREE_LEAFSIZE
        """
        self.backend = backend if backend is not None else INDEX_BACKEND_DEFAULT
        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown spatial backend '{self.backend}', expected one of {BACKENDS}")

        self._leaf_capacity = leaf_capacity if leaf_capacity is not None else OCTREE_LEAF_CAPACITY
        self._max_depth = max_depth if max_depth is not None else OCTREE_MAX_DEPTH
        self._leafsize = leafsize if leafsize is not None else CKDTREE_LEAFSIZE

        self._points: np.ndarray = np.empty((0, 3), dtype=np.float64)
        self._octree: Optional[Octree] = None
        self._tree: Optional[cKDTree] = None

        # Build sequence counter (incremented on every build for cache invalidation)
        self._build_seq: int = 0
        self.last_build_ms: float = 0.0

    def build(self, points) -> 'SpatialIndexAdapter':
        """
        Rebuild the index from a point snapshot, discarding the previous one.

        The snapshot is copied, so later mutation of `points` does not
        affect queries.

        Args:
            points: (N, 3) positions

        Returns:
            self
        """
        build_start = time.perf_counter()

        self._points = _as_points(points).copy()
        self._points.setflags(write=False)
        self._octree = None
        self._tree = None

        if len(self._points) > 0:
            if self.backend == "octree":
                self._octree = Octree(self._points, self._leaf_capacity, self._max_depth)
            elif self.backend == "ckdtree":
                self._tree = cKDTree(self._points, leafsize=self._leafsize)

        self._build_seq += 1
        self.last_build_ms = (time.perf_counter() - build_start) * 1000.0
        return self

    @property
    def points(self) -> np.ndarray:
        """Read-only view of the indexed snapshot."""
        return self._points

    @property
    def build_seq(self) -> int:
        return self._build_seq

    def __len__(self) -> int:
        return len(self._points)

    def query_region(self, center, half_extents) -> np.ndarray:
        """
        Indices of indexed points inside [center - half, center + half].

        Args:
            center: Box center [x, y, z]
            half_extents: Box half extents (scalar broadcasts to all axes)

        Returns:
            Sorted int64 array of indices (empty if none)
        """
        center, half = _as_box(center, half_extents)
        if len(self._points) == 0:
            return _EMPTY_INDICES.copy()

        if self.backend == "octree":
            return self._octree.query_region(center, half)
        elif self.backend == "ckdtree":
            return self._query_region_ckdtree(center, half)
        else:
            return query_region_linear(self._points, center, half)

    def _query_region_ckdtree(self, center: np.ndarray, half: np.ndarray) -> np.ndarray:
        # Chebyshev ball of the largest half extent covers the box; padded so
        # rounding in the ball test never drops a face point
        radius = float(np.max(half)) * (1.0 + 1e-9) + 1e-12
        candidates = self._tree.query_ball_point(center, r=radius, p=np.inf)
        if not candidates:
            return _EMPTY_INDICES.copy()
        candidates = np.asarray(candidates, dtype=np.int64)
        mask = points_in_box(self._points[candidates], center, half)
        result = candidates[mask]
        result.sort()
        return result


def build_index(points, backend: Optional[str] = None) -> SpatialIndexAdapter:
    """
    Build a spatial index over `points`.

    Example:
        index = build_index(positions)
        rows = index.query_region(positions[0], (5.0, 5.0, 5.0))
    """
    return SpatialIndexAdapter(backend=backend).build(points)
