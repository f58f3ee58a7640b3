"""
Central configuration constants for the flock simulation.

Defines default values, thresholds, and configuration parameters
used across multiple modules.
"""

# ============================================================================
# Spatial Indexing Configuration
# ============================================================================

# Default backend for per-tick spatial indices ('octree', 'ckdtree', 'linear')
INDEX_BACKEND_DEFAULT = "octree"

# Octree build parameters
OCTREE_LEAF_CAPACITY = 8   # Subdivide a node once it holds more points than this
OCTREE_MAX_DEPTH = 16      # Hard stop for coincident / heavily clustered points

# cKDTree build parameters (alternate backend)
CKDTREE_LEAFSIZE = 16


# ============================================================================
# Flocking Behaviour Configuration
# ============================================================================

# Half extent of the neighbour query cube around each boid
NEIGHBOR_QUERY_HALF_EXTENT = 5.0

ALIGNMENT_RADIUS = 5.0
ALIGNMENT_TURN = 0.2

SEPARATION_RADIUS = 1.5
SEPARATION_TURN = 0.75
SEPARATION_EPSILON = 1e-9  # Neighbours closer than this are coincident and skipped

# Only neighbours farther than this pull the boid inward
COHESION_MIN_DISTANCE = 3.5
COHESION_TURN_DIVISOR = 10.0
COHESION_MAX_TURN = 0.75


# ============================================================================
# Boundary Avoidance Configuration
# ============================================================================

# Avoidance is evaluated against a slightly enlarged cube
BOUNDARY_SIZE_SCALE = 1.1667

# Below this per-axis wall distance the orientation is randomly perturbed
BOUNCE_THRESHOLD = 0.15

# Radius around the world origin that boids steer out of
ORIGIN_AVOID_RADIUS = 0.25

WORLD_UP = (0.0, 1.0, 0.0)


# ============================================================================
# Foraging Configuration
# ============================================================================

FOOD_TURN = 0.1
SEEK_SMOOTHING = 0.1


# ============================================================================
# Boid Lifecycle Defaults
# ============================================================================

HUNGER_DEFAULT = 1.0
AGE_RATE_DEFAULT = 0.001
MIN_EDGE_PROXIMITY_DEFAULT = 5.5
TURN_RATE_FACTOR_DEFAULT = 0.13

# Variant constants (prey / predator)
MAX_PREY_LIFESPAN = 300.0
MAX_PREDATOR_LIFESPAN = 100.0

MIN_PREY_EDGE_PROXIMITY = 0.01
MIN_PREDATOR_EDGE_PROXIMITY = 0.05

MAX_PREY_TURN_RATE = 0.1
MAX_PREDATOR_TURN_RATE = 0.2

# Lifespans are sampled in [LIFESPAN_MIN_FRACTION * max_lifespan, max_lifespan]
LIFESPAN_MIN_FRACTION = 0.5


# ============================================================================
# Motion Defaults
# ============================================================================

SPEED_DEFAULT = 0.1
TICK_DELTA_DEFAULT = 1.0


# ============================================================================
# Performance Configuration
# ============================================================================

# Tick timing window for rolling average
TICK_TIME_WINDOW = 100  # Number of ticks to average

# Default tick summary interval (print every N ticks)
TICK_SUMMARY_INTERVAL = 100  # Print summary every 100 ticks
