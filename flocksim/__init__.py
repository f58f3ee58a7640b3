"""
Flock Simulation

A deterministic, headless 3D flocking simulator. Boids sense neighbours and
food through a per-tick spatial index and steer with alignment, cohesion,
separation, boundary avoidance and foraging rules.

Architecture: the simulation is the source of truth. Renderers are consumers.
"""

__version__ = "0.1.0"
