"""
Navigation state for a single boid.

Position plus orientation (unit quaternion, scalar-last [x, y, z, w] as used
by scipy.spatial.transform.Rotation), derived unit vectors, smoothed turning
toward a point, and a fixed-step motion integrator.

Frame convention (OpenGL style):
    right   = local +X
    up      = local +Y
    forward = local -Z
"""

import numpy as np
from typing import Optional
from scipy.spatial.transform import Rotation

from .constants import WORLD_UP

_EPS = 1e-9
_IDENTITY_QUAT = np.array([0.0, 0.0, 0.0, 1.0], dtype=np.float64)


def look_rotation(direction: np.ndarray, up: np.ndarray,
                  fallback_ups: Optional[list] = None) -> Optional[Rotation]:
    """
    Rotation whose forward axis points along `direction`.

    `up` is the reference up vector. When `direction` is parallel to `up`,
    each vector in `fallback_ups` is tried in turn.

    Returns:
        Rotation, or None if `direction` is degenerate
    """
    direction = np.asarray(direction, dtype=np.float64)
    length = float(np.linalg.norm(direction))
    if length < _EPS or not np.isfinite(length):
        return None
    f = direction / length

    candidates = [np.asarray(up, dtype=np.float64)]
    if fallback_ups:
        candidates.extend(np.asarray(c, dtype=np.float64) for c in fallback_ups)
    candidates.extend([np.array([0.0, 0.0, 1.0]), np.array([1.0, 0.0, 0.0])])

    for ref in candidates:
        r = np.cross(f, ref)
        r_len = float(np.linalg.norm(r))
        if r_len > 1e-6:
            r = r / r_len
            u = np.cross(r, f)
            matrix = np.column_stack((r, u, -f))
            return Rotation.from_matrix(matrix)

    return None


class NavState:
    """
    Position + orientation of a boid with steering and integration primitives.

    Attributes:
        pos: (3,) float64 position
        move0: Desired local velocity [right, up, forward] per unit time
        move1: Smoothed local displacement applied on the last step
        spin0: Desired local angular velocity (rotation vector per unit time)
        spin1: Smoothed local rotation applied on the last step
        nudge: One-shot local displacement added on the next step
        turn_impulse: One-shot local rotation added on the next step
        smoothing: Exponential smoothing coefficient in [0, 1)
    """

    def __init__(self, pos=None, quat=None):
        self.pos = np.zeros(3, dtype=np.float64) if pos is None else np.array(pos, dtype=np.float64)
        self.move0 = np.zeros(3, dtype=np.float64)
        self.move1 = np.zeros(3, dtype=np.float64)
        self.spin0 = np.zeros(3, dtype=np.float64)
        self.spin1 = np.zeros(3, dtype=np.float64)
        self.nudge = np.zeros(3, dtype=np.float64)
        self.turn_impulse = np.zeros(3, dtype=np.float64)
        self.smoothing = 0.0

        self._quat = _IDENTITY_QUAT.copy()
        self._ur = np.array([1.0, 0.0, 0.0])
        self._uu = np.array([0.0, 1.0, 0.0])
        self._uf = np.array([0.0, 0.0, -1.0])
        if quat is not None:
            self.set_quat(quat)

    # ------------------------------------------------------------------
    # Orientation access
    # ------------------------------------------------------------------

    @property
    def quat(self) -> np.ndarray:
        """Copy of the unit quaternion [x, y, z, w]."""
        return self._quat.copy()

    def set_quat(self, quat) -> None:
        """
        Set orientation from raw quaternion components and renormalise.

        Raises:
            ValueError: if the quaternion is non-finite or zero length
        """
        q = np.asarray(quat, dtype=np.float64)
        if q.shape != (4,):
            raise ValueError(f"quaternion must have 4 components, got shape {q.shape}")
        norm = float(np.linalg.norm(q))
        if not np.isfinite(norm) or norm < _EPS:
            raise ValueError(f"cannot normalise quaternion {q.tolist()}")
        self._quat = q / norm
        self._update_direction_vectors()

    def set_rotation(self, rotation: Rotation) -> None:
        self.set_quat(rotation.as_quat())

    def _update_direction_vectors(self):
        m = Rotation.from_quat(self._quat).as_matrix()
        self._ur = m[:, 0].copy()
        self._uu = m[:, 1].copy()
        self._uf = -m[:, 2]

    def ur(self) -> np.ndarray:
        """Right unit vector."""
        return self._ur.copy()

    def uu(self) -> np.ndarray:
        """Up unit vector."""
        return self._uu.copy()

    def uf(self) -> np.ndarray:
        """Forward unit vector."""
        return self._uf.copy()

    # ------------------------------------------------------------------
    # Steering
    # ------------------------------------------------------------------

    def look_along(self, direction, up=WORLD_UP) -> None:
        """Snap orientation so forward points along `direction`."""
        rot = look_rotation(direction, up, fallback_ups=[self._uu, -self._uf])
        if rot is not None:
            self.set_rotation(rot)

    def face_toward(self, point, up=WORLD_UP, amt: float = 1.0) -> None:
        """
        Turn toward `point` by interpolation amount `amt`.

        amt = 0 leaves orientation unchanged, amt = 1 faces the point exactly.
        Coincident points are ignored.
        """
        amt = float(amt)
        if not amt > 0.0:
            return
        amt = min(amt, 1.0)

        direction = np.asarray(point, dtype=np.float64) - self.pos
        target = look_rotation(direction, up, fallback_ups=[self._uu, -self._uf])
        if target is None:
            return

        current = Rotation.from_quat(self._quat)
        if amt >= 1.0:
            self.set_rotation(target)
            return

        # Shortest-arc slerp expressed as a scaled world-frame rotation vector
        delta = (target * current.inv()).as_rotvec()
        self.set_rotation(Rotation.from_rotvec(delta * amt) * current)

    def smooth(self, value: float) -> None:
        """Set the smoothing coefficient used when filtering motion in step()."""
        self.smoothing = float(np.clip(value, 0.0, 0.999))

    # ------------------------------------------------------------------
    # Motion
    # ------------------------------------------------------------------

    def move_forward(self, speed: float) -> None:
        """Set desired forward speed."""
        self.move0[2] = speed

    def spin(self, rotvec) -> None:
        """Set desired angular velocity about local axes."""
        self.spin0 = np.array(rotvec, dtype=np.float64)

    def halt(self) -> None:
        """Zero all motion, including smoothed state."""
        self.move0[:] = 0.0
        self.move1[:] = 0.0
        self.spin0[:] = 0.0
        self.spin1[:] = 0.0
        self.nudge[:] = 0.0
        self.turn_impulse[:] = 0.0

    def step(self, dt: float = 1.0) -> None:
        """
        Integrate one fixed step.

        Filtered velocities are updated first, then orientation, then
        position along the updated frame.
        """
        amt = 1.0 - self.smoothing

        self.move1 += (self.move0 * dt + self.nudge - self.move1) * amt
        self.spin1 += (self.spin0 * dt + self.turn_impulse - self.spin1) * amt
        self.nudge[:] = 0.0
        self.turn_impulse[:] = 0.0

        if np.any(self.spin1 != 0.0):
            current = Rotation.from_quat(self._quat)
            self.set_rotation(current * Rotation.from_rotvec(self.spin1))

        self.pos += self._ur * self.move1[0] + self._uu * self.move1[1] + self._uf * self.move1[2]

    def copy(self) -> 'NavState':
        other = NavState(self.pos, self._quat)
        other.move0 = self.move0.copy()
        other.move1 = self.move1.copy()
        other.spin0 = self.spin0.copy()
        other.spin1 = self.spin1.copy()
        other.nudge = self.nudge.copy()
        other.turn_impulse = self.turn_impulse.copy()
        other.smoothing = self.smoothing
        return other
