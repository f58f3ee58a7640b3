"""
Test NavState: orientation, smoothed turning and the motion integrator.

Verifies:
- Identity frame is right=+X, up=+Y, forward=-Z
- face_toward interpolates between current and target orientation
- Quaternion stays unit length under repeated turns
- step() applies smoothing then moves along the updated frame
"""

import sys
import numpy as np
import pytest
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from flocksim.navigation import NavState, look_rotation

SQRT_HALF = np.sqrt(0.5)


def test_identity_frame():
    nav = NavState()
    assert np.allclose(nav.quat, [0.0, 0.0, 0.0, 1.0])
    assert np.allclose(nav.ur(), [1.0, 0.0, 0.0])
    assert np.allclose(nav.uu(), [0.0, 1.0, 0.0])
    assert np.allclose(nav.uf(), [0.0, 0.0, -1.0])
    assert np.allclose(nav.pos, [0.0, 0.0, 0.0])


def test_look_along():
    nav = NavState([1.0, 2.0, 3.0])
    nav.look_along([1.0, 0.0, 0.0])
    assert np.allclose(nav.uf(), [1.0, 0.0, 0.0])
    assert np.allclose(nav.uu(), [0.0, 1.0, 0.0])
    # Right-handed frame: right = forward x up
    assert np.allclose(nav.ur(), np.cross(nav.uf(), nav.uu()))

    # Degenerate direction leaves orientation untouched
    before = nav.quat
    nav.look_along([0.0, 0.0, 0.0])
    assert np.allclose(nav.quat, before)


def test_look_rotation_rejects_degenerate_direction():
    assert look_rotation([0.0, 0.0, 0.0], [0.0, 1.0, 0.0]) is None
    assert look_rotation([np.nan, 0.0, 0.0], [0.0, 1.0, 0.0]) is None


def test_face_toward_full_and_zero():
    """amt=1 faces the point exactly, amt=0 changes nothing"""
    print("=" * 60)
    print("Test: face_toward endpoints")
    print("=" * 60)

    nav = NavState([0.0, 0.0, 0.0])
    nav.face_toward([0.0, 0.0, 10.0], amt=1.0)
    assert np.allclose(nav.uf(), [0.0, 0.0, 1.0])

    before = nav.quat
    nav.face_toward([10.0, 0.0, 0.0], amt=0.0)
    assert np.allclose(nav.quat, before)

    # Amounts above 1 are clamped
    nav.face_toward([10.0, 0.0, 0.0], amt=5.0)
    assert np.allclose(nav.uf(), [1.0, 0.0, 0.0])

    print("[OK] face_toward endpoints\n")


def test_face_toward_half_turn():
    """Facing +X, half a turn toward +Z lands on the bisector"""
    nav = NavState([0.0, 0.0, 0.0])
    nav.look_along([1.0, 0.0, 0.0])

    nav.face_toward([0.0, 0.0, 1.0], amt=0.5)
    assert np.allclose(nav.uf(), [SQRT_HALF, 0.0, SQRT_HALF], atol=1e-9)
    assert np.allclose(nav.uu(), [0.0, 1.0, 0.0], atol=1e-9)


def test_face_toward_coincident_point_is_noop():
    nav = NavState([4.0, 5.0, 6.0])
    nav.look_along([0.0, 1.0, 1.0])
    before = nav.quat
    nav.face_toward([4.0, 5.0, 6.0], amt=1.0)
    assert np.allclose(nav.quat, before)


def test_face_toward_parallel_to_up():
    """Target straight up still yields a valid orientation"""
    nav = NavState([0.0, 0.0, 0.0])
    nav.face_toward([0.0, 10.0, 0.0], amt=1.0)
    assert np.allclose(nav.uf(), [0.0, 1.0, 0.0])
    assert abs(np.linalg.norm(nav.quat) - 1.0) < 1e-12
    assert abs(np.dot(nav.uf(), nav.uu())) < 1e-9


def test_quaternion_stays_unit_under_random_turns():
    rng = np.random.Generator(np.random.PCG64(99))
    nav = NavState([0.0, 0.0, 0.0])

    for _ in range(1000):
        point = rng.uniform(-10.0, 10.0, size=3)
        nav.face_toward(point, amt=rng.uniform(0.0, 1.0))
        nav.move_forward(0.3)
        nav.step(1.0)
        assert abs(np.linalg.norm(nav.quat) - 1.0) < 1e-9

    print(f"[OK] |q| = {np.linalg.norm(nav.quat):.15f} after 1000 turns")


def test_set_quat_normalises_and_validates():
    nav = NavState()
    nav.set_quat([0.0, 0.0, 0.0, 2.0])
    assert np.allclose(nav.quat, [0.0, 0.0, 0.0, 1.0])

    with pytest.raises(ValueError):
        nav.set_quat([0.0, 0.0, 0.0, 0.0])
    with pytest.raises(ValueError):
        nav.set_quat([np.inf, 0.0, 0.0, 1.0])
    with pytest.raises(ValueError):
        nav.set_quat([0.0, 0.0, 1.0])


def test_quat_property_returns_copy():
    nav = NavState()
    q = nav.quat
    q[0] = 5.0
    assert np.allclose(nav.quat, [0.0, 0.0, 0.0, 1.0])


def test_step_moves_along_forward():
    nav = NavState([0.0, 0.0, 0.0])
    nav.look_along([1.0, 0.0, 0.0])
    nav.move_forward(1.0)
    nav.step(1.0)
    nav.step(1.0)
    assert np.allclose(nav.pos, [2.0, 0.0, 0.0])

    # dt scales displacement
    nav.step(0.5)
    assert np.allclose(nav.pos, [2.5, 0.0, 0.0])


def test_step_with_smoothing():
    """Smoothed velocity approaches the target exponentially"""
    nav = NavState([0.0, 0.0, 0.0])
    nav.look_along([1.0, 0.0, 0.0])
    nav.smooth(0.5)
    nav.move_forward(2.0)

    nav.step(1.0)
    assert np.allclose(nav.pos, [1.0, 0.0, 0.0])
    nav.step(1.0)
    assert np.allclose(nav.pos, [2.5, 0.0, 0.0])


def test_smooth_is_clamped():
    nav = NavState()
    nav.smooth(1.5)
    assert nav.smoothing < 1.0
    nav.smooth(-1.0)
    assert nav.smoothing == 0.0


def test_nudge_is_one_shot():
    nav = NavState([0.0, 0.0, 0.0])
    nav.nudge[1] = 1.0
    nav.step(1.0)
    assert np.allclose(nav.pos, [0.0, 1.0, 0.0])
    nav.step(1.0)
    assert np.allclose(nav.pos, [0.0, 1.0, 0.0])


def test_spin_about_local_up():
    """A quarter turn about +Y takes forward from -Z to -X"""
    nav = NavState([0.0, 0.0, 0.0])
    nav.spin([0.0, np.pi / 2.0, 0.0])
    nav.step(1.0)
    assert np.allclose(nav.uf(), [-1.0, 0.0, 0.0], atol=1e-9)
    assert np.allclose(nav.uu(), [0.0, 1.0, 0.0], atol=1e-9)

    nav.halt()
    before = nav.quat
    nav.step(1.0)
    assert np.allclose(nav.quat, before)


def test_step_is_deterministic():
    def run():
        nav = NavState([1.0, -2.0, 3.0])
        nav.smooth(0.3)
        for i in range(50):
            nav.face_toward([np.sin(i), np.cos(i), 0.5 * i], amt=0.2)
            nav.move_forward(0.5)
            nav.step(1.0)
        return nav.pos.copy(), nav.quat

    pos_a, quat_a = run()
    pos_b, quat_b = run()
    assert np.array_equal(pos_a, pos_b)
    assert np.array_equal(quat_a, quat_b)


def test_copy_is_independent():
    nav = NavState([1.0, 1.0, 1.0])
    nav.move_forward(1.0)
    other = nav.copy()

    other.pos[0] = 100.0
    other.move0[2] = 9.0
    other.face_toward([0.0, 50.0, 0.0])

    assert nav.pos[0] == 1.0
    assert nav.move0[2] == 1.0
    assert np.allclose(nav.quat, [0.0, 0.0, 0.0, 1.0])
